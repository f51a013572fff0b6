# livrini/models/cart_item.py

"""Cart line item model."""

from dataclasses import dataclass
from typing import Any

from livrini.models.product import Product


@dataclass
class CartItem:
    """One product line in the cart; unique by ``product_id``."""

    product_id: str
    nom: str
    prix: float
    image_url: str = ""
    quantity: int = 1

    @property
    def line_total(self) -> float:
        return self.prix * self.quantity

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartItem":
        return cls(
            product_id=product.id,
            nom=product.nom,
            prix=product.prix,
            image_url=product.image_url,
            quantity=max(1, quantity),
        )

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CartItem":
        """Read a stored line; a missing quantity counts as one."""
        try:
            quantity = int(raw.get("quantity") or 1)
        except (TypeError, ValueError):
            quantity = 1
        try:
            prix = float(raw.get("prix") or 0)
        except (TypeError, ValueError):
            prix = 0.0
        return cls(
            product_id=str(raw.get("_id") or raw.get("id") or ""),
            nom=str(raw.get("nom") or ""),
            prix=prix,
            image_url=str(raw.get("imageURL") or ""),
            quantity=max(1, quantity),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.product_id,
            "nom": self.nom,
            "prix": self.prix,
            "imageURL": self.image_url,
            "quantity": self.quantity,
        }
