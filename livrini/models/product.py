# livrini/models/product.py

"""Product data model for catalog, cart and wishlist flows."""

from dataclasses import dataclass
from typing import Any


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int | None:
    """Whole-number stock counts; None when missing or unreadable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


@dataclass
class Product:
    """A catalog product as returned by ``/produits``."""

    id: str
    nom: str
    prix: float
    image_url: str = ""
    quantite_stock: int | None = None
    categorie: str = ""
    statut: str = ""
    rating: float = 0.0
    description: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Product":
        """Build a Product from a backend (or stored) payload."""
        categorie = payload.get("categorie", payload.get("category", ""))
        if isinstance(categorie, dict):
            categorie = categorie.get("nom") or categorie.get("name") or ""
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            nom=str(payload.get("nom") or payload.get("name") or ""),
            prix=_to_float(payload.get("prix", payload.get("price"))),
            image_url=str(
                payload.get("imageURL") or payload.get("image") or ""
            ),
            quantite_stock=_to_int(payload.get("quantiteStock")),
            categorie=str(categorie or ""),
            statut=str(payload.get("statutProduit") or ""),
            rating=_to_float(payload.get("rating")),
            description=str(payload.get("description") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise in the backend's field naming."""
        return {
            "_id": self.id,
            "nom": self.nom,
            "prix": self.prix,
            "imageURL": self.image_url,
            "quantiteStock": self.quantite_stock,
            "categorie": self.categorie,
            "statutProduit": self.statut,
            "rating": self.rating,
            "description": self.description,
        }
