# livrini/services/catalog.py

"""Product and category catalog."""

import logging
from typing import Any

from livrini.api.client import ApiClient, extract_data, extract_list
from livrini.api.errors import ApiError
from livrini.config.settings import Settings
from livrini.models.product import Product

logger = logging.getLogger("livrini.catalog")

SORT_OPTIONS: tuple[str, ...] = (
    "featured",
    "price-low",
    "price-high",
    "rating",
)


def sort_products(products: list[Product], option: str) -> list[Product]:
    """Return a sorted copy; ``featured`` keeps the backend order."""
    if option == "price-low":
        return sorted(products, key=lambda p: p.prix)
    if option == "price-high":
        return sorted(products, key=lambda p: p.prix, reverse=True)
    if option == "rating":
        return sorted(products, key=lambda p: p.rating, reverse=True)
    return list(products)


def filter_by_category(
    products: list[Product], category: str | None,
) -> list[Product]:
    if not category or category == "all":
        return list(products)
    wanted = category.lower()
    return [p for p in products if p.categorie.lower() == wanted]


def _has_id(data: Any) -> bool:
    return isinstance(data, dict) and bool(data.get("_id") or data.get("id"))


def stock_badge(product: Product) -> str:
    """Low-stock label, empty when stock is unknown or comfortable."""
    stock = product.quantite_stock
    if stock is None or stock > Settings.LOW_STOCK_THRESHOLD:
        return ""
    if stock == 0:
        return "Out of Stock"
    return f"Only {stock} left"


class CatalogService:
    """Reads the catalog and performs supplier product CRUD."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def list_products(self, category: str | None = None) -> list[Product]:
        raw = extract_list(self.client.get("/produits"), "produits", "products")
        products = [Product.from_api(p) for p in raw if isinstance(p, dict)]
        products = [p for p in products if p.id]
        logger.info("Loaded %d products", len(products))
        return filter_by_category(products, category)

    def get_product(self, product_id: str) -> Product:
        """Fetch one product.

        Raises:
            ApiError: the response carries no identifiable product.
        """
        data = extract_data(self.client.get(f"/produits/{product_id}"))
        if isinstance(data, dict) and "produit" in data:
            data = data["produit"]
        product = Product.from_api(data if isinstance(data, dict) else {})
        if not product.id:
            raise ApiError(f"Produit introuvable: {product_id}")
        return product

    def list_categories(self) -> list[dict[str, Any]]:
        raw = extract_list(self.client.get("/categories"), "categories")
        return [c for c in raw if isinstance(c, dict)]

    def create_product(self, fields: dict[str, Any]) -> Product:
        data = extract_data(self.client.post("/produits", fields))
        logger.info("Created product %s", fields.get("nom", "?"))
        return Product.from_api(data if _has_id(data) else fields)

    def update_product(
        self, product_id: str, fields: dict[str, Any],
    ) -> Product:
        data = extract_data(self.client.put(f"/produits/{product_id}", fields))
        logger.info("Updated product %s", product_id)
        merged = {"_id": product_id, **fields}
        return Product.from_api(data if _has_id(data) else merged)

    def delete_product(self, product_id: str) -> None:
        self.client.delete(f"/produits/{product_id}")
        logger.info("Deleted product %s", product_id)

    def delete_category(self, category_id: str) -> None:
        self.client.delete(f"/categories/{category_id}")
        logger.info("Deleted category %s", category_id)
