# livrini/storage/cart_store.py

"""Cart and wishlist backed by the local store."""

import logging
from collections.abc import Callable
from typing import Any

from livrini.config.settings import Settings
from livrini.models.cart_item import CartItem
from livrini.models.product import Product
from livrini.storage.local_store import (
    CART_UPDATED,
    WISHLIST_UPDATED,
    LocalStore,
)

logger = logging.getLogger("livrini.cart")


def normalise_cart(raw: Any) -> list[CartItem]:
    """Parse a stored cart list, merging duplicate product ids.

    Non-list values and entries without an id are dropped.  Lines keep
    the position of their first occurrence.
    """
    if not isinstance(raw, list):
        return []
    merged: dict[str, CartItem] = {}
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        item = CartItem.from_dict(entry)
        if not item.product_id:
            continue
        existing = merged.get(item.product_id)
        if existing is None:
            merged[item.product_id] = item
        else:
            existing.quantity += item.quantity
    return list(merged.values())


class Cart:
    """Shopping cart persisted under the ``cart`` key.

    The store is the single source of truth: each operation re-reads
    the persisted list, applies its change and writes it back, then
    dispatches ``cartUpdated``.
    """

    def __init__(self, store: LocalStore) -> None:
        self.store = store
        self.key = Settings.CART_KEY

    @property
    def items(self) -> list[CartItem]:
        return normalise_cart(self.store.get(self.key, []))

    @property
    def count(self) -> int:
        """Total units across all lines."""
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def get(self, product_id: str) -> CartItem | None:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def _mutate(
        self, change: Callable[[list[CartItem]], list[CartItem]],
    ) -> list[CartItem]:
        def apply(raw: Any) -> list[dict[str, Any]]:
            items = normalise_cart(raw)
            return [item.to_dict() for item in change(items)]

        stored = self.store.update(self.key, apply, default=[])
        self.store.dispatch(CART_UPDATED)
        return normalise_cart(stored)

    def add(self, product: Product, quantity: int = 1) -> CartItem:
        """Add *quantity* units; an existing line accumulates.

        Raises:
            ValueError: *product* has no id.
        """
        if not product.id:
            raise ValueError(f"Cannot add product without id: {product.nom!r}")
        quantity = max(1, quantity)

        def change(items: list[CartItem]) -> list[CartItem]:
            for item in items:
                if item.product_id == product.id:
                    item.quantity += quantity
                    return items
            items.append(CartItem.from_product(product, quantity))
            return items

        result = self._mutate(change)
        logger.info("Added %d x %s to cart", quantity, product.id)
        return next(i for i in result if i.product_id == product.id)

    def remove(self, product_id: str) -> bool:
        """Drop the line for *product_id*; False when it was absent."""
        present = self.get(product_id) is not None
        self._mutate(
            lambda items: [i for i in items if i.product_id != product_id]
        )
        if present:
            logger.info("Removed %s from cart", product_id)
        return present

    def update_quantity(self, product_id: str, delta: int) -> CartItem | None:
        """Shift a line's quantity by *delta*, never below one."""

        def change(items: list[CartItem]) -> list[CartItem]:
            for item in items:
                if item.product_id == product_id:
                    item.quantity = max(1, item.quantity + delta)
            return items

        result = self._mutate(change)
        return next((i for i in result if i.product_id == product_id), None)

    def set_quantity(self, product_id: str, quantity: int) -> CartItem | None:
        """Set a line's quantity outright (clamped to one)."""

        def change(items: list[CartItem]) -> list[CartItem]:
            for item in items:
                if item.product_id == product_id:
                    item.quantity = max(1, quantity)
            return items

        result = self._mutate(change)
        return next((i for i in result if i.product_id == product_id), None)

    def clear(self) -> None:
        self.store.set(self.key, [])
        self.store.dispatch(CART_UPDATED)
        logger.info("Cart cleared")


def normalise_wishlist(raw: Any) -> list[Product]:
    """Parse a stored wishlist, dropping id-less and repeated entries."""
    if not isinstance(raw, list):
        return []
    seen: set[str] = set()
    products: list[Product] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        product = Product.from_api(entry)
        if product.id and product.id not in seen:
            seen.add(product.id)
            products.append(product)
    return products


class Wishlist:
    """Favourite products persisted under the ``wishlist`` key.

    Mutations follow the same read-modify-write path as :class:`Cart`.
    """

    def __init__(self, store: LocalStore) -> None:
        self.store = store
        self.key = Settings.WISHLIST_KEY

    @property
    def items(self) -> list[Product]:
        return normalise_wishlist(self.store.get(self.key, []))

    def __len__(self) -> int:
        return len(self.items)

    def contains(self, product_id: str) -> bool:
        return any(p.id == product_id for p in self.items)

    def _mutate(
        self, change: Callable[[list[Product]], list[Product]],
    ) -> list[Product]:
        def apply(raw: Any) -> list[dict[str, Any]]:
            return [p.to_dict() for p in change(normalise_wishlist(raw))]

        stored = self.store.update(self.key, apply, default=[])
        self.store.dispatch(WISHLIST_UPDATED)
        return normalise_wishlist(stored)

    def add(self, product: Product) -> None:
        """Save *product* unless it is already saved.

        Raises:
            ValueError: *product* has no id.
        """
        if not product.id:
            raise ValueError(f"Cannot save product without id: {product.nom!r}")
        self._mutate(
            lambda items: items if any(p.id == product.id for p in items)
            else [*items, product]
        )

    def remove(self, product_id: str) -> bool:
        removed = False

        def change(items: list[Product]) -> list[Product]:
            nonlocal removed
            kept = [p for p in items if p.id != product_id]
            removed = len(kept) != len(items)
            return kept

        self._mutate(change)
        return removed

    def toggle(self, product: Product) -> bool:
        """Flip membership; returns True when the product is now saved."""
        if not product.id:
            raise ValueError(f"Cannot save product without id: {product.nom!r}")
        saved = False

        def change(items: list[Product]) -> list[Product]:
            nonlocal saved
            kept = [p for p in items if p.id != product.id]
            saved = len(kept) == len(items)
            return [*kept, product] if saved else kept

        self._mutate(change)
        if saved:
            logger.info("Added %s to wishlist", product.id)
        else:
            logger.info("Removed %s from wishlist", product.id)
        return saved

    def move_to_cart(self, product_id: str, cart: Cart) -> CartItem | None:
        """Add one unit of a saved product to *cart* (it stays saved)."""
        for product in self.items:
            if product.id == product_id:
                return cart.add(product)
        return None

    def clear(self) -> None:
        self._mutate(lambda items: [])
