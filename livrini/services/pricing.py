# livrini/services/pricing.py

"""Promo codes and cart totals."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from livrini.config.settings import Settings
from livrini.models.cart_item import CartItem

logger = logging.getLogger("livrini.pricing")


@dataclass
class PromoResult:
    """Outcome of applying a promo code."""

    code: str
    percent: int
    accepted: bool
    message: str


@dataclass
class CartTotals:
    """Order summary figures, all in ``Settings.CURRENCY``."""

    subtotal: float
    discount_percent: int
    discount_amount: float
    shipping: float
    total: float

    @property
    def free_shipping(self) -> bool:
        return self.shipping == 0


def apply_promo_code(code: str) -> PromoResult:
    """Look up *code* (case-insensitive) in the promo table.

    Unknown codes yield a zero discount and a rejection message.
    """
    normalised = code.strip().upper()
    percent = Settings.PROMO_CODES.get(normalised)
    if percent is None:
        logger.info("Rejected promo code '%s'", code)
        return PromoResult(
            code=normalised,
            percent=0,
            accepted=False,
            message="Code promo invalide",
        )
    logger.info("Applied promo code %s (-%d%%)", normalised, percent)
    return PromoResult(
        code=normalised,
        percent=percent,
        accepted=True,
        message=f"Code promo appliqué: -{percent}%",
    )


def shipping_for(subtotal: float) -> float:
    """Free above the threshold, flat fee otherwise."""
    if subtotal > Settings.FREE_SHIPPING_THRESHOLD:
        return 0.0
    return Settings.SHIPPING_FEE


def compute_totals(
    items: Iterable[CartItem], discount_percent: int = 0,
) -> CartTotals:
    """Subtotal, discount, shipping and total for the given lines."""
    subtotal = sum(item.line_total for item in items)
    discount_amount = subtotal * (discount_percent / 100)
    shipping = shipping_for(subtotal)
    return CartTotals(
        subtotal=subtotal,
        discount_percent=discount_percent,
        discount_amount=discount_amount,
        shipping=shipping,
        total=subtotal - discount_amount + shipping,
    )


def format_amount(amount: float) -> str:
    """``156.50 TND``."""
    return f"{amount:.2f} {Settings.CURRENCY}"
