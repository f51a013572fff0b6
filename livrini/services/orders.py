# livrini/services/orders.py

"""Order listing and checkout (cash on delivery or card)."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from livrini.api.client import ApiClient, extract_list
from livrini.api.errors import ApiError, PaymentError
from livrini.config.settings import Settings
from livrini.models.order import Order
from livrini.services.pricing import CartTotals, apply_promo_code, compute_totals
from livrini.storage.cart_store import Cart

logger = logging.getLogger("livrini.orders")

# Receives the client secret of a payment intent and returns the
# processor's confirmation: {"id": ..., "status": "succeeded"}.
CardConfirmer = Callable[[str], dict[str, Any]]


def filter_orders(orders: list[Order], query: str) -> list[Order]:
    if not query:
        return list(orders)
    return [o for o in orders if o.matches(query)]


class OrderService:
    """Client and supplier order listings."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def my_orders(self) -> list[Order]:
        raw = extract_list(
            self.client.get("/commandes/mes-commandes"), "orders", "items"
        )
        return [Order.from_api(o) for o in raw if isinstance(o, dict)]

    def all_orders(self) -> list[Order]:
        raw = extract_list(self.client.get("/commandes"), "orders", "items")
        return [Order.from_api(o) for o in raw if isinstance(o, dict)]


@dataclass
class CheckoutResult:
    """A placed order as acknowledged by the backend."""

    method: str
    totals: CartTotals
    order_id: str = ""
    response: dict[str, Any] = field(
        default_factory=lambda: dict[str, Any]()
    )

    @property
    def reference(self) -> str:
        return self.order_id[-8:].upper()


class CheckoutService:
    """Turns the cart into an order and settles payment."""

    METHODS: tuple[str, ...] = ("cash", "card")

    def __init__(self, client: ApiClient, cart: Cart) -> None:
        self.client = client
        self.cart = cart

    def quote(self, promo: str | None = None) -> CartTotals:
        percent = apply_promo_code(promo).percent if promo else 0
        return compute_totals(self.cart.items, percent)

    def _order_lines(self) -> list[dict[str, Any]]:
        return [
            {
                "produit": item.product_id,
                "quantite": item.quantity,
                "prixUnitaire": item.prix,
            }
            for item in self.cart.items
        ]

    def checkout(
        self,
        address: str,
        method: str = "cash",
        promo: str | None = None,
        card_confirmer: CardConfirmer | None = None,
    ) -> CheckoutResult:
        """Place the order; the cart is cleared only on success."""
        if method not in self.METHODS:
            raise PaymentError(f"Méthode de paiement inconnue: {method}")
        if self.cart.is_empty:
            raise PaymentError("Votre panier est vide")
        if not address or not address.strip():
            raise PaymentError("Adresse de livraison requise")
        totals = self.quote(promo)
        if totals.total <= 0:
            raise PaymentError("Montant invalide")

        if method == "cash":
            result = self._pay_cash(address.strip(), totals)
        else:
            result = self._pay_card(address.strip(), totals, card_confirmer)

        self.cart.clear()
        logger.info(
            "Order %s placed (%s, %.2f %s)",
            result.reference or "?",
            method,
            totals.total,
            Settings.CURRENCY,
        )
        return result

    def _pay_cash(self, address: str, totals: CartTotals) -> CheckoutResult:
        response = self.client.post(
            "/commandes",
            {
                "produits": self._order_lines(),
                "montantTotal": totals.total,
                "adresseLivraison": address,
                "methodePaiement": "especes",
                "statutPaiement": "en_attente",
            },
        )
        body = response if isinstance(response, dict) else {}
        if not (body.get("success") or body.get("_id")):
            raise PaymentError("Commande refusée par le serveur", payload=body)
        return CheckoutResult(
            method="cash",
            totals=totals,
            order_id=_order_id(body),
            response=body,
        )

    def _pay_card(
        self,
        address: str,
        totals: CartTotals,
        card_confirmer: CardConfirmer | None,
    ) -> CheckoutResult:
        if card_confirmer is None:
            raise PaymentError("Paiement par carte non initialisé")
        intent = self.client.post(
            "/payments/create-payment-intent",
            {
                "amount": totals.total,
                "currency": Settings.CURRENCY.lower(),
                "metadata": {"itemCount": len(self.cart.items)},
            },
        )
        if not isinstance(intent, dict) or not intent.get("success"):
            message = "Erreur de paiement"
            if isinstance(intent, dict) and intent.get("message"):
                message = str(intent["message"])
            raise PaymentError(message, payload=intent)

        try:
            confirmation = card_confirmer(str(intent.get("clientSecret", "")))
        except ApiError:
            raise
        except Exception as exc:
            logger.error("Card confirmation failed", exc_info=True)
            raise PaymentError(str(exc)) from exc
        if confirmation.get("status") != "succeeded":
            raise PaymentError(
                f"Paiement non abouti ({confirmation.get('status')})",
                payload=confirmation,
            )

        confirmed = self.client.post(
            "/payments/confirm-payment",
            {
                "paymentIntentId": confirmation.get("id"),
                "orderData": {
                    "items": [
                        {
                            "productId": item.product_id,
                            "quantity": item.quantity,
                            "prix": item.prix,
                        }
                        for item in self.cart.items
                    ],
                    "shippingAddress": address,
                },
            },
        )
        body = confirmed if isinstance(confirmed, dict) else {}
        if not body.get("success"):
            raise PaymentError("Confirmation du paiement refusée", payload=body)
        return CheckoutResult(
            method="card",
            totals=totals,
            order_id=_order_id(body),
            response=body,
        )


def _order_id(body: dict[str, Any]) -> str:
    order = body.get("order")
    if isinstance(order, dict) and order.get("id"):
        return str(order["id"])
    return str(body.get("_id") or "")
