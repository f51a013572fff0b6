# livrini/services/deliveries.py

"""Delivery listings and single-delivery lookup with demo fallback."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from livrini.api.client import ApiClient, extract_data, extract_list
from livrini.api.errors import ApiError
from livrini.config.settings import Settings
from livrini.models.delivery import Delivery

logger = logging.getLogger("livrini.deliveries")


@dataclass(frozen=True)
class DeliveryStep:
    id: str
    label: str


DELIVERY_STEPS: tuple[DeliveryStep, ...] = (
    DeliveryStep("confirmed", "Confirmée"),
    DeliveryStep("preparing", "En préparation"),
    DeliveryStep("shipped", "Expédiée"),
    DeliveryStep("in_transit", "En transit"),
    DeliveryStep("delivered", "Livrée"),
)

SHIPPED_STEP = 2
IN_TRANSIT_STEP = 3
DELIVERED_STEP = 4

_STATUS_STEPS: dict[str, int] = {
    "en_attente": 0,
    "confirmee": 1,
    "en_preparation": 2,
    "expediee": 3,
    "en_cours": 3,
    "en_transit": 3,
    "livree": 4,
    "annulee": 0,
}


def step_for_status(statut: str) -> int:
    """Index into :data:`DELIVERY_STEPS`; unknown statuses are in transit."""
    return _STATUS_STEPS.get(statut.lower(), IN_TRANSIT_STEP)


def filter_deliveries(
    deliveries: list[Delivery], query: str,
) -> list[Delivery]:
    if not query:
        return list(deliveries)
    return [d for d in deliveries if d.matches(query)]


def _sample_delivery(
    delivery_id: str, numero: str, commande_numero: str,
) -> Delivery:
    eta = datetime.now() + timedelta(minutes=Settings.TRACKING_ETA_MINUTES)
    return Delivery(
        id=delivery_id,
        numero=numero,
        statut="en_cours",
        adresse="123 Avenue Habib Bourguiba, Tunis",
        date_estimee=eta.isoformat(timespec="seconds"),
        livreur_nom="Ahmed Ben Ali",
        livreur_telephone="+216 98 765 432",
        commande_numero=commande_numero,
        commande_montant=156.50,
    )


def demo_delivery() -> Delivery:
    return _sample_delivery("demo-123", "LIV-DEMO-001", "CMD-DEMO-001")


class DeliveryService:
    """Reads livraisons for clients and suppliers."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def my_deliveries(self) -> list[Delivery]:
        raw = extract_list(
            self.client.get("/livraisons/mes-livraisons"),
            "deliveries",
            "items",
        )
        return [Delivery.from_api(d) for d in raw if isinstance(d, dict)]

    def all_deliveries(self) -> list[Delivery]:
        raw = extract_list(self.client.get("/livraisons"), "deliveries")
        return [Delivery.from_api(d) for d in raw if isinstance(d, dict)]

    def get_delivery(self, delivery_id: str | None) -> Delivery:
        """Fetch one delivery for the tracker.

        ``None`` or ``"demo"`` returns the demo delivery.  When the
        backend call fails the tracker still gets a sample delivery
        labelled after the requested id.
        """
        if not delivery_id or delivery_id == "demo":
            return demo_delivery()
        try:
            data = extract_data(self.client.get(f"/livraisons/{delivery_id}"))
        except ApiError as exc:
            logger.warning(
                "Delivery %s unavailable, showing sample data: %s",
                delivery_id,
                exc,
                exc_info=True,
            )
            return _sample_delivery(
                delivery_id,
                f"LIV-{delivery_id[-6:].upper()}",
                "CMD-2024-001",
            )
        delivery = Delivery.from_api(data if isinstance(data, dict) else {})
        if not delivery.id:
            delivery.id = delivery_id
        return delivery
