# livrini/models/order.py

"""Order (commande) model."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Order:
    """A commande as listed by ``/commandes`` endpoints."""

    id: str
    status: str = ""
    total: float = 0.0
    created_at: str = ""
    customer: str = ""
    raw: dict[str, Any] = field(default_factory=lambda: dict[str, Any]())

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Order":
        total = payload.get("montantTotal", payload.get("total", 0))
        try:
            total_value = float(total or 0)
        except (TypeError, ValueError):
            total_value = 0.0
        client = payload.get("client") or payload.get("customer") or ""
        if isinstance(client, dict):
            client = client.get("nom") or client.get("email") or ""
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            status=str(
                payload.get("status")
                or payload.get("statut")
                or payload.get("statutCommande")
                or ""
            ),
            total=total_value,
            created_at=str(
                payload.get("createdAt") or payload.get("date") or ""
            ),
            customer=str(client),
            raw=dict(payload),
        )

    @property
    def reference(self) -> str:
        """Short order number shown to users (last 8 chars)."""
        return self.id[-8:].upper()

    def matches(self, query: str) -> bool:
        """Id substring or case-insensitive status substring."""
        return query in self.id or query.lower() in self.status.lower()
