# livrini/services/admin.py

"""Administrator dashboard operations."""

import logging
from dataclasses import dataclass, field
from typing import Any

from livrini.api.client import ApiClient, extract_data, extract_list
from livrini.api.errors import ApiError

logger = logging.getLogger("livrini.admin")

REPORT_KINDS: tuple[str, ...] = ("sales", "inventory", "users", "products")

_SAMPLE_USERS: list[dict[str, Any]] = [
    {"id": "1", "name": "Admin User", "email": "admin@example.com", "role": "admin"},
    {"id": "2", "name": "Client One", "email": "client@example.com", "role": "client"},
    {"id": "3", "name": "Supplier One", "email": "supplier@example.com", "role": "fournisseur"},
]

_SAMPLE_CATEGORIES: list[dict[str, Any]] = [
    {"id": "1", "name": "Electronics", "productCount": 24},
    {"id": "2", "name": "Clothing", "productCount": 42},
    {"id": "3", "name": "Groceries", "productCount": 15},
]

_SAMPLE_ORDERS: list[dict[str, Any]] = [
    {"id": "1", "customer": "Client One", "date": "2023-05-15", "status": "Delivered", "total": 120.0},
    {"id": "2", "customer": "Client Two", "date": "2023-05-16", "status": "Processing", "total": 56.5},
]

_SAMPLE_ALERTS: list[dict[str, Any]] = [
    {"id": "1", "product": "Laptop XYZ", "currentStock": 2, "threshold": 5},
    {"id": "2", "product": "T-Shirt ABC", "currentStock": 3, "threshold": 10},
]


def normalise_user(raw: dict[str, Any]) -> dict[str, Any]:
    """Flatten the user shapes returned by different backend versions."""
    name = raw.get("name") or " ".join(
        str(p) for p in (raw.get("prenom"), raw.get("nom")) if p
    )
    return {
        "id": str(raw.get("id") or raw.get("_id") or ""),
        "name": name or str(raw.get("email") or ""),
        "email": str(raw.get("email") or ""),
        "role": str(raw.get("role") or "client").lower(),
    }


@dataclass
class Listing:
    """Rows for one dashboard tab, flagged when they are placeholders."""

    rows: list[dict[str, Any]]
    fallback: bool = False
    error: str = ""


@dataclass
class BulkResult:
    resolved: list[str] = field(default_factory=lambda: list[str]())
    failed: list[str] = field(default_factory=lambda: list[str]())


class AdminService:
    """Users, categories, orders, stock alerts and reports."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def _listing(
        self,
        path: str,
        keys: tuple[str, ...],
        sample: list[dict[str, Any]],
    ) -> Listing:
        try:
            raw = extract_list(self.client.get(path), *keys)
        except ApiError as exc:
            logger.warning(
                "Failed to load %s, using fallback sample data: %s",
                path,
                exc,
                exc_info=True,
            )
            return Listing(
                rows=[dict(r) for r in sample],
                fallback=True,
                error=exc.message,
            )
        return Listing(rows=[r for r in raw if isinstance(r, dict)])

    def verify_admin(self) -> None:
        """Server-side confirmation of the admin role."""
        self.client.get("/users/verify-admin-role")

    def list_users(self) -> Listing:
        listing = self._listing("/users", ("users",), _SAMPLE_USERS)
        listing.rows = [normalise_user(u) for u in listing.rows]
        return listing

    def create_user(self, payload: dict[str, Any]) -> dict[str, Any]:
        data = extract_data(self.client.post("/users", payload))
        logger.info("Created user %s", payload.get("email", "?"))
        return data if isinstance(data, dict) else {}

    def delete_user(self, user_id: str) -> None:
        self.client.delete(f"/users/{user_id}")
        logger.info("Deleted user %s", user_id)

    def list_categories(self) -> Listing:
        return self._listing("/categories", ("categories",), _SAMPLE_CATEGORIES)

    def list_orders(self) -> Listing:
        return self._listing("/commandes", ("orders",), _SAMPLE_ORDERS)

    def update_order_status(self, order_id: str, status: str) -> Any:
        response = self.client.put(f"/commandes/{order_id}", {"status": status})
        logger.info("Order %s status set to %s", order_id, status)
        return response

    def stock_alerts(self) -> Listing:
        return self._listing("/alertes-stock", ("alerts",), _SAMPLE_ALERTS)

    def resolve_alert(self, alert_id: str) -> None:
        self.client.put(f"/alertes-stock/{alert_id}/resoudre", {})
        logger.info("Resolved stock alert %s", alert_id)

    def resolve_all_alerts(self) -> BulkResult:
        """Resolve every open alert; failures are collected, not raised."""
        result = BulkResult()
        for alert in self.stock_alerts().rows:
            alert_id = str(alert.get("id") or alert.get("_id") or "")
            if not alert_id:
                continue
            try:
                self.resolve_alert(alert_id)
            except ApiError as exc:
                logger.warning("Could not resolve alert %s: %s", alert_id, exc)
                result.failed.append(alert_id)
            else:
                result.resolved.append(alert_id)
        return result

    def report(self, kind: str) -> Any:
        """Raw report data for export."""
        if kind not in REPORT_KINDS:
            raise ValueError(f"Unknown report kind: {kind}")
        path = "/users" if kind == "users" else "/rapports"
        return extract_data(self.client.get(path))
