# livrini/services/notifications.py

"""Notification bell: load, read/unread state and housekeeping."""

import logging
from datetime import datetime, timedelta

from livrini.api.client import ApiClient, extract_list
from livrini.api.errors import ApiError
from livrini.models.notification import Notification

logger = logging.getLogger("livrini.notifications")


def format_time_ago(created_at: datetime, now: datetime | None = None) -> str:
    current = now or datetime.now()
    diff = (current - created_at).total_seconds()
    minutes = int(diff // 60)
    hours = int(diff // 3600)
    days = int(diff // 86400)
    if minutes < 1:
        return "À l'instant"
    if minutes < 60:
        return f"Il y a {minutes} min"
    if hours < 24:
        return f"Il y a {hours}h"
    if days < 7:
        return f"Il y a {days}j"
    return created_at.strftime("%d/%m/%Y")


def sample_notifications(
    role: str, now: datetime | None = None,
) -> list[Notification]:
    """Role-specific placeholder notifications."""
    current = now or datetime.now()

    def ago(seconds: int) -> datetime:
        return current - timedelta(seconds=seconds)

    items = [
        Notification(
            "1", "info", "Bienvenue sur LIVRINI!",
            "Découvrez nos nouvelles fonctionnalités et profitez de nos offres.",
            ago(300),
        ),
    ]
    if role == "client":
        items += [
            Notification(
                "2", "order", "Commande confirmée",
                "Votre commande #CMD-2024-001 a été confirmée et est en "
                "cours de préparation.",
                ago(1800),
            ),
            Notification(
                "3", "delivery", "Livraison en cours",
                "Votre colis est en route! Livraison prévue aujourd'hui "
                "entre 14h et 18h.",
                ago(3600),
            ),
            Notification(
                "4", "promo", "Offre spéciale!",
                "Profitez de -20% sur votre prochaine commande avec le "
                "code LIVRINI20.",
                ago(86400), read=True,
            ),
        ]
    elif role in ("fournisseur", "supplier"):
        items += [
            Notification(
                "2", "order", "Nouvelle commande reçue",
                "Vous avez reçu une nouvelle commande #CMD-2024-045 de "
                "3 articles.",
                ago(900),
            ),
            Notification(
                "3", "stock", "Stock faible",
                'Le produit "Laptop Pro X" n\'a plus que 3 unités en stock.',
                ago(7200),
            ),
            Notification(
                "4", "product", "Produit approuvé",
                'Votre produit "Écouteurs Bluetooth" a été approuvé et est '
                "maintenant visible.",
                ago(172800), read=True,
            ),
        ]
    elif role == "admin":
        items += [
            Notification(
                "2", "user", "Nouvel utilisateur",
                "Un nouveau fournisseur s'est inscrit et attend validation.",
                ago(600),
            ),
            Notification(
                "3", "stock", "Alerte stock critique",
                "5 produits sont en rupture de stock et nécessitent une "
                "action.",
                ago(3600),
            ),
            Notification(
                "4", "order", "Commandes en attente",
                "12 commandes sont en attente de traitement depuis plus "
                "de 24h.",
                ago(14400),
            ),
            Notification(
                "5", "info", "Rapport hebdomadaire",
                "Le rapport de la semaine est disponible. Consultez les "
                "statistiques.",
                ago(259200), read=True,
            ),
        ]
    return items


class NotificationService:
    """Local notification list mirrored to the backend best-effort.

    State changes apply locally first; the matching server call is
    fire-and-forget and a failure is only logged.
    """

    def __init__(self, client: ApiClient, role: str = "client") -> None:
        self.client = client
        self.role = role
        self.notifications: list[Notification] = []

    def load(self) -> list[Notification]:
        try:
            raw = extract_list(self.client.get("/notifications"))
        except ApiError as exc:
            logger.warning(
                "Notifications unavailable, using samples: %s", exc
            )
            raw = []
        items = [Notification.from_api(n) for n in raw if isinstance(n, dict)]
        self.notifications = items or sample_notifications(self.role)
        return self.notifications

    def _sync(self, method: str, path: str) -> None:
        try:
            self.client.request(method, path)
        except ApiError as exc:
            logger.debug("Notification sync %s %s failed: %s", method, path, exc)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    def badge(self) -> str:
        """Bell badge text; empty when everything is read."""
        count = self.unread_count
        if count == 0:
            return ""
        return "9+" if count > 9 else str(count)

    def visible(self, unread_only: bool = False) -> list[Notification]:
        if unread_only:
            return [n for n in self.notifications if not n.read]
        return list(self.notifications)

    def mark_read(self, notification_id: str) -> None:
        for n in self.notifications:
            if n.id == notification_id:
                n.read = True
        self._sync("PUT", f"/notifications/{notification_id}/read")

    def mark_all_read(self) -> None:
        for n in self.notifications:
            n.read = True
        self._sync("PUT", "/notifications/read-all")

    def delete(self, notification_id: str) -> None:
        self.notifications = [
            n for n in self.notifications if n.id != notification_id
        ]
        self._sync("DELETE", f"/notifications/{notification_id}")

    def clear(self) -> None:
        self.notifications = []
        self._sync("DELETE", "/notifications")
