# livrini/models/delivery.py

"""Delivery (livraison) model."""

from dataclasses import dataclass
from typing import Any


def format_address(address: Any) -> str:
    """Render a string or ``{rue, ville, codePostal, pays}`` address."""
    if not address:
        return ""
    if isinstance(address, str):
        return address
    if isinstance(address, dict):
        parts = [
            str(address[k])
            for k in ("rue", "ville", "codePostal", "pays")
            if address.get(k)
        ]
        return ", ".join(parts)
    return str(address)


@dataclass
class Delivery:
    """A livraison with its courier and parent order summary."""

    id: str
    numero: str = ""
    statut: str = ""
    adresse: str = ""
    date_estimee: str = ""
    livreur_nom: str = ""
    livreur_telephone: str = ""
    commande_numero: str = ""
    commande_montant: float = 0.0

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Delivery":
        livreur = payload.get("livreur") or {}
        if not isinstance(livreur, dict):
            livreur = {"nom": str(livreur)}
        commande = payload.get("commande") or {}
        if not isinstance(commande, dict):
            commande = {"numeroCommande": str(commande)}
        try:
            montant = float(commande.get("montantTotal") or 0)
        except (TypeError, ValueError):
            montant = 0.0
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            numero=str(payload.get("numeroLivraison") or ""),
            statut=str(payload.get("statut") or payload.get("status") or ""),
            adresse=format_address(
                payload.get("adresseLivraison")
                or payload.get("adresse")
                or payload.get("address")
            ),
            date_estimee=str(payload.get("dateEstimee") or ""),
            livreur_nom=str(livreur.get("nom") or ""),
            livreur_telephone=str(livreur.get("telephone") or ""),
            commande_numero=str(commande.get("numeroCommande") or ""),
            commande_montant=montant,
        )

    def matches(self, query: str) -> bool:
        """Match on id, status or address."""
        lowered = query.lower()
        return (
            query in self.id
            or lowered in self.statut.lower()
            or lowered in self.adresse.lower()
        )
