# tests/test_deliveries.py

"""Tests for delivery listings and lookups."""

import unittest
from unittest.mock import MagicMock

from livrini.api.errors import ApiConnectionError
from livrini.models.delivery import Delivery, format_address
from livrini.services.deliveries import (
    DELIVERY_STEPS,
    DeliveryService,
    filter_deliveries,
    step_for_status,
)


class TestDeliveryModel(unittest.TestCase):
    """Delivery parsing."""

    def test_from_api_nested(self) -> None:
        delivery = Delivery.from_api({
            "_id": "d1",
            "numeroLivraison": "LIV-001",
            "statut": "en_cours",
            "adresseLivraison": {"rue": "5 rue X", "ville": "Sfax", "codePostal": "3000"},
            "livreur": {"nom": "Karim", "telephone": "+216 1"},
            "commande": {"numeroCommande": "CMD-9", "montantTotal": 80},
        })
        self.assertEqual(delivery.adresse, "5 rue X, Sfax, 3000")
        self.assertEqual(delivery.livreur_nom, "Karim")
        self.assertEqual(delivery.commande_montant, 80.0)

    def test_format_address_string(self) -> None:
        self.assertEqual(format_address("Tunis"), "Tunis")
        self.assertEqual(format_address(None), "")

    def test_filter_matches_address_and_status(self) -> None:
        deliveries = [
            Delivery(id="1", statut="livree", adresse="Sousse"),
            Delivery(id="2", statut="en_cours", adresse="Tunis"),
        ]
        self.assertEqual([d.id for d in filter_deliveries(deliveries, "tunis")], ["2"])
        self.assertEqual([d.id for d in filter_deliveries(deliveries, "LIVREE")], ["1"])


class TestStepForStatus(unittest.TestCase):
    """Backend statuses map onto the five tracking steps."""

    def test_known_statuses(self) -> None:
        expected = {
            "en_attente": 0,
            "confirmee": 1,
            "en_preparation": 2,
            "expediee": 3,
            "en_transit": 3,
            "livree": 4,
            "annulee": 0,
        }
        for statut, step in expected.items():
            with self.subTest(statut=statut):
                self.assertEqual(step_for_status(statut), step)

    def test_unknown_status_is_in_transit(self) -> None:
        self.assertEqual(DELIVERY_STEPS[step_for_status("???")].id, "in_transit")


class TestDeliveryService(unittest.TestCase):
    def setUp(self) -> None:
        self.client = MagicMock()
        self.service = DeliveryService(self.client)

    def test_my_deliveries(self) -> None:
        self.client.get.return_value = {"data": [{"_id": "d1"}]}
        result = self.service.my_deliveries()
        self.client.get.assert_called_once_with("/livraisons/mes-livraisons")
        self.assertEqual(result[0].id, "d1")

    def test_all_deliveries(self) -> None:
        self.client.get.return_value = {"deliveries": [{"_id": "d1"}, {"_id": "d2"}]}
        result = self.service.all_deliveries()
        self.client.get.assert_called_once_with("/livraisons")
        self.assertEqual([d.id for d in result], ["d1", "d2"])

    def test_demo_id_does_not_call_backend(self) -> None:
        delivery = self.service.get_delivery("demo")
        self.assertEqual(delivery.numero, "LIV-DEMO-001")
        self.client.get.assert_not_called()

    def test_backend_delivery(self) -> None:
        self.client.get.return_value = {"data": {"numeroLivraison": "LIV-7"}}
        delivery = self.service.get_delivery("abc")
        self.assertEqual(delivery.numero, "LIV-7")
        self.assertEqual(delivery.id, "abc")

    def test_failure_falls_back_to_sample(self) -> None:
        """The tracker still gets something to animate."""
        self.client.get.side_effect = ApiConnectionError("down")
        delivery = self.service.get_delivery("65f0abc123def4")
        self.assertEqual(delivery.id, "65f0abc123def4")
        self.assertEqual(delivery.numero, "LIV-23DEF4")
        self.assertEqual(delivery.statut, "en_cours")


if __name__ == "__main__":
    unittest.main()
