# tests/test_runner.py

"""Tests for the headless CLI commands."""

import io
import json
import tempfile
import time
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import jwt

from livrini.api.errors import ApiConnectionError, BadRequestError
from livrini.cli.runner import ClientContext, run_command, run_health_check
from livrini.models.product import Product
from livrini.services.catalog import CatalogService
from livrini.services.health_checker import HealthResult
from livrini.storage.local_store import LocalStore
from main import _build_parser

_SECRET = "livrini-test-signing-secret-0123456789"


def _token(**claims: Any) -> str:
    claims.setdefault("exp", int(time.time()) + 3600)
    return jwt.encode(claims, _SECRET, algorithm="HS256")


def _resp(status: int, body: Any) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = json.dumps(body)
    resp.json.return_value = body
    return resp


class _RunnerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = LocalStore(Path(self._tmp.name) / "storage.json")
        self.ctx = ClientContext.build(store=self.store, on_logout=None)
        self.ctx.client.session = MagicMock()
        self.parser = _build_parser()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def run_cli(self, *argv: str) -> int:
        return run_command(self.parser.parse_args(list(argv)), self.ctx)

    def login_as(self, role: str) -> None:
        self.store.set("token", _token(role=role, userId="u1"))


class TestParser(unittest.TestCase):
    """Argument parsing."""

    def test_no_command_means_tui(self) -> None:
        args = _build_parser().parse_args([])
        self.assertIsNone(args.command)
        self.assertFalse(args.health)

    def test_cart_add_defaults(self) -> None:
        args = _build_parser().parse_args(["cart", "add", "p1"])
        self.assertEqual((args.cart_action, args.quantity), ("add", 1))

    def test_track_duration_must_be_positive(self) -> None:
        parser = _build_parser()
        self.assertEqual(parser.parse_args(["track", "--duration", "0.5"]).duration, 0.5)
        for bad in ("0", "-3", "abc", "inf"):
            with self.subTest(duration=bad):
                with self.assertRaises(SystemExit):
                    with patch("sys.stderr", io.StringIO()):
                        parser.parse_args(["track", "--duration", bad])

    def test_invalid_sort_rejected(self) -> None:
        with self.assertRaises(SystemExit):
            with patch("sys.stderr", io.StringIO()):
                _build_parser().parse_args(["products", "--sort", "random"])


class TestAccountCommands(_RunnerTestCase):
    def test_login_stores_token(self) -> None:
        token = _token(role="client")
        self.ctx.client.session.request.return_value = _resp(
            200, {"token": token, "user": {"email": "c@x.tn"}}
        )
        code = self.run_cli("login", "c@x.tn", "-p", "pw")
        self.assertEqual(code, 0)
        self.assertEqual(self.store.get("token"), token)

    def test_bad_credentials_exit_1(self) -> None:
        self.ctx.client.session.request.return_value = _resp(
            401, {"message": "Email ou mot de passe incorrect"}
        )
        self.assertEqual(self.run_cli("login", "c@x.tn", "-p", "bad"), 1)

    def test_register_validation_error_exit_1(self) -> None:
        self.ctx.auth = MagicMock()
        self.ctx.auth.register.side_effect = BadRequestError(
            "Validation", 400, {"errors": [{"path": "email", "message": "pris"}]}
        )
        code = self.run_cli(
            "register", "n@x.tn", "--nom", "N", "--prenom", "P", "-p", "pw"
        )
        self.assertEqual(code, 1)

    def test_logout(self) -> None:
        self.login_as("client")
        self.assertEqual(self.run_cli("logout"), 0)
        self.assertIsNone(self.store.get("token"))


class TestCatalogAndCart(_RunnerTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.ctx.catalog = MagicMock()
        self.ctx.catalog.get_product.return_value = Product("p1", "Thé vert", 15.0)
        self.ctx.catalog.list_products.return_value = [
            Product("p1", "Thé vert", 15.0, rating=4.0),
            Product("p2", "Miel", 30.0, rating=5.0),
        ]

    def test_products_json_sorted(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            code = self.run_cli("products", "--sort", "price-high", "-f", "json")
        self.assertEqual(code, 0)
        self.assertEqual([p["_id"] for p in json.loads(out.getvalue())], ["p2", "p1"])

    def test_products_backend_down_exit_1(self) -> None:
        self.ctx.catalog.list_products.side_effect = ApiConnectionError("down")
        self.assertEqual(self.run_cli("products"), 1)

    def test_cart_add_then_qty(self) -> None:
        self.assertEqual(self.run_cli("cart", "add", "p1", "-q", "2"), 0)
        self.assertEqual(self.run_cli("cart", "qty", "p1", "3"), 0)
        self.assertEqual(self.ctx.cart.get("p1").quantity, 5)  # type: ignore[union-attr]

    def test_cart_add_missing_product_exit_1(self) -> None:
        """A 200 without a product body is reported, not raised."""
        self.ctx.catalog = CatalogService(self.ctx.client)
        self.ctx.client.session.request.return_value = _resp(
            200, {"success": False, "message": "introuvable"}
        )
        self.assertEqual(self.run_cli("cart", "add", "zz"), 1)
        self.assertTrue(self.ctx.cart.is_empty)

    def test_cart_qty_unknown_exit_1(self) -> None:
        self.assertEqual(self.run_cli("cart", "qty", "nope", "1"), 1)

    def test_cart_show_with_promo(self) -> None:
        self.run_cli("cart", "add", "p1")
        self.assertEqual(self.run_cli("cart", "--promo", "LIVRINI10", "show"), 0)

    def test_promo(self) -> None:
        self.assertEqual(self.run_cli("promo", "livrini20"), 0)
        self.assertEqual(self.run_cli("promo", "NOPE"), 1)

    def test_wishlist_toggle_and_move(self) -> None:
        self.assertEqual(self.run_cli("wishlist", "toggle", "p1"), 0)
        self.assertTrue(self.ctx.wishlist.contains("p1"))
        self.assertEqual(self.run_cli("wishlist", "move", "p1"), 0)
        self.assertEqual(self.ctx.cart.count, 1)
        self.assertEqual(self.run_cli("wishlist", "move", "zzz"), 1)


class TestCheckoutCommand(_RunnerTestCase):
    def test_requires_login(self) -> None:
        self.assertEqual(self.run_cli("checkout", "-a", "Tunis"), 1)

    def test_cash_checkout(self) -> None:
        """The stored user address is used when none is given."""
        self.login_as("client")
        self.store.set("user", {"adresse": {"rue": "1 rue A", "ville": "Tunis"}})
        self.ctx.cart.add(Product("p1", "Thé", 20.0))
        self.ctx.client.session.request.return_value = _resp(
            201, {"success": True, "_id": "0123456789abcdef"}
        )

        self.assertEqual(self.run_cli("checkout"), 0)

        body = self.ctx.client.session.request.call_args.kwargs["json"]
        self.assertEqual(body["adresseLivraison"], "1 rue A, Tunis")
        self.assertTrue(self.ctx.cart.is_empty)

    def test_card_without_gateway_exit_1(self) -> None:
        self.login_as("client")
        self.ctx.cart.add(Product("p1", "Thé", 20.0))
        self.assertEqual(self.run_cli("checkout", "-a", "Tunis", "-m", "card"), 1)
        self.assertFalse(self.ctx.cart.is_empty)


class TestListingsCommands(_RunnerTestCase):
    def test_orders_export(self) -> None:
        self.login_as("client")
        self.ctx.client.session.request.return_value = _resp(
            200, {"data": [{"_id": "o1", "status": "en_attente", "montantTotal": 10}]}
        )
        self.assertEqual(self.run_cli("orders", "--export", "csv"), 0)

    def test_deliveries(self) -> None:
        self.login_as("client")
        self.ctx.client.session.request.return_value = _resp(
            200, [{"_id": "d1", "statut": "livree", "adresseLivraison": "Sfax"}]
        )
        self.assertEqual(self.run_cli("deliveries", "--query", "sfax"), 0)

    def test_notifications_fallback(self) -> None:
        self.login_as("admin")
        self.ctx.client.session.request.return_value = _resp(500, {})
        self.assertEqual(self.run_cli("notifications", "--read-all"), 0)

    def test_all_orders_for_supplier(self) -> None:
        self.login_as("fournisseur")
        self.ctx.client.session.request.return_value = _resp(
            200, [{"_id": "o1", "client": {"nom": "Amel"}, "montantTotal": 12}]
        )
        self.assertEqual(self.run_cli("orders", "--all"), 0)
        self.assertTrue(
            self.ctx.client.session.request.call_args.args[1].endswith("/commandes")
        )

    def test_all_orders_refused_for_client(self) -> None:
        self.login_as("client")
        self.assertEqual(self.run_cli("orders", "--all"), 1)
        self.ctx.client.session.request.assert_not_called()

    def test_all_deliveries_for_supplier(self) -> None:
        self.login_as("fournisseur")
        self.ctx.client.session.request.return_value = _resp(
            200, {"data": [{"_id": "d1", "statut": "en_cours"}]}
        )
        self.assertEqual(self.run_cli("deliveries", "--all"), 0)
        self.assertTrue(
            self.ctx.client.session.request.call_args.args[1].endswith("/livraisons")
        )

    def test_track_demo(self) -> None:
        """The demo delivery plays to completion."""
        self.assertEqual(self.run_cli("track", "demo", "--duration", "0.05"), 0)
        self.ctx.client.session.request.assert_not_called()


class TestAdminCommands(_RunnerTestCase):
    def test_non_admin_is_refused(self) -> None:
        self.login_as("client")
        self.assertEqual(self.run_cli("admin", "users"), 1)

    def test_users_fall_back_to_samples(self) -> None:
        self.login_as("admin")
        self.ctx.client.session.request.side_effect = ConnectionError("refused")
        self.assertEqual(self.run_cli("admin", "users"), 0)

    def test_create_user(self) -> None:
        self.login_as("admin")
        self.ctx.admin = MagicMock()
        code = self.run_cli(
            "admin", "create-user", "f@x.tn", "--nom", "F", "--prenom", "G",
            "--role", "fournisseur", "-p", "secret123",
        )
        self.assertEqual(code, 0)
        self.ctx.admin.create_user.assert_called_once_with({
            "nom": "F",
            "prenom": "G",
            "email": "f@x.tn",
            "role": "fournisseur",
            "mdp": "secret123",
        })

    def test_delete_user_failure_exit_1(self) -> None:
        self.login_as("admin")
        self.ctx.client.session.request.return_value = _resp(403, {"message": "Interdit"})
        self.assertEqual(self.run_cli("admin", "delete-user", "u9"), 1)

    def test_categories_and_delete_category(self) -> None:
        self.login_as("admin")
        self.ctx.client.session.request.return_value = _resp(
            200, {"categories": [{"_id": "c1", "nom": "Épicerie"}]}
        )
        self.assertEqual(self.run_cli("admin", "categories"), 0)
        self.ctx.client.session.request.return_value = _resp(200, {"success": True})
        self.assertEqual(self.run_cli("admin", "delete-category", "c1"), 0)
        call = self.ctx.client.session.request.call_args
        self.assertEqual(call.args[0], "DELETE")
        self.assertTrue(call.args[1].endswith("/categories/c1"))

    def test_orders_fall_back_to_samples(self) -> None:
        self.login_as("admin")
        self.ctx.client.session.request.side_effect = ConnectionError("refused")
        self.assertEqual(self.run_cli("admin", "orders"), 0)

    def test_report_export(self) -> None:
        self.login_as("admin")
        self.ctx.admin = MagicMock()
        self.ctx.admin.report.return_value = [{"mois": "Mai", "ventes": 12}]
        self.assertEqual(self.run_cli("admin", "report", "sales", "-f", "csv"), 0)
        self.ctx.admin.report.assert_called_once_with("sales")

    def test_resolve_all_with_failures(self) -> None:
        self.login_as("admin")
        self.ctx.admin = MagicMock()
        self.ctx.admin.resolve_all_alerts.return_value = MagicMock(
            resolved=["a1"], failed=["a2"]
        )
        self.assertEqual(self.run_cli("admin", "resolve", "all"), 1)


class TestProfileCommands(_RunnerTestCase):
    def test_profile_without_options_shows_me(self) -> None:
        self.login_as("client")
        self.ctx.client.session.request.return_value = _resp(
            200, {"data": {"email": "c@x.tn"}}
        )
        out = io.StringIO()
        with redirect_stdout(out):
            code = self.run_cli("profile")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out.getvalue()), {"email": "c@x.tn"})

    def test_profile_update_merges_stored_address(self) -> None:
        """Only the given address parts change."""
        self.login_as("client")
        self.store.set("user", {"adresse": {"rue": "1 rue A", "ville": "Tunis"}})
        self.ctx.client.session.request.return_value = _resp(200, {"success": True})

        with redirect_stdout(io.StringIO()):
            code = self.run_cli("profile", "--nom", "N", "--ville", "Sfax")

        self.assertEqual(code, 0)
        call = self.ctx.client.session.request.call_args
        self.assertEqual(call.args[0], "PUT")
        self.assertTrue(call.args[1].endswith("/users/u1"))
        self.assertEqual(
            call.kwargs["json"],
            {"nom": "N", "adresse": {"rue": "1 rue A", "ville": "Sfax"}},
        )
        self.assertEqual(self.store.get("user")["adresse"]["ville"], "Sfax")

    def test_profile_update_requires_login(self) -> None:
        self.assertEqual(self.run_cli("profile", "--nom", "N"), 1)

    def test_password_change(self) -> None:
        self.login_as("client")
        self.ctx.client.session.request.return_value = _resp(200, {"success": True})
        code = self.run_cli("password", "--current", "old", "--new", "newpass99")
        self.assertEqual(code, 0)
        self.assertEqual(
            self.ctx.client.session.request.call_args.kwargs["json"],
            {"currentPassword": "old", "newPassword": "newpass99"},
        )

    @patch("livrini.cli.runner.Prompt.ask")
    def test_password_confirmation_mismatch(self, mock_ask: MagicMock) -> None:
        self.login_as("client")
        mock_ask.side_effect = ["newpass99", "autre"]
        code = self.run_cli("password", "--current", "old")
        self.assertEqual(code, 1)
        self.ctx.client.session.request.assert_not_called()

    def test_password_requires_login(self) -> None:
        self.assertEqual(
            self.run_cli("password", "--current", "a", "--new", "b"), 1
        )


class TestProductCommands(_RunnerTestCase):
    """Supplier product management."""

    def setUp(self) -> None:
        super().setUp()
        self.ctx.catalog = MagicMock()

    def test_client_is_refused(self) -> None:
        self.login_as("client")
        self.assertEqual(self.run_cli("product", "delete", "p1"), 1)
        self.ctx.catalog.delete_product.assert_not_called()

    def test_create_sends_only_given_fields(self) -> None:
        self.login_as("fournisseur")
        self.ctx.catalog.create_product.return_value = Product("p7", "Miel", 30.0)
        code = self.run_cli(
            "product", "create", "--nom", "Miel", "--prix", "30", "--stock", "4"
        )
        self.assertEqual(code, 0)
        self.ctx.catalog.create_product.assert_called_once_with(
            {"nom": "Miel", "prix": 30.0, "quantiteStock": 4}
        )

    def test_update(self) -> None:
        self.login_as("admin")
        self.ctx.catalog.update_product.return_value = Product("p7", "Miel", 25.0)
        self.assertEqual(self.run_cli("product", "update", "p7", "--prix", "25"), 0)
        self.ctx.catalog.update_product.assert_called_once_with("p7", {"prix": 25.0})

    def test_update_without_fields_exit_1(self) -> None:
        self.login_as("fournisseur")
        self.assertEqual(self.run_cli("product", "update", "p7"), 1)
        self.ctx.catalog.update_product.assert_not_called()

    def test_delete(self) -> None:
        self.login_as("fournisseur")
        self.assertEqual(self.run_cli("product", "delete", "p7"), 0)
        self.ctx.catalog.delete_product.assert_called_once_with("p7")


class TestHealthCommand(unittest.IsolatedAsyncioTestCase):
    @patch("livrini.services.health_checker.HealthChecker")
    async def test_down_endpoint_exit_1(self, mock_checker_cls: MagicMock) -> None:
        checker = MagicMock()

        async def check_all() -> list[HealthResult]:
            return [
                HealthResult("/produits", "ok", 20.0, ""),
                HealthResult("/categories", "down", 0.0, "HTTP 500"),
            ]

        checker.check_all = check_all
        mock_checker_cls.return_value = checker
        self.assertEqual(await run_health_check(), 1)


if __name__ == "__main__":
    unittest.main()
