# tests/test_auth.py

"""Tests for login, registration and the role guard."""

import tempfile
import time
import unittest
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import jwt

from livrini.api.errors import ApiError, ForbiddenRoleError
from livrini.services.auth import AuthService, dashboard_for
from livrini.storage.local_store import LocalStore

_SECRET = "livrini-test-signing-secret-0123456789"


def _token(**claims: Any) -> str:
    claims.setdefault("exp", int(time.time()) + 3600)
    return jwt.encode(claims, _SECRET, algorithm="HS256")


class TestAuthService(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = LocalStore(Path(self._tmp.name) / "storage.json")
        self.client = MagicMock()
        self.auth = AuthService(self.client, self.store)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    # ── Login ────────────────────────────────────────────

    def test_login_stores_credentials_and_routes_by_role(self) -> None:
        """The token role picks the dashboard."""
        token = _token(role="Fournisseur", userId="u1")
        self.client.post.return_value = {"token": token, "user": {"email": "f@x.tn"}}

        result = self.auth.login(" f@x.tn ", "secret")

        self.client.post.assert_called_once_with(
            "/users/login", {"email": "f@x.tn", "mdp": "secret"}
        )
        self.assertEqual(result.role, "fournisseur")
        self.assertEqual(result.dashboard, "fournisseur-dashboard")
        self.assertEqual(self.store.get("token"), token)
        self.assertEqual(self.store.get("user"), {"email": "f@x.tn"})
        self.assertTrue(self.auth.is_authenticated)

    def test_login_without_token_fails(self) -> None:
        self.client.post.return_value = {"message": "?"}
        with self.assertRaises(ApiError):
            self.auth.login("a@b.tn", "x")
        self.assertFalse(self.auth.is_authenticated)

    def test_dashboard_for_unknown_role(self) -> None:
        self.assertEqual(dashboard_for("admin"), "admin-dashboard")
        self.assertEqual(dashboard_for("livreur"), "home")

    def test_logout_clears(self) -> None:
        self.store.set("token", _token())
        self.store.set("user", {})
        self.store.set("cart", [])
        self.auth.logout()
        self.assertEqual(self.store.keys(), ["cart"])

    # ── Registration ─────────────────────────────────────

    def test_register_drops_confirm_password(self) -> None:
        self.client.post.return_value = {"success": True}
        self.auth.register({"email": "n@x.tn", "mdp": "p", "confirmPassword": "p"})
        path, body = self.client.post.call_args.args
        self.assertEqual(path, "/users/register")
        self.assertNotIn("confirmPassword", body)

    def test_verify_otp_with_and_without_token(self) -> None:
        self.client.post.return_value = {"success": True}
        self.assertIsNone(self.auth.verify_otp("n@x.tn", "123456"))
        self.client.post.return_value = {"token": _token(role="client"), "user": {}}
        result = self.auth.verify_otp("n@x.tn", "123456")
        self.assertIsNotNone(result)
        self.assertEqual(result.dashboard, "client-dashboard")  # type: ignore[union-attr]

    def test_resend_otp(self) -> None:
        self.auth.resend_otp("n@x.tn")
        self.client.post.assert_called_once_with("/users/resend-otp", {"email": "n@x.tn"})

    # ── Profile ──────────────────────────────────────────

    def test_update_profile_uses_token_user_id(self) -> None:
        self.store.set("token", _token(userId="u42"))
        self.store.set("user", {"email": "a@x.tn", "nom": "Ancien"})
        self.client.put.return_value = {"data": {"nom": "N"}}
        self.assertEqual(self.auth.update_profile({"nom": "N"}), {"nom": "N"})
        self.client.put.assert_called_once_with("/users/u42", {"nom": "N"})
        self.assertEqual(self.store.get("user"), {"email": "a@x.tn", "nom": "N"})

    def test_update_profile_ignores_envelope_keys(self) -> None:
        self.store.set("token", _token(userId="u42"))
        self.client.put.return_value = {"success": True, "user": {"nom": "N"}}
        self.assertEqual(self.auth.update_profile({"nom": "N"}), {"nom": "N"})
        self.client.put.return_value = {"success": True, "message": "ok"}
        self.assertEqual(self.auth.update_profile({"prenom": "P"}), {})
        self.assertEqual(self.store.get("user"), {"nom": "N", "prenom": "P"})

    def test_update_profile_requires_login(self) -> None:
        with self.assertRaises(ApiError):
            self.auth.update_profile({"nom": "N"})

    def test_change_password_payload(self) -> None:
        self.auth.change_password("old", "new")
        self.client.put.assert_called_once_with(
            "/users/change-password",
            {"currentPassword": "old", "newPassword": "new"},
        )

    # ── Role guard ───────────────────────────────────────

    def test_require_role_accepts_matching_role(self) -> None:
        self.store.set("token", _token(role="ADMIN"))
        claims = self.auth.require_role("admin")
        self.assertEqual(claims["role"], "ADMIN")

    def test_require_role_rejects_other_role(self) -> None:
        self.store.set("token", _token(role="client"))
        with self.assertRaises(ForbiddenRoleError):
            self.auth.require_role("admin")
        self.assertTrue(self.auth.is_authenticated)

    def test_require_role_without_token(self) -> None:
        with self.assertRaises(ForbiddenRoleError):
            self.auth.require_role("admin")

    def test_require_role_removes_garbage_token(self) -> None:
        self.store.set("token", "garbage")
        with self.assertRaises(ForbiddenRoleError):
            self.auth.require_role("admin")
        self.assertFalse(self.auth.is_authenticated)


if __name__ == "__main__":
    unittest.main()
