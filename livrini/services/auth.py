# livrini/services/auth.py

"""Login, registration, OTP verification and profile calls."""

import logging
from dataclasses import dataclass
from typing import Any

import jwt

from livrini.api.client import ApiClient, extract_data
from livrini.api.errors import ApiError, ForbiddenRoleError
from livrini.api.token import claim_role, claim_user_id, decode_claims
from livrini.config.settings import Settings
from livrini.storage.local_store import LocalStore

logger = logging.getLogger("livrini.auth")


@dataclass
class LoginResult:
    """Credentials stored after a successful login or OTP check."""

    token: str
    user: dict[str, Any]
    role: str
    dashboard: str


def dashboard_for(role: str) -> str:
    """Dashboard name for *role*; unknown roles land on ``home``."""
    return Settings.ROLE_DASHBOARDS.get(role.lower(), "home")


class AuthService:
    """Session management on top of the API client and local store."""

    def __init__(self, client: ApiClient, store: LocalStore) -> None:
        self.client = client
        self.store = store
        self.settings = Settings()

    def _store_credentials(self, response: dict[str, Any]) -> LoginResult:
        token = str(response["token"])
        user = response.get("user") or {}
        self.store.set(self.settings.TOKEN_KEY, token)
        if user:
            self.store.set(self.settings.USER_KEY, user)
        try:
            role = claim_role(decode_claims(token))
        except jwt.InvalidTokenError:
            role = ""
        role = role or str(user.get("role") or "client").lower()
        logger.info("Logged in as %s (role=%s)", user.get("email", "?"), role)
        return LoginResult(
            token=token, user=user, role=role, dashboard=dashboard_for(role)
        )

    def login(self, email: str, password: str) -> LoginResult:
        response = self.client.post(
            "/users/login", {"email": email.strip(), "mdp": password}
        )
        if not isinstance(response, dict) or not response.get("token"):
            raise ApiError("Échec de la connexion. Veuillez réessayer.")
        return self._store_credentials(response)

    def register(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create an account; the backend then sends an OTP by email."""
        body = {k: v for k, v in payload.items() if k != "confirmPassword"}
        response = self.client.post("/users/register", body)
        if isinstance(response, dict) and response.get("token"):
            self.store.set(self.settings.TOKEN_KEY, response["token"])
        logger.info("Registered account %s", payload.get("email", "?"))
        return response if isinstance(response, dict) else {}

    def verify_otp(self, email: str, otp: str) -> LoginResult | None:
        """Confirm the emailed code.

        Returns stored credentials when the backend logs the user in
        directly, or ``None`` when a separate login is still needed.
        """
        response = self.client.post(
            "/users/verify-otp", {"email": email, "otp": otp}
        )
        if isinstance(response, dict) and response.get("token"):
            return self._store_credentials(response)
        return None

    def resend_otp(self, email: str) -> None:
        self.client.post("/users/resend-otp", {"email": email})
        logger.info("Requested a new OTP for %s", email)

    def me(self) -> dict[str, Any]:
        data = extract_data(self.client.get("/users/me"))
        return data if isinstance(data, dict) else {}

    def update_profile(self, fields: dict[str, Any]) -> dict[str, Any]:
        claims = self.current_claims()
        user_id = claim_user_id(claims) if claims else None
        if not user_id:
            raise ApiError("Veuillez vous reconnecter")
        data = extract_data(self.client.put(f"/users/{user_id}", fields))
        if not isinstance(data, dict):
            data = {}
        if isinstance(data.get("user"), dict):
            data = data["user"]
        updated = {
            k: v for k, v in data.items() if k not in ("success", "message")
        }
        self.store.set(
            self.settings.USER_KEY, {**self.current_user(), **fields, **updated}
        )
        logger.info("Profile %s updated", user_id)
        return updated

    def change_password(self, current: str, new: str) -> None:
        self.client.put(
            "/users/change-password",
            {"currentPassword": current, "newPassword": new},
        )
        logger.info("Password changed")

    def logout(self) -> None:
        self.store.remove(self.settings.TOKEN_KEY, self.settings.USER_KEY)
        logger.info("Logged out")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.store.get(self.settings.TOKEN_KEY))

    def current_claims(self) -> dict[str, Any] | None:
        """Claims of the stored token, or None when absent/undecodable."""
        token = self.store.get(self.settings.TOKEN_KEY)
        if not token:
            return None
        try:
            return decode_claims(str(token))
        except jwt.InvalidTokenError:
            logger.warning("Stored token could not be decoded")
            return None

    def current_user(self) -> dict[str, Any]:
        user = self.store.get(self.settings.USER_KEY) or {}
        return user if isinstance(user, dict) else {}

    def require_role(self, *roles: str) -> dict[str, Any]:
        """Role guard for dashboards.

        Returns the claims when the stored token carries one of
        *roles*.  An undecodable token is removed.
        """
        token = self.store.get(self.settings.TOKEN_KEY)
        if not token:
            raise ForbiddenRoleError("Veuillez vous connecter")
        try:
            claims = decode_claims(str(token))
        except jwt.InvalidTokenError as exc:
            self.store.remove(self.settings.TOKEN_KEY)
            raise ForbiddenRoleError("Session invalide") from exc
        if claim_role(claims) not in {r.lower() for r in roles}:
            raise ForbiddenRoleError(
                f"Accès réservé: {', '.join(roles)}"
            )
        return claims
