# livrini/api/client.py

"""HTTP client for the LIVRINI backend API."""

import logging
import time
from collections.abc import Callable
from typing import Any

import jwt
from curl_cffi import requests as curl_requests

from livrini.api.errors import (
    ApiConnectionError,
    ApiError,
    BadRequestError,
    SessionExpiredError,
    UnauthorizedError,
)
from livrini.api.token import decode_claims, is_expired
from livrini.config.settings import Settings
from livrini.storage.local_store import LocalStore


def extract_data(payload: Any) -> Any:
    """Unwrap the ``{"success": ..., "data": ...}`` envelope if present."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def extract_list(payload: Any, *keys: str) -> list[Any]:
    """Find the collection in a response.

    Accepts a bare list, a ``data`` list, or a list under any of *keys*
    (e.g. ``orders``, ``items``).  Anything else yields ``[]``.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for key in ("data", *keys):
        value = payload.get(key)
        if isinstance(value, list):
            return value
        if isinstance(value, dict):
            nested = extract_list(value, *keys)
            if nested:
                return nested
    return []


class ApiClient:
    """Thin wrapper over a ``curl_cffi`` session.

    Every call goes through the same request/response pipeline:
    the stored token is decoded and expiry-checked locally, then
    attached as a bearer header; a 401 clears the stored credentials
    and a 400 surfaces the response body as :class:`BadRequestError`.
    Idempotent reads are retried on transport errors and 5xx.
    """

    def __init__(
        self,
        store: LocalStore,
        base_url: str | None = None,
        on_logout: Callable[[str], None] | None = None,
    ) -> None:
        self.store = store
        self.settings = Settings()
        self.base_url = (base_url or self.settings.API_BASE_URL).rstrip("/")
        self.on_logout = on_logout
        self.logger = logging.getLogger("livrini.api")
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    # ── Credentials ──────────────────────────────────────

    def _clear_credentials(self) -> None:
        self.store.remove(self.settings.TOKEN_KEY, self.settings.USER_KEY)

    def force_logout(self, reason: str) -> None:
        """Drop stored credentials and notify the logout hook once."""
        self._clear_credentials()
        self.logger.warning("Session ended: %s", reason)
        if self.on_logout is not None:
            self.on_logout(reason)

    def _auth_headers(self) -> dict[str, str]:
        """Request interceptor: validate and attach the stored token."""
        token = self.store.get(self.settings.TOKEN_KEY)
        if not token:
            return {}
        try:
            claims = decode_claims(str(token))
        except jwt.InvalidTokenError as exc:
            self.force_logout("invalid token")
            raise SessionExpiredError(
                "Session invalide, veuillez vous reconnecter"
            ) from exc
        if is_expired(claims):
            self.force_logout("token expired")
            raise SessionExpiredError(
                "Session expirée, veuillez vous reconnecter"
            )
        return {"Authorization": f"Bearer {token}"}

    # ── Request pipeline ─────────────────────────────────

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def _decode_body(resp: curl_requests.Response) -> Any:
        text = resp.text
        if not text or not text.strip():
            return None
        try:
            return resp.json()
        except ValueError:
            return text

    def _handle_response(
        self,
        method: str,
        path: str,
        resp: curl_requests.Response,
        sent_token: bool,
    ) -> Any:
        payload = self._decode_body(resp)
        status = resp.status_code
        if 200 <= status < 300:
            return payload

        message = f"HTTP {status}"
        if isinstance(payload, dict) and payload.get("message"):
            message = str(payload["message"])

        self.logger.warning(
            "%s %s failed with HTTP %d: %s", method, path, status, message
        )
        if status == 401:
            self._clear_credentials()
            if sent_token and self.on_logout is not None:
                self.on_logout("unauthorized")
            raise UnauthorizedError(message, status, payload)
        if status == 400:
            raise BadRequestError(message, status, payload)
        raise ApiError(message, status, payload)

    def request(
        self,
        method: str,
        path: str,
        payload: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one API call and return the decoded JSON body."""
        method = method.upper()
        auth = self._auth_headers()
        headers = {**self.settings.DEFAULT_HEADERS, **auth}
        url = self._url(path)
        attempts = self.settings.MAX_RETRIES if method == "GET" else 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                resp = self.session.request(
                    method,
                    url,
                    headers=headers,
                    json=payload,
                    params=params,
                    timeout=self._request_timeout,
                )
            except Exception as exc:
                last_error = exc
                self.logger.warning(
                    "%s %s transport error on attempt %d: %s",
                    method,
                    path,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                if attempt + 1 < attempts:
                    time.sleep(self.settings.RETRY_BACKOFF * (attempt + 1))
                continue

            if resp.status_code >= 500 and attempt + 1 < attempts:
                self.logger.warning(
                    "%s %s HTTP %d on attempt %d, retrying",
                    method,
                    path,
                    resp.status_code,
                    attempt + 1,
                )
                time.sleep(self.settings.RETRY_BACKOFF * (attempt + 1))
                continue

            self.logger.debug(
                "%s %s -> HTTP %d", method, path, resp.status_code
            )
            return self._handle_response(method, path, resp, bool(auth))

        raise ApiConnectionError(
            f"Serveur injoignable ({last_error})"
        ) from last_error

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, payload: Any = None) -> Any:
        return self.request("POST", path, payload=payload)

    def put(self, path: str, payload: Any = None) -> Any:
        return self.request("PUT", path, payload=payload)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)
