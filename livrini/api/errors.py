# livrini/api/errors.py

"""Exceptions raised by the API client and the services built on it."""

from typing import Any


class ApiError(Exception):
    """A backend call failed.

    ``payload`` holds the decoded response body when one was returned.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class BadRequestError(ApiError):
    """HTTP 400; the response body is surfaced to the caller."""

    @property
    def field_errors(self) -> dict[str, str]:
        """Map ``errors[].path`` to ``errors[].message`` when present."""
        if not isinstance(self.payload, dict):
            return {}
        errors = self.payload.get("errors") or []
        return {
            str(e.get("path")): str(e.get("message"))
            for e in errors
            if isinstance(e, dict) and e.get("path")
        }


class UnauthorizedError(ApiError):
    """HTTP 401; stored credentials have been cleared."""


class SessionExpiredError(ApiError):
    """The stored token was rejected locally before sending."""


class ApiConnectionError(ApiError):
    """The backend could not be reached after all retries."""


class ForbiddenRoleError(ApiError):
    """The logged-in user does not hold a required role."""


class PaymentError(ApiError):
    """A checkout could not be completed."""
