# livrini/api/token.py

"""Local inspection of the JWT issued by the backend.

The client never verifies signatures (it does not hold the secret); it
only reads claims to pick a dashboard and to drop tokens that are
already past their expiry before a request is sent.
"""

import time
from typing import Any

import jwt

from livrini.config.settings import Settings


def decode_claims(token: str) -> dict[str, Any]:
    """Return the claims of *token* without verifying it.

    Raises ``jwt.InvalidTokenError`` when the token is malformed or its
    ``exp`` claim is not a number.
    """
    claims: dict[str, Any] = jwt.decode(
        token,
        options={"verify_signature": False, "verify_exp": False},
    )
    exp = claims.get("exp")
    if exp is not None and (
        isinstance(exp, bool) or not isinstance(exp, (int, float))
    ):
        raise jwt.DecodeError("Expiration Time claim (exp) must be a number")
    return claims


def is_expired(
    claims: dict[str, Any],
    now: float | None = None,
    skew: int | None = None,
) -> bool:
    """True when ``exp`` lies more than *skew* seconds in the past.

    Tokens without an ``exp`` claim never expire locally.
    """
    exp = claims.get("exp")
    if exp is None:
        return False
    tolerance = Settings.TOKEN_EXPIRY_SKEW if skew is None else skew
    current = time.time() if now is None else now
    return float(exp) + tolerance < current


def claim_role(claims: dict[str, Any]) -> str:
    """Lower-cased ``role`` claim, empty when absent."""
    return str(claims.get("role") or "").lower()


def claim_user_id(claims: dict[str, Any]) -> str | None:
    """The user id claim (``userId``, ``id`` or ``sub``)."""
    for key in ("userId", "id", "sub"):
        value = claims.get(key)
        if value:
            return str(value)
    return None
