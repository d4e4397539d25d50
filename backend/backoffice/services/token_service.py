# Overview: Service-layer operations for identity tokens; signs, verifies and transports the credential.

"""
Identity Token Service

WHY: Every request re-derives identity from a signed, time-limited token.
The token carries a snapshot of the user (id, name, email, company, the three
permission flags). The flags are a cache for read-only "who am I" responses
only: mutating routes re-read the live row (see permission_service).

TRANSPORT: the token travels as an HTTP-only cookie named "token"
(Secure in production, SameSite=Strict, path "/"). API clients may send
it as "Authorization: Bearer <token>" instead.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from jose import jwt, JWTError

from ..time_utils import epoch_seconds


TOKEN_COOKIE_NAME = "token"

# Claims that define a token; anything else in a payload is ignored on reissue
TOKEN_CLAIMS = (
    "id",
    "name",
    "email",
    "company_id",
    "company_name",
    "manage_products",
    "manage_inventory",
    "manage_users",
)


class InvalidTokenError(Exception):
    """Raised when a token is missing, malformed, tampered with or expired."""
    pass


def _signing_key() -> str:
    return current_app.config["JWT_SECRET"]


def _algorithm() -> str:
    return current_app.config.get("JWT_ALGORITHM", "HS256")


def token_ttl_seconds() -> int:
    days = current_app.config.get("TOKEN_TTL_DAYS", 30)
    return int(timedelta(days=days).total_seconds())


def _encode(claims: dict, *, expires_at: int) -> str:
    payload = {k: claims.get(k) for k in TOKEN_CLAIMS}
    payload["iat"] = epoch_seconds()
    payload["exp"] = expires_at
    return jwt.encode(payload, _signing_key(), algorithm=_algorithm())


def issue_token(user, company) -> str:
    """
    Issue a signed token for a user.

    The permission flags are copied from the user row as it is right now.
    Expiry is a fixed window (TOKEN_TTL_DAYS) from issue.
    """
    claims = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "company_id": company.id,
        "company_name": company.name,
        **user.permission_flags(),
    }
    return _encode(claims, expires_at=epoch_seconds() + token_ttl_seconds())


def verify_token(token: str | None) -> dict:
    """
    Verify signature and expiry and return the decoded payload.

    Never touches the database. Raises InvalidTokenError on any failure.
    """
    if not token:
        raise InvalidTokenError("Missing token")

    try:
        payload = jwt.decode(token, _signing_key(), algorithms=[_algorithm()])
    except JWTError as e:
        raise InvalidTokenError(str(e))

    # Identity claims must be real integers (bool is not an id)
    for claim in ("id", "company_id"):
        value = payload.get(claim)
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidTokenError(f"Malformed claim: {claim}")

    if not isinstance(payload.get("exp"), int):
        raise InvalidTokenError("Malformed claim: exp")

    return payload


def reissue_token(payload: dict, **changes) -> tuple[str, int]:
    """
    Re-sign a verified payload with some fields changed.

    The new token keeps the old absolute expiry, so the remaining lifetime
    carries over instead of resetting to a full window.

    Returns (token, remaining_seconds); remaining_seconds is at least 1 and
    is meant to be used as the cookie max-age.
    """
    unknown = set(changes) - set(TOKEN_CLAIMS)
    if unknown:
        raise ValueError(f"Cannot change token claim(s): {', '.join(sorted(unknown))}")

    claims = {**payload, **changes}
    expires_at = int(payload["exp"])
    remaining = max(expires_at - epoch_seconds(), 1)

    return _encode(claims, expires_at=expires_at), remaining


def set_token_cookie(response, token: str, max_age: int | None = None):
    """Attach the credential cookie to a response."""
    if max_age is None:
        max_age = token_ttl_seconds()
    response.set_cookie(
        TOKEN_COOKIE_NAME,
        token,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=bool(current_app.config.get("COOKIE_SECURE", False)),
        samesite="Strict",
    )
    return response


def clear_token_cookie(response):
    """Expire the credential cookie."""
    response.delete_cookie(
        TOKEN_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=bool(current_app.config.get("COOKIE_SECURE", False)),
        samesite="Strict",
    )
    return response


def token_from_request(request) -> str | None:
    """Cookie first, then an Authorization: Bearer header."""
    token = request.cookies.get(TOKEN_COOKIE_NAME)
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None

    return None
