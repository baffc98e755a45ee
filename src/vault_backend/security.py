from __future__ import annotations

import time
from dataclasses import dataclass

import jwt

from vault_backend.config import settings


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, as asserted by a verified access token."""

    user_id: int
    email: str | None = None


class TokenVerificationError(Exception):
    pass


def create_access_token(
    *, user_id: int, email: str | None = None, now_ts: int | None = None
) -> str:
    """Mint an access token in the format issued by the auth service.

    Used by tooling and tests; this service never hands tokens to clients.
    """

    now = int(now_ts if now_ts is not None else time.time())
    claims: dict[str, object] = {
        "sub": str(int(user_id)),
        "iat": now,
        "exp": now + int(settings.jwt_access_token_max_age_seconds),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Identity:
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as exc:
        raise TokenVerificationError(str(exc)) from exc

    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError) as exc:
        raise TokenVerificationError("sub claim is not a user id") from exc

    email = claims.get("email")
    if not isinstance(email, str) or not email.strip():
        email = None
    return Identity(user_id=user_id, email=email.strip().lower() if email else None)
