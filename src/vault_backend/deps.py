from __future__ import annotations

import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vault_backend.errors import UnauthorizedError
from vault_backend.security import Identity, TokenVerificationError, decode_access_token
from vault_backend.services.shares_service import ShareLinkManager

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def _bearer_token(creds: HTTPAuthorizationCredentials | None) -> str | None:
    raw = creds.credentials if creds is not None else None
    if raw and raw.strip():
        return raw.strip()
    return None


async def get_current_identity(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Identity:
    token = _bearer_token(creds)
    if token is None:
        raise UnauthorizedError("No token provided")
    try:
        identity = decode_access_token(token)
    except TokenVerificationError:
        raise UnauthorizedError("Invalid or expired token") from None

    request.state.auth_user_id = identity.user_id
    return identity


async def get_optional_identity(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Identity | None:
    """Like get_current_identity, but a missing or invalid token means anonymous."""

    token = _bearer_token(creds)
    if token is None:
        return None
    try:
        identity = decode_access_token(token)
    except TokenVerificationError:
        logger.debug("ignoring invalid bearer token on optional-auth route")
        return None

    request.state.auth_user_id = identity.user_id
    return identity


def get_share_manager(request: Request) -> ShareLinkManager:
    return request.app.state.share_manager
