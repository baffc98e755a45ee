from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import cast

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from vault_backend.config import settings
from vault_backend.db import dispose_engine_cache, session_scope
from vault_backend.error_handlers import register_error_handlers
from vault_backend.routers import shares
from vault_backend.schemas_common import HealthResponse
from vault_backend.services.shares_service import ShareLinkManager


class RequestIdMiddleware:
    """Echo X-Request-Id on every response (minting one when absent).

    The id is also stored as ``request.state.request_id`` for error envelopes.
    """

    header = b"x-request-id"

    def __init__(self, app: ASGIApp) -> None:
        self.app: ASGIApp = app

    @classmethod
    def _inbound_id(cls, scope: Scope) -> bytes | None:
        for key, value in cast(list[tuple[bytes, bytes]], scope.get("headers") or []):
            if key.lower() == cls.header:
                return value.strip() or None
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        raw_id = self._inbound_id(scope) or uuid.uuid4().hex.encode("ascii")
        # Header bytes are latin-1 by definition.
        scope.setdefault("state", {})["request_id"] = raw_id.decode("latin-1")

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                outbound = cast(list[tuple[bytes, bytes]], message.get("headers", []))
                kept = [(k, v) for (k, v) in outbound if k.lower() != self.header]
                message["headers"] = [*kept, (self.header, raw_id)]
            await send(message)

        await self.app(scope, receive, send_with_request_id)


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    yield
    # Pooled aiosqlite connections own threads; close them on shutdown.
    dispose_engine_cache()


logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

logger = logging.getLogger(__name__)
for msg in settings.security_warnings():
    logger.warning("SECURITY WARNING: %s", msg)


app = FastAPI(title=settings.app_name, lifespan=_lifespan)

# The store handle is explicit: the manager opens sessions through session_scope,
# which always follows the currently configured engine.
app.state.share_manager = ShareLinkManager(session_factory=session_scope, settings=settings)

app.add_middleware(RequestIdMiddleware)

origins = settings.cors_origins_list()
if origins == ["*"]:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        # Credentials need an explicit origin allowlist.
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
elif origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-Id"],
        max_age=86400,
    )

register_error_handlers(app)


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse()


app.include_router(shares.router, prefix=settings.api_prefix)
