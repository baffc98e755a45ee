"""Typed application errors.

Services raise these instead of ``HTTPException`` so they stay transport
agnostic; ``vault_backend.error_handlers`` maps ``status_code`` onto the HTTP
response at the boundary.
"""

from __future__ import annotations

from typing import ClassVar


class AppError(Exception):
    kind: ClassVar[str] = "internal_error"
    status_code: ClassVar[int] = 500

    def __init__(self, message: str, *, details: object | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, message={self.message!r})"


class ValidationError(AppError):
    kind = "validation_error"
    status_code = 400


class UnauthorizedError(AppError):
    kind = "unauthorized"
    status_code = 401


class ForbiddenError(AppError):
    kind = "forbidden"
    status_code = 403


class NotFoundError(AppError):
    kind = "not_found"
    status_code = 404
