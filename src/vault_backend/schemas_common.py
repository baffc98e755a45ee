from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


T = TypeVar("T")


class ApiModel(BaseModel):
    # Wire format is camelCase; Python side stays snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    ok: bool = True


class DataResponse(ApiModel, Generic[T]):
    success: bool = True
    data: T


class ErrorResponse(ApiModel):
    """Error envelope shared by every endpoint.

    ``error`` is the human readable message, ``code`` the stable machine
    readable kind (``not_found``, ``forbidden``...).
    """

    success: bool = False
    error: str
    code: str
    request_id: str | None = None
    details: object | None = None
