"""
JSON envelope shared by every API endpoint.

Successful responses look like ``{"success": true, "data": ...,
"timestamp": ...}``; failures carry ``error`` (a short summary) and
optionally ``message`` (the underlying reason). Routes raise
``ApiError`` and the handlers registered in ``main`` turn it into an
enveloped response.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..storage import BookRepository
from ..covers import CoverStorage


class ApiError(Exception):
    def __init__(self, status_code: int, error: str, message: Optional[str] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.message = message


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def envelope(
    data: Any = None,
    *,
    message: Optional[str] = None,
    status_code: int = 200,
    **extra: Any,
) -> JSONResponse:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    body.update(extra)
    body["timestamp"] = timestamp()
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def error_response(
    status_code: int,
    error: str,
    message: Optional[str] = None,
    **extra: Any,
) -> JSONResponse:
    body = {"success": False, "error": error}
    if message:
        body["message"] = message
    body.update(extra)
    body["timestamp"] = timestamp()
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


# Dependencies: the app factory stores its collaborators on ``app.state``

def get_repository(request: Request) -> BookRepository:
    return request.app.state.repository


def get_cover_storage(request: Request) -> CoverStorage:
    return request.app.state.cover_storage


def get_config(request: Request):
    return request.app.state.config
