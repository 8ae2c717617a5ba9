"""Router with trailing-slash aliases and JSON error responses."""

from collections.abc import Callable
from typing import Any

import orjson
from fastapi import APIRouter, Response


def slash_alias(path: str) -> str | None:
    """Return the other trailing-slash form of ``path``, or None for the root."""
    if path in ("", "/"):
        return None
    return path.rstrip("/") if path.endswith("/") else f"{path}/"


def error_response(status_code: int, code: str, detail: str | None = None) -> Response:
    """Build a JSON error body with a machine-readable code."""
    payload: dict[str, Any] = {"error": code}
    if detail is not None:
        payload["detail"] = detail
    return Response(
        status_code=status_code,
        media_type="application/json",
        content=orjson.dumps(payload),
    )


class Router(APIRouter):
    """APIRouter that answers on both ``/path`` and ``/path/``."""

    def add_api_route(self, path: str, endpoint: Callable[..., Any], **kwargs: Any) -> None:
        super().add_api_route(path, endpoint, **kwargs)
        if (alias := slash_alias(path)) is not None:
            super().add_api_route(alias, endpoint, **{**kwargs, "include_in_schema": False})
