"""Per-call request validation and serialization."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypedDict
from urllib.parse import urlencode

from .config import is_timeout_number, timeout_in_range
from .exceptions import MeshesApiError

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

QueryValue = str | int | float | bool


class RequestOptions(TypedDict, total=False):
    headers: Mapping[str, str]
    query: Mapping[str, QueryValue]
    timeout: int


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """Validated description of a single API call."""

    method: str
    path: str
    body: str | None = None
    headers: Any = None
    query: Mapping[str, Any] = field(default_factory=dict)
    timeout: int | float | None = None

    @property
    def query_string(self) -> str:
        return build_query_string(self.query)

    def effective_timeout(self, default: int) -> int | float:
        return self.timeout if self.timeout is not None else default


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_query_string(query: Mapping[str, Any] | None) -> str:
    """Encode query parameters, preserving key order, with a leading `?`."""

    if not query:
        return ""
    pairs = [(str(key), _stringify(value)) for key, value in query.items()]
    return f"?{urlencode(pairs)}"


def normalize_path(path: str) -> str:
    return path if path.startswith("/") else f"/{path}"


def serialize_body(body: Any) -> str | None:
    if body is None:
        return None
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body, separators=(",", ":"))
    except (TypeError, ValueError, RecursionError) as exc:
        raise MeshesApiError("Invalid request body", exc) from exc


def build_descriptor(
    method: Any,
    path: Any,
    body: Any = None,
    options: RequestOptions | Mapping[str, Any] | None = None,
) -> RequestDescriptor:
    """Validate one call's inputs before any network activity takes place."""

    if options is None:
        options = {}
    if not isinstance(options, Mapping):
        raise MeshesApiError("Invalid request options", options)

    context = {"method": method, "path": path, **options}
    if not isinstance(method, str) or not method.strip():
        raise MeshesApiError("Invalid request method", context)
    verb = method.strip().upper()
    if verb not in SUPPORTED_METHODS:
        raise MeshesApiError("Unsupported request method", context)

    if not isinstance(path, str) or not path.strip() or path.strip() == "/":
        raise MeshesApiError("Invalid request path", context)

    timeout = options.get("timeout")
    if timeout is not None:
        if not is_timeout_number(timeout):
            raise MeshesApiError("Invalid request timeout", context)
        if not timeout_in_range(timeout):
            raise MeshesApiError("Unsupported request timeout", context)

    query = options.get("query")
    if "query" in options and not isinstance(query, Mapping):
        raise MeshesApiError("Invalid request query params", context)

    return RequestDescriptor(
        method=verb,
        path=normalize_path(path),
        body=serialize_body(body),
        headers=options.get("headers"),
        query=dict(query or {}),
        timeout=timeout,
    )
