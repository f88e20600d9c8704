"""Configuration helpers for the Meshes API client."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypedDict

from .exceptions import MeshesApiError

CLIENT_VERSION = "1.0.0"
CLIENT_HEADER = "X-Meshes-Client"
DEFAULT_API_HOST = "https://api.meshes.io"
SUPPORTED_VERSION = "v1"
MIN_TIMEOUT_MS = 1000
MAX_TIMEOUT_MS = 30000

DEFAULT_OPTIONS: Mapping[str, Any] = MappingProxyType(
    {"version": SUPPORTED_VERSION, "timeout": 5000, "debug": False}
)

PROTECTED_HEADERS = frozenset(
    {
        "accept",
        "authorization",
        "content-length",
        "content-type",
        "host",
        "x-amz-date",
        "x-api-key",
        "x-amz-security-token",
        "x-amz-user-agent",
        "x-meshes-client",
        "x-meshes-publishable-key",
    }
)

_ORGANIZATION_ID = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)
_ACCESS_KEY = re.compile(r"mk_[A-Za-z0-9_-]+")
_SECRET_KEY = re.compile(r"[A-Za-z0-9_-]{43,}")


class ClientOptions(TypedDict, total=False):
    version: str
    timeout: int
    headers: Mapping[str, str]
    debug: bool
    api_base_url: str


def _frozen_headers() -> Mapping[str, str]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Immutable settings shared by every request of one `MeshesApiClient`."""

    organization_id: str
    access_key: str
    secret_key: bytes = field(repr=False)
    base_url: str
    default_headers: Mapping[str, str] = field(default_factory=_frozen_headers)
    timeout: int = DEFAULT_OPTIONS["timeout"]
    debug: bool = False

    def __post_init__(self) -> None:
        # Freeze a private copy so callers cannot mutate headers after construction.
        object.__setattr__(
            self,
            "default_headers",
            MappingProxyType(dict(self.default_headers)),
        )


def is_protected_header(name: str) -> bool:
    return name.strip().lower() in PROTECTED_HEADERS


def is_timeout_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def timeout_in_range(value: float) -> bool:
    return MIN_TIMEOUT_MS <= value <= MAX_TIMEOUT_MS


def clean_headers(headers: Any) -> dict[str, str]:
    """Return trimmed headers, silently dropping anything the client won't send.

    Non-string keys or values, blank keys or values, and protected names are
    skipped. A non-mapping input yields an empty result.
    """

    if not isinstance(headers, Mapping):
        return {}
    cleaned: dict[str, str] = {}
    for key, value in headers.items():
        if not isinstance(key, str) or not isinstance(value, str):
            continue
        name = key.strip()
        text = value.strip()
        if not name or not text:
            continue
        if name.lower() in PROTECTED_HEADERS:
            continue
        cleaned[name] = text
    return cleaned


def merge_headers(per_call: Any, defaults: Mapping[str, str]) -> dict[str, str]:
    """Overlay `defaults` on cleaned per-call headers; defaults win case-insensitively."""

    default_names = {name.lower() for name in defaults}
    merged = {
        name: value
        for name, value in clean_headers(per_call).items()
        if name.lower() not in default_names
    }
    merged.update(defaults)
    return merged


def _validate_credentials(organization_id: Any, access_key: Any, secret_key: Any) -> None:
    if not isinstance(organization_id, str) or not _ORGANIZATION_ID.fullmatch(organization_id):
        raise MeshesApiError(f"Missing or invalid account organization ID: {organization_id}")
    if not isinstance(access_key, str) or not _ACCESS_KEY.fullmatch(access_key):
        raise MeshesApiError(f"Missing or invalid access key: {access_key}")
    if not isinstance(secret_key, str) or not _SECRET_KEY.fullmatch(secret_key):
        raise MeshesApiError("Missing or invalid secret key")


def _validate_custom_headers(headers: Any) -> dict[str, str]:
    if not isinstance(headers, Mapping):
        raise MeshesApiError(
            f"Invalid additional request headers: {type(headers).__name__}", headers
        )
    for key, value in headers.items():
        if not isinstance(key, str):
            raise MeshesApiError(f"Invalid request header name: {key!r}", headers)
        if not isinstance(value, str):
            raise MeshesApiError(
                f"Invalid request header value for {key}: {type(value).__name__}", headers
            )
        if is_protected_header(key):
            raise MeshesApiError(f"Header not allowed: {key}", headers)
    return clean_headers(headers)


def _merge_options(options: Any) -> dict[str, Any]:
    if options is None:
        options = {}
    if not isinstance(options, Mapping):
        raise MeshesApiError(f"Invalid options object: {type(options).__name__}", options)
    merged = dict(DEFAULT_OPTIONS)
    merged.update({key: value for key, value in options.items() if value is not None})
    return merged


def build_config(
    organization_id: str,
    access_key: str,
    secret_key: str,
    options: ClientOptions | Mapping[str, Any] | None = None,
) -> ClientConfig:
    """Validate constructor inputs and return the frozen client configuration."""

    _validate_credentials(organization_id, access_key, secret_key)
    merged = _merge_options(options)

    version = merged["version"]
    if not isinstance(version, str):
        raise MeshesApiError(f"Invalid API version: {version}")
    if version != SUPPORTED_VERSION:
        raise MeshesApiError(f"Unsupported API version: {version}")

    timeout = merged["timeout"]
    if not is_timeout_number(timeout):
        raise MeshesApiError(f"Invalid request timeout: {timeout}")
    if not timeout_in_range(timeout):
        raise MeshesApiError(f"Unsupported request timeout: {timeout}")

    custom_headers: dict[str, str] = {}
    if "headers" in merged:
        custom_headers = _validate_custom_headers(merged["headers"])

    base_url = f"{DEFAULT_API_HOST}/api/{version}"
    if "api_base_url" in merged:
        override = merged["api_base_url"]
        if not isinstance(override, str) or not override.strip():
            raise MeshesApiError(f"Invalid API base URL: {override!r}")
        base_url = override.strip().rstrip("/")

    headers = {
        **custom_headers,
        CLIENT_HEADER: f"Meshes API Client v{CLIENT_VERSION}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    return ClientConfig(
        organization_id=organization_id,
        access_key=access_key,
        secret_key=secret_key.encode("utf-8"),
        base_url=base_url,
        default_headers=headers,
        timeout=int(timeout),
        debug=merged["debug"] is True,
    )
