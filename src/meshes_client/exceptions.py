"""Error type surfaced by the Meshes API client."""
from __future__ import annotations

import traceback
from collections.abc import Mapping
from typing import Any


class MeshesApiError(RuntimeError):
    """Single error kind for configuration, request and response failures.

    The cause is distinguished by the shape of ``data``: the offending input
    for validation failures, the underlying exception for transport and body
    read failures, or a mapping with ``status``, ``status_text`` and ``data``
    (or ``error``) for non-2xx responses.
    """

    def __init__(self, message: str, data: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data

    @property
    def status_code(self) -> int | None:
        if isinstance(self.data, Mapping):
            status = self.data.get("status")
            if isinstance(status, int):
                return status
        return None

    def to_dict(self, include_stack: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": type(self).__name__, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        if include_stack and self.__traceback__ is not None:
            payload["stack"] = "".join(traceback.format_tb(self.__traceback__))
        return payload
