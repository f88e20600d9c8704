"""HTTP utilities for Meshes API access."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from requests import Session

from .cancellation import CancellationToken


@dataclass(slots=True)
class OutboundRequest:
    """Fully assembled request handed to a transport."""

    method: str
    url: str
    headers: Mapping[str, str]
    body: str | None = None


@dataclass(slots=True)
class HttpResponse:
    """Response envelope whose body is read lazily through `reader`."""

    status_code: int
    reason: str
    reader: Callable[[], str]
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def text(self) -> str:
        return self.reader()


def read_body(response: HttpResponse) -> Any:
    """Parse the body as JSON, falling back to text; an empty body yields None."""

    text = response.text()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class Transport(ABC):
    """Interface every transport must implement."""

    @abstractmethod
    def send(
        self, request: OutboundRequest, cancellation: CancellationToken | None
    ) -> HttpResponse:
        """Perform the request, aborting once `cancellation` fires."""

    def close(self) -> None:
        """Release transport resources."""


class RequestsTransport(Transport):
    """Transport backed by a `requests.Session`."""

    def __init__(self, session: Session | None = None) -> None:
        self._session = session or Session()

    def send(
        self, request: OutboundRequest, cancellation: CancellationToken | None
    ) -> HttpResponse:
        timeout: float | None = None
        if cancellation is not None:
            cancellation.raise_if_cancelled()
            timeout = cancellation.remaining()

        response = self._session.request(
            method=request.method,
            url=request.url,
            headers=dict(request.headers),
            data=request.body.encode("utf-8") if request.body is not None else None,
            timeout=timeout,
            stream=True,
        )
        if cancellation is not None:
            # Closing the stream stops a body read that is still in progress.
            cancellation.on_cancel(response.close)
            cancellation.raise_if_cancelled()

        def reader() -> str:
            try:
                try:
                    text = response.text
                except Exception:
                    if cancellation is not None:
                        cancellation.raise_if_cancelled()
                    raise
                if cancellation is not None:
                    cancellation.raise_if_cancelled()
                return text
            finally:
                response.close()

        return HttpResponse(
            status_code=response.status_code,
            reason=response.reason or "",
            reader=reader,
            headers=dict(response.headers),
        )

    def close(self) -> None:
        self._session.close()
