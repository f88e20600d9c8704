"""High-level Meshes management API client."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Any

from .auth.base import TokenSigner
from .auth.jwt import HS256Signer, MachineTokenAuth
from .cancellation import CancellationToken, TimerFactory, arm
from .config import ClientConfig, ClientOptions, build_config, merge_headers
from .descriptor import RequestDescriptor, RequestOptions, build_descriptor
from .exceptions import MeshesApiError
from .http import HttpResponse, OutboundRequest, RequestsTransport, Transport, read_body

Callback = Callable[[MeshesApiError | None, Any], None]


class MeshesApiClient:
    """Sign and send JSON requests to the Meshes management API.

    Every verb method returns a `concurrent.futures.Future` resolving to the
    parsed response, unless `callback` is given, in which case it returns
    None and calls ``callback(error, value)`` exactly once.
    """

    def __init__(
        self,
        organization_id: str,
        access_key: str,
        secret_key: str,
        options: ClientOptions | Mapping[str, Any] | None = None,
        *,
        transport: Transport | None = None,
        signer: TokenSigner | None = None,
        logger: logging.Logger | None = None,
        timer_factory: TimerFactory | None = threading.Timer,
        max_workers: int | None = None,
    ) -> None:
        self.config: ClientConfig = build_config(organization_id, access_key, secret_key, options)
        self._auth = MachineTokenAuth(
            organization_id=self.config.organization_id,
            access_key=self.config.access_key,
            secret_key=self.config.secret_key,
            signer=signer or HS256Signer(),
        )
        self._transport = transport or RequestsTransport()
        self._logger = logger or logging.getLogger(__name__)
        self._timer_factory = timer_factory
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="meshes-client"
        )

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> MeshesApiClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - passthrough
        self.close()

    # Public API --------------------------------------------------------------
    def get(
        self,
        path: str,
        options: RequestOptions | None = None,
        callback: Callback | None = None,
    ) -> Future | None:
        return self.request("GET", path, options=options, callback=callback)

    def post(
        self,
        path: str,
        body: Any = None,
        options: RequestOptions | None = None,
        callback: Callback | None = None,
    ) -> Future | None:
        return self.request("POST", path, body, options, callback)

    def put(
        self,
        path: str,
        body: Any = None,
        options: RequestOptions | None = None,
        callback: Callback | None = None,
    ) -> Future | None:
        return self.request("PUT", path, body, options, callback)

    def patch(
        self,
        path: str,
        body: Any = None,
        options: RequestOptions | None = None,
        callback: Callback | None = None,
    ) -> Future | None:
        return self.request("PATCH", path, body, options, callback)

    def delete(
        self,
        path: str,
        options: RequestOptions | None = None,
        callback: Callback | None = None,
    ) -> Future | None:
        return self.request("DELETE", path, options=options, callback=callback)

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        options: RequestOptions | Mapping[str, Any] | None = None,
        callback: Callback | None = None,
    ) -> Future | None:
        """Dispatch one call and deliver its outcome as a future or via `callback`."""

        mode = "callback" if callback else "future"
        self._record("Request Options", {"method": method, "path": path, "mode": mode})
        future = self._dispatch(method, path, body, options)
        if callback is None:
            return future
        future.add_done_callback(partial(self._deliver, callback))
        return None

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self._transport.close()

    # Internal helpers -------------------------------------------------------
    def _dispatch(
        self,
        method: Any,
        path: Any,
        body: Any,
        options: Any,
    ) -> Future:
        try:
            descriptor = build_descriptor(method, path, body, options)
        except MeshesApiError as exc:
            self._record("Invalid Request", exc.data)
            return self._failed(exc)

        timeout = descriptor.effective_timeout(self.config.timeout)
        cancellation = arm(timeout, self._timer_factory)
        if cancellation is None:
            self._record("Cancellation", "Not supported; timeouts won't be enforced")
        try:
            future = self._executor.submit(self._execute, descriptor, cancellation)
        except RuntimeError as exc:
            if cancellation is not None:
                cancellation.disarm()
            return self._failed(MeshesApiError("Client is closed", exc))
        if cancellation is not None:
            future.add_done_callback(lambda _: cancellation.disarm())
        return future

    def _execute(
        self,
        descriptor: RequestDescriptor,
        cancellation: CancellationToken | None,
    ) -> Any:
        try:
            outbound = self._prepare_request(descriptor)
            self._log_request(outbound)
            response = self._transport.send(outbound, cancellation)
        except MeshesApiError as exc:
            self._record_error("Request Failure", exc)
            raise
        except Exception as exc:
            self._record_error("Request Failure", exc)
            raise MeshesApiError("Request Failure", exc) from exc
        return self._normalize_response(response)

    def _prepare_request(self, descriptor: RequestDescriptor) -> OutboundRequest:
        headers = merge_headers(descriptor.headers, self.config.default_headers)
        self._auth.apply(headers)
        url = f"{self.config.base_url}{descriptor.path}{descriptor.query_string}"
        return OutboundRequest(
            method=descriptor.method,
            url=url,
            headers=headers,
            body=descriptor.body,
        )

    def _normalize_response(self, response: HttpResponse) -> Any:
        if response.ok:
            try:
                data = read_body(response)
            except Exception as exc:
                self._record_error("Response Parsing Error", exc)
                raise MeshesApiError("Error parsing response data", exc) from exc
            self._record("Response Success", {"status": response.status_code})
            return data

        try:
            data = read_body(response)
        except Exception as exc:
            self._record_error("Response Parsing Failure", exc)
            raise MeshesApiError(
                "Error parsing request failure",
                {
                    "status": response.status_code,
                    "status_text": response.reason,
                    "error": exc,
                },
            ) from exc
        self._record("Response Error", {"status": response.status_code, "data": data})
        raise MeshesApiError(
            "Meshes API request failed",
            {
                "status": response.status_code,
                "status_text": response.reason,
                "data": data,
            },
        )

    def _deliver(self, callback: Callback, future: Future) -> None:
        error = future.exception()
        if error is not None:
            self._record("Callback Error", error)
            callback(error, None)
            return
        callback(None, future.result())

    @staticmethod
    def _failed(error: MeshesApiError) -> Future:
        future: Future = Future()
        future.set_exception(error)
        return future

    def _log_request(self, request: OutboundRequest) -> None:
        visible = {k: v for k, v in request.headers.items() if k.lower() != "authorization"}
        self._record(
            "Fetch Options",
            {"method": request.method, "url": request.url, "headers": visible},
        )

    def _record(self, event: str, data: Any = None, level: int = logging.DEBUG) -> None:
        if not self.config.debug:
            return
        self._logger.log(
            level,
            "Meshes %s: %s",
            event,
            data,
            extra={"meshes_event": event, "meshes_data": data},
        )

    def _record_error(self, event: str, error: BaseException) -> None:
        self._record(event, error, level=logging.ERROR)
