"""Command-line interface for the Meshes management API."""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import typer

try:  # pragma: no cover - exercised in runtime environments
    from rich import box
    from rich.console import Console
    from rich.table import Table
except ImportError as exc:  # pragma: no cover - optional dependency guard
    raise RuntimeError(
        "The CLI requires Rich for table rendering. Install the CLI extras via "
        "'pip install meshes-api-client[cli]' to enable this command."
    ) from exc

from . import MeshesApiClient
from .exceptions import MeshesApiError

app = typer.Typer(help="Meshes management API CLI.", no_args_is_help=True)

console = Console(force_terminal=False, color_system=None)


def _build_client(
    organization_id: str,
    access_key: str,
    secret_key: str,
    api_base_url: str | None,
    timeout: int,
    debug: bool,
) -> MeshesApiClient:
    if debug:
        logging.basicConfig(level=logging.DEBUG)
    options: dict[str, Any] = {"timeout": timeout, "debug": debug}
    if api_base_url:
        options["api_base_url"] = api_base_url
    try:
        return MeshesApiClient(organization_id, access_key, secret_key, options)
    except MeshesApiError as exc:
        typer.secho(f"Invalid client configuration: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _render_rich_table(rows: Sequence[Mapping[str, Any]]) -> None:
    table = Table(box=box.SIMPLE, show_lines=False, header_style="bold cyan")
    columns: list[str] = []
    for row in rows:
        for key, value in row.items():
            if key not in columns and not isinstance(value, (Mapping, list)):
                columns.append(key)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*("" if row.get(column) is None else str(row.get(column)) for column in columns))
    console.print(table)


def _present_output(payload: Any, *, as_table: bool) -> None:
    if isinstance(payload, str):
        typer.echo(payload)
        return
    if not as_table or not isinstance(payload, list):
        _echo_json(payload)
        return
    rows = [item for item in payload if isinstance(item, Mapping)]
    if not rows:
        _echo_json(payload)
        return
    _render_rich_table(rows)


def _handle_api_error(exc: MeshesApiError) -> None:
    message = f"Request failed: {exc}"
    if exc.status_code is not None:
        message = f"Request failed (status {exc.status_code}): {exc}"
    if exc.data is not None:
        message += f"\nDetails: {json.dumps(exc.data, default=str)}"
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _coerce_simple(value: str) -> str | int | float | bool:
    v = value.strip()
    low = v.lower()
    if low in {"true", "false"}:
        return low == "true"
    try:
        if "." in v:
            return float(v)
        return int(v)
    except ValueError:
        return v


def parse_pairs(entries: Sequence[str], *, option: str, coerce: bool = False) -> dict[str, Any]:
    """Parse repeated ``key=value`` (or ``Name: Value``) options into a dict."""
    out: dict[str, Any] = {}
    for entry in entries:
        positions = [entry.find(sep) for sep in ("=", ":") if sep in entry]
        if not positions:
            raise typer.BadParameter(f"{option} values must be provided as key=value pairs.")
        split_at = min(positions)
        key, value = entry[:split_at], entry[split_at + 1 :]
        out[key.strip()] = _coerce_simple(value) if coerce else value.strip()
    return out


def _shared_options() -> dict[str, Any]:  # pragma: no cover - helper indirection
    return {
        "organization_id": typer.Option(
            ...,
            "--organization-id",
            envvar="MESHES_ORGANIZATION_ID",
            help="Account organization ID (UUID).",
        ),
        "access_key": typer.Option(
            ..., "--access-key", envvar="MESHES_ACCESS_KEY", help="API access key (mk_...)."
        ),
        "secret_key": typer.Option(
            ...,
            "--secret-key",
            envvar="MESHES_SECRET_KEY",
            help="API secret key used to sign machine tokens.",
            hide_input=True,
        ),
        "api_base_url": typer.Option(
            None,
            "--api-base-url",
            envvar="MESHES_API_BASE_URL",
            help="Override the API base URL (e.g. https://api.meshes.io/api/v1).",
        ),
        "timeout": typer.Option(5000, help="Request timeout (milliseconds).", show_default=True),
        "header": typer.Option(
            [], "--header", "-H", help="Extra request header as Name=Value.", show_default=False
        ),
        "query": typer.Option(
            [], "--query", "-q", help="Query parameter as key=value.", show_default=False
        ),
        "debug": typer.Option(False, "--debug", help="Log request pipeline events."),
        "table": typer.Option(
            False, "--table", "-t", help="Render a list of objects as a table instead of JSON."
        ),
    }


_SHARED_OPTIONS = _shared_options()

_BODY_OPTION = typer.Option(None, "--body", "-d", help="Request body (JSON or raw text).")
_BODY_FILE_OPTION = typer.Option(None, "--body-file", help="Read the request body from a file.")


def _read_body(body: str | None, body_file: Path | None) -> str | None:
    if body is not None and body_file is not None:
        raise typer.BadParameter("Provide either --body or --body-file, not both.")
    if body_file is None:
        return body
    try:
        return body_file.expanduser().read_text(encoding="utf-8")
    except OSError as exc:  # pragma: no cover - filesystem errors
        raise typer.BadParameter(f"Unable to read body file: {exc}") from exc


def _run(
    method: str,
    path: str,
    body: str | None,
    *,
    organization_id: str,
    access_key: str,
    secret_key: str,
    api_base_url: str | None,
    timeout: int,
    header: list[str],
    query: list[str],
    debug: bool,
    table: bool,
) -> None:
    options: dict[str, Any] = {}
    if header:
        options["headers"] = parse_pairs(header, option="--header")
    if query:
        options["query"] = parse_pairs(query, option="--query", coerce=True)

    with _build_client(
        organization_id=organization_id,
        access_key=access_key,
        secret_key=secret_key,
        api_base_url=api_base_url,
        timeout=timeout,
        debug=debug,
    ) as client:
        try:
            payload = client.request(method, path, body, options).result()
        except MeshesApiError as exc:
            _handle_api_error(exc)
            return
    _present_output(payload, as_table=table)


@app.command("get")
def get_command(
    path: str = typer.Argument(..., help="API path, e.g. /events."),
    organization_id: str = _SHARED_OPTIONS["organization_id"],
    access_key: str = _SHARED_OPTIONS["access_key"],
    secret_key: str = _SHARED_OPTIONS["secret_key"],
    api_base_url: str | None = _SHARED_OPTIONS["api_base_url"],
    timeout: int = _SHARED_OPTIONS["timeout"],
    header: list[str] = _SHARED_OPTIONS["header"],
    query: list[str] = _SHARED_OPTIONS["query"],
    debug: bool = _SHARED_OPTIONS["debug"],
    table: bool = _SHARED_OPTIONS["table"],
) -> None:
    """Send a GET request."""

    _run(
        "GET",
        path,
        None,
        organization_id=organization_id,
        access_key=access_key,
        secret_key=secret_key,
        api_base_url=api_base_url,
        timeout=timeout,
        header=header,
        query=query,
        debug=debug,
        table=table,
    )


@app.command("delete")
def delete_command(
    path: str = typer.Argument(..., help="API path to delete."),
    organization_id: str = _SHARED_OPTIONS["organization_id"],
    access_key: str = _SHARED_OPTIONS["access_key"],
    secret_key: str = _SHARED_OPTIONS["secret_key"],
    api_base_url: str | None = _SHARED_OPTIONS["api_base_url"],
    timeout: int = _SHARED_OPTIONS["timeout"],
    header: list[str] = _SHARED_OPTIONS["header"],
    query: list[str] = _SHARED_OPTIONS["query"],
    debug: bool = _SHARED_OPTIONS["debug"],
    table: bool = _SHARED_OPTIONS["table"],
) -> None:
    """Send a DELETE request."""

    _run(
        "DELETE",
        path,
        None,
        organization_id=organization_id,
        access_key=access_key,
        secret_key=secret_key,
        api_base_url=api_base_url,
        timeout=timeout,
        header=header,
        query=query,
        debug=debug,
        table=table,
    )


def _register_body_command(method: str) -> None:
    def command(
        path: str = typer.Argument(..., help="API path, e.g. /events."),
        body: str | None = _BODY_OPTION,
        body_file: Path | None = _BODY_FILE_OPTION,
        organization_id: str = _SHARED_OPTIONS["organization_id"],
        access_key: str = _SHARED_OPTIONS["access_key"],
        secret_key: str = _SHARED_OPTIONS["secret_key"],
        api_base_url: str | None = _SHARED_OPTIONS["api_base_url"],
        timeout: int = _SHARED_OPTIONS["timeout"],
        header: list[str] = _SHARED_OPTIONS["header"],
        query: list[str] = _SHARED_OPTIONS["query"],
        debug: bool = _SHARED_OPTIONS["debug"],
        table: bool = _SHARED_OPTIONS["table"],
    ) -> None:
        _run(
            method,
            path,
            _read_body(body, body_file),
            organization_id=organization_id,
            access_key=access_key,
            secret_key=secret_key,
            api_base_url=api_base_url,
            timeout=timeout,
            header=header,
            query=query,
            debug=debug,
            table=table,
        )

    command.__doc__ = f"Send a {method} request with an optional body."
    app.command(method.lower())(command)


for _method in ("POST", "PUT", "PATCH"):
    _register_body_command(_method)
