"""Command line interface for power-query."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import load_config
from .errors import QueryError
from .factory import build_browser, build_cache, build_queryer
from .models import QueryRequest

app = typer.Typer(help="Dormitory electricity balance query")

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to YAML configuration."),
]
EnvFileOption = Annotated[
    Optional[Path],
    typer.Option("--env-file", help="Path to an .env file with default configuration values."),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("power-query"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


@app.command()
def query(
    room_name: Annotated[str, typer.Argument(help="Room to query, usually 6 or 8 digits.")],
    username: Annotated[
        str,
        typer.Option("--username", "-u", help="Portal username."),
    ] = "",
    password: Annotated[
        str,
        typer.Option("--password", "-p", help="Portal password."),
    ] = "",
    cookies: Annotated[
        str,
        typer.Option("--cookies", help="Serialized session cookies to reuse."),
    ] = "",
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    control_url: Annotated[
        Optional[str],
        typer.Option("--control-url", help="CDP endpoint of a remote Chromium."),
    ] = None,
) -> None:
    """Query the balance and remaining power of a room once."""

    overrides: dict[str, Any] = {}
    if control_url:
        overrides["browser"] = {"control_url": control_url}
    config = load_config(config_path, env_file=env_file, **overrides)

    try:
        cache = build_cache(config.cache)
    except QueryError as exc:
        typer.echo(f"Query failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    browser = build_browser(config.browser)
    try:
        queryer = build_queryer(config, cache, browser)
        result = queryer.execute_query(
            QueryRequest(
                room_name=room_name,
                username=username,
                password=password,
                cookies=cookies,
            )
        )
    except QueryError as exc:
        typer.echo(f"Query failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        browser.stop()
        cache.close()

    table = Table(title=f"Room {room_name}")
    table.add_column("Balance (CNY)")
    table.add_column("Power (kWh)")
    table.add_row(result.balance, result.power)
    Console().print(table)


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", help="Binding address for the HTTP endpoint."),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", help="HTTP port for the query endpoint."),
    ] = None,
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
) -> None:
    """Serve the query endpoint over HTTP."""

    import uvicorn

    from . import service

    overrides: dict[str, Any] = {}
    if host is not None or port is not None:
        overrides.setdefault("server", {})
        if host is not None:
            overrides["server"]["host"] = host
        if port is not None:
            overrides["server"]["port"] = port
    config = load_config(config_path, env_file=env_file, **overrides)

    try:
        cache = build_cache(config.cache)
    except QueryError as exc:
        typer.echo(f"Failed to open credential cache: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    browser = build_browser(config.browser)
    try:
        queryer = build_queryer(config, cache, browser)
    except QueryError as exc:
        browser.stop()
        cache.close()
        typer.echo(f"Failed to start browser session: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    service.state = service.ServiceState(queryer, cache=cache, browser=browser)
    try:
        uvicorn.run(service.app, host=config.server.host, port=config.server.port)
    finally:
        service.state.close()


if __name__ == "__main__":
    app()
