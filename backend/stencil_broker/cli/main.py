"""CLI entrypoint for stencil-broker."""

from __future__ import annotations

import asyncio
import json
import os
import signal
from pathlib import Path
from typing import Optional

import requests
import typer

from stencil_broker.compiler.config_file import ensure_config_file
from stencil_broker.core.config import Settings
from stencil_broker.core.errors import BuildFailure, StencilBrokerError
from stencil_broker.core.logging import configure_logging
from stencil_broker.plugin.pipeline import StencilPipeline

app = typer.Typer(name="stencil-broker", help="stencil-broker command-line interface")

DEFAULT_HOST = "http://127.0.0.1:5173"
EXIT_INTERRUPTED = 130


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("STENCIL_BROKER_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=600, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _load_settings(config: Optional[Path]) -> Settings:
    settings = Settings.from_yaml(config)
    configure_logging(settings.log_level, use_json=settings.log_json)
    return settings


def _echo_failure(exc: StencilBrokerError) -> None:
    typer.echo(f"{exc.code}: {exc.message}", err=True)
    if isinstance(exc, BuildFailure):
        for line in exc.diagnostics:
            typer.echo(f"  {line}", err=True)


def _install_shutdown_handlers(loop: asyncio.AbstractEventLoop, stop: asyncio.Event) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))


@app.command()
def transform(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Component source file"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Fetch the transformed artifact for a source file."""
    resolved = path.expanduser().resolve()
    body = {"id": str(resolved), "code": resolved.read_text(encoding="utf-8")}
    resp = _request("POST", "/transform", host=host, json=body)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def resolve(
    ref: str = typer.Argument(..., help="Reference to resolve"),
    importer: Optional[str] = typer.Option(None, "--importer", help="Module that contains the reference"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Resolve a reference against the artifact directory."""
    resp = _request("POST", "/resolve", host=host, json={"id": ref, "importer": importer})
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def status(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show build coordinator state."""
    resp = _request("GET", "/status", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def rebuild(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Ask a running broker for a build and wait for it."""
    resp = _request("POST", "/build", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command("init-config")
def init_config(
    config: Optional[Path] = typer.Option(None, "--config", help="stencil-broker YAML file"),
) -> None:
    """Locate the Stencil config, writing a scratch one if the project has none."""
    settings = _load_settings(config)
    try:
        config_path = ensure_config_file(settings)
    except StencilBrokerError as exc:
        _echo_failure(exc)
        raise typer.Exit(code=1)
    typer.echo(str(config_path))


@app.command()
def build(
    config: Optional[Path] = typer.Option(None, "--config", help="stencil-broker YAML file"),
) -> None:
    """Run a single build in-process."""
    settings = _load_settings(config)
    exit_code = asyncio.run(_build_once(StencilPipeline(settings)))
    raise typer.Exit(code=exit_code)


@app.command()
def watch(
    config: Optional[Path] = typer.Option(None, "--config", help="stencil-broker YAML file"),
) -> None:
    """Build, then rebuild on every source change until interrupted."""
    settings = _load_settings(config)
    exit_code = asyncio.run(_watch(StencilPipeline(settings)))
    raise typer.Exit(code=exit_code)


async def _build_once(pipeline: StencilPipeline) -> int:
    try:
        await pipeline.build_start()
    except StencilBrokerError as exc:
        _echo_failure(exc)
        return 1
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    _install_shutdown_handlers(loop, stop)
    build_task = asyncio.create_task(pipeline.request_rebuild())
    stop_task = asyncio.create_task(stop.wait())
    try:
        done, _ = await asyncio.wait({build_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if build_task not in done:
            typer.echo("Interrupted, stopping compiler", err=True)
            await pipeline.close(abort_in_flight=True)
            await asyncio.gather(build_task, return_exceptions=True)
            return EXIT_INTERRUPTED
        generation = build_task.result()
    except BuildFailure as exc:
        _echo_failure(exc)
        return 1
    finally:
        stop_task.cancel()
        await pipeline.close()
    typer.echo(f"Build finished (generation {generation})")
    return 0


async def _watch(pipeline: StencilPipeline) -> int:
    try:
        await pipeline.build_start()
    except StencilBrokerError as exc:
        _echo_failure(exc)
        return 1
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    _install_shutdown_handlers(loop, stop)
    watcher = pipeline.start_watcher(loop)
    try:
        try:
            generation = await pipeline.request_rebuild()
            typer.echo(f"Initial build finished (generation {generation}), watching for changes")
        except BuildFailure as exc:
            _echo_failure(exc)
        await stop.wait()
        typer.echo("Stopping watch mode", err=True)
    finally:
        watcher.close()
        await pipeline.close()
    return 0


if __name__ == "__main__":
    app()
