from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import uvicorn
import yaml
from pydantic import ValidationError

from src.common.annotation_keys import annotation_table
from src.common.errors import AnnotationError, InternalError
from src.mutator.models import Pod
from src.mutator.mutation import build_pod_patch
from src.mutator.patch_builder import render_patch

from .admission import verify_patch
from .server import create_app
from .settings import Settings, load_settings

app = typer.Typer(help="Mutating admission webhook for annotation-declared pod scheduling constraints.")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@app.command()
def serve(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="WEBHOOK_CONFIG",
        help="YAML settings file; WEBHOOK_* environment variables override it.",
    ),
    host: Optional[str] = typer.Option(None, help="Listen address (default: 0.0.0.0)."),
    port: Optional[int] = typer.Option(
        None,
        help="Listen port (default: 8443, or 8080 with --disable-tls).",
    ),
    disable_tls: Optional[bool] = typer.Option(
        None,
        "--disable-tls/--enable-tls",
        help="Serve plain HTTP instead of HTTPS.",
    ),
) -> None:
    settings = _settings_from(config)
    overrides: Dict[str, Any] = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if disable_tls is not None:
        overrides["disable_tls"] = disable_tls
    if overrides:
        settings = replace(settings, **overrides)

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    tls_options: Dict[str, Any] = {}
    if not settings.disable_tls:
        tls_options = {
            "ssl_certfile": str(settings.tls_cert),
            "ssl_keyfile": str(settings.tls_key),
        }
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.listen_port,
        log_level=settings.log_level.lower(),
        timeout_keep_alive=30,
        **tls_options,
    )


@app.command()
def patch(
    manifest: Path = typer.Argument(..., help="Pod manifest (YAML or JSON)."),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="WEBHOOK_CONFIG",
        help="YAML settings file (only annotation_prefix is used).",
    ),
    apply: bool = typer.Option(
        False,
        "--apply",
        help="Print the patched pod as YAML instead of the JSON patch.",
    ),
) -> None:
    """Print the JSON patch the webhook would return for a pod manifest."""

    settings = _settings_from(config)
    raw_pod = _load_manifest(manifest)
    try:
        pod = Pod.model_validate(raw_pod)
    except ValidationError as exc:
        raise typer.BadParameter(f"Manifest is not a pod: {exc}") from exc
    try:
        operations = build_pod_patch(pod, annotation_table(settings.annotation_prefix))
    except AnnotationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if not apply:
        typer.echo(json.dumps(render_patch(operations), indent=2))
        return
    try:
        patched = verify_patch(raw_pod, operations)
    except InternalError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(yaml.safe_dump(patched, sort_keys=False), nl=False)


def _settings_from(config: Optional[Path]) -> Settings:
    try:
        return load_settings(config)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _load_manifest(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            documents = [doc for doc in yaml.safe_load_all(handle) if doc is not None]
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Manifest not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise typer.BadParameter(f"Manifest is not valid YAML: {exc}") from exc
    if not documents:
        raise typer.BadParameter("Manifest is empty")
    first = documents[0]
    if not isinstance(first, dict):
        raise typer.BadParameter("Manifest must be a mapping")
    return first


if __name__ == "__main__":  # pragma: no cover
    app()
