"""Runtime configuration: optional YAML file overlaid by ``WEBHOOK_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from src.common.annotation_keys import DEFAULT_ANNOTATION_PREFIX, normalise_prefix

CONFIG_PATH_ENV = "WEBHOOK_CONFIG"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class Settings:
    annotation_prefix: str = DEFAULT_ANNOTATION_PREFIX
    host: str = "0.0.0.0"
    port: Optional[int] = None
    disable_tls: bool = False
    tls_cert: Path = Path("./tls.crt")
    tls_key: Path = Path("./tls.key")
    log_level: str = "INFO"
    verify_patches: bool = True
    mutate_path: str = "/mutate"

    @property
    def listen_port(self) -> int:
        if self.port is not None:
            return self.port
        return 8080 if self.disable_tls else 8443


def load_settings(
    path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Build settings from defaults, then the YAML file at ``path``, then the environment."""

    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    if path is not None:
        values.update(_load_yaml(Path(path)))
    for field in fields(Settings):
        raw = env.get(f"WEBHOOK_{field.name.upper()}")
        if raw is not None:
            values[field.name] = raw
    return _coerce(replace(Settings(), **values))


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except FileNotFoundError as exc:
        raise ValueError(f"Config file not found: {path}") from exc
    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping")
    known = {field.name for field in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown setting(s): {', '.join(unknown)}")
    # An explicit null keeps the default.
    return {key: value for key, value in data.items() if value is not None}


def _coerce(settings: Settings) -> Settings:
    port = settings.port
    if port is not None and port != "":
        try:
            port = int(port)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid port: {settings.port!r}") from exc
        if not 0 < port < 65536:
            raise ValueError(f"Port out of range: {port}")
    else:
        port = None

    log_level = str(settings.log_level).strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"Invalid log level: {settings.log_level!r}")

    mutate_path = str(settings.mutate_path).strip()
    if not mutate_path.startswith("/") or mutate_path == "/healthz":
        raise ValueError(f"Invalid mutate path: {settings.mutate_path!r}")

    return Settings(
        annotation_prefix=normalise_prefix(str(settings.annotation_prefix)),
        host=str(settings.host),
        port=port,
        disable_tls=_as_bool(settings.disable_tls, "disable_tls"),
        tls_cert=Path(settings.tls_cert),
        tls_key=Path(settings.tls_key),
        log_level=log_level,
        verify_patches=_as_bool(settings.verify_patches, "verify_patches"),
        mutate_path=mutate_path,
    )


def _as_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {name}: {value!r}")


__all__ = ["CONFIG_PATH_ENV", "Settings", "load_settings"]
