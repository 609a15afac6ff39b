"""Configuration loading: defaults < TOML file < environment < overrides."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from relaytrace.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "relaytrace.toml"


class ServiceConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    worker_url: str = "http://127.0.0.1:8081"
    request_timeout_s: float = Field(default=5.0, gt=0)

    @field_validator("worker_url")
    @classmethod
    def _check_worker_url(cls, value: str) -> str:
        """The worker URL must be an absolute http(s) URL with a usable port."""
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as exc:
            raise ValueError(f"invalid worker_url {value!r}: {exc}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"worker_url must be an absolute http(s) URL, got {value!r}")
        if url.port is not None and not 0 < url.port <= 65535:
            raise ValueError(f"worker_url port out of range: {url.port}")
        return value


class TelemetryConfig(BaseModel):
    service_name: str = "relaytrace"
    otlp_endpoint: Optional[str] = None
    metrics_export_interval_ms: int = Field(default=5000, gt=0)
    enable_console: bool = False
    propagation_enabled: bool = True
    metrics_enabled: bool = True


class RelaytraceConfig(BaseModel):
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)


ENV_MAPPING: Dict[str, Tuple[str, str]] = {
    "RELAYTRACE_HOST": ("service", "host"),
    "RELAYTRACE_PORT": ("service", "port"),
    "RELAYTRACE_WORKER_URL": ("service", "worker_url"),
    "RELAYTRACE_REQUEST_TIMEOUT": ("service", "request_timeout_s"),
    "RELAYTRACE_SERVICE_NAME": ("telemetry", "service_name"),
    "RELAYTRACE_OTLP_ENDPOINT": ("telemetry", "otlp_endpoint"),
    "RELAYTRACE_METRICS_INTERVAL_MS": ("telemetry", "metrics_export_interval_ms"),
    "RELAYTRACE_ENABLE_CONSOLE": ("telemetry", "enable_console"),
    "RELAYTRACE_PROPAGATION": ("telemetry", "propagation_enabled"),
    "RELAYTRACE_METRICS": ("telemetry", "metrics_enabled"),
}


def find_config_file() -> Optional[str]:
    """Look for relaytrace.toml in the current directory, then the home directory."""
    for directory in (Path.cwd(), Path.home()):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return str(candidate)
    return None


def load_toml_config(path: str) -> Dict[str, Any]:
    """
    Load a TOML config file.

    A missing file yields an empty dict; unparsable TOML raises ConfigError.
    """
    config_path = Path(path)
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}", {"error": str(exc)}) from exc


def env_overrides(env: Mapping[str, str]) -> Dict[str, Dict[str, Any]]:
    """Collect RELAYTRACE_* variables into the nested config structure."""
    result: Dict[str, Dict[str, Any]] = {}
    for var, (section, key) in ENV_MAPPING.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        result.setdefault(section, {})[key] = value
    return result


def _merge(base: Dict[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def validate_config(data: Mapping[str, Any]) -> RelaytraceConfig:
    """Validate a nested config mapping, raising ConfigError on bad values."""
    try:
        return RelaytraceConfig.model_validate(dict(data))
    except ValidationError as exc:
        raise ConfigError("Invalid configuration", {"errors": exc.error_count()}) from exc


def load_config(
    config_file: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> RelaytraceConfig:
    """
    Build the effective configuration.

    Args:
        config_file: TOML path; when None, relaytrace.toml is searched for
        env: Environment mapping (defaults to os.environ)
        overrides: Nested values that win over everything else
    """
    path = config_file or find_config_file()
    data: Dict[str, Any] = {}
    if path:
        logger.debug("Loading config file %s", path)
        data = load_toml_config(path)

    data = _merge(data, env_overrides(os.environ if env is None else env))
    if overrides:
        data = _merge(data, overrides)
    return validate_config(data)
