from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


_SENSORS_ENV = "PURPLEAIR_SENSORS"
_API_URL_ENV = "PURPLEAIR_API_URL"
_TIMEOUT_ENV = "PURPLEAIR_TIMEOUT"
_POLL_INTERVAL_ENV = "POLL_INTERVAL"
_METRICS_ENABLED_ENV = "METRICS_ENABLED"
_METRICS_PATH_ENV = "METRICS_PATH"
_METRICS_PORT_ENV = "METRICS_PORT"
_POLICY_ENV = "READING_POLICY"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_CONFIG_PATH_ENV = "PURPLEPROM_CONFIG"

DEFAULT_CONFIG_PATH = "purpleprom.conf"
DEFAULT_API_URL = "https://www.purpleair.com/json"
DEFAULT_POLL_INTERVAL = 60.0
DEFAULT_TIMEOUT = 30.0
DEFAULT_METRICS_PATH = "/metrics"
DEFAULT_METRICS_PORT = 6005
DEFAULT_POLICY = "channel_role"

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigurationError(ValueError):
    """Raised when the configuration file cannot be used."""


@dataclass(frozen=True)
class Settings:
    sensors: Tuple[int, ...]
    poll_interval: float
    api_url: str
    request_timeout: float
    metrics_enabled: bool
    metrics_path: str
    metrics_port: int
    reading_policy: str
    log_level: str

    @property
    def metrics_exported(self) -> bool:
        return self.metrics_enabled and bool(self.metrics_path) and self.metrics_port > 0


def parse_duration(value: Any) -> float:
    """Parse a duration into seconds.

    Accepts numbers (seconds) and Go-style strings such as ``"90s"``,
    ``"1m30s"`` or ``"500ms"``.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration specification: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration specification: {value!r}")

    candidate = value.strip()
    if not candidate:
        raise ValueError("Duration is empty.")
    try:
        return float(candidate)
    except ValueError:
        pass

    sign = 1.0
    if candidate[0] in "+-":
        sign = -1.0 if candidate[0] == "-" else 1.0
        candidate = candidate[1:]

    total = 0.0
    position = 0
    while position < len(candidate):
        match = _DURATION_PART.match(candidate, position)
        if match is None:
            raise ValueError(f"Invalid duration specification: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    return sign * total


def parse_sensor_ids(value: Any) -> Tuple[int, ...]:
    if isinstance(value, str):
        parts = [part.strip() for part in value.replace("|", ",").split(",")]
        return tuple(int(part) for part in parts if part)
    if isinstance(value, (list, tuple)):
        return tuple(int(item) for item in value)
    raise ValueError(f"Invalid sensor list: {value!r}")


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read the JSON configuration file, returning an empty mapping when absent."""
    if not path.exists():
        return {}
    try:
        raw = path.read_text() or "{}"
        data = json.loads(raw)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Unable to read configuration file {str(path)!r}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {str(path)!r} must contain a JSON object.")
    return data


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _read_str(name: str, default: str) -> str:
    value = _env(name)
    return value if value is not None else default


def _read_int(name: str, default: int) -> int:
    value = _env(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _parse_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    return default


def _read_bool(name: str, default: bool) -> bool:
    return _parse_bool(_env(name), default)


def _metrics_path(value: str) -> str:
    path = value.strip()
    if path and not path.startswith("/"):
        return f"/{path}"
    return path


def _read_duration(name: str, default: float) -> float:
    value = _env(name)
    if value is None:
        return default
    try:
        parsed = parse_duration(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_sensors(default: Tuple[int, ...]) -> Tuple[int, ...]:
    value = _env(_SENSORS_ENV)
    if value is None:
        return default
    try:
        return parse_sensor_ids(value)
    except ValueError:
        return default


def _read_log_level(default: str) -> str:
    return _read_str(_LOG_LEVEL_ENV, default).upper()


def _file_duration(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        parsed = parse_duration(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _file_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    metrics = config.get("metrics") or {}
    if not isinstance(metrics, dict):
        raise ConfigurationError("The 'metrics' configuration entry must be an object.")

    try:
        sensors = parse_sensor_ids(config.get("sensors") or ())
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid 'sensors' configuration entry: {exc}") from exc

    try:
        metrics_port = int(metrics.get("port", DEFAULT_METRICS_PORT) or 0)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid 'metrics.port' configuration entry: {exc}") from exc

    return {
        "sensors": sensors,
        "poll_interval": _file_duration(config.get("pollinterval"), DEFAULT_POLL_INTERVAL),
        "api_url": str(config.get("apiurl") or DEFAULT_API_URL),
        "request_timeout": _file_duration(config.get("timeout"), DEFAULT_TIMEOUT),
        "metrics_enabled": _parse_bool(metrics.get("enabled"), True),
        "metrics_path": _metrics_path(str(metrics.get("path", DEFAULT_METRICS_PATH) or "")),
        "metrics_port": metrics_port,
        "reading_policy": str(config.get("policy") or DEFAULT_POLICY),
    }


@lru_cache
def get_settings() -> Settings:
    config_path = Path(_read_str(_CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH))
    defaults = _file_defaults(load_config_file(config_path))

    metrics_path = os.getenv(_METRICS_PATH_ENV)
    return Settings(
        sensors=_read_sensors(defaults["sensors"]),
        poll_interval=_read_duration(_POLL_INTERVAL_ENV, defaults["poll_interval"]),
        api_url=_read_str(_API_URL_ENV, defaults["api_url"]).rstrip("/"),
        request_timeout=_read_duration(_TIMEOUT_ENV, defaults["request_timeout"]),
        metrics_enabled=_read_bool(_METRICS_ENABLED_ENV, defaults["metrics_enabled"]),
        metrics_path=_metrics_path(metrics_path) if metrics_path is not None else defaults["metrics_path"],
        metrics_port=_read_int(_METRICS_PORT_ENV, defaults["metrics_port"]),
        reading_policy=_read_str(_POLICY_ENV, defaults["reading_policy"]).lower(),
        log_level=_read_log_level("INFO"),
    )
