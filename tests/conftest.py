"""Shared fixtures: isolate settings and factory caches between tests."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterator

import httpx
import pytest

from services.poller import build_default_poller
from services.publisher import build_default_publisher, build_default_registry
from settings import get_settings

_CACHES = (
    get_settings,
    build_default_registry,
    build_default_publisher,
    build_default_poller,
)


def _clear_caches() -> None:
    for cache in _CACHES:
        cache.cache_clear()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path) -> Iterator[None]:
    monkeypatch.setenv("PURPLEPROM_CONFIG", str(tmp_path / "missing.conf"))
    for name in (
        "PURPLEAIR_SENSORS",
        "PURPLEAIR_API_URL",
        "PURPLEAIR_TIMEOUT",
        "POLL_INTERVAL",
        "METRICS_ENABLED",
        "METRICS_PATH",
        "METRICS_PORT",
        "READING_POLICY",
    ):
        monkeypatch.delenv(name, raising=False)
    _clear_caches()
    yield
    _clear_caches()


def sensor_result(**overrides: Any) -> Dict[str, Any]:
    """An upstream ``results`` entry for a primary channel."""
    result: Dict[str, Any] = {
        "ID": 1001,
        "Label": "Backyard",
        "Lat": 37.77,
        "Lon": -122.41,
        "Flag": 0,
        "A_H": "false",
        "pm1_0_cf_1": "3.10",
        "pm2_5_cf_1": "35.4",
        "pm10_0_cf_1": "150.4",
        "pm2_5_atm": "30.2",
        "humidity": "41",
        "temp_f": "68",
        "pressure": "1013.25",
        "Version": "6.01",
    }
    result.update(overrides)
    return result


def json_transport(payload: Any, status_code: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"))

    return httpx.MockTransport(handler)


@pytest.fixture()
def make_transport() -> Callable[..., httpx.MockTransport]:
    return json_transport


@pytest.fixture()
def make_result() -> Callable[..., Dict[str, Any]]:
    return sensor_result
