from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pytest
from typer.testing import CliRunner

from app.schemas import SensorResponsePayload
from cli.app import app
from services.sensor_client import SensorFetchError


class StubClient:
    def __init__(self, payload: Dict[str, Any] | None = None, error: str | None = None) -> None:
        self.payload = payload or {"results": []}
        self.error = error
        self.fetched: List[tuple[int, ...]] = []
        self.closed = False

    def fetch(self, sensor_ids: Sequence[int]) -> SensorResponsePayload:
        self.fetched.append(tuple(sensor_ids))
        if self.error is not None:
            raise SensorFetchError(self.error)
        return SensorResponsePayload.model_validate(self.payload)

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(api_url: str, timeout: float = 30.0) -> StubClient:
        return stub

    monkeypatch.setattr("cli.app.PurpleAirClient", factory)


def test_aqi_command(runner: CliRunner) -> None:
    result = runner.invoke(app, ["aqi", "35.4"])

    assert result.exit_code == 0
    assert "PM2.5 35.4 ug/m3 -> AQI 100 (Moderate)" in result.output
    assert "Combined" not in result.output


def test_aqi_command_with_pm10(runner: CliRunner) -> None:
    result = runner.invoke(app, ["aqi", "12", "--pm10", "150.4"])

    assert result.exit_code == 0
    assert "PM2.5 12 ug/m3 -> AQI 50 (Good)" in result.output
    assert "PM10 150.4 ug/m3 -> AQI 200 (Unhealthy)" in result.output
    assert "Combined -> AQI 200 (Unhealthy)" in result.output


def test_poll_uses_configured_sensors(monkeypatch, runner: CliRunner, make_result) -> None:
    monkeypatch.setenv("PURPLEAIR_SENSORS", "1001")
    stub = StubClient(
        {"results": [make_result(), make_result(ID=1002, ParentID=1001, Label="Backyard B", Flag=1)]}
    )
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["poll"])

    assert result.exit_code == 0
    assert stub.fetched == [(1001,)]
    assert stub.closed is True
    assert "Backyard [1001]" in result.output
    assert "temperature_f: 68.0" in result.output
    assert "aqi: 200 (Unhealthy)" in result.output
    assert "environment: not reported" in result.output
    assert "particulate: suppressed (flagged)" in result.output


def test_poll_sensor_option_overrides_settings(monkeypatch, runner: CliRunner) -> None:
    monkeypatch.setenv("PURPLEAIR_SENSORS", "1001")
    stub = StubClient()
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["poll", "--sensor", "5", "-s", "6"])

    assert result.exit_code == 0
    assert stub.fetched == [(5, 6)]
    assert "No readings returned." in result.output


def test_poll_without_sensors_fails(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient()
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["poll"])

    assert result.exit_code == 1
    assert not stub.fetched


def test_poll_reports_fetch_errors(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(error="Unexpected status reading sensor: status code 502")
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["poll", "-s", "1"])

    assert result.exit_code == 1
    assert stub.closed is True


def test_serve_runs_uvicorn_on_metrics_port(monkeypatch, runner: CliRunner) -> None:
    monkeypatch.setenv("PURPLEAIR_SENSORS", "1001,1002")
    monkeypatch.setenv("METRICS_PORT", "9105")
    calls: List[Dict[str, Any]] = []

    def fake_run(application, **kwargs) -> None:
        calls.append({"app": application, **kwargs})

    monkeypatch.setattr("cli.app.uvicorn.run", fake_run)

    result = runner.invoke(app, ["serve", "--host", "127.0.0.1"])

    assert result.exit_code == 0
    assert len(calls) == 1
    assert calls[0]["host"] == "127.0.0.1"
    assert calls[0]["port"] == 9105
    assert calls[0]["app"].title == "PurpleAir Exporter"
    assert "Polling sensors 1001, 1002 every 60s" in result.output


def test_serve_without_sensors_fails(monkeypatch, runner: CliRunner) -> None:
    calls: List[Any] = []
    monkeypatch.setattr("cli.app.uvicorn.run", lambda *args, **kwargs: calls.append(args))

    result = runner.invoke(app, ["serve"])

    assert result.exit_code == 1
    assert not calls
