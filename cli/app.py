from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import typer
import uvicorn

from cli.render import render_aqi, render_poll
from logging_config import configure_logging
from services.aqi import combined_aqi, compute_aqi
from services.sensor_client import PurpleAirClient, SensorFetchError
from services.validator import get_policy
from settings import Settings, get_settings


@dataclass
class CLIState:
    settings: Settings


app = typer.Typer(
    help="Poll PurpleAir sensors and export readings as Prometheus metrics.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Entry point for the CLI."""
    settings = get_settings()
    configure_logging(log_level.upper() if log_level else None)
    ctx.obj = CLIState(settings=settings)


@app.command("serve")
def serve_command(
    ctx: typer.Context,
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Port to listen on (defaults to the configured metrics port).",
    ),
) -> None:
    """Run the poller and serve the metrics endpoint."""
    state = _get_state(ctx)
    if not state.settings.sensors:
        typer.secho("No sensors specified in configuration.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    from app.main import create_app

    listen_port = port if port is not None else state.settings.metrics_port
    typer.echo(
        f"Polling sensors {', '.join(str(s) for s in state.settings.sensors)} "
        f"every {state.settings.poll_interval:g}s; listening on {host}:{listen_port}"
    )
    uvicorn.run(create_app(), host=host, port=listen_port, log_config=None)


@app.command("poll")
def poll_command(
    ctx: typer.Context,
    sensors: Optional[List[int]] = typer.Option(
        None,
        "--sensor",
        "-s",
        help="Sensor id to read (repeatable; defaults to the configured sensors).",
    ),
) -> None:
    """Fetch the sensors once and print readings with their AQI."""
    state = _get_state(ctx)
    sensor_ids = tuple(sensors) if sensors else state.settings.sensors
    if not sensor_ids:
        typer.secho("No sensors specified.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    client = PurpleAirClient(api_url=state.settings.api_url, timeout=state.settings.request_timeout)
    ctx.call_on_close(client.close)
    try:
        payload = client.fetch(sensor_ids)
    except SensorFetchError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    readings = payload.readings()
    render_poll(readings, get_policy(state.settings.reading_policy))


@app.command("aqi")
def aqi_command(
    pm25: float = typer.Argument(..., help="PM2.5 concentration in ug/m3."),
    pm100: Optional[float] = typer.Option(
        None,
        "--pm10",
        help="PM10 concentration in ug/m3; prints the combined AQI as well.",
    ),
) -> None:
    """Compute the AQI for particulate concentrations."""
    render_aqi("PM2.5", pm25, compute_aqi(pm25))
    if pm100 is None:
        return
    aqi_pm100 = compute_aqi(pm100)
    render_aqi("PM10", pm100, aqi_pm100)
    render_aqi("Combined", None, combined_aqi(pm25, pm100))
