from __future__ import annotations

from typing import Any, Iterable, Optional

import typer

from models.records import SensorReading
from services.aqi import aqi_category, compute_aqi
from services.validator import ReadingPolicy


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_aqi(name: str, concentration: Optional[float], aqi: float) -> None:
    prefix = f"{name} {concentration:g} ug/m3" if concentration is not None else name
    typer.echo(f"{prefix} -> AQI {aqi:g} ({aqi_category(aqi)})")


def render_reading(reading: SensorReading, policy: ReadingPolicy) -> None:
    decision = policy.evaluate(reading)
    echo_heading(f"{reading.label or '(unlabeled)'} [{reading.sensor_id}]")
    echo_key_values(
        [
            ("sensor", reading.sensor_id),
            ("parent", reading.parent_id),
            ("flags", f"data={reading.data_flag} hardware={reading.hardware_flag}"),
        ]
    )

    if decision.environment:
        echo_key_values(
            [
                ("temperature_f", reading.temperature_f),
                ("humidity_pct", reading.humidity_pct),
                ("pressure", reading.pressure),
            ]
        )
    else:
        typer.echo("environment: not reported")

    if not decision.particulate:
        typer.secho("particulate: suppressed (flagged)", fg=typer.colors.YELLOW)
        return

    aqi_pm25 = compute_aqi(reading.pm25)
    aqi_pm100 = compute_aqi(reading.pm100)
    aqi = max(aqi_pm25, aqi_pm100)
    echo_key_values(
        [
            ("pm_2_5", reading.pm25),
            ("pm_10_0", reading.pm100),
            ("aqi_pm_2_5", aqi_pm25),
            ("aqi_pm_10_0", aqi_pm100),
            ("aqi", f"{aqi:g} ({aqi_category(aqi)})"),
        ]
    )


def render_poll(readings: Iterable[SensorReading], policy: ReadingPolicy) -> None:
    count = 0
    for reading in readings:
        if count:
            typer.echo()
        render_reading(reading, policy)
        count += 1
    if not count:
        typer.echo("No readings returned.")
