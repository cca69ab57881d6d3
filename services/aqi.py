"""US EPA Air Quality Index calculation for particulate readings."""

from __future__ import annotations

import logging
import math
from typing import NamedTuple

logger = logging.getLogger(__name__)


class Breakpoint(NamedTuple):
    """One band of the breakpoint table.

    ``threshold`` is the lower bound used to select the band; ``inclusive``
    selects ``>=`` instead of ``>``.
    """

    threshold: float
    inclusive: bool
    bp_low: float
    bp_high: float
    index_low: float
    index_high: float


# Evaluated top-down, first match wins.
BREAKPOINTS: tuple[Breakpoint, ...] = (
    Breakpoint(350.5, False, 350.5, 500.0, 401.0, 500.0),
    Breakpoint(250.5, False, 250.5, 350.4, 301.0, 400.0),
    Breakpoint(150.5, False, 150.5, 250.4, 201.0, 300.0),
    Breakpoint(55.5, False, 55.5, 150.4, 151.0, 200.0),
    Breakpoint(35.5, False, 35.5, 55.4, 101.0, 150.0),
    Breakpoint(12.1, False, 12.1, 35.4, 51.0, 100.0),
    Breakpoint(0.0, True, 0.0, 12.0, 0.0, 50.0),
)

CATEGORIES: tuple[tuple[float, str], ...] = (
    (301.0, "Hazardous"),
    (201.0, "Very Unhealthy"),
    (151.0, "Unhealthy"),
    (101.0, "Unhealthy for Sensitive Groups"),
    (51.0, "Moderate"),
    (0.0, "Good"),
)


def _round_half_away(value: float) -> float:
    magnitude = abs(value)
    rounded = math.floor(magnitude)
    if magnitude - rounded >= 0.5:
        rounded += 1
    return math.copysign(rounded, value)


def interpolate_aqi(concentration: float, breakpoint: Breakpoint) -> float:
    """Linear interpolation of ``concentration`` inside one breakpoint band."""
    slope = (breakpoint.index_high - breakpoint.index_low) / (
        breakpoint.bp_high - breakpoint.bp_low
    )
    return _round_half_away(
        slope * (concentration - breakpoint.bp_low) + breakpoint.index_low
    )


def select_breakpoint(concentration: float) -> Breakpoint | None:
    for breakpoint in BREAKPOINTS:
        if concentration > breakpoint.threshold or (
            breakpoint.inclusive and concentration == breakpoint.threshold
        ):
            return breakpoint
    return None


def compute_aqi(concentration: float) -> float:
    """Convert a particulate concentration (ug/m3) into an AQI value.

    Negative (invalid) concentrations are logged and yield 0.0.
    """
    breakpoint = select_breakpoint(concentration)
    if breakpoint is None:
        logger.warning(
            "Unable to calculate AQI on invalid sensor value",
            extra={"concentration": concentration},
        )
        return 0.0
    return interpolate_aqi(concentration, breakpoint)


def combined_aqi(pm25: float, pm100: float) -> float:
    """AQI reported for a channel: the worst of the PM2.5 and PM10 values."""
    return max(compute_aqi(pm25), compute_aqi(pm100))


def aqi_category(aqi: float) -> str:
    for lower_bound, name in CATEGORIES:
        if aqi >= lower_bound:
            return name
    return CATEGORIES[-1][1]
