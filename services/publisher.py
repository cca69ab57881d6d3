"""Gauge state for sensor readings and the publisher that updates it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterable, Optional

from prometheus_client import CollectorRegistry, Gauge, generate_latest

from models.records import SensorReading
from services.aqi import compute_aqi
from services.validator import ReadingPolicy, get_policy
from settings import get_settings

logger = logging.getLogger(__name__)


class MetricsRegistry:
    """Process-wide gauge map keyed by sensor (and optionally parent) labels.

    Writes are point updates on individual series; ``prometheus_client``
    guards each value so scrapes can read concurrently with a poll.
    """

    def __init__(self, include_parent: bool = True, registry: Optional[CollectorRegistry] = None) -> None:
        self.include_parent = include_parent
        self.registry = registry if registry is not None else CollectorRegistry()
        self.label_names: tuple[str, ...] = ("sensor", "parent") if include_parent else ("sensor",)

        self.temperature = self._gauge("pa_temp", "PurpleAir temperature (F) reading.")
        self.humidity = self._gauge("pa_humidity", "PurpleAir humidity reading.")
        self.pressure = self._gauge("pa_pressure", "PurpleAir pressure reading.")
        self.pm25 = self._gauge("pa_pm_2_5", "PurpleAir PM 2.5 ug/m3 reading.")
        self.pm100 = self._gauge("pa_pm_10_0", "PurpleAir PM 10.0 ug/m3 reading.")
        self.aqi_pm25 = self._gauge(
            "pa_AQI_pm_2_5", "PurpleAir AQI calculation based on PM 2.5 ug/m3 reading."
        )
        self.aqi_pm100 = self._gauge(
            "pa_AQI_pm_10_0", "PurpleAir AQI calculation based on PM 10.0 ug/m3 reading."
        )
        self.aqi = self._gauge("pa_AQI", "PurpleAir AQI calculation based on all available inputs.")
        self.label = self._gauge("pa_label", "PurpleAir sensor to label map.", ("label",))

    def _gauge(self, name: str, documentation: str, extra_labels: tuple[str, ...] = ()) -> Gauge:
        return Gauge(name, documentation, self.label_names + extra_labels, registry=self.registry)

    def labels_for(self, reading: SensorReading) -> Dict[str, str]:
        labels = {"sensor": str(reading.sensor_id)}
        if self.include_parent:
            labels["parent"] = str(reading.parent_id)
        return labels

    def value(self, metric: str, **labels: str) -> Optional[float]:
        """Current value of one series, or ``None`` if it was never written."""
        return self.registry.get_sample_value(metric, labels)

    def exposition(self) -> bytes:
        return generate_latest(self.registry)


@dataclass
class PublishSummary:
    readings: int = 0
    environment_writes: int = 0
    particulate_writes: int = 0
    suppressed: int = 0


class MetricsPublisher:
    """Applies a batch of normalized readings to the gauge map."""

    def __init__(self, registry: MetricsRegistry, policy: ReadingPolicy) -> None:
        if registry.include_parent != policy.include_parent:
            raise ValueError(
                f"Policy {policy.name.value!r} requires a registry with include_parent={policy.include_parent}."
            )
        self.registry = registry
        self.policy = policy

    def publish(self, readings: Iterable[SensorReading]) -> PublishSummary:
        summary = PublishSummary()
        for reading in readings:
            summary.readings += 1
            self._publish_reading(reading, summary)

        logger.info(
            "Published sensor readings",
            extra={
                "policy": self.policy.name.value,
                "reading_count": summary.readings,
                "suppressed_count": summary.suppressed,
            },
        )
        return summary

    def _publish_reading(self, reading: SensorReading, summary: PublishSummary) -> None:
        registry = self.registry
        labels = registry.labels_for(reading)
        decision = self.policy.evaluate(reading)

        registry.label.labels(label=reading.label, **labels).set(1.0)

        if decision.environment:
            registry.temperature.labels(**labels).set(reading.temperature_f)
            registry.humidity.labels(**labels).set(reading.humidity_pct)
            registry.pressure.labels(**labels).set(reading.pressure)
            summary.environment_writes += 1

        if not decision.particulate:
            # e.g. an insect crawling over the inlet; keep the last good values
            summary.suppressed += 1
            logger.debug(
                "Suppressing flagged particulate reading",
                extra={
                    "sensor_id": reading.sensor_id,
                    "parent_id": reading.parent_id,
                    "reason": f"data_flag={reading.data_flag} hardware_flag={reading.hardware_flag}",
                },
            )
            return

        registry.pm25.labels(**labels).set(reading.pm25)
        registry.pm100.labels(**labels).set(reading.pm100)

        aqi_pm25 = compute_aqi(reading.pm25)
        aqi_pm100 = compute_aqi(reading.pm100)
        registry.aqi_pm25.labels(**labels).set(aqi_pm25)
        registry.aqi_pm100.labels(**labels).set(aqi_pm100)
        registry.aqi.labels(**labels).set(max(aqi_pm25, aqi_pm100))
        summary.particulate_writes += 1


@lru_cache
def build_default_registry() -> MetricsRegistry:
    policy = get_policy(get_settings().reading_policy)
    return MetricsRegistry(include_parent=policy.include_parent)


@lru_cache
def build_default_publisher() -> MetricsPublisher:
    policy = get_policy(get_settings().reading_policy)
    return MetricsPublisher(registry=build_default_registry(), policy=policy)
