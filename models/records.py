"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SensorReading:
    """One channel's measurements from a single poll.

    ``parent_id`` is always resolved: the primary channel of a device has
    ``parent_id == sensor_id``.
    """

    sensor_id: int
    parent_id: int
    label: str = ""
    data_flag: int = 0
    hardware_flag: bool = False
    temperature_f: float = 0.0
    humidity_pct: float = 0.0
    pressure: float = 0.0
    pm25: float = 0.0
    pm100: float = 0.0

    @property
    def is_parent(self) -> bool:
        return self.sensor_id == self.parent_id

    @property
    def is_flagged(self) -> bool:
        return self.data_flag != 0 or self.hardware_flag
