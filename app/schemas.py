"""Pydantic schemas for the upstream sensor payload and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.records import SensorReading

_FLAG_TRUE = {"true", "1", "yes"}
_FLAG_FALSE = {"false", "0", "no", ""}


def _parse_float(value: Any) -> Optional[float]:
    """Parse upstream numbers, which frequently arrive as JSON strings."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("boolean is not a valid numeric reading")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        try:
            return float(candidate)
        except ValueError as exc:
            raise ValueError(f"invalid numeric value {value!r}") from exc
    raise ValueError(f"unsupported numeric value {value!r}")


def _parse_int(value: Any) -> Optional[int]:
    parsed = _parse_float(value)
    if parsed is None:
        return None
    if not parsed.is_integer():
        raise ValueError(f"expected an integer, got {value!r}")
    return int(parsed)


def _parse_flag(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in _FLAG_TRUE:
            return True
        if candidate in _FLAG_FALSE:
            return False
    raise ValueError(f"invalid hardware flag {value!r}")


class SensorResultPayload(BaseModel):
    """One entry of the upstream ``results`` array, exactly as decoded.

    Every field is optional; defaults are applied by :meth:`normalize`.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sensor_id: Optional[int] = Field(default=None, alias="ID")
    parent_id: Optional[int] = Field(default=None, alias="ParentID")
    label: Optional[str] = Field(default=None, alias="Label")
    lat: Optional[float] = Field(default=None, alias="Lat")
    lon: Optional[float] = Field(default=None, alias="Lon")
    data_flag: Optional[int] = Field(default=None, alias="Flag")
    hardware_flag: Optional[bool] = Field(default=None, alias="A_H")
    p_0_3_um: Optional[float] = None
    p_0_5_um: Optional[float] = None
    p_1_0_um: Optional[float] = None
    p_2_5_um: Optional[float] = None
    p_5_0_um: Optional[float] = None
    p_10_0_um: Optional[float] = None
    pm1_0_cf_1: Optional[float] = None
    pm2_5_cf_1: Optional[float] = None
    pm10_0_cf_1: Optional[float] = None
    pm1_0_atm: Optional[float] = None
    pm2_5_atm: Optional[float] = None
    pm10_0_atm: Optional[float] = None
    humidity: Optional[float] = None
    temp_f: Optional[float] = None
    pressure: Optional[float] = None
    version: Optional[str] = Field(default=None, alias="Version")

    @field_validator(
        "lat",
        "lon",
        "p_0_3_um",
        "p_0_5_um",
        "p_1_0_um",
        "p_2_5_um",
        "p_5_0_um",
        "p_10_0_um",
        "pm1_0_cf_1",
        "pm2_5_cf_1",
        "pm10_0_cf_1",
        "pm1_0_atm",
        "pm2_5_atm",
        "pm10_0_atm",
        "humidity",
        "temp_f",
        "pressure",
        mode="before",
    )
    @classmethod
    def _coerce_float(cls, value: Any) -> Optional[float]:
        return _parse_float(value)

    @field_validator("sensor_id", "parent_id", "data_flag", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> Optional[int]:
        return _parse_int(value)

    @field_validator("hardware_flag", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> Optional[bool]:
        return _parse_flag(value)

    def normalize(self) -> SensorReading:
        """Apply defaults and build the canonical reading."""
        sensor_id = self.sensor_id or 0
        return SensorReading(
            sensor_id=sensor_id,
            parent_id=self.parent_id or sensor_id,
            label=self.label or "",
            data_flag=self.data_flag or 0,
            hardware_flag=bool(self.hardware_flag),
            temperature_f=self.temp_f or 0.0,
            humidity_pct=self.humidity or 0.0,
            pressure=self.pressure or 0.0,
            pm25=self.pm2_5_cf_1 or 0.0,
            pm100=self.pm10_0_cf_1 or 0.0,
        )


class SensorResponsePayload(BaseModel):
    """Envelope returned by the sensor JSON endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    map_version: Optional[str] = Field(default=None, alias="mapVersion")
    base_version: Optional[str] = Field(default=None, alias="baseVersion")
    map_version_string: Optional[str] = Field(default=None, alias="mapVersionString")
    results: List[SensorResultPayload] = Field(default_factory=list)

    def readings(self) -> list[SensorReading]:
        return [result.normalize() for result in self.results]


class PublishSummaryResponse(BaseModel):
    """Counts describing what one poll wrote to the gauges."""

    readings: int = Field(..., ge=0)
    environment_writes: int = Field(..., ge=0)
    particulate_writes: int = Field(..., ge=0)
    suppressed: int = Field(..., ge=0)


class PollStatusResponse(BaseModel):
    """Outcome of the most recent poll cycle."""

    polled_at: datetime
    sensors: List[int] = Field(default_factory=list)
    policy: str
    duration_ms: int = Field(..., ge=0)
    summary: Optional[PublishSummaryResponse] = None
    error: Optional[str] = None
