from __future__ import annotations

import logging
from typing import Iterable, Optional

import httpx
from pydantic import ValidationError

from app.schemas import SensorResponsePayload

logger = logging.getLogger(__name__)


class SensorFetchError(RuntimeError):
    """Raised when sensor data could not be retrieved or decoded."""


class PurpleAirClient:
    """Minimal HTTP client for the PurpleAir JSON endpoint."""

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_url = api_url
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def fetch(self, sensor_ids: Iterable[int]) -> SensorResponsePayload:
        ids = [str(sensor_id) for sensor_id in sensor_ids]
        if not ids:
            raise SensorFetchError("No sensors specified.")

        try:
            # multiple sensors are requested at once, separated by "|"
            response = self._client.get(self.api_url, params={"show": "|".join(ids)})
        except httpx.HTTPError as exc:
            raise SensorFetchError(f"Request for sensors {'|'.join(ids)} failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "Unexpected status reading sensors",
                extra={"status_code": response.status_code},
            )
            raise SensorFetchError(
                f"Unexpected status reading sensor: status code {response.status_code}"
            )

        try:
            return SensorResponsePayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SensorFetchError(f"Unable to decode sensor payload: {exc}") from exc
