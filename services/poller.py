"""Background poll-and-publish orchestration."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from threading import Event, Lock
from typing import Optional, Sequence

from app.schemas import PollStatusResponse, PublishSummaryResponse
from services.publisher import MetricsPublisher, PublishSummary, build_default_publisher
from services.sensor_client import PurpleAirClient, SensorFetchError
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class PollStatus:
    polled_at: datetime
    sensors: tuple[int, ...]
    policy: str
    duration_ms: int
    summary: Optional[PublishSummary] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_response(self) -> PollStatusResponse:
        summary = None
        if self.summary is not None:
            summary = PublishSummaryResponse(
                readings=self.summary.readings,
                environment_writes=self.summary.environment_writes,
                particulate_writes=self.summary.particulate_writes,
                suppressed=self.summary.suppressed,
            )
        return PollStatusResponse(
            polled_at=self.polled_at,
            sensors=list(self.sensors),
            policy=self.policy,
            duration_ms=self.duration_ms,
            summary=summary,
            error=self.error,
        )


class PollerService:
    """Fetches readings on an interval and applies them to the gauges."""

    def __init__(
        self,
        client: PurpleAirClient,
        publisher: MetricsPublisher,
        sensor_ids: Sequence[int],
        interval: float = 60.0,
    ) -> None:
        self.client = client
        self.publisher = publisher
        self.sensor_ids = tuple(sensor_ids)
        self.interval = interval
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="poller")
        self._stop = Event()
        self._future: Optional[Future[None]] = None
        self._status: Optional[PollStatus] = None
        self._status_lock = Lock()

    @property
    def last_status(self) -> Optional[PollStatus]:
        with self._status_lock:
            return self._status

    @property
    def running(self) -> bool:
        return self._future is not None and not self._future.done()

    def poll_once(self) -> PollStatus:
        """Fetch one batch and publish it; failures are recorded, not raised."""
        start_time = time.perf_counter()
        polled_at = datetime.now(timezone.utc)
        summary: Optional[PublishSummary] = None
        error: Optional[str] = None

        try:
            payload = self.client.fetch(self.sensor_ids)
            summary = self.publisher.publish(payload.readings())
        except SensorFetchError as exc:
            error = str(exc)
            logger.error("Poll failed", extra={"reason": error})
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.exception("Poll failed", extra={"reason": error})

        status = PollStatus(
            polled_at=polled_at,
            sensors=self.sensor_ids,
            policy=self.publisher.policy.name.value,
            duration_ms=int((time.perf_counter() - start_time) * 1000),
            summary=summary,
            error=error,
        )
        with self._status_lock:
            self._status = status
        logger.debug(
            "Poll cycle finished",
            extra={"reading_count": summary.readings if summary else 0, "poll_ms": status.duration_ms},
        )
        return status

    def start(self) -> None:
        if not self.sensor_ids:
            raise ValueError("No sensors specified in configuration.")
        if self.running:
            return
        self._stop.clear()
        self._future = self.executor.submit(self._run)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the loop and release the worker and HTTP client."""
        self._stop.set()
        self.executor.shutdown(wait=wait, cancel_futures=True)
        self.client.close()

    def _run(self) -> None:
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self.interval)


@lru_cache
def build_default_poller() -> PollerService:
    """Factory that wires the poller from settings."""
    settings = get_settings()
    client = PurpleAirClient(api_url=settings.api_url, timeout=settings.request_timeout)
    return PollerService(
        client=client,
        publisher=build_default_publisher(),
        sensor_ids=settings.sensors,
        interval=settings.poll_interval,
    )
