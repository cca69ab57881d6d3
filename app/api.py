"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST

from app.schemas import PollStatusResponse
from services.poller import PollerService, build_default_poller
from services.publisher import MetricsRegistry, build_default_registry

router = APIRouter()


def get_poller() -> PollerService:
    return build_default_poller()


def get_registry() -> MetricsRegistry:
    return build_default_registry()


@router.get(
    "/status",
    response_model=PollStatusResponse,
    summary="Outcome of the most recent poll cycle.",
)
async def poll_status(
    poller: PollerService = Depends(get_poller),
) -> PollStatusResponse:
    last = poller.last_status
    if last is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No poll has completed yet.",
        )
    return last.to_response()


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}


def build_metrics_router(path: str) -> APIRouter:
    """Router exposing the gauge registry in the Prometheus text format."""
    metrics_router = APIRouter(include_in_schema=False)

    @metrics_router.get(path, name="metrics")
    async def metrics(registry: MetricsRegistry = Depends(get_registry)) -> Response:
        return Response(content=registry.exposition(), media_type=CONTENT_TYPE_LATEST)

    return metrics_router
