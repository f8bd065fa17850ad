"""Status API routes."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from kubehubot.api.schemas import HealthResponse, WatchesResponse, WatchStatus

router = APIRouter()


@router.get("/healthz", response_model=HealthResponse)
async def healthz() -> HealthResponse:
    from kubehubot import __version__

    return HealthResponse(status="ok", version=__version__)


@router.get("/api/v1/watches", response_model=WatchesResponse)
async def watches(request: Request) -> WatchesResponse:
    supervisor = request.app.state.supervisor
    namespace = request.app.state.namespace

    if supervisor is None or not supervisor.started:
        return WatchesResponse(status="starting", namespace=namespace)

    items = [
        WatchStatus(
            label=sub.kind.label,
            kind=sub.kind.kind,
            state=sub.state.value,
            close_reason=sub.close_reason,
        )
        for sub in supervisor.subscriptions
    ]
    failed = supervisor.failed_kinds
    degraded = bool(failed) or any(item.state != "active" for item in items)
    return WatchesResponse(
        status="degraded" if degraded else "ok",
        namespace=namespace,
        extended_available=supervisor.extended_available,
        watches=items,
        failed=failed,
    )


@router.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
