"""FastAPI application factory for the kubehubot status API.

Usage::

    from kubehubot.api.app import create_app

    app = create_app(supervisor=supervisor, namespace="dev")

Used by the production bootstrap (``kubehubot.app``) and by tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kubehubot.api.routes import router
from kubehubot.api.schemas import ErrorResponse

_log = structlog.get_logger(component="api.app")


def create_app(supervisor: Any = None, namespace: str = "") -> FastAPI:
    """Create the status API.

    Args:
        supervisor: WatchSupervisor whose subscriptions are reported.
        namespace:  Watched namespace, echoed in responses.
    """
    from kubehubot import __version__

    app = FastAPI(
        title="kubehubot",
        summary="Kubernetes to Hubot notification bridge",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )

    app.state.supervisor = supervisor
    app.state.namespace = namespace

    app.include_router(router)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="INTERNAL_ERROR", detail="An unexpected error occurred.").model_dump(),
        )

    return app
