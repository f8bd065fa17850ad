"""Application bootstrap for kubehubot.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → watch provider → notifier
              → notification sink → watch supervisor → status API

Shutdown runs in reverse startup order.  Each component's stop error is
caught and logged independently so that one failing teardown does not
prevent the rest from shutting down.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Any

from kubehubot.collector.kinds import ALL_KINDS
from kubehubot.config import load_config
from kubehubot.models.config import KubeHubotConfig
from kubehubot.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubeHubotApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already
    stopped) is safe.
    """

    def __init__(self, config: KubeHubotConfig | None = None, log_level: str | None = None) -> None:
        self.config: KubeHubotConfig | None = config
        self._log_level_override = log_level

        self._k8s_client: Any = None
        self._provider: Any = None
        self._notifier: Any = None
        self._sink: Any = None
        self._supervisor: Any = None
        self._rest_server: Any = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._stopped = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        if self.config is None:
            self.config = load_config()
        if self._log_level_override:
            self.config.log.level = self._log_level_override

        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("kubehubot starting", version=_kubehubot_version(), namespace=self.config.watch.namespace)

        await self._start_k8s_client()
        await self._start_provider()
        await self._start_notifications()
        await self._start_supervisor()
        await self._start_rest()

        self._running = True
        self._log.info("kubehubot started")

    async def _start_k8s_client(self) -> None:
        """Load kubernetes-asyncio configuration from in-cluster config or kubeconfig."""
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            try:
                k8s_config.load_incluster_config()
                self._log.info("k8s client configured from in-cluster service account")
            except k8s_config.ConfigException:
                await k8s_config.load_kube_config()
                self._log.info("k8s client configured from kubeconfig")

            self._k8s_client = k8s_client.ApiClient()
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _start_provider(self) -> None:
        assert self._log is not None
        assert self.config is not None
        from kubehubot.collector.provider import KubernetesWatchProvider

        self._provider = KubernetesWatchProvider(
            namespace=self.config.watch.namespace,
            max_failures=self.config.watch.max_failures,
            api_client=self._k8s_client,
        )

    async def _start_notifications(self) -> None:
        """Build the notifier and the sink that shields watches from it."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting notifications")
        try:
            from kubehubot.notifications import NotificationSink, build_notifier

            self._notifier = build_notifier(self.config.hubot)
            self._sink = NotificationSink(
                self._notifier,
                timeout=float(self.config.hubot.notify_timeout_seconds),
            )
            self._log.info("notifications started", notifier=self._notifier.name)
        except Exception as exc:
            raise _ComponentError("notifications", exc) from exc

    async def _start_supervisor(self) -> None:
        """Open the watch subscriptions.

        Individual kinds failing to open are logged by the supervisor and do
        not fail startup.
        """
        assert self._log is not None
        assert self.config is not None
        from kubehubot.collector.supervisor import WatchSupervisor

        supervisor = WatchSupervisor(
            provider=self._provider,
            sink=self._sink,
            room_expression=self.config.hubot.room_expression,
            console_url=self.config.hubot.console_url,
        )
        self._supervisor = supervisor
        await supervisor.start([(kind, self.config.watch.notify_config(kind.label)) for kind in ALL_KINDS])

    async def _start_rest(self) -> None:
        """Start the uvicorn status server."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.api.enabled:
            self._log.info("status api disabled (api.enabled=false)")
            return
        try:
            import uvicorn  # type: ignore[import-untyped]

            from kubehubot.api import build_app

            fastapi_app = build_app(supervisor=self._supervisor, namespace=self.config.watch.namespace)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("status api started", port=self.config.api.port)
        except Exception as exc:
            # The API only reports status; watches keep running without it
            self._log.warning("status api failed to start", error=str(exc))
            self._rest_server = None

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop all components in reverse startup order."""
        if self._stopped or (not self._running and self._log is None):
            return
        self._stopped = True

        log = self._log or get_logger("app")
        log.info("kubehubot shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True

        await self._stop_component("supervisor", self._supervisor)
        await self._stop_component("notifications", self._sink)
        self._supervisor = None
        self._sink = None

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._rest_server = None

        await self._stop_k8s_client()
        log.info("kubehubot stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))

    async def _stop_k8s_client(self) -> None:
        """Close the kubernetes-asyncio ApiClient connection pool."""
        api_client, self._k8s_client = self._k8s_client, None
        if api_client is None:
            return
        try:
            await api_client.close()
        except Exception as exc:
            (self._log or get_logger("app")).debug("k8s client close raised (non-fatal)", error=str(exc))


def _kubehubot_version() -> str:
    from kubehubot import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(log_level: str | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KubeHubotApp(log_level=log_level)
    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await app.start()
        await shutdown.wait()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical("fatal startup error", component=exc.component, error=str(exc.cause))
        raise SystemExit(1) from exc
    finally:
        await app.stop()
