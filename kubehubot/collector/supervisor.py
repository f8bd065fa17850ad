"""Watch supervisor: owns every watch subscription for the process.

Each configured kind gets its own subscription whose handler runs
NotifyConfig gate -> format_event -> NotificationSink.  Kinds start
independently, so one kind failing to open does not stop the others, and
``stop()`` releases every subscription even when some releases fail.
The set of watched kinds is fixed once ``start()`` has run.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from kubehubot.collector.kinds import ResourceKind
from kubehubot.collector.provider import ResourceWatchProvider
from kubehubot.collector.watcher import EventHandler, ResourceWatchAdapter, WatchSubscription
from kubehubot.models.config import DEFAULT_ROOM_EXPRESSION, NotifyConfig
from kubehubot.models.events import NormalizedEvent
from kubehubot.notifications.formatter import format_event
from kubehubot.notifications.manager import NotificationSink
from kubehubot.observability.metrics import watch_events_dropped_total

_log = structlog.get_logger(component="collector.supervisor")


class WatchSupervisor:
    """Starts, tracks and releases the watch subscriptions.

    ``stop()`` is idempotent and never raises; calling it on a supervisor
    that never started is a no-op.
    """

    def __init__(
        self,
        provider: ResourceWatchProvider,
        sink: NotificationSink,
        room_expression: str = DEFAULT_ROOM_EXPRESSION,
        console_url: str = "",
        adapter: ResourceWatchAdapter | None = None,
    ) -> None:
        self._provider = provider
        self._sink = sink
        self._room_expression = room_expression
        self._console_url = console_url
        self._adapter = adapter or ResourceWatchAdapter(provider)
        self._watches: list[WatchSubscription] = []
        self._failed: dict[str, str] = {}
        self._extended_available: bool | None = None
        self._started = False
        self._stopped = False

    @property
    def subscriptions(self) -> tuple[WatchSubscription, ...]:
        return tuple(self._watches)

    @property
    def failed_kinds(self) -> dict[str, str]:
        """Kinds whose subscription could not be opened, with the cause."""
        return dict(self._failed)

    @property
    def extended_available(self) -> bool | None:
        """Result of the extended capability query; None until queried."""
        return self._extended_available

    @property
    def started(self) -> bool:
        return self._started

    async def start(self, kinds: Sequence[tuple[ResourceKind, NotifyConfig]]) -> None:
        """Open one subscription per entry in *kinds*.

        Extended kinds are skipped unless the provider reports the
        extended capability.  A supervisor that has been stopped never
        starts.
        """
        if self._stopped:
            _log.warning("watch_supervisor_start_after_stop")
            return
        if self._started:
            _log.warning("watch_supervisor_already_started")
            return
        self._started = True

        _log.info(
            "watch_supervisor_starting",
            namespace=self._provider.namespace,
            console_url=self._console_url,
            room_expression=self._room_expression,
        )

        core = [(kind, notify) for kind, notify in kinds if not kind.extended]
        extended = [(kind, notify) for kind, notify in kinds if kind.extended]

        for kind, notify in core:
            await self._start_one(kind, notify)

        if extended:
            if await self._query_extended_capability():
                for kind, notify in extended:
                    await self._start_one(kind, notify)
            else:
                _log.info(
                    "extended_kinds_unavailable",
                    skipped=[kind.kind for kind, _ in extended],
                )

        _log.info(
            "watch_supervisor_started",
            watching=[sub.kind.kind for sub in self._watches],
            failed=sorted(self._failed),
        )

    async def _query_extended_capability(self) -> bool:
        try:
            available = bool(await self._provider.is_extended_capability_available())
        except Exception as exc:  # noqa: BLE001
            _log.warning("extended_capability_query_failed", error=str(exc))
            available = False
        self._extended_available = available
        return available

    async def _start_one(self, kind: ResourceKind, notify: NotifyConfig) -> None:
        try:
            subscription = await self._adapter.start(kind, self._make_handler(notify))
        except Exception as exc:  # noqa: BLE001
            self._failed[kind.label] = str(exc)
            _log.error("watch_start_failed", kind=kind.kind, error=str(exc))
            return
        self._watches.append(subscription)

    def _make_handler(self, notify: NotifyConfig) -> EventHandler:
        async def _handle(event: NormalizedEvent) -> None:
            if not notify.is_enabled(event.action):
                watch_events_dropped_total.labels(kind=event.kind, reason="disabled").inc()
                _log.debug(
                    "watch_event_filtered",
                    kind_label=notify.kind_label,
                    action=event.action.value,
                    name=event.name,
                )
                return
            room, message = format_event(event, self._room_expression, self._console_url)
            self._sink.send(room, message)

        return _handle

    async def stop(self) -> None:
        """Release every subscription.  Never raises."""
        if self._stopped:
            return
        self._stopped = True

        for subscription in self._watches:
            try:
                subscription.close()
            except Exception as exc:  # noqa: BLE001
                _log.error("watch_release_failed", kind=subscription.kind.kind, error=str(exc))

        for subscription in self._watches:
            try:
                await subscription.wait_closed()
            except Exception as exc:  # noqa: BLE001
                _log.error("watch_release_failed", kind=subscription.kind.kind, error=str(exc))

        _log.info("watch_supervisor_stopped", released=len(self._watches))
