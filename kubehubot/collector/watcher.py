"""Per-kind watch adapter.

ResourceWatchAdapter subscribes to one resource kind through a
ResourceWatchProvider and hands every delivered event, normalized into a
NormalizedEvent, to a handler coroutine.  Failures stay inside the
subscription: a malformed event or a failing handler is logged and skipped,
and a stream terminated by the provider closes only its own subscription.

The adapter never reconnects a closed stream.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from kubehubot.collector.kinds import ResourceKind
from kubehubot.collector.provider import ResourceWatchProvider, WatchStream, WatchStreamError
from kubehubot.models.events import NormalizedEvent, SubscriptionState, WatchAction
from kubehubot.observability.metrics import active_watches, watch_events_dropped_total, watch_events_total

_log = structlog.get_logger(component="collector.watcher")

EventHandler = Callable[[NormalizedEvent], Awaitable[None]]


class NormalizationError(ValueError):
    """Raised when a delivered event cannot be mapped to a NormalizedEvent."""


class WatchSubscription:
    """Handle for one open watch stream.

    Owned by the WatchSupervisor.  ``close()`` is idempotent and never
    raises; once CLOSED a subscription is never reactivated.
    """

    def __init__(self, kind: ResourceKind) -> None:
        self.kind = kind
        self.state = SubscriptionState.UNSTARTED
        self.close_reason = ""
        self._stream: WatchStream | None = None
        self._task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"WatchSubscription(kind={self.kind.kind!r}, state={self.state.value!r})"

    @property
    def active(self) -> bool:
        return self.state is SubscriptionState.ACTIVE

    def _activate(self, stream: WatchStream, task: asyncio.Task[None]) -> None:
        self._stream = stream
        self._task = task
        self.state = SubscriptionState.ACTIVE
        active_watches.inc()

    def _mark_closed(self, reason: str) -> bool:
        """Transition to CLOSED.  Returns False if already closed."""
        if self.state is SubscriptionState.CLOSED:
            return False
        if self.state is SubscriptionState.ACTIVE:
            active_watches.dec()
        self.state = SubscriptionState.CLOSED
        self.close_reason = reason
        return True

    def close(self, reason: str = "stopped") -> bool:
        """Release the stream and cancel the delivery task.

        Returns True if this call performed the release, False if the
        subscription was already closed.
        """
        if not self._mark_closed(reason):
            return False
        if self._stream is not None:
            try:
                self._stream.close()
            except Exception as exc:  # noqa: BLE001
                _log.warning("watch_stream_close_failed", kind=self.kind.kind, error=str(exc))
        task = self._task
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
        return True

    async def wait_closed(self) -> None:
        """Wait for the delivery task to finish."""
        task = self._task
        if task is None or task is _current_task():
            return
        await asyncio.gather(task, return_exceptions=True)


class ResourceWatchAdapter:
    """Opens watch subscriptions and pumps their events into handlers."""

    def __init__(self, provider: ResourceWatchProvider) -> None:
        self._provider = provider

    async def start(self, kind: ResourceKind, handler: EventHandler) -> WatchSubscription:
        """Open a stream for *kind* and start delivering to *handler*.

        Raises:
            WatchStreamError: the provider could not open the stream.
        """
        subscription = WatchSubscription(kind)
        stream = await self._provider.watch(kind)
        task = asyncio.create_task(
            self._pump(subscription, stream, handler),
            name=f"watch-{kind.label}",
        )
        subscription._activate(stream, task)
        _log.info("watch_started", kind=kind.kind, namespace=self._provider.namespace)
        return subscription

    async def _pump(self, subscription: WatchSubscription, stream: WatchStream, handler: EventHandler) -> None:
        kind = subscription.kind
        try:
            async for action, resource in stream:
                if not subscription.active:
                    break
                await self._deliver(kind, action, resource, handler)
        except asyncio.CancelledError:
            subscription._mark_closed("cancelled")
            raise
        except WatchStreamError as exc:
            if subscription._mark_closed(str(exc)):
                _log.warning("watch_closed", kind=kind.kind, cause=str(exc))
            return
        except Exception as exc:  # noqa: BLE001
            if subscription._mark_closed(f"unexpected error: {exc}"):
                _log.error("watch_closed_unexpectedly", kind=kind.kind, cause=str(exc), exc_info=True)
            return

        if subscription._mark_closed("stream ended"):
            _log.warning("watch_closed", kind=kind.kind, cause="stream ended by provider")

    async def _deliver(self, kind: ResourceKind, action: Any, resource: Any, handler: EventHandler) -> None:
        try:
            event = normalize_event(action, resource, kind, self._provider.namespace)
        except NormalizationError as exc:
            watch_events_dropped_total.labels(kind=kind.kind, reason="malformed").inc()
            _log.warning("watch_event_dropped", kind=kind.kind, action=str(action), reason=str(exc))
            return

        watch_events_total.labels(kind=event.kind, action=event.action.value).inc()
        try:
            await handler(event)
        except Exception as exc:  # noqa: BLE001
            watch_events_dropped_total.labels(kind=kind.kind, reason="handler_error").inc()
            _log.error(
                "watch_event_handler_failed",
                kind=event.kind,
                name=event.name,
                namespace=event.namespace,
                error=str(exc),
            )


def normalize_event(action: Any, resource: Any, kind: ResourceKind, default_namespace: str = "") -> NormalizedEvent:
    """Map a provider ``(action, resource)`` pair into a NormalizedEvent.

    ``kind`` is read from the resource itself; the registered kind name is
    used only when the resource reports none.  The namespace falls back to
    *default_namespace*, the namespace being watched.

    Raises:
        NormalizationError: any field is missing or the action is unknown.
    """
    try:
        watch_action = WatchAction(action)
    except ValueError:
        raise NormalizationError(f"unknown watch action {action!r}") from None

    if resource is None:
        raise NormalizationError("event carries no resource")

    metadata = _field(resource, "metadata")
    if metadata is None:
        raise NormalizationError("resource has no metadata")

    resource_kind = _text(_field(resource, "kind")) or kind.kind
    name = _text(_field(metadata, "name"))
    namespace = _text(_field(metadata, "namespace")) or default_namespace

    if not name:
        raise NormalizationError("resource metadata has no name")
    if not namespace:
        raise NormalizationError("resource metadata has no namespace")

    return NormalizedEvent(action=watch_action, kind=resource_kind, name=name, namespace=namespace)


def _field(obj: Any, key: str) -> Any:
    """Read *key* from a raw dict or a deserialized API object."""
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
