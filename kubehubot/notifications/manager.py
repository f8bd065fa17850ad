"""Notifier interface and the notification sink.

Notifier          -- ABC every chat backend must implement.
NotificationSink  -- Hands formatted messages to a Notifier without blocking
                     the watch stream that produced them; delivery failures
                     and timeouts are logged, never propagated.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

import structlog

from kubehubot.observability.metrics import notifications_total

_log = structlog.get_logger(component="notifications.manager")

_DEFAULT_TIMEOUT_S = 15.0


class NotifierError(Exception):
    """Raised by a Notifier when a message could not be delivered."""


class Notifier(ABC):
    """Abstract base class for chat backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend identifier used in logs."""

    @abstractmethod
    async def notify_room(self, room: str, message: str) -> None:
        """Post *message* to *room*.

        Raises:
            NotifierError: delivery failed.
        """

    async def aclose(self) -> None:  # noqa: B027
        """Release any held connections."""


class NotificationSink:
    """Fire-and-forget delivery of room messages through a Notifier.

    * ``send`` never raises and never waits for the Notifier; each delivery
      runs as a background task bounded by *timeout*.
    * In-flight deliveries are tracked so ``aclose`` can drain them.
    * Deliveries run concurrently, so two messages about the same resource
      can reach the chat room out of order.
    """

    def __init__(self, notifier: Notifier, timeout: float = _DEFAULT_TIMEOUT_S) -> None:
        self._notifier = notifier
        self._timeout = timeout
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def send(self, room: str, message: str) -> None:
        """Schedule delivery of *message* to *room*."""
        task = asyncio.ensure_future(self._deliver(room, message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, room: str, message: str) -> None:
        try:
            await asyncio.wait_for(self._notifier.notify_room(room, message), timeout=self._timeout)
        except TimeoutError:
            notifications_total.labels(success="false").inc()
            _log.warning(
                "notification_timed_out",
                notifier=self._notifier.name,
                room=room,
                timeout_s=self._timeout,
            )
            return
        except Exception as exc:  # noqa: BLE001
            notifications_total.labels(success="false").inc()
            _log.error(
                "notification_failed",
                notifier=self._notifier.name,
                room=room,
                error=str(exc),
            )
            return

        notifications_total.labels(success="true").inc()
        _log.debug("notification_sent", notifier=self._notifier.name, room=room, message=message)

    async def aclose(self, timeout: float | None = None) -> None:
        """Wait for in-flight deliveries, cancelling any still running after *timeout*."""
        if self._pending:
            pending = set(self._pending)
            _done, still_running = await asyncio.wait(pending, timeout=timeout or self._timeout)
            for task in still_running:
                task.cancel()
            if still_running:
                _log.warning("notifications_abandoned_on_shutdown", count=len(still_running))
                await asyncio.gather(*still_running, return_exceptions=True)
        await self._notifier.aclose()

    async def stop(self) -> None:
        await self.aclose()
