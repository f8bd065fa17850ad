"""Shared fixtures and fakes for kubehubot tests.

Provides an in-memory watch provider, a recording notifier and resource
factories so the pipeline can be exercised without a Kubernetes cluster or
a Hubot instance.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest

from kubehubot.collector.kinds import ResourceKind
from kubehubot.collector.provider import ResourceWatchProvider, WatchStream, WatchStreamError
from kubehubot.notifications.manager import NotificationSink, Notifier, NotifierError

_END = object()


# ---------------------------------------------------------------------------
# Resource factories
# ---------------------------------------------------------------------------


def make_resource(
    kind: str | None = "Service",
    name: str | None = "web",
    namespace: str | None = "dev",
    resource_version: str = "1",
) -> dict[str, Any]:
    """Build a raw watch object the way the API server reports it."""
    metadata: dict[str, Any] = {"resourceVersion": resource_version}
    if name is not None:
        metadata["name"] = name
    if namespace is not None:
        metadata["namespace"] = namespace
    resource: dict[str, Any] = {"apiVersion": "v1", "metadata": metadata}
    if kind is not None:
        resource["kind"] = kind
    return resource


# ---------------------------------------------------------------------------
# Fake provider
# ---------------------------------------------------------------------------


class FakeWatchStream(WatchStream):
    """Queue-backed stream; tests push events, errors or an end marker."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self.close_calls = 0
        self.closed = False

    def push(self, action: Any, resource: Any) -> None:
        self._queue.put_nowait((action, resource))

    def fail(self, exc: BaseException) -> None:
        self._queue.put_nowait(exc)

    def end(self) -> None:
        self._queue.put_nowait(_END)

    async def __aiter__(self) -> AsyncIterator[tuple[str, Any]]:  # type: ignore[override]
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    def close(self) -> None:
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_END)


class FakeWatchProvider(ResourceWatchProvider):
    """Hands out FakeWatchStreams keyed by kind label."""

    def __init__(
        self,
        namespace: str = "dev",
        extended: bool | Exception = False,
        failing: tuple[str, ...] = (),
    ) -> None:
        self.namespace = namespace
        self._extended = extended
        self._failing = set(failing)
        self.streams: dict[str, FakeWatchStream] = {}
        self.opened: list[str] = []
        self.capability_queries = 0

    async def watch(self, kind: ResourceKind) -> WatchStream:
        self.opened.append(kind.label)
        if kind.label in self._failing:
            raise WatchStreamError(f"cannot list {kind.kind}: 403 Forbidden")
        stream = FakeWatchStream()
        self.streams[kind.label] = stream
        return stream

    async def is_extended_capability_available(self) -> bool:
        self.capability_queries += 1
        if isinstance(self._extended, Exception):
            raise self._extended
        return self._extended


# ---------------------------------------------------------------------------
# Fake notifier
# ---------------------------------------------------------------------------


class RecordingNotifier(Notifier):
    """Records delivered messages; can fail or stall for chosen rooms."""

    def __init__(self, fail_rooms: tuple[str, ...] = (), stall_rooms: tuple[str, ...] = ()) -> None:
        self.sent: list[tuple[str, str]] = []
        self.closed = False
        self._fail_rooms = set(fail_rooms)
        self._stall_rooms = set(stall_rooms)

    @property
    def name(self) -> str:
        return "recording"

    async def notify_room(self, room: str, message: str) -> None:
        if room in self._stall_rooms:
            await asyncio.sleep(3600)
        if room in self._fail_rooms:
            raise NotifierError(f"room {room} rejected the message")
        self.sent.append((room, message))

    async def aclose(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until *predicate* holds or *timeout* elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.005)


async def settle(rounds: int = 20) -> None:
    """Let queued tasks run to completion."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def provider() -> FakeWatchProvider:
    return FakeWatchProvider()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def sink(notifier: RecordingNotifier) -> NotificationSink:
    return NotificationSink(notifier, timeout=1.0)
