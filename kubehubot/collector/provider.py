"""Resource watch providers.

ResourceWatchProvider  -- interface the watch adapter consumes.
WatchStream            -- async iterator of ``(action, resource)`` pairs.
KubernetesWatchProvider -- kubernetes-asyncio implementation: initial list,
                           resume from the last resourceVersion after
                           server-side timeouts, exponential back-off on API
                           errors, 410 Gone recovery.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

import aiohttp
import structlog
from kubernetes_asyncio import client, watch  # type: ignore[import-untyped]

from kubehubot.collector.kinds import EXTENDED_API_GROUPS, ResourceKind

_log = structlog.get_logger(component="collector.provider")

_BACKOFF_MIN_S = 1.0
_BACKOFF_MAX_S = 60.0


class WatchStreamError(Exception):
    """Raised when a watch stream cannot be opened or is terminated by the provider."""


class WatchStream(ABC):
    """One open change stream for a single resource kind.

    Iterating yields ``(action, resource)`` pairs.  ``close()`` is
    synchronous, idempotent and must not raise.
    """

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[tuple[str, Any]]:
        """Iterate delivered events until the stream ends."""

    @abstractmethod
    def close(self) -> None:
        """Stop delivering events."""


class ResourceWatchProvider(ABC):
    """Source of per-kind watch streams."""

    namespace: str = ""

    @abstractmethod
    async def watch(self, kind: ResourceKind) -> WatchStream:
        """Open a stream for *kind*.

        Raises:
            WatchStreamError: the stream could not be opened.
        """

    @abstractmethod
    async def is_extended_capability_available(self) -> bool:
        """Return True when the extended (OpenShift) kinds can be watched."""


class KubernetesWatchStream(WatchStream):
    """Watch stream over a namespaced list call.

    Server-side watch timeouts end a single HTTP watch; the stream resumes
    from the last resourceVersion it saw; a 410 Gone re-lists to get a
    current one.  ERROR watch events reach us as ApiException, raised by
    kubernetes_asyncio itself.  Consecutive API failures are retried with
    back-off until ``max_failures`` is exceeded, at which point iteration
    raises WatchStreamError.
    """

    def __init__(
        self,
        kind: ResourceKind,
        list_fn: Any,
        list_args: tuple[Any, ...],
        resource_version: str,
        max_failures: int = 5,
    ) -> None:
        self._kind = kind
        self._list_fn = list_fn
        self._list_args = list_args
        self._resource_version = resource_version
        self._max_failures = max_failures
        self._consecutive_failures = 0
        self._backoff_s = _BACKOFF_MIN_S
        self._watch: watch.Watch | None = None
        self._closed = False

    @property
    def resource_version(self) -> str:
        return self._resource_version

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._watch is not None:
            self._watch.stop()

    async def __aiter__(self) -> AsyncIterator[tuple[str, Any]]:  # type: ignore[override]
        while not self._closed:
            self._watch = watch.Watch()
            try:
                stream = self._watch.stream(
                    self._list_fn,
                    *self._list_args,
                    resource_version=self._resource_version,
                    allow_watch_bookmarks=True,
                )
                async for event in stream:
                    if self._closed:
                        break
                    delivered = self._process_event(event)
                    if delivered is not None:
                        yield delivered
                self._reset_backoff()
                _log.debug(
                    "watch_stream_timeout_resuming",
                    kind=self._kind.kind,
                    resource_version=self._resource_version,
                )
            except client.ApiException as exc:
                await self._handle_api_exception(exc)
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
                await self._record_failure(f"connection error: {exc}")
            finally:
                await self._close_watch()

    def _process_event(self, event: dict[str, Any]) -> tuple[str, Any] | None:
        event_type = str(event.get("type", ""))
        raw = event.get("raw_object")
        if not isinstance(raw, dict):
            raw = event.get("object")

        rv = _extract_rv(raw)
        if rv:
            self._resource_version = rv

        if event_type == "BOOKMARK":
            return None

        self._reset_backoff()
        return event_type, raw

    async def _handle_api_exception(self, exc: Any) -> None:
        status = getattr(exc, "status", None)
        if status == 410:
            _log.info(
                "watch_resource_version_expired",
                kind=self._kind.kind,
                resource_version=self._resource_version,
            )
            # Resume from a fresh list; changes inside the expired window are lost.
            await self._relist()
            return
        await self._record_failure(f"api error {status}: {getattr(exc, 'reason', '')}")

    async def _relist(self) -> None:
        """Replace an expired resourceVersion with the current list version.

        An empty resourceVersion would make the server replay every existing
        object as ADDED, so the stale version is kept when the list fails.
        """
        try:
            listing = await self._list_fn(*self._list_args)
        except client.ApiException as exc:
            await self._record_failure(f"re-list failed {exc.status}: {exc.reason}")
            return
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            await self._record_failure(f"re-list failed: {exc}")
            return
        resource_version = _extract_list_rv(listing)
        if resource_version:
            self._resource_version = resource_version
        _log.debug("watch_relisted", kind=self._kind.kind, resource_version=self._resource_version)

    async def _record_failure(self, cause: str) -> None:
        self._consecutive_failures += 1
        if self._consecutive_failures > self._max_failures:
            raise WatchStreamError(
                f"{self._kind.kind} watch gave up after {self._consecutive_failures} consecutive failures: {cause}"
            )
        _log.warning(
            "watch_stream_error_retrying",
            kind=self._kind.kind,
            cause=cause,
            attempt=self._consecutive_failures,
            backoff_s=self._backoff_s,
        )
        await self._backoff()

    async def _backoff(self) -> None:
        await asyncio.sleep(self._backoff_s)
        self._backoff_s = min(self._backoff_s * 2, _BACKOFF_MAX_S)

    def _reset_backoff(self) -> None:
        self._backoff_s = _BACKOFF_MIN_S
        self._consecutive_failures = 0

    async def _close_watch(self) -> None:
        watcher, self._watch = self._watch, None
        if watcher is None:
            return
        try:
            await watcher.close()
        except Exception as exc:  # noqa: BLE001
            _log.debug("watch_close_error", kind=self._kind.kind, error=str(exc))


class KubernetesWatchProvider(ResourceWatchProvider):
    """Watches one namespace through the kubernetes-asyncio client.

    The client configuration (in-cluster or kubeconfig) must already be
    loaded; API objects are created lazily on first use.
    """

    def __init__(self, namespace: str, max_failures: int = 5, api_client: Any = None) -> None:
        self.namespace = namespace
        self._max_failures = max_failures
        self._api_client = api_client
        self._core: Any = None
        self._custom: Any = None

    def _core_api(self) -> Any:
        if self._core is None:
            self._core = client.CoreV1Api(self._api_client)
        return self._core

    def _custom_api(self) -> Any:
        if self._custom is None:
            self._custom = client.CustomObjectsApi(self._api_client)
        return self._custom

    async def watch(self, kind: ResourceKind) -> WatchStream:
        """List *kind* once to obtain a resourceVersion, then open the stream.

        Watching from that version means objects that already exist are
        not reported as ADDED at startup.
        """
        if kind.extended:
            list_fn = self._custom_api().list_namespaced_custom_object
            list_args: tuple[Any, ...] = (kind.group, kind.version, self.namespace, kind.plural)
        else:
            list_fn = getattr(self._core_api(), kind.list_method)
            list_args = (self.namespace,)

        try:
            listing = await list_fn(*list_args)
        except client.ApiException as exc:
            raise WatchStreamError(f"cannot list {kind.kind}: {exc.status} {exc.reason}") from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise WatchStreamError(f"cannot list {kind.kind}: {exc}") from exc

        resource_version = _extract_list_rv(listing)
        _log.debug("watch_stream_opened", kind=kind.kind, resource_version=resource_version)
        return KubernetesWatchStream(
            kind,
            list_fn,
            list_args,
            resource_version=resource_version,
            max_failures=self._max_failures,
        )

    async def is_extended_capability_available(self) -> bool:
        """True when the API server serves every OpenShift group we need."""
        groups = await client.ApisApi(self._api_client).get_api_versions()
        served = {group.name for group in (groups.groups or [])}
        return EXTENDED_API_GROUPS <= served


def _extract_rv(raw: Any) -> str:
    """Return ``metadata.resourceVersion`` from a raw event object, or ""."""
    if not isinstance(raw, dict):
        return ""
    metadata = raw.get("metadata")
    if not isinstance(metadata, dict):
        return ""
    return str(metadata.get("resourceVersion", "") or "")


def _extract_list_rv(listing: Any) -> str:
    """Return the list-level resourceVersion from a typed or dict response."""
    if isinstance(listing, dict):
        return _extract_rv(listing)
    metadata = getattr(listing, "metadata", None)
    return str(getattr(metadata, "resource_version", "") or "")
