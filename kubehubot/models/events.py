"""Core watch event data structures and enumerations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class WatchAction(StrEnum):
    """Kind of change reported by a watch stream.

    Values match the ``type`` field of Kubernetes watch events.
    """

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


class SubscriptionState(StrEnum):
    """Lifecycle of a single watch subscription.

    UNSTARTED -> ACTIVE -> CLOSED.  There is no way back to ACTIVE.
    """

    UNSTARTED = "unstarted"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass(frozen=True)
class NormalizedEvent:
    """One reported change, reduced to what the notification pipeline needs.

    Produced by the watch adapter; every field is non-empty.
    """

    action: WatchAction
    kind: str
    name: str
    namespace: str
