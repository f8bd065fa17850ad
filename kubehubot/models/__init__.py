"""Core data structures for kubehubot."""

from kubehubot.models.config import (
    DEFAULT_ROOM_EXPRESSION,
    APIConfig,
    HubotConfig,
    KubeHubotConfig,
    LogConfig,
    NotifyConfig,
    WatchConfig,
)
from kubehubot.models.events import NormalizedEvent, SubscriptionState, WatchAction

__all__ = [
    "APIConfig",
    "DEFAULT_ROOM_EXPRESSION",
    "HubotConfig",
    "KubeHubotConfig",
    "LogConfig",
    "NormalizedEvent",
    "NotifyConfig",
    "SubscriptionState",
    "WatchAction",
    "WatchConfig",
]
