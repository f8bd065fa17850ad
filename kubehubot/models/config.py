"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

from kubehubot.models.events import WatchAction

DEFAULT_ROOM_EXPRESSION = "#fabric8_${namespace}"

_ALL_ACTIONS = frozenset(WatchAction)


@dataclass(frozen=True)
class NotifyConfig:
    """Which watch actions trigger a notification for one resource kind.

    Built once at startup and shared read-only between watch tasks.
    """

    kind_label: str
    enabled_actions: frozenset[WatchAction] = _ALL_ACTIONS

    def is_enabled(self, action: object) -> bool:
        """Return True if *action* should produce a notification.

        Anything that is not a known WatchAction is treated as disabled.
        """
        try:
            return WatchAction(action) in self.enabled_actions
        except ValueError:
            return False


@dataclass
class HubotConfig:
    """Hubot delivery configuration."""

    url: str = ""
    timeout_seconds: int = 10
    room_expression: str = DEFAULT_ROOM_EXPRESSION
    console_url: str = ""
    notify_timeout_seconds: int = 15


@dataclass
class WatchConfig:
    """Watch stream configuration."""

    namespace: str = "default"
    max_failures: int = 5
    kinds: dict[str, NotifyConfig] = field(default_factory=dict)

    def notify_config(self, label: str) -> NotifyConfig:
        """Policy for *label*, defaulting to every action enabled."""
        return self.kinds.get(label) or NotifyConfig(kind_label=label)


@dataclass
class APIConfig:
    """Status API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class KubeHubotConfig:
    """Top-level kubehubot configuration."""

    hubot: HubotConfig = field(default_factory=HubotConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
