"""Configuration loading from environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from kubehubot.collector.kinds import ALL_KINDS
from kubehubot.models.config import (
    DEFAULT_ROOM_EXPRESSION,
    APIConfig,
    HubotConfig,
    KubeHubotConfig,
    LogConfig,
    NotifyConfig,
    WatchConfig,
)
from kubehubot.models.events import WatchAction

_SERVICE_ACCOUNT_NAMESPACE = Path("/var/run/secrets/kubernetes.io/serviceaccount/namespace")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEHUBOT_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    valid = {"json", "console"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log format: {value}. Must be one of {valid}")
    return value.lower()


def _parse_actions(value: str) -> frozenset[WatchAction]:
    """Parse ``added,modified`` style lists; ``none`` disables every action."""
    value = value.strip()
    if value.lower() == "none":
        return frozenset()
    actions = set()
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            actions.add(WatchAction(part.upper()))
        except ValueError:
            raise ValueError(f"Invalid watch action: {part!r}. Must be one of added, modified, deleted, none") from None
    return frozenset(actions)


def _default_namespace() -> str:
    namespace = os.environ.get("KUBERNETES_NAMESPACE", "")
    if namespace:
        return namespace
    try:
        return _SERVICE_ACCOUNT_NAMESPACE.read_text().strip() or "default"
    except OSError:
        return "default"


def _load_notify_configs() -> dict[str, NotifyConfig]:
    configs: dict[str, NotifyConfig] = {}
    for kind in ALL_KINDS:
        raw = _env(f"NOTIFY_{kind.label.upper()}", "")
        if raw:
            configs[kind.label] = NotifyConfig(kind_label=kind.label, enabled_actions=_parse_actions(raw))
        else:
            configs[kind.label] = NotifyConfig(kind_label=kind.label)
    return configs


def load_config() -> KubeHubotConfig:
    """Load configuration from KUBEHUBOT_* environment variables."""
    return KubeHubotConfig(
        hubot=HubotConfig(
            url=_env("HUBOT_URL", "").rstrip("/"),
            timeout_seconds=_env_int("HUBOT_TIMEOUT", 10, min_val=1, max_val=60),
            room_expression=_env("ROOM", DEFAULT_ROOM_EXPRESSION),
            console_url=_env("CONSOLE_URL", "").strip().rstrip("/"),
            notify_timeout_seconds=_env_int("NOTIFY_TIMEOUT", 15, min_val=1, max_val=120),
        ),
        watch=WatchConfig(
            namespace=_env("NAMESPACE", "") or _default_namespace(),
            max_failures=_env_int("WATCH_MAX_FAILURES", 5, min_val=1, max_val=50),
            kinds=_load_notify_configs(),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
