"""Tests for kubehubot.models: NotifyConfig policy and WatchConfig lookups."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from kubehubot.models.config import NotifyConfig, WatchConfig
from kubehubot.models.events import NormalizedEvent, WatchAction

_action_sets = st.frozensets(st.sampled_from(list(WatchAction)))


class TestNotifyConfig:
    def test_all_actions_enabled_by_default(self) -> None:
        config = NotifyConfig(kind_label="pod")

        assert all(config.is_enabled(action) for action in WatchAction)

    def test_disabled_action(self) -> None:
        config = NotifyConfig(kind_label="pod", enabled_actions=frozenset({WatchAction.DELETED}))

        assert config.is_enabled(WatchAction.DELETED) is True
        assert config.is_enabled(WatchAction.ADDED) is False
        assert config.is_enabled(WatchAction.MODIFIED) is False

    def test_accepts_raw_event_type_strings(self) -> None:
        config = NotifyConfig(kind_label="service")

        assert config.is_enabled("MODIFIED") is True

    @pytest.mark.parametrize("action", ["BOOKMARK", "ERROR", "added", "", None, 42, object()])
    def test_unrecognized_action_fails_closed(self, action: object) -> None:
        config = NotifyConfig(kind_label="service")

        assert config.is_enabled(action) is False

    def test_is_immutable(self) -> None:
        config = NotifyConfig(kind_label="rc")

        with pytest.raises(AttributeError):
            config.enabled_actions = frozenset()  # type: ignore[misc]

    @given(enabled=_action_sets)
    def test_is_enabled_matches_membership(self, enabled: frozenset[WatchAction]) -> None:
        config = NotifyConfig(kind_label="dc", enabled_actions=enabled)

        for action in WatchAction:
            assert config.is_enabled(action) is (action in enabled)


class TestWatchConfig:
    def test_notify_config_defaults_to_all_enabled(self) -> None:
        config = WatchConfig()

        policy = config.notify_config("pod")

        assert policy.kind_label == "pod"
        assert policy.enabled_actions == frozenset(WatchAction)

    def test_notify_config_returns_configured_policy(self) -> None:
        custom = NotifyConfig(kind_label="pod", enabled_actions=frozenset({WatchAction.ADDED}))
        config = WatchConfig(kinds={"pod": custom})

        assert config.notify_config("pod") is custom


class TestNormalizedEvent:
    def test_is_frozen(self) -> None:
        event = NormalizedEvent(action=WatchAction.ADDED, kind="Pod", name="p", namespace="dev")

        with pytest.raises(AttributeError):
            event.name = "other"  # type: ignore[misc]

    def test_action_values_match_watch_event_types(self) -> None:
        assert [action.value for action in WatchAction] == ["ADDED", "MODIFIED", "DELETED"]
