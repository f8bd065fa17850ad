"""Tests for kubehubot.config.load_config."""

from __future__ import annotations

from pathlib import Path

import pytest

from kubehubot import config as config_module
from kubehubot.config import load_config
from kubehubot.models.config import DEFAULT_ROOM_EXPRESSION
from kubehubot.models.events import WatchAction


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    import os

    for key in list(os.environ):
        if key.startswith("KUBEHUBOT_") or key == "KUBERNETES_NAMESPACE":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config_module, "_SERVICE_ACCOUNT_NAMESPACE", tmp_path / "missing-namespace")


class TestDefaults:
    def test_defaults(self) -> None:
        config = load_config()

        assert config.hubot.url == ""
        assert config.hubot.room_expression == DEFAULT_ROOM_EXPRESSION
        assert config.hubot.console_url == ""
        assert config.hubot.timeout_seconds == 10
        assert config.hubot.notify_timeout_seconds == 15
        assert config.watch.namespace == "default"
        assert config.watch.max_failures == 5
        assert config.api.enabled is True
        assert config.api.port == 8080
        assert config.log.level == "info"
        assert config.log.format == "json"

    def test_every_kind_gets_all_actions(self) -> None:
        config = load_config()

        assert set(config.watch.kinds) == {"service", "pod", "rc", "buildConfig", "dc"}
        assert all(policy.enabled_actions == frozenset(WatchAction) for policy in config.watch.kinds.values())


class TestNamespace:
    def test_explicit_namespace(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEHUBOT_NAMESPACE", "dev")
        monkeypatch.setenv("KUBERNETES_NAMESPACE", "ignored")

        assert load_config().watch.namespace == "dev"

    def test_kubernetes_namespace_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBERNETES_NAMESPACE", "staging")

        assert load_config().watch.namespace == "staging"

    def test_service_account_namespace_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        ns_file = tmp_path / "namespace"
        ns_file.write_text("ops\n")
        monkeypatch.setattr(config_module, "_SERVICE_ACCOUNT_NAMESPACE", ns_file)

        assert load_config().watch.namespace == "ops"


class TestHubotSettings:
    def test_urls_are_normalized(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEHUBOT_HUBOT_URL", "http://hubot:8080/")
        monkeypatch.setenv("KUBEHUBOT_CONSOLE_URL", " http://console.example.com/ ")

        config = load_config()

        assert config.hubot.url == "http://hubot:8080"
        assert config.hubot.console_url == "http://console.example.com"

    def test_room_template(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEHUBOT_ROOM", "#k8s_${namespace}_${kind}")

        assert load_config().hubot.room_expression == "#k8s_${namespace}_${kind}"

    def test_timeouts_are_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEHUBOT_HUBOT_TIMEOUT", "600")
        monkeypatch.setenv("KUBEHUBOT_NOTIFY_TIMEOUT", "0")

        config = load_config()

        assert config.hubot.timeout_seconds == 60
        assert config.hubot.notify_timeout_seconds == 1


class TestNotifyPolicies:
    def test_action_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEHUBOT_NOTIFY_POD", "added, Deleted")

        policy = load_config().watch.kinds["pod"]

        assert policy.enabled_actions == frozenset({WatchAction.ADDED, WatchAction.DELETED})

    def test_none_disables_kind(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEHUBOT_NOTIFY_BUILDCONFIG", "none")

        policy = load_config().watch.kinds["buildConfig"]

        assert policy.enabled_actions == frozenset()
        assert policy.kind_label == "buildConfig"

    def test_invalid_action_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEHUBOT_NOTIFY_RC", "added,scaled")

        with pytest.raises(ValueError, match="scaled"):
            load_config()


class TestValidation:
    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEHUBOT_LOG_LEVEL", "verbose")

        with pytest.raises(ValueError, match="log level"):
            load_config()

    def test_invalid_log_format(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEHUBOT_LOG_FORMAT", "xml")

        with pytest.raises(ValueError, match="log format"):
            load_config()

    def test_api_port_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEHUBOT_API_PORT", "80")
        monkeypatch.setenv("KUBEHUBOT_API_ENABLED", "false")

        config = load_config()

        assert config.api.port == 1024
        assert config.api.enabled is False
