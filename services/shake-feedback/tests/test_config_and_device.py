from datetime import datetime, timezone

import pytest

from shake_feedback.config import ConfigError, DEFAULT_ISSUE_TYPE_ID, load_settings
from shake_feedback.reporting.device import collect_device_metadata
from shake_feedback.shake import ShakeSource

ENV = {
    "JIRA_DOMAIN": "acme.atlassian.net",
    "JIRA_EMAIL": "bot@acme.io",
    "JIRA_API_TOKEN": "secret",
    "JIRA_PROJECT_KEY": "IOS",
}


@pytest.fixture
def env(monkeypatch, tmp_path):
    # .env is looked up from the working directory
    monkeypatch.chdir(tmp_path)
    for name in ("JIRA_ISSUE_TYPE_ID", "JIRA_TIMEOUT", "FEEDBACK_DATA_DIR", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    for name, value in ENV.items():
        monkeypatch.setenv(name, value)
    return monkeypatch


def test_settings_from_env(env):
    settings = load_settings()
    assert settings.jira.project_key == "IOS"
    assert settings.jira.issue_type_id is None
    assert settings.jira.default_issue_type_id == DEFAULT_ISSUE_TYPE_ID == "10004"
    assert settings.jira.timeout == 30.0


def test_pinned_issue_type(env):
    env.setenv("JIRA_ISSUE_TYPE_ID", "10001")
    env.setenv("JIRA_TIMEOUT", "5")
    settings = load_settings()
    assert settings.jira.issue_type_id == "10001"
    assert settings.jira.timeout == 5.0


def test_missing_setting(env):
    env.delenv("JIRA_API_TOKEN")
    with pytest.raises(ConfigError, match="JIRA_API_TOKEN"):
        load_settings()


def test_bad_timeout(env):
    env.setenv("JIRA_TIMEOUT", "soon")
    with pytest.raises(ConfigError):
        load_settings()


def test_config_is_frozen(env):
    settings = load_settings()
    with pytest.raises(Exception):
        settings.jira.email = "other@acme.io"


def test_device_metadata(tmp_path):
    now = datetime(2026, 1, 2, 3, 4, tzinfo=timezone.utc)
    meta = collect_device_metadata(app_version="2.0", build="77", data_path=str(tmp_path), now=now)
    assert meta.app_version == "2.0" and meta.build == "77"
    assert meta.timezone == "UTC"
    assert meta.free_disk.endswith("B")
    assert meta.uptime.endswith("m")
    assert meta.os_version


def test_shake_source_fan_out():
    source = ShakeSource()
    hits = []
    first = lambda: hits.append("a")
    source.register(first)
    source.register(first)
    source.register(lambda: hits.append("b"))
    source.emit()
    source.unregister(first)
    source.emit()
    assert hits == ["a", "b", "b"]
