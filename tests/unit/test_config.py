"""Unit tests for configuration."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from agent_workflow_tracker.server.config import ServerSettings
from agent_workflow_tracker.tracker.config import TrackerSettings
from agent_workflow_tracker.tracker.workflow.engine import WorkflowEngine
from agent_workflow_tracker.tracker.workflow.store import PersistencePolicy

_ENV_VARS = (
    "LOG_LEVEL",
    "WORKFLOW_STATE_FILE",
    "WORKFLOW_CONFIG_FILE",
    "WORKFLOW_PERSISTENCE_POLICY",
    "WORKFLOW_ENFORCE_SINGLE_ACTIVE_STEP",
    "WORKFLOW_PR_QUIET_SECONDS",
    "WORKFLOW_HTTP_HOST",
    "WORKFLOW_HTTP_PORT",
    "WORKFLOW_CORS_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_tracker_settings_defaults() -> None:
    """Test defaults with no environment and no .env file."""
    settings = TrackerSettings()

    assert settings.log_level == "INFO"
    assert settings.state_file == Path.home() / "state" / "workflow_state.json"
    assert settings.workflow_config_file == Path("workflow.yaml")
    assert settings.persistence_policy is PersistencePolicy.FAIL_OPEN
    assert settings.enforce_single_active_step is True
    assert settings.pr_quiet_seconds == 60.0


def test_tracker_settings_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("WORKFLOW_STATE_FILE", str(tmp_path / "s.json"))
    monkeypatch.setenv("WORKFLOW_PERSISTENCE_POLICY", "fail_closed")
    monkeypatch.setenv("WORKFLOW_ENFORCE_SINGLE_ACTIVE_STEP", "false")
    monkeypatch.setenv("WORKFLOW_PR_QUIET_SECONDS", "15")

    settings = TrackerSettings()

    assert settings.log_level == "DEBUG"
    assert settings.state_file == tmp_path / "s.json"
    assert settings.persistence_policy is PersistencePolicy.FAIL_CLOSED
    assert settings.enforce_single_active_step is False
    assert settings.pr_quiet_seconds == 15.0


def test_tracker_settings_read_dotenv(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text(
        "WORKFLOW_CONFIG_FILE=flows/docs.yaml\nWORKFLOW_PERSISTENCE_POLICY=fail_closed\n",
        encoding="utf-8",
    )

    settings = TrackerSettings()

    assert settings.workflow_config_file == Path("flows/docs.yaml")
    assert settings.persistence_policy is PersistencePolicy.FAIL_CLOSED


def test_tracker_settings_reject_bad_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKFLOW_PR_QUIET_SECONDS", "0")
    with pytest.raises(ValidationError):
        TrackerSettings()

    monkeypatch.setenv("WORKFLOW_PR_QUIET_SECONDS", "60")
    monkeypatch.setenv("WORKFLOW_PERSISTENCE_POLICY", "sometimes")
    with pytest.raises(ValidationError):
        TrackerSettings()


def test_engine_from_settings_resumes_persisted_workflow(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("WORKFLOW_STATE_FILE", str(tmp_path / "state" / "wf.json"))
    monkeypatch.setenv("WORKFLOW_PR_QUIET_SECONDS", "5")
    (tmp_path / "workflow.yaml").write_text(
        "steps:\n  - name: only\n", encoding="utf-8"
    )

    first = WorkflowEngine.from_settings(TrackerSettings())
    assert first.catalog.names() == ["only"]
    first.init("resume me")

    second = WorkflowEngine.from_settings(TrackerSettings())

    assert second.state is not None
    assert second.state.task == "resume me"
    assert second._pr_quiet_window == timedelta(seconds=5)


def test_server_settings_cors_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKFLOW_CORS_ORIGINS", " http://a.test , ,http://b.test")
    monkeypatch.setenv("WORKFLOW_HTTP_PORT", "9000")

    settings = ServerSettings()

    assert settings.port == 9000
    assert settings.host == "127.0.0.1"
    assert settings.parsed_cors_origins() == ["http://a.test", "http://b.test"]
