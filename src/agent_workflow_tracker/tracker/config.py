"""Configuration for the workflow tracker.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Nothing here is required: with no configuration at all the tracker uses the
built-in step sequence and persists to `~/state/workflow_state.json`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_workflow_tracker.tracker.workflow.store import PersistencePolicy


def _default_state_file() -> Path:
    return Path.home() / "state" / "workflow_state.json"


class TrackerSettings(BaseSettings):
    """Settings for the workflow tracker.

    Environment variables:
    - LOG_LEVEL                            (optional)
    - WORKFLOW_STATE_FILE                  (optional)
    - WORKFLOW_CONFIG_FILE                 (optional)
    - WORKFLOW_PERSISTENCE_POLICY          (optional)
    - WORKFLOW_ENFORCE_SINGLE_ACTIVE_STEP  (optional)
    - WORKFLOW_PR_QUIET_SECONDS            (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `TrackerSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    state_file: Path = Field(
        default_factory=_default_state_file,
        validation_alias="WORKFLOW_STATE_FILE",
        description="Path where the workflow snapshot is persisted",
    )

    workflow_config_file: Path = Field(
        default=Path("workflow.yaml"),
        validation_alias="WORKFLOW_CONFIG_FILE",
        description="YAML file defining the step sequence (built-in steps when absent)",
    )

    persistence_policy: PersistencePolicy = Field(
        default=PersistencePolicy.FAIL_OPEN,
        validation_alias="WORKFLOW_PERSISTENCE_POLICY",
        description=(
            "fail_open keeps going on snapshot write errors (in-memory state stays "
            "authoritative); fail_closed fails the command and rolls back."
        ),
    )

    enforce_single_active_step: bool = Field(
        default=True,
        validation_alias="WORKFLOW_ENFORCE_SINGLE_ACTIVE_STEP",
        description=(
            "When a step status override moves a step to in_progress, demote any other "
            "in_progress or awaiting_approval step to pending."
        ),
    )

    pr_quiet_seconds: float = Field(
        default=60.0,
        gt=0,
        validation_alias="WORKFLOW_PR_QUIET_SECONDS",
        description="Seconds without new PR comments before review may proceed to approval.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )
