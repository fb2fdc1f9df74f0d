"""Test configuration and fixtures."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from agent_workflow_tracker.tracker.workflow.catalog import StepCatalog, StepDefinition
from agent_workflow_tracker.tracker.workflow.engine import WorkflowEngine
from agent_workflow_tracker.tracker.workflow.store import WorkflowStateStore


class FakeClock:
    """A controllable UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock fixed at 2025-01-01T00:00:00Z."""
    return FakeClock(datetime(2025, 1, 1, tzinfo=UTC))


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    """Provide a workflow snapshot path inside a not-yet-existing directory."""
    return tmp_path / "state" / "workflow_state.json"


@pytest.fixture
def store(state_file: Path) -> WorkflowStateStore:
    return WorkflowStateStore(state_file)


@pytest.fixture
def engine(store: WorkflowStateStore, clock: FakeClock) -> WorkflowEngine:
    """Provide an engine over the default step sequence with a persisted store."""
    return WorkflowEngine(catalog=StepCatalog.default(), store=store, clock=clock)


@pytest.fixture
def small_catalog() -> StepCatalog:
    """Provide a three-step catalog: gated, plain, and non-iterable."""
    return StepCatalog.from_definitions(
        [
            StepDefinition(name="plan", requires_approval=True, allows_iteration=True),
            StepDefinition(name="build", allows_iteration=True, instructions="Build it."),
            StepDefinition(name="ship", instructions="Ship it."),
        ]
    )
