from __future__ import annotations

import time
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from .artifacts import Artifact
from .catalog import StepCatalog

TERMINAL_STEP = "done"


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    AWAITING_APPROVAL = "awaiting_approval"
    COMPLETED = "completed"
    BLOCKED = "blocked"


ACTIVE_STATUSES: frozenset[StepStatus] = frozenset(
    {StepStatus.IN_PROGRESS, StepStatus.AWAITING_APPROVAL}
)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def new_workflow_id() -> str:
    return f"wf_{time.time_ns()}"


class StepRuntime(BaseModel):
    """Runtime view of one step. Mutated only by the engine."""

    name: str
    status: StepStatus = StepStatus.PENDING
    requires_approval: bool = False
    allows_iteration: bool = False
    instructions: str = ""
    approval_prompt: str = ""


class WorkflowState(BaseModel):
    """The single unit of persistence: one live workflow."""

    id: str
    task: str
    current_step: str
    steps: list[StepRuntime] = Field(min_length=1)
    waiting_for_approval: bool = False
    artifacts: dict[str, Artifact] = Field(default_factory=dict)
    iteration_count: int = Field(default=0, ge=0)
    iteration_feedback: list[str] = Field(default_factory=list)

    pr_number: int | None = None
    pr_url: str | None = None
    last_comment_check_at: datetime | None = None
    last_comment_count: int = 0

    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(cls, *, task: str, catalog: StepCatalog, now: datetime) -> WorkflowState:
        steps = [
            StepRuntime(
                name=d.name,
                status=StepStatus.IN_PROGRESS if i == 0 else StepStatus.PENDING,
                requires_approval=d.requires_approval,
                allows_iteration=d.allows_iteration,
                instructions=d.instructions,
                approval_prompt=d.resolved_approval_prompt(),
            )
            for i, d in enumerate(catalog.steps)
        ]
        return cls(
            id=new_workflow_id(),
            task=task,
            current_step=steps[0].name,
            steps=steps,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_complete(self) -> bool:
        return self.current_step == TERMINAL_STEP

    def find_step(self, name: str) -> tuple[int, StepRuntime] | None:
        for idx, step in enumerate(self.steps):
            if step.name == name:
                return idx, step
        return None

    def progress_percent(self) -> float:
        completed = sum(1 for s in self.steps if s.status == StepStatus.COMPLETED)
        return completed / len(self.steps) * 100

    def reset_iteration(self) -> None:
        self.waiting_for_approval = False
        self.iteration_count = 0
        self.iteration_feedback = []

    def advance_from(self, idx: int) -> StepRuntime | None:
        """Complete the step at `idx` and activate its successor.

        Returns the newly active step, or None once the sentinel is reached.
        """

        self.steps[idx].status = StepStatus.COMPLETED
        following: StepRuntime | None = None
        if idx + 1 < len(self.steps):
            following = self.steps[idx + 1]
            following.status = StepStatus.IN_PROGRESS
            self.current_step = following.name
        else:
            self.current_step = TERMINAL_STEP
        self.reset_iteration()
        return following
