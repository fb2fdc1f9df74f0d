"""Workflow engine: the approval/iteration state machine over a step catalog.

The engine owns exactly one live `WorkflowState`. Each public method is one
command: it validates the transition, mutates the state, persists the full
snapshot and returns a result mapping with the companion event under `event`.
Errors are raised as `WorkflowError` subclasses and never leave the state
half-mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from .artifacts import ArtifactContent, upsert_artifact
from .catalog import StepCatalog, load_step_catalog
from .errors import (
    ArtifactNotFound,
    CurrentStepNotFound,
    IterationNotAllowed,
    NoPRSet,
    NotAwaitingApproval,
    NotInitialized,
    PersistenceError,
    StepBlocked,
)
from .events import WorkflowEvent
from .state_machine import (
    ACTIVE_STATUSES,
    StepRuntime,
    StepStatus,
    WorkflowState,
    utc_now,
)
from .store import PersistencePolicy, WorkflowStateStore
from .throttle import DEFAULT_QUIET_WINDOW, decide_poll_action

if TYPE_CHECKING:
    from agent_workflow_tracker.tracker.config import TrackerSettings

logger = logging.getLogger(__name__)

Result = dict[str, object]

APPROVAL_HALT_MESSAGE = (
    "STOP AND WAIT for user approval. Do not proceed until user calls "
    "/workflow-approve or /workflow-iterate"
)
ITERATION_MESSAGE = (
    "Revise your work based on the feedback, then call workflow_next when ready for approval"
)


class WorkflowEngine:
    """Drives one workflow through its catalog of steps.

    Args:
        catalog: Step definitions used by `init`.
        store: Snapshot store; None keeps the workflow in memory only.
        policy: Behaviour when the snapshot cannot be written.
        enforce_single_active_step: Demote the previously active step when
            `set_step_status` moves another step to in_progress.
        pr_quiet_window: Time without new comments before review may proceed.
        clock: Source of the current time (UTC).
        state: An already loaded workflow to resume.
    """

    def __init__(
        self,
        *,
        catalog: StepCatalog | None = None,
        store: WorkflowStateStore | None = None,
        policy: PersistencePolicy = PersistencePolicy.FAIL_OPEN,
        enforce_single_active_step: bool = True,
        pr_quiet_window: timedelta = DEFAULT_QUIET_WINDOW,
        clock: Callable[[], datetime] = utc_now,
        state: WorkflowState | None = None,
    ) -> None:
        self._catalog = catalog or StepCatalog.default()
        self._store = store
        self._policy = policy
        self._enforce_single_active_step = enforce_single_active_step
        self._pr_quiet_window = pr_quiet_window
        self._clock = clock
        self._state = state

    @classmethod
    def from_settings(cls, settings: TrackerSettings) -> WorkflowEngine:
        """Build an engine from settings, resuming any persisted workflow."""

        store = WorkflowStateStore(settings.state_file)
        return cls(
            catalog=load_step_catalog(settings.workflow_config_file),
            store=store,
            policy=settings.persistence_policy,
            enforce_single_active_step=settings.enforce_single_active_step,
            pr_quiet_window=timedelta(seconds=settings.pr_quiet_seconds),
            state=store.load(),
        )

    @property
    def catalog(self) -> StepCatalog:
        return self._catalog

    @property
    def state(self) -> WorkflowState | None:
        return self._state

    # -- internals ---------------------------------------------------------

    def _require_state(self) -> WorkflowState:
        if self._state is None:
            raise NotInitialized()
        return self._state

    def _current(self, state: WorkflowState) -> tuple[int, StepRuntime]:
        found = state.find_step(state.current_step)
        if found is not None:
            return found
        if state.is_complete:
            raise CurrentStepNotFound(
                "current step not found",
                hint="the workflow is complete; call workflow_init to start a new one",
                current_step=state.current_step,
            )
        raise CurrentStepNotFound("current step not found", current_step=state.current_step)

    def _persist(self, previous: WorkflowState | None) -> None:
        if self._store is None or self._state is None:
            return
        try:
            self._store.save(self._state)
        except PersistenceError as e:
            if self._policy is PersistencePolicy.FAIL_CLOSED:
                logger.error(
                    "Failed to persist workflow state; rolling back",
                    extra={"path": str(self._store.path), "error": e.message},
                )
                self._state = previous
                raise
            logger.warning(
                "Failed to persist workflow state; keeping in-memory state",
                extra={"path": str(self._store.path), "error": e.message},
            )

    @contextmanager
    def _transaction(self, now: datetime) -> Iterator[WorkflowState]:
        state = self._require_state()
        previous = state.model_copy(deep=True)
        try:
            yield state
        except Exception:
            self._state = previous
            raise
        state.updated_at = now
        self._persist(previous)

    def _event(self, state: WorkflowState, kind: str, now: datetime, **fields: Any) -> Result:
        return WorkflowEvent(kind=kind, workflow_id=state.id, timestamp=now, **fields).to_json()

    def _awaiting_result(
        self, state: WorkflowState, step: StepRuntime, now: datetime, *, already_waiting: bool
    ) -> Result:
        return {
            "status": StepStatus.AWAITING_APPROVAL.value,
            "step": step.name,
            "waiting_for_approval": True,
            "already_waiting": already_waiting,
            "approval_prompt": step.approval_prompt,
            "can_iterate": step.allows_iteration,
            "message": APPROVAL_HALT_MESSAGE,
            "event": self._event(
                state,
                "awaiting_approval",
                now,
                step=step.name,
                status=StepStatus.AWAITING_APPROVAL.value,
                approval_prompt=step.approval_prompt,
                can_iterate=step.allows_iteration,
            ),
        }

    def _advance(self, idx: int, now: datetime) -> tuple[str, StepRuntime | None]:
        with self._transaction(now) as state:
            previous_step = state.steps[idx].name
            following = state.advance_from(idx)
        logger.info(
            "Workflow step completed",
            extra={
                "workflow_id": state.id,
                "step": previous_step,
                "next_step": following.name if following else state.current_step,
            },
        )
        return previous_step, following

    def _advance_fields(self, state: WorkflowState, following: StepRuntime | None) -> Result:
        return {
            "current_step": state.current_step,
            "waiting_for_approval": state.waiting_for_approval,
            "requires_approval": following.requires_approval if following else False,
            "allows_iteration": following.allows_iteration if following else False,
            "instructions": following.instructions if following else "",
            "workflow_complete": state.is_complete,
        }

    # -- operations --------------------------------------------------------

    def init(self, task: str) -> Result:
        """Start a new workflow, replacing any live one."""

        now = self._clock()
        previous = self._state
        state = WorkflowState.create(task=task, catalog=self._catalog, now=now)
        self._state = state
        self._persist(previous)

        first = state.steps[0]
        logger.info(
            "Workflow initialized",
            extra={"workflow_id": state.id, "step": first.name, "steps": len(state.steps)},
        )
        return {
            "workflow_id": state.id,
            "task": task,
            "current_step": state.current_step,
            "waiting_for_approval": state.waiting_for_approval,
            "requires_approval": first.requires_approval,
            "allows_iteration": first.allows_iteration,
            "instructions": first.instructions,
            "steps": [s.model_dump(mode="json") for s in state.steps],
            "event": self._event(
                state,
                "init",
                now,
                step=first.name,
                status=first.status.value,
                can_iterate=first.allows_iteration,
            ),
        }

    def status(self) -> Result:
        state = self._require_state()
        progress = state.progress_percent()
        result: Result = {
            "workflow_id": state.id,
            "task": state.task,
            "current_step": state.current_step,
            "waiting_for_approval": state.waiting_for_approval,
            "artifacts": {k: a.to_json() for k, a in state.artifacts.items()},
            "iteration_count": state.iteration_count,
            "iteration_feedback": list(state.iteration_feedback),
            "progress": f"{progress:.0f}%",
            "progress_percent": progress,
            "workflow_complete": state.is_complete,
            "instructions": "",
            "steps": [s.model_dump(mode="json") for s in state.steps],
        }

        found = state.find_step(state.current_step)
        if found is not None:
            _, current = found
            result["instructions"] = current.instructions
            result["requires_approval"] = current.requires_approval
            result["allows_iteration"] = current.allows_iteration
            if current.approval_prompt:
                result["approval_prompt"] = current.approval_prompt

        if state.pr_number is not None:
            result["pr_number"] = state.pr_number
            result["pr_url"] = state.pr_url or ""
            result["last_comment_check_at"] = (
                state.last_comment_check_at.isoformat() if state.last_comment_check_at else None
            )
            result["last_comment_count"] = state.last_comment_count

        return result

    def set_step_status(self, step: str, status: StepStatus | str) -> Result:
        """Override one step's status by name.

        Unknown step names are ignored and reported with `updated=False`.
        Moving a step to in_progress or awaiting_approval makes it the current
        step. In_progress, or any move of the pointer, clears the iteration
        state.
        """

        new_status = StepStatus(status)
        state = self._require_state()
        now = self._clock()

        found = state.find_step(step)
        if found is None:
            logger.warning(
                "Ignoring status update for unknown step",
                extra={"workflow_id": state.id, "step": step, "status": new_status.value},
            )
            return {
                "updated": False,
                "step": step,
                "current_step": state.current_step,
                "waiting_for_approval": state.waiting_for_approval,
                "event": self._event(
                    state,
                    "step_update",
                    now,
                    step=step,
                    status=new_status.value,
                    message=f"unknown step {step!r} ignored",
                ),
            }

        demoted: list[str] = []
        with self._transaction(now) as state:
            _, runtime = found
            if new_status in ACTIVE_STATUSES:
                if self._enforce_single_active_step:
                    for other in state.steps:
                        if other.name != step and other.status in ACTIVE_STATUSES:
                            other.status = StepStatus.PENDING
                            demoted.append(other.name)
                # A step waiting at its gate keeps its feedback unless the pointer moves.
                if new_status is StepStatus.IN_PROGRESS or state.current_step != step:
                    state.reset_iteration()
                state.current_step = step
            runtime.status = new_status

            current = state.find_step(state.current_step)
            state.waiting_for_approval = (
                current is not None and current[1].status is StepStatus.AWAITING_APPROVAL
            )

        logger.info(
            "Workflow step status overridden",
            extra={
                "workflow_id": state.id,
                "step": step,
                "status": new_status.value,
                "demoted": demoted,
            },
        )
        return {
            "updated": True,
            "step": step,
            "status": new_status.value,
            "current_step": state.current_step,
            "waiting_for_approval": state.waiting_for_approval,
            "demoted_steps": demoted,
            "event": self._event(state, "step_update", now, step=step, status=new_status.value),
        }

    def mark_blocked(self, reason: str) -> Result:
        """Block the current step on an external dependency."""

        state = self._require_state()
        now = self._clock()
        _, runtime = self._current(state)

        with self._transaction(now) as state:
            runtime.status = StepStatus.BLOCKED
            state.waiting_for_approval = False

        logger.warning(
            "Workflow step blocked",
            extra={"workflow_id": state.id, "step": runtime.name, "reason": reason},
        )
        return {
            "blocked": True,
            "step": runtime.name,
            "reason": reason,
            "needs_human_intervention": True,
            "event": self._event(
                state,
                "blocked",
                now,
                step=runtime.name,
                status=StepStatus.BLOCKED.value,
                message=reason,
            ),
        }

    def next(self) -> Result:
        """Request the next step.

        A step that needs approval first moves to awaiting_approval and the
        pointer stays put; asking again while it waits changes nothing. Any
        other step is completed and the pointer advances.
        """

        state = self._require_state()
        now = self._clock()
        idx, runtime = self._current(state)

        if runtime.status is StepStatus.BLOCKED:
            raise StepBlocked(runtime.name)

        if runtime.requires_approval and runtime.status is StepStatus.AWAITING_APPROVAL:
            return self._awaiting_result(state, runtime, now, already_waiting=True)

        if runtime.requires_approval and runtime.status is StepStatus.IN_PROGRESS:
            with self._transaction(now) as state:
                runtime.status = StepStatus.AWAITING_APPROVAL
                state.waiting_for_approval = True
            logger.info(
                "Workflow step awaiting approval",
                extra={"workflow_id": state.id, "step": runtime.name},
            )
            return self._awaiting_result(state, runtime, now, already_waiting=False)

        previous_step, following = self._advance(idx, now)
        state = self._require_state()
        result: Result = {"previous_step": previous_step}
        result.update(self._advance_fields(state, following))
        result["event"] = self._event(
            state,
            "step_complete",
            now,
            step=previous_step,
            next_step=following.name if following else "",
            status=StepStatus.IN_PROGRESS.value if following else StepStatus.COMPLETED.value,
        )
        return result

    def approve(self) -> Result:
        """Approve the step waiting at its gate and advance."""

        state = self._require_state()
        now = self._clock()
        idx, runtime = self._current(state)

        if runtime.status is not StepStatus.AWAITING_APPROVAL:
            raise NotAwaitingApproval(runtime.status.value)

        previous_step, following = self._advance(idx, now)
        state = self._require_state()
        result: Result = {"approved": True, "previous_step": previous_step}
        result.update(self._advance_fields(state, following))
        result["event"] = self._event(
            state,
            "approved",
            now,
            step=previous_step,
            next_step=following.name if following else "",
            status="approved",
        )
        return result

    def iterate(self, feedback: str = "") -> Result:
        """Send the current step back for rework, keeping its feedback history."""

        state = self._require_state()
        now = self._clock()
        _, runtime = self._current(state)

        if not runtime.allows_iteration:
            raise IterationNotAllowed(runtime.name)
        if runtime.status is StepStatus.BLOCKED:
            raise StepBlocked(runtime.name)

        with self._transaction(now) as state:
            state.iteration_count += 1
            if feedback:
                state.iteration_feedback.append(feedback)
            runtime.status = StepStatus.IN_PROGRESS
            state.waiting_for_approval = False

        logger.info(
            "Workflow step iterating",
            extra={
                "workflow_id": state.id,
                "step": runtime.name,
                "iteration": state.iteration_count,
            },
        )
        return {
            "iterated": True,
            "step": runtime.name,
            "iteration_count": state.iteration_count,
            "feedback": feedback,
            "all_feedback": list(state.iteration_feedback),
            "instructions": runtime.instructions,
            "message": ITERATION_MESSAGE,
            "event": self._event(
                state,
                "iteration",
                now,
                step=runtime.name,
                status=StepStatus.IN_PROGRESS.value,
                message=feedback,
                can_iterate=True,
            ),
        }

    def set_artifact(self, artifact_type: str, content: ArtifactContent) -> Result:
        """Store step output under `artifact_type`, keeping its first creation time."""

        now = self._clock()
        with self._transaction(now) as state:
            artifact = upsert_artifact(
                state.artifacts,
                artifact_type=artifact_type,
                content=content,
                step=state.current_step,
                now=now,
            )

        logger.debug(
            "Artifact stored",
            extra={"workflow_id": state.id, "artifact": artifact_type, "shape": artifact.shape},
        )
        return {
            "artifact_set": True,
            "type": artifact_type,
            "shape": artifact.shape,
            "step": state.current_step,
            "event": self._event(
                state,
                "artifact_set",
                now,
                step=state.current_step,
                message=f"Artifact '{artifact_type}' has been set",
            ),
        }

    def set_criteria(self, criteria: list[str]) -> Result:
        return self.set_artifact("criteria", list(criteria))

    def set_plan(self, plan: str) -> Result:
        return self.set_artifact("plan", plan)

    def get_artifact(self, artifact_type: str) -> Result:
        state = self._require_state()
        artifact = state.artifacts.get(artifact_type)
        if artifact is None:
            raise ArtifactNotFound(artifact_type)
        return artifact.to_json()

    def set_pr(self, number: int, url: str = "") -> Result:
        """Track a pull request and restart the comment-poll window."""

        now = self._clock()
        with self._transaction(now) as state:
            state.pr_number = number
            state.pr_url = url or None
            state.last_comment_check_at = now
            state.last_comment_count = 0
            upsert_artifact(
                state.artifacts,
                artifact_type="pr",
                content={"number": number, "url": url},
                step=state.current_step,
                now=now,
            )

        logger.info("PR set for tracking", extra={"workflow_id": state.id, "pr_number": number})
        return {
            "pr_set": True,
            "pr_number": number,
            "pr_url": url,
            "event": self._event(
                state,
                "pr_set",
                now,
                step=state.current_step,
                message=f"PR #{number} set for tracking",
            ),
        }

    def check_pr(self, comment_count: int) -> Result:
        """Advise the caller whether to address comments, wait, or proceed."""

        state = self._require_state()
        if state.pr_number is None:
            raise NoPRSet()

        now = self._clock()
        decision = decide_poll_action(
            comment_count=comment_count,
            last_comment_count=state.last_comment_count,
            last_check_at=state.last_comment_check_at,
            now=now,
            quiet_window=self._pr_quiet_window,
        )

        with self._transaction(now) as state:
            state.last_comment_check_at = now
            state.last_comment_count = comment_count

        logger.info(
            "PR comments checked",
            extra={
                "workflow_id": state.id,
                "pr_number": state.pr_number,
                "action": decision.action.value,
                "comment_count": comment_count,
            },
        )
        result: Result = {
            "pr_number": state.pr_number,
            "comment_count": comment_count,
            "previous_count": decision.previous_count,
            "has_new_comments": decision.has_new_comments,
            "seconds_since_check": int(decision.elapsed.total_seconds()),
            "action": decision.action.value,
            "message": decision.message,
            "event": self._event(
                state, "pr_check", now, step=state.current_step, message=decision.message
            ),
        }
        if decision.has_new_comments:
            result["new_comments"] = decision.new_comments
        if decision.wait_seconds is not None:
            result["wait_seconds"] = decision.wait_seconds
        return result
