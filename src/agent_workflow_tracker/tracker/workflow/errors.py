"""Workflow error taxonomy.

Every error carries a stable `code` so callers can branch on it without parsing
messages. None of these are fatal to the command loop.
"""

from __future__ import annotations


class WorkflowError(Exception):
    code = "workflow_error"

    def __init__(self, message: str, *, hint: str = "", **details: object) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {"error": self.message, "code": self.code}
        if self.hint:
            out["hint"] = self.hint
        out.update(self.details)
        return out


class NotInitialized(WorkflowError):
    code = "not_initialized"

    def __init__(self) -> None:
        super().__init__("no workflow initialized", hint="call workflow_init first")


class CurrentStepNotFound(WorkflowError):
    code = "current_step_not_found"


class NotAwaitingApproval(WorkflowError):
    code = "not_awaiting_approval"

    def __init__(self, current_status: str) -> None:
        super().__init__(
            "step is not awaiting approval",
            hint="call workflow_next first to request approval",
            current_status=current_status,
        )


class IterationNotAllowed(WorkflowError):
    code = "iteration_not_allowed"

    def __init__(self, step: str) -> None:
        super().__init__("iteration not allowed on this step", step=step)


class StepBlocked(WorkflowError):
    code = "step_blocked"

    def __init__(self, step: str) -> None:
        super().__init__(
            "current step is blocked",
            hint="resolve the blocker, then call workflow_step with status in_progress",
            step=step,
        )


class NoPRSet(WorkflowError):
    code = "no_pr_set"

    def __init__(self) -> None:
        super().__init__("no PR set", hint="call workflow_set_pr first")


class ArtifactNotFound(WorkflowError):
    code = "artifact_not_found"

    def __init__(self, artifact_type: str) -> None:
        super().__init__(f"no artifact of type {artifact_type!r}", type=artifact_type)


class PersistenceError(WorkflowError):
    code = "persistence_failed"


class UnknownOperation(WorkflowError):
    code = "unknown_operation"

    def __init__(self, operation: str) -> None:
        super().__init__(f"unknown operation: {operation}", operation=operation)


class InvalidArguments(WorkflowError):
    code = "invalid_arguments"
