"""Command dispatcher: (operation name, arguments) -> engine call -> response envelope.

Transports (MCP stdio, HTTP, CLI) decode their input into an operation name and
an argument mapping and hand it here. Arguments are validated before the
engine sees them. Commands run one at a time.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from agent_workflow_tracker.server.models import (
    BlockedArgs,
    CheckPRArgs,
    GetArtifactArgs,
    InitArgs,
    IterateArgs,
    NoArgs,
    SetArtifactArgs,
    SetCriteriaArgs,
    SetPlanArgs,
    SetPRArgs,
    SetStepArgs,
)
from agent_workflow_tracker.tracker.workflow.engine import Result, WorkflowEngine
from agent_workflow_tracker.tracker.workflow.errors import (
    InvalidArguments,
    UnknownOperation,
    WorkflowError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Command:
    name: str
    arguments: type[BaseModel]
    run: Callable[[WorkflowEngine, Any], Result]


COMMANDS: dict[str, Command] = {
    c.name: c
    for c in (
        Command("init", InitArgs, lambda e, a: e.init(a.task)),
        Command("status", NoArgs, lambda e, _a: e.status()),
        Command("set_step", SetStepArgs, lambda e, a: e.set_step_status(a.step, a.status)),
        Command("blocked", BlockedArgs, lambda e, a: e.mark_blocked(a.reason)),
        Command("next", NoArgs, lambda e, _a: e.next()),
        Command("approve", NoArgs, lambda e, _a: e.approve()),
        Command("iterate", IterateArgs, lambda e, a: e.iterate(a.feedback)),
        Command(
            "set_artifact", SetArtifactArgs, lambda e, a: e.set_artifact(a.artifact_type, a.content)
        ),
        Command("get_artifact", GetArtifactArgs, lambda e, a: e.get_artifact(a.artifact_type)),
        Command("set_criteria", SetCriteriaArgs, lambda e, a: e.set_criteria(a.criteria)),
        Command("set_plan", SetPlanArgs, lambda e, a: e.set_plan(a.plan)),
        Command("set_pr", SetPRArgs, lambda e, a: e.set_pr(a.number, a.url)),
        Command("check_pr", CheckPRArgs, lambda e, a: e.check_pr(a.comment_count)),
    )
}


class CommandDispatcher:
    """Routes named commands to a `WorkflowEngine`."""

    def __init__(self, engine: WorkflowEngine) -> None:
        self._engine = engine
        self._lock = threading.Lock()

    @property
    def engine(self) -> WorkflowEngine:
        return self._engine

    @staticmethod
    def operations() -> list[str]:
        return list(COMMANDS)

    def execute(self, operation: str, arguments: Mapping[str, object] | None = None) -> Result:
        """Run one command, raising `WorkflowError` on failure."""

        command = COMMANDS.get(operation)
        if command is None:
            raise UnknownOperation(operation)

        try:
            parsed = command.arguments.model_validate(dict(arguments or {}))
        except ValidationError as e:
            raise InvalidArguments(
                f"invalid arguments for {operation}",
                errors=json.loads(e.json(include_url=False)),
            ) from e

        with self._lock:
            return command.run(self._engine, parsed)

    def dispatch(self, operation: str, arguments: Mapping[str, object] | None = None) -> Result:
        """Run one command and always return a structured envelope."""

        try:
            return self.execute(operation, arguments)
        except WorkflowError as e:
            logger.info(
                "Command rejected",
                extra={"operation": operation, "code": e.code, "error": e.message},
            )
            return e.to_json()
