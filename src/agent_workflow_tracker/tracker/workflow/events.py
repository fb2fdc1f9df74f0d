from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class WorkflowEvent:
    """A record describing one transition, returned next to every result.

    Events are emitted for observability only. Nothing in the engine reads them back.
    """

    kind: str
    workflow_id: str
    timestamp: datetime
    step: str = ""
    next_step: str = ""
    status: str = ""
    message: str = ""
    approval_prompt: str = ""
    can_iterate: bool = False
    category: str = "workflow"

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "category": self.category,
            "kind": self.kind,
            "workflow_id": self.workflow_id,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.step:
            out["step"] = self.step
        if self.next_step:
            out["next_step"] = self.next_step
        if self.status:
            out["status"] = self.status
        if self.message:
            out["message"] = self.message
        if self.approval_prompt:
            out["approval_prompt"] = self.approval_prompt
        if self.can_iterate:
            out["can_iterate"] = True
        return out
