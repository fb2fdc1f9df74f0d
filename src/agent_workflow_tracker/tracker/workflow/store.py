"""Persist the live workflow as a single JSON snapshot.

The snapshot is rewritten in full after every mutation and read once at
start-up. A missing file means no workflow has been started yet.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path

from pydantic import ValidationError

from .errors import PersistenceError
from .state_machine import WorkflowState

logger = logging.getLogger(__name__)


class PersistencePolicy(str, Enum):
    """What to do when the snapshot cannot be written.

    FAIL_OPEN keeps the in-memory state authoritative and only logs.
    FAIL_CLOSED fails the command that triggered the write.
    """

    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


class WorkflowStateStore:
    """JSON-file backed store for the workflow snapshot."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> WorkflowState | None:
        if not self._path.exists():
            return None

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(
                "Workflow state file is unreadable; starting without a workflow",
                extra={"path": str(self._path), "error": str(e)},
            )
            return None

        if not isinstance(raw, dict):
            logger.warning(
                "Workflow state file has unexpected shape; starting without a workflow",
                extra={"path": str(self._path)},
            )
            return None

        try:
            state = WorkflowState.model_validate(raw)
        except ValidationError as e:
            logger.warning(
                "Workflow state file failed validation; starting without a workflow",
                extra={"path": str(self._path), "error": str(e)},
            )
            return None

        logger.info(
            "Workflow state loaded",
            extra={"path": str(self._path), "workflow_id": state.id, "step": state.current_step},
        )
        return state

    def save(self, state: WorkflowState) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise PersistenceError(
                f"failed to write workflow state: {e}", path=str(self._path)
            ) from e
