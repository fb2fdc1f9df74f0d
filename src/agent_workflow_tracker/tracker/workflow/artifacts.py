"""Artifacts: named step outputs kept in the workflow state.

Artifacts are keyed by type ("plan", "criteria", "pr", "test_results", ...).
Writing an existing type replaces its content but keeps its original
`created_at`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ArtifactContent = str | list[str] | dict[str, Any]
ArtifactShape = Literal["text", "list", "object"]


class Artifact(BaseModel):
    type: str = Field(min_length=1)
    content: ArtifactContent
    step: str
    created_at: datetime
    updated_at: datetime

    @property
    def shape(self) -> ArtifactShape:
        if isinstance(self.content, str):
            return "text"
        if isinstance(self.content, list):
            return "list"
        return "object"

    def to_json(self) -> dict[str, object]:
        out = self.model_dump(mode="json")
        out["shape"] = self.shape
        return out


def upsert_artifact(
    artifacts: dict[str, Artifact],
    *,
    artifact_type: str,
    content: ArtifactContent,
    step: str,
    now: datetime,
) -> Artifact:
    """Insert or replace the artifact for `artifact_type` in place."""

    existing = artifacts.get(artifact_type)
    artifact = Artifact(
        type=artifact_type,
        content=content,
        step=step,
        created_at=existing.created_at if existing is not None else now,
        updated_at=now,
    )
    artifacts[artifact_type] = artifact
    return artifact
