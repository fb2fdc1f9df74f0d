"""Pydantic argument models for the command surface."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from agent_workflow_tracker.tracker.workflow.artifacts import ArtifactContent
from agent_workflow_tracker.tracker.workflow.state_machine import StepStatus


class CommandArgs(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class NoArgs(CommandArgs):
    pass


class InitArgs(CommandArgs):
    task: str = Field(min_length=1, description="Description of the task")


class SetStepArgs(CommandArgs):
    step: str = Field(min_length=1, description="Step name")
    status: StepStatus = Field(description="New status")


class BlockedArgs(CommandArgs):
    reason: str = Field(description="Reason for blocking (external dependency)")


class IterateArgs(CommandArgs):
    feedback: str = Field(default="", description="What needs to change")


class SetArtifactArgs(CommandArgs):
    artifact_type: str = Field(
        min_length=1,
        validation_alias=AliasChoices("type", "artifact_type", "kind"),
        description="Artifact type, e.g. 'plan', 'criteria', 'test_results'",
    )
    content: ArtifactContent = Field(description="Text, list of text, or an object")


class GetArtifactArgs(CommandArgs):
    artifact_type: str = Field(
        min_length=1, validation_alias=AliasChoices("type", "artifact_type", "kind")
    )


class SetCriteriaArgs(CommandArgs):
    criteria: list[str] = Field(description="Verification criteria to check in the verify step")


class SetPlanArgs(CommandArgs):
    plan: str = Field(description="The implementation plan")


class SetPRArgs(CommandArgs):
    number: int = Field(
        gt=0,
        validation_alias=AliasChoices("pr_number", "number"),
        description="The pull request number",
    )
    url: str = Field(
        default="",
        validation_alias=AliasChoices("pr_url", "url"),
        description="The pull request URL",
    )


class CheckPRArgs(CommandArgs):
    comment_count: int = Field(
        ge=0,
        validation_alias=AliasChoices("comment_count", "commentCount"),
        description="Current number of comments on the PR",
    )
