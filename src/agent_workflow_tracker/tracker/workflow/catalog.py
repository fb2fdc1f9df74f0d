"""Step catalog: the ordered list of step definitions a workflow is built from.

The catalog is loaded once from a declarative YAML file. When the file is
missing, unreadable or defines no steps, the built-in default sequence is used.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_APPROVAL_PROMPTS: dict[str, str] = {
    "plan": (
        "Review the implementation plan. Does this approach look correct? You can approve "
        "with /workflow-approve or request changes with /workflow-iterate <feedback>"
    ),
    "criteria": (
        "Review the completion criteria. Are these the right things to verify? Approve with "
        "/workflow-approve or iterate with /workflow-iterate <feedback>"
    ),
    "review": (
        "PR review complete. Ready to merge? Approve with /workflow-approve to finish, or "
        "/workflow-iterate <feedback> for more changes."
    ),
}


@dataclass(frozen=True, slots=True)
class StepDefinition:
    """Immutable definition of one workflow step."""

    name: str
    requires_approval: bool = False
    allows_iteration: bool = False
    approval_prompt: str = ""
    instructions: str = ""

    def resolved_approval_prompt(self) -> str:
        """Explicit prompt, or the name-keyed default when approval is required."""

        if self.approval_prompt or not self.requires_approval:
            return self.approval_prompt
        return DEFAULT_APPROVAL_PROMPTS.get(self.name, "")


DEFAULT_STEPS: tuple[StepDefinition, ...] = (
    StepDefinition(
        name="plan",
        requires_approval=True,
        allows_iteration=True,
        instructions=(
            "Explore the codebase and design your approach. "
            "Include diagrams to visualize architecture."
        ),
    ),
    StepDefinition(
        name="criteria",
        requires_approval=True,
        allows_iteration=True,
        instructions="Define specific, measurable completion criteria.",
    ),
    StepDefinition(
        name="execute",
        allows_iteration=True,
        instructions="Implement the changes.",
    ),
    StepDefinition(
        name="verify",
        allows_iteration=True,
        instructions="Run tests and verify all criteria pass.",
    ),
    StepDefinition(name="pr", instructions="Create a pull request."),
    StepDefinition(
        name="review",
        requires_approval=True,
        allows_iteration=True,
        instructions="Monitor PR for comments, address feedback, check every 2 mins.",
    ),
    StepDefinition(name="complete", instructions="Summarize accomplishments."),
)


class StepConfigModel(BaseModel):
    """One step as written in the YAML workflow file."""

    name: str = Field(min_length=1)
    needs_approval: bool = False
    allows_iteration: bool = False
    approval_prompt: str | None = None
    instructions: str | None = None

    def to_definition(self) -> StepDefinition:
        return StepDefinition(
            name=self.name,
            requires_approval=self.needs_approval,
            allows_iteration=self.allows_iteration,
            approval_prompt=self.approval_prompt or "",
            instructions=self.instructions or "",
        )


class WorkflowConfigModel(BaseModel):
    name: str = "default"
    description: str = ""
    steps: list[StepConfigModel] = Field(default_factory=list)


@dataclass(frozen=True, slots=True)
class StepCatalog:
    """An ordered, immutable sequence of step definitions."""

    name: str
    description: str
    steps: tuple[StepDefinition, ...]

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError("A step catalog needs at least one step")
        names = [s.name for s in self.steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Step names must be unique: {names}")

    @classmethod
    def from_definitions(
        cls, steps: Sequence[StepDefinition], *, name: str = "custom", description: str = ""
    ) -> StepCatalog:
        return cls(name=name, description=description, steps=tuple(steps))

    @classmethod
    def default(cls) -> StepCatalog:
        return cls(name="default", description="Default workflow", steps=DEFAULT_STEPS)

    def names(self) -> list[str]:
        return [s.name for s in self.steps]


def load_step_catalog(path: Path | None) -> StepCatalog:
    """Load the catalog from YAML, falling back to the default sequence."""

    if path is None or not path.exists():
        logger.info("No workflow config found; using default steps", extra={"path": str(path)})
        return StepCatalog.default()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning(
            "Failed to read workflow config; using default steps",
            extra={"path": str(path), "error": str(e)},
        )
        return StepCatalog.default()

    if not isinstance(raw, dict):
        logger.warning(
            "Workflow config has unexpected shape; using default steps",
            extra={"path": str(path)},
        )
        return StepCatalog.default()

    try:
        config = WorkflowConfigModel.model_validate(raw)
        if not config.steps:
            logger.info("Workflow config defines no steps; using default steps")
            return StepCatalog.default()
        catalog = StepCatalog(
            name=config.name,
            description=config.description,
            steps=tuple(s.to_definition() for s in config.steps),
        )
    except (ValidationError, ValueError) as e:
        logger.warning(
            "Workflow config is invalid; using default steps",
            extra={"path": str(path), "error": str(e)},
        )
        return StepCatalog.default()

    logger.info(
        "Workflow config loaded",
        extra={"path": str(path), "workflow": catalog.name, "steps": catalog.names()},
    )
    return catalog
