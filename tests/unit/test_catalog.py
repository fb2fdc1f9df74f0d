"""Unit tests for the step catalog and its YAML loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from agent_workflow_tracker.tracker.workflow.catalog import (
    DEFAULT_APPROVAL_PROMPTS,
    StepCatalog,
    StepDefinition,
    load_step_catalog,
)


def test_default_catalog_sequence() -> None:
    catalog = StepCatalog.default()

    assert catalog.names() == ["plan", "criteria", "execute", "verify", "pr", "review", "complete"]
    gated = [s.name for s in catalog.steps if s.requires_approval]
    assert gated == ["plan", "criteria", "review"]
    not_iterable = [s.name for s in catalog.steps if not s.allows_iteration]
    assert not_iterable == ["pr", "complete"]


def test_gated_steps_fall_back_to_named_prompt() -> None:
    assert StepDefinition(name="review", requires_approval=True).resolved_approval_prompt() == (
        DEFAULT_APPROVAL_PROMPTS["review"]
    )
    assert StepDefinition(name="deploy", requires_approval=True).resolved_approval_prompt() == ""
    assert StepDefinition(name="plan").resolved_approval_prompt() == ""
    assert (
        StepDefinition(name="plan", requires_approval=True, approval_prompt="OK?")
        .resolved_approval_prompt()
        == "OK?"
    )


def test_catalog_rejects_empty_or_duplicate_steps() -> None:
    with pytest.raises(ValueError):
        StepCatalog.from_definitions([])
    with pytest.raises(ValueError):
        StepCatalog.from_definitions([StepDefinition(name="a"), StepDefinition(name="a")])


def test_load_yaml_catalog(tmp_path: Path) -> None:
    path = tmp_path / "workflow.yaml"
    path.write_text(
        """
name: docs
description: Documentation changes
steps:
  - name: outline
    needs_approval: true
    allows_iteration: true
    approval_prompt: Is the outline right?
  - name: write
    allows_iteration: true
    instructions: Write the pages.
  - name: publish
""".lstrip(),
        encoding="utf-8",
    )

    catalog = load_step_catalog(path)

    assert catalog.name == "docs"
    assert catalog.names() == ["outline", "write", "publish"]
    outline, write, publish = catalog.steps
    assert outline.requires_approval is True
    assert outline.resolved_approval_prompt() == "Is the outline right?"
    assert write.instructions == "Write the pages."
    assert publish.requires_approval is False
    assert publish.allows_iteration is False


@pytest.mark.parametrize(
    "text",
    [
        "steps: [unclosed",
        "- just\n- a list\n",
        "name: empty\nsteps: []\n",
        "steps:\n  - needs_approval: true\n",
        "steps:\n  - name: a\n  - name: a\n",
    ],
)
def test_unusable_yaml_falls_back_to_default(tmp_path: Path, text: str) -> None:
    path = tmp_path / "workflow.yaml"
    path.write_text(text, encoding="utf-8")

    assert load_step_catalog(path) == StepCatalog.default()


def test_missing_file_uses_default(tmp_path: Path) -> None:
    assert load_step_catalog(tmp_path / "nope.yaml") == StepCatalog.default()
    assert load_step_catalog(None) == StepCatalog.default()
