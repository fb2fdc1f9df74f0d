"""Unit tests for the PR comment-poll throttle."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from agent_workflow_tracker.tracker.workflow.engine import WorkflowEngine
from agent_workflow_tracker.tracker.workflow.errors import NoPRSet
from agent_workflow_tracker.tracker.workflow.throttle import PollAction, decide_poll_action

T0 = datetime(2025, 1, 1, tzinfo=UTC)


def test_new_comments_take_priority_over_quiet_window() -> None:
    decision = decide_poll_action(
        comment_count=5,
        last_comment_count=2,
        last_check_at=T0,
        now=T0 + timedelta(minutes=10),
    )

    assert decision.action is PollAction.ADDRESS_COMMENTS
    assert decision.new_comments == 3
    assert decision.message.startswith("Found 3 new comment(s)")


def test_quiet_window_elapsed_is_ready_for_approval() -> None:
    decision = decide_poll_action(
        comment_count=2,
        last_comment_count=2,
        last_check_at=T0,
        now=T0 + timedelta(seconds=60),
    )

    assert decision.action is PollAction.READY_FOR_APPROVAL
    assert decision.wait_seconds is None
    assert "60+ seconds" in decision.message


def test_inside_quiet_window_reports_remaining_wait() -> None:
    decision = decide_poll_action(
        comment_count=0,
        last_comment_count=0,
        last_check_at=T0,
        now=T0 + timedelta(seconds=20.5),
    )

    assert decision.action is PollAction.WAIT
    assert decision.wait_seconds == 39
    assert "Wait 39 seconds" in decision.message


def test_missing_or_future_check_time_counts_as_fresh_window() -> None:
    for last_check_at in (None, T0 + timedelta(seconds=30)):
        decision = decide_poll_action(
            comment_count=0,
            last_comment_count=0,
            last_check_at=last_check_at,
            now=T0,
        )
        assert decision.action is PollAction.WAIT
        assert decision.elapsed == timedelta(0)
        assert decision.wait_seconds == 60


def test_check_pr_requires_a_pr(engine: WorkflowEngine) -> None:
    engine.init("fix bug")

    with pytest.raises(NoPRSet) as exc:
        engine.check_pr(0)

    assert exc.value.to_json()["hint"] == "call workflow_set_pr first"


def test_check_pr_scenario(engine: WorkflowEngine, clock) -> None:
    engine.init("fix bug")
    engine.set_pr(7, "https://example.invalid/pr/7")

    clock.advance(10)
    first = engine.check_pr(2)
    assert first["action"] == "address_comments"
    assert first["has_new_comments"] is True
    assert first["new_comments"] == 2
    assert first["previous_count"] == 0

    clock.advance(20)
    second = engine.check_pr(2)
    assert second["action"] == "wait"
    assert second["wait_seconds"] == 40
    assert second["seconds_since_check"] == 20

    clock.advance(61)
    third = engine.check_pr(2)
    assert third["action"] == "ready_for_approval"
    assert "workflow_next" in str(third["message"])

    status = engine.status()
    assert status["pr_number"] == 7
    assert status["last_comment_count"] == 2


def test_set_pr_restarts_the_window(engine: WorkflowEngine, clock) -> None:
    engine.init("fix bug")
    engine.set_pr(1)
    engine.check_pr(3)

    clock.advance(120)
    engine.set_pr(2)
    result = engine.check_pr(0)

    assert result["pr_number"] == 2
    assert result["action"] == "wait"
    assert result["wait_seconds"] == 60
    assert engine.status()["pr_url"] == ""


def test_quiet_window_is_configurable(clock) -> None:
    engine = WorkflowEngine(clock=clock, pr_quiet_window=timedelta(seconds=5))
    engine.init("fix bug")
    engine.set_pr(3)

    clock.advance(5)

    assert engine.check_pr(0)["action"] == "ready_for_approval"
