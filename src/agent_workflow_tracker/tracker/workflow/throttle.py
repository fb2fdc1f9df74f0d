"""PR-poll throttle.

Turns a reported comment count plus the time since the previous check into
advice for the caller: address new comments, keep waiting, or move on to
approval. The advice is text only; nothing here schedules anything.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

DEFAULT_QUIET_WINDOW = timedelta(seconds=60)


class PollAction(str, Enum):
    ADDRESS_COMMENTS = "address_comments"
    READY_FOR_APPROVAL = "ready_for_approval"
    WAIT = "wait"


@dataclass(frozen=True, slots=True)
class PollDecision:
    action: PollAction
    message: str
    elapsed: timedelta
    previous_count: int
    comment_count: int
    wait_seconds: int | None = None

    @property
    def has_new_comments(self) -> bool:
        return self.comment_count > self.previous_count

    @property
    def new_comments(self) -> int:
        return max(self.comment_count - self.previous_count, 0)


def decide_poll_action(
    *,
    comment_count: int,
    last_comment_count: int,
    last_check_at: datetime | None,
    now: datetime,
    quiet_window: timedelta = DEFAULT_QUIET_WINDOW,
) -> PollDecision:
    """Pure decision function; the caller records `now` and `comment_count` afterwards."""

    # A missing check time counts as a fresh window.
    elapsed = now - last_check_at if last_check_at is not None else timedelta(0)
    if elapsed < timedelta(0):
        elapsed = timedelta(0)

    if comment_count > last_comment_count:
        delta = comment_count - last_comment_count
        return PollDecision(
            action=PollAction.ADDRESS_COMMENTS,
            message=f"Found {delta} new comment(s). Address the feedback, then check again.",
            elapsed=elapsed,
            previous_count=last_comment_count,
            comment_count=comment_count,
        )

    if elapsed >= quiet_window:
        quiet = int(quiet_window.total_seconds())
        return PollDecision(
            action=PollAction.READY_FOR_APPROVAL,
            message=(
                f"No new comments for {quiet}+ seconds. "
                "Ready to call workflow_next for approval."
            ),
            elapsed=elapsed,
            previous_count=last_comment_count,
            comment_count=comment_count,
        )

    remaining = math.floor((quiet_window - elapsed).total_seconds())
    return PollDecision(
        action=PollAction.WAIT,
        message=f"No new comments yet. Wait {remaining} seconds then check again.",
        elapsed=elapsed,
        previous_count=last_comment_count,
        comment_count=comment_count,
        wait_seconds=remaining,
    )
