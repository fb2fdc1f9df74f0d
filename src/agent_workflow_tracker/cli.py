"""Console entrypoint.

The CLI itself is implemented in `agent_workflow_tracker.tracker.main`.
"""

from __future__ import annotations

from agent_workflow_tracker.tracker.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
