"""Agent Workflow Tracker.

Drives an automation agent through a fixed sequence of steps with human
approval gates, revision loops, artifacts and PR-review polling advice.
Commands arrive over MCP (stdio), HTTP or the CLI.
"""

__version__ = "0.1.0"

from agent_workflow_tracker.tracker.config import TrackerSettings

__all__ = ["__version__", "TrackerSettings"]
