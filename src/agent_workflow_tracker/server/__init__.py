"""Transport adapters for the workflow tracker.

Design intent:
- Keep workflow logic in `agent_workflow_tracker.tracker.workflow`
- Keep transport concerns (argument validation, MCP tools, HTTP routing) here
"""

from __future__ import annotations

__all__ = ["CommandDispatcher", "create_app", "create_mcp_server"]

from agent_workflow_tracker.server.app import create_app
from agent_workflow_tracker.server.dispatcher import CommandDispatcher
from agent_workflow_tracker.server.mcp_server import create_mcp_server
