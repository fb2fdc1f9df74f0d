"""MCP server exposing the workflow commands as tools over stdio.

Each tool is a thin wrapper over `CommandDispatcher.dispatch`; the response
envelope is returned as pretty-printed JSON text. Engine errors come back as
envelopes too, so the session never ends because of a rejected command.
"""

from __future__ import annotations

import json
from typing import Any

from mcp.server.fastmcp import FastMCP

from agent_workflow_tracker.server.dispatcher import CommandDispatcher

SERVER_NAME = "workflow-mcp"

INSTRUCTIONS = (
    "Workflow tracker for multi-step agent work. Call workflow_init with the task, "
    "follow the instructions of the current step, call workflow_next when the step is "
    "done, and STOP whenever a step is awaiting approval until the user approves or "
    "asks for another iteration."
)


def create_mcp_server(dispatcher: CommandDispatcher) -> FastMCP:
    mcp = FastMCP(name=SERVER_NAME, instructions=INSTRUCTIONS)

    def _call(operation: str, **arguments: Any) -> str:
        return json.dumps(dispatcher.dispatch(operation, arguments), indent=2, ensure_ascii=False)

    @mcp.tool(
        name="workflow_init",
        description=(
            "Initialize a new workflow with a task description. "
            "Returns workflow config and first step instructions."
        ),
    )
    def workflow_init(task: str) -> str:
        return _call("init", task=task)

    @mcp.tool(
        name="workflow_status",
        description="Get current workflow status, progress, and step instructions",
    )
    def workflow_status() -> str:
        return _call("status")

    @mcp.tool(name="workflow_step", description="Update workflow step status")
    def workflow_step(step: str, status: str) -> str:
        return _call("set_step", step=step, status=status)

    @mcp.tool(
        name="workflow_blocked",
        description=(
            "Mark workflow as blocked due to external dependencies (not for approval gates)"
        ),
    )
    def workflow_blocked(reason: str) -> str:
        return _call("blocked", reason=reason)

    @mcp.tool(
        name="workflow_next",
        description=(
            "Request to move to the next step. If step requires approval, sets status to "
            "awaiting_approval. Otherwise moves to next step."
        ),
    )
    def workflow_next() -> str:
        return _call("next")

    @mcp.tool(
        name="workflow_approve",
        description=(
            "Approve the current step and move to the next step. "
            "Only works when step is awaiting_approval."
        ),
    )
    def workflow_approve() -> str:
        return _call("approve")

    @mcp.tool(
        name="workflow_iterate",
        description=(
            "Provide feedback and iterate on the current step. "
            "Keeps you on the same step to revise based on feedback."
        ),
    )
    def workflow_iterate(feedback: str = "") -> str:
        return _call("iterate", feedback=feedback)

    @mcp.tool(
        name="workflow_set_criteria",
        description="Set verification criteria to be checked in the verify step",
    )
    def workflow_set_criteria(criteria: list[str]) -> str:
        return _call("set_criteria", criteria=criteria)

    @mcp.tool(name="workflow_set_plan", description="Store the implementation plan")
    def workflow_set_plan(plan: str) -> str:
        return _call("set_plan", plan=plan)

    @mcp.tool(
        name="workflow_set_artifact",
        description=(
            "Store an artifact (plan, criteria, test results, etc.) in the workflow state. "
            "Artifacts are keyed by type and can be retrieved later."
        ),
    )
    def workflow_set_artifact(type: str, content: str | list[str] | dict[str, Any]) -> str:  # noqa: A002
        return _call("set_artifact", type=type, content=content)

    @mcp.tool(name="workflow_get_artifact", description="Retrieve a stored artifact by type")
    def workflow_get_artifact(type: str) -> str:  # noqa: A002
        return _call("get_artifact", type=type)

    @mcp.tool(
        name="workflow_set_pr",
        description=(
            "Set the PR number for tracking. Used by the review step to monitor comments."
        ),
    )
    def workflow_set_pr(pr_number: int, pr_url: str = "") -> str:
        return _call("set_pr", pr_number=pr_number, pr_url=pr_url)

    @mcp.tool(
        name="workflow_check_pr",
        description=(
            "Check if there are new PR comments since last check. "
            "Returns comment status and suggests next action."
        ),
    )
    def workflow_check_pr(comment_count: int) -> str:
        return _call("check_pr", comment_count=comment_count)

    return mcp
