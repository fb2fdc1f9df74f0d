"""CLI entrypoint for the workflow tracker.

`serve-mcp` runs the MCP stdio server, `serve-http` the REST API. Every other
subcommand runs a single workflow command against the persisted snapshot and
prints the JSON response.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from agent_workflow_tracker import __version__
from agent_workflow_tracker.server.dispatcher import CommandDispatcher
from agent_workflow_tracker.tracker.config import TrackerSettings
from agent_workflow_tracker.tracker.logging import configure_logging
from agent_workflow_tracker.tracker.workflow.engine import WorkflowEngine
from agent_workflow_tracker.tracker.workflow.state_machine import StepStatus

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_REJECTED = 3


def _add_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    name: str,
    *,
    operation: str,
    help: str,  # noqa: A002
    arg_names: tuple[str, ...] = (),
) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(name, help=help)
    parser.set_defaults(operation=operation, arg_names=arg_names)
    return parser


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-tracker",
        description="Approval-gated workflow tracker for automation agents",
    )
    parser.add_argument(
        "--version", action="version", version=f"agent-workflow-tracker {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve-mcp", help="Serve the workflow tools over MCP (stdio)")

    serve_http = subparsers.add_parser("serve-http", help="Serve the workflow REST API")
    serve_http.add_argument("--host", default=None, help="Bind address (WORKFLOW_HTTP_HOST)")
    serve_http.add_argument("--port", type=int, default=None, help="Port (WORKFLOW_HTTP_PORT)")

    init = _add_command(
        subparsers, "init", operation="init", help="Start a new workflow", arg_names=("task",)
    )
    init.add_argument("--task", required=True, help="Description of the task")

    _add_command(subparsers, "status", operation="status", help="Show workflow status")

    set_step = _add_command(
        subparsers,
        "set-step",
        operation="set_step",
        help="Override the status of one step",
        arg_names=("step", "status"),
    )
    set_step.add_argument("--step", required=True, help="Step name")
    set_step.add_argument(
        "--status",
        required=True,
        choices=[s.value for s in StepStatus],
        help="New status",
    )

    blocked = _add_command(
        subparsers,
        "blocked",
        operation="blocked",
        help="Mark the current step as blocked on an external dependency",
        arg_names=("reason",),
    )
    blocked.add_argument("--reason", required=True, help="Reason for blocking")

    _add_command(
        subparsers,
        "next",
        operation="next",
        help="Finish the current step (or request its approval)",
    )
    _add_command(subparsers, "approve", operation="approve", help="Approve the waiting step")

    iterate = _add_command(
        subparsers,
        "iterate",
        operation="iterate",
        help="Send the current step back for rework",
        arg_names=("feedback",),
    )
    iterate.add_argument("--feedback", default="", help="What needs to change")

    set_artifact = _add_command(
        subparsers,
        "set-artifact",
        operation="set_artifact",
        help="Store an artifact",
        arg_names=("type", "content"),
    )
    set_artifact.add_argument("--type", required=True, help="Artifact type, e.g. 'plan'")
    content = set_artifact.add_mutually_exclusive_group(required=True)
    content.add_argument("--content", dest="content", help="Text content")
    content.add_argument(
        "--content-json",
        dest="content",
        type=json.loads,
        help="JSON content (a list of strings or an object)",
    )

    get_artifact = _add_command(
        subparsers,
        "get-artifact",
        operation="get_artifact",
        help="Show one artifact",
        arg_names=("type",),
    )
    get_artifact.add_argument("--type", required=True, help="Artifact type")

    set_criteria = _add_command(
        subparsers,
        "set-criteria",
        operation="set_criteria",
        help="Store the verification criteria",
        arg_names=("criteria",),
    )
    set_criteria.add_argument(
        "--criterion",
        dest="criteria",
        action="append",
        required=True,
        help="One criterion (repeat for more)",
    )

    set_plan = _add_command(
        subparsers,
        "set-plan",
        operation="set_plan",
        help="Store the implementation plan",
        arg_names=("plan",),
    )
    set_plan.add_argument("--plan", required=True, help="Plan text")

    set_pr = _add_command(
        subparsers,
        "set-pr",
        operation="set_pr",
        help="Track a pull request",
        arg_names=("pr_number", "pr_url"),
    )
    set_pr.add_argument("--number", dest="pr_number", type=int, required=True, help="PR number")
    set_pr.add_argument("--url", dest="pr_url", default="", help="PR URL")

    check_pr = _add_command(
        subparsers,
        "check-pr",
        operation="check_pr",
        help="Report the PR comment count and get polling advice",
        arg_names=("comment_count",),
    )
    check_pr.add_argument(
        "--comment-count", type=int, required=True, help="Current number of PR comments"
    )

    return parser


def _serve_mcp(engine: WorkflowEngine) -> int:
    from agent_workflow_tracker.server.mcp_server import create_mcp_server

    server = create_mcp_server(CommandDispatcher(engine))
    logger.info("Serving workflow tools over MCP stdio")
    server.run(transport="stdio")
    return EXIT_OK


def _serve_http(engine: WorkflowEngine, host: str | None, port: int | None) -> int:
    import uvicorn

    from agent_workflow_tracker.server.app import create_app
    from agent_workflow_tracker.server.config import ServerSettings

    server_settings = ServerSettings()
    app = create_app(engine=engine, settings=server_settings)
    uvicorn.run(
        app,
        host=host or server_settings.host,
        port=port or server_settings.port,
        log_config=None,
    )
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = TrackerSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_CONFIG

    configure_logging(settings.log_level)

    try:
        engine = WorkflowEngine.from_settings(settings)

        if args.command == "serve-mcp":
            return _serve_mcp(engine)

        if args.command == "serve-http":
            return _serve_http(engine, args.host, args.port)

        arguments = {name: getattr(args, name) for name in args.arg_names}
        result = CommandDispatcher(engine).dispatch(args.operation, arguments)
        print(json.dumps(result, indent=2, ensure_ascii=False))
        return EXIT_REJECTED if "error" in result else EXIT_OK

    except Exception:
        logger.exception("Command failed")
        return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
