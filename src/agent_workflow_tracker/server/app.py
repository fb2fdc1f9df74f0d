"""FastAPI app factory.

Endpoints are thin wrappers over the command dispatcher, so the
HTTP surface accepts exactly the same commands as the MCP tools.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from agent_workflow_tracker import __version__
from agent_workflow_tracker.server.config import ServerSettings
from agent_workflow_tracker.server.dispatcher import CommandDispatcher
from agent_workflow_tracker.tracker.config import TrackerSettings
from agent_workflow_tracker.tracker.workflow.engine import WorkflowEngine
from agent_workflow_tracker.tracker.workflow.errors import (
    ArtifactNotFound,
    InvalidArguments,
    NotInitialized,
    PersistenceError,
    UnknownOperation,
    WorkflowError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[WorkflowError], int] = {
    NotInitialized: 404,
    ArtifactNotFound: 404,
    UnknownOperation: 404,
    InvalidArguments: 422,
    PersistenceError: 503,
}


def _http_error(e: WorkflowError) -> HTTPException:
    # Everything else is a workflow-state conflict.
    return HTTPException(status_code=_STATUS_CODES.get(type(e), 409), detail=e.to_json())


def create_app(
    engine: WorkflowEngine | None = None, settings: ServerSettings | None = None
) -> FastAPI:
    settings = settings or ServerSettings()
    if engine is None:
        engine = WorkflowEngine.from_settings(TrackerSettings())
    dispatcher = CommandDispatcher(engine)

    app = FastAPI(
        title="Agent Workflow Tracker",
        version=__version__,
        description="REST API over the workflow tracker command surface.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _execute(operation: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            return dispatcher.execute(operation, arguments)
        except WorkflowError as e:
            logger.info(
                "Command rejected",
                extra={"operation": operation, "code": e.code, "error": e.message},
            )
            raise _http_error(e) from e

    @app.get("/api/health")
    def health() -> dict[str, Any]:
        state = engine.state
        return {
            "status": "ok",
            "version": __version__,
            "workflowId": state.id if state is not None else None,
            "operations": dispatcher.operations(),
        }

    @app.get("/api/workflow")
    def workflow_status() -> dict[str, Any]:
        return _execute("status")

    @app.get("/api/workflow/artifacts/{artifact_type}")
    def get_artifact(artifact_type: str) -> dict[str, Any]:
        return _execute("get_artifact", {"type": artifact_type})

    @app.post("/api/workflow/{command}")
    def run_command(
        command: str, arguments: dict[str, Any] | None = Body(default=None)
    ) -> dict[str, Any]:
        return _execute(command, arguments)

    return app
