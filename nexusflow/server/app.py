"""FastAPI app factory.

Endpoints are thin wrappers over the planning service, the repository and the
execution orchestrator. Live status events are pushed over ``/ws``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..agent import AgentPlanner, AgentStepExecutor
from ..config import NexusflowConfig, load_config
from ..contracts import WorkflowPlan
from ..exceptions import ExecutionNotFound, NotFound, PlanningFailure
from ..notifiers import BaseNotifier, FanoutNotifier, get_notifier
from ..notifiers.websocket import ConnectionManager
from ..orchestrator import ExecutionOrchestrator
from ..persistence import (
    ExecutionDetail,
    ExecutionSummary,
    WorkflowRepository,
    get_repository,
)
from ..planning import Planner, create_workflow_from_prompt
from ..runner import StepExecutor
from .models import (
    AnalyticsResponse,
    CreateWorkflowRequest,
    ExecuteRequest,
    ExecuteResponse,
)

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[NexusflowConfig] = None,
    repository: Optional[WorkflowRepository] = None,
    notifier: Optional[BaseNotifier] = None,
    planner: Optional[Planner] = None,
    executor: Optional[StepExecutor] = None,
) -> FastAPI:
    """Build the API.

    Collaborators not passed in are created from ``config``. Events always go
    to WebSocket clients; ``notifier`` (or a non in-memory notifier from the
    configuration) receives them as well.
    """
    config = config or load_config()
    repository = repository or get_repository(config=config)
    planner = planner or AgentPlanner(config.agents.planner_model)
    executor = executor or AgentStepExecutor(config.agents.executor_model)

    connections = ConnectionManager()
    if notifier is None and config.notifier.backend != "inmemory":
        notifier = get_notifier(config=config)
    broadcaster: BaseNotifier = (
        FanoutNotifier([connections, notifier]) if notifier is not None else connections
    )

    orchestrator = ExecutionOrchestrator(
        repository,
        broadcaster,
        executor,
        step_timeout=config.execution.step_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await orchestrator.shutdown()
        await broadcaster.disconnect()

    app = FastAPI(
        title="nexusflow",
        version="0.1.0",
        description="Plan workflows from natural language and run them step by step.",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.repository = repository
    app.state.orchestrator = orchestrator
    app.state.connections = connections

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(PlanningFailure)
    async def _planning_failed(request: Request, exc: PlanningFailure) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/workflows", response_model=list[WorkflowPlan])
    async def list_workflows() -> list[WorkflowPlan]:
        return await repository.list_workflows()

    @app.post("/api/workflows/create", response_model=WorkflowPlan)
    async def create_workflow(body: CreateWorkflowRequest) -> WorkflowPlan:
        return await create_workflow_from_prompt(body.prompt, planner, repository)

    @app.get("/api/executions", response_model=list[ExecutionSummary])
    async def list_executions() -> list[ExecutionSummary]:
        return await repository.list_executions()

    @app.get("/api/executions/{execution_id}", response_model=ExecutionDetail)
    async def get_execution(execution_id: str) -> ExecutionDetail:
        detail = await repository.get_execution(execution_id)
        if detail is None:
            raise ExecutionNotFound(execution_id)
        return detail

    @app.post("/api/executions/execute", response_model=ExecuteResponse)
    async def execute(body: ExecuteRequest) -> ExecuteResponse:
        execution_id = await orchestrator.start_execution(body.workflow_id)
        return ExecuteResponse(execution_id=execution_id)

    @app.get("/api/analytics/overview", response_model=AnalyticsResponse)
    async def analytics_overview() -> AnalyticsResponse:
        return AnalyticsResponse.from_overview(await repository.get_analytics())

    @app.websocket("/ws")
    async def events(websocket: WebSocket) -> None:
        await connections.connect_client(websocket)
        try:
            while True:
                # clients only listen; drain anything they send
                await websocket.receive_text()
        except WebSocketDisconnect:
            await connections.disconnect_client(websocket)

    return app
