"""PostgreSQL implementation of the workflow repository."""

from __future__ import annotations

import json
import uuid
from typing import Any

import asyncpg

from ..contracts import ExecutionStatus, StepSpec, WorkflowPlan, utcnow
from ..exceptions import PersistenceFailure
from .models import (
    AnalyticsOverview,
    Execution,
    ExecutionDetail,
    ExecutionStep,
    ExecutionSummary,
)
from .repository import WorkflowRepository

_TERMINAL = [ExecutionStatus.COMPLETED.value, ExecutionStatus.FAILED.value]


def _json(value: Any) -> Any:
    # asyncpg hands JSONB back as text unless a codec is registered
    return json.loads(value) if isinstance(value, str) else value


class PostgresWorkflowRepository(WorkflowRepository):
    """Persist workflows and executions using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                original_prompt TEXT,
                steps JSONB NOT NULL,
                created_at TIMESTAMPTZ NOT NULL
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_executions (
                id TEXT PRIMARY KEY,
                workflow_id TEXT NOT NULL REFERENCES workflows(id),
                status TEXT NOT NULL,
                started_at TIMESTAMPTZ NOT NULL,
                completed_at TIMESTAMPTZ,
                error_message TEXT
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS execution_steps (
                id TEXT PRIMARY KEY,
                execution_id TEXT NOT NULL REFERENCES workflow_executions(id),
                step_index INTEGER NOT NULL,
                name TEXT NOT NULL,
                agent_type TEXT NOT NULL,
                status TEXT NOT NULL,
                result JSONB,
                error_message TEXT,
                started_at TIMESTAMPTZ,
                completed_at TIMESTAMPTZ
            )
            """
        )

    async def _execute(self, query: str, *params: Any) -> None:
        conn = await self._connect()
        try:
            await conn.execute(query, *params)
        except asyncpg.PostgresError as e:
            raise PersistenceFailure(str(e)) from e
        finally:
            await conn.close()

    async def _fetch(self, query: str, *params: Any) -> list[asyncpg.Record]:
        conn = await self._connect()
        try:
            return await conn.fetch(query, *params)
        finally:
            await conn.close()

    async def _fetchrow(self, query: str, *params: Any) -> asyncpg.Record | None:
        conn = await self._connect()
        try:
            return await conn.fetchrow(query, *params)
        finally:
            await conn.close()

    @staticmethod
    def _row_to_plan(row: asyncpg.Record) -> WorkflowPlan:
        return WorkflowPlan(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            original_prompt=row["original_prompt"] or "",
            steps=tuple(StepSpec.model_validate(s) for s in _json(row["steps"])),
            created_at=row["created_at"],
        )

    # ------------------------------------------------------------------
    async def create_workflow(self, plan: WorkflowPlan) -> None:
        await self._execute(
            """
            INSERT INTO workflows (id, name, description, original_prompt, steps, created_at)
            VALUES ($1, $2, $3, $4, $5, $6)
            """,
            plan.id,
            plan.name,
            plan.description,
            plan.original_prompt,
            json.dumps([s.model_dump(mode="json", by_alias=True) for s in plan.steps]),
            plan.created_at,
        )

    async def get_workflow(self, workflow_id: str) -> WorkflowPlan | None:
        row = await self._fetchrow("SELECT * FROM workflows WHERE id = $1", workflow_id)
        return self._row_to_plan(row) if row else None

    async def list_workflows(self) -> list[WorkflowPlan]:
        rows = await self._fetch("SELECT * FROM workflows ORDER BY created_at DESC")
        return [self._row_to_plan(r) for r in rows]

    async def create_execution(self, workflow_id: str) -> Execution:
        execution = Execution(
            id=str(uuid.uuid4()),
            workflow_id=workflow_id,
            status=ExecutionStatus.RUNNING,
            started_at=utcnow(),
        )
        await self._execute(
            "INSERT INTO workflow_executions (id, workflow_id, status, started_at) VALUES ($1, $2, $3, $4)",
            execution.id,
            workflow_id,
            execution.status.value,
            execution.started_at,
        )
        return execution

    async def create_execution_step(
        self, execution_id: str, index: int, spec: StepSpec
    ) -> ExecutionStep:
        step = ExecutionStep(
            id=str(uuid.uuid4()),
            execution_id=execution_id,
            step_index=index,
            name=spec.name,
            agent_type=spec.agent_type,
            status=ExecutionStatus.RUNNING,
            started_at=utcnow(),
        )
        await self._execute(
            """
            INSERT INTO execution_steps (id, execution_id, step_index, name, agent_type, status, started_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            """,
            step.id,
            execution_id,
            index,
            step.name,
            step.agent_type.value,
            step.status.value,
            step.started_at,
        )
        return step

    async def update_execution_step(
        self,
        step_id: str,
        status: ExecutionStatus,
        result: Any = None,
        error: str | None = None,
    ) -> None:
        status = ExecutionStatus(status)
        await self._execute(
            """
            UPDATE execution_steps
            SET status = $1, result = $2, error_message = $3, completed_at = $4
            WHERE id = $5 AND status <> ALL($6::text[])
            """,
            status.value,
            json.dumps(result) if result is not None else None,
            error,
            utcnow() if status.is_terminal else None,
            step_id,
            _TERMINAL,
        )

    async def update_execution(
        self, execution_id: str, status: ExecutionStatus, error: str | None = None
    ) -> None:
        status = ExecutionStatus(status)
        await self._execute(
            """
            UPDATE workflow_executions
            SET status = $1, error_message = $2, completed_at = $3
            WHERE id = $4 AND status <> ALL($5::text[])
            """,
            status.value,
            error,
            utcnow() if status.is_terminal else None,
            execution_id,
            _TERMINAL,
        )

    async def get_execution(self, execution_id: str) -> ExecutionDetail | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT * FROM workflow_executions WHERE id = $1", execution_id
            )
            if not row:
                return None
            step_rows = await conn.fetch(
                "SELECT * FROM execution_steps WHERE execution_id = $1 ORDER BY step_index",
                execution_id,
            )
        finally:
            await conn.close()
        steps = [
            ExecutionStep(
                id=r["id"],
                execution_id=r["execution_id"],
                step_index=r["step_index"],
                name=r["name"],
                agent_type=r["agent_type"],
                status=r["status"],
                result=_json(r["result"]),
                error_message=r["error_message"],
                started_at=r["started_at"],
                completed_at=r["completed_at"],
            )
            for r in step_rows
        ]
        return ExecutionDetail(
            id=row["id"],
            workflow_id=row["workflow_id"],
            status=row["status"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            error_message=row["error_message"],
            steps=steps,
        )

    async def list_executions(self) -> list[ExecutionSummary]:
        rows = await self._fetch(
            """
            SELECT e.*, w.name AS workflow_name
            FROM workflow_executions e
            LEFT JOIN workflows w ON e.workflow_id = w.id
            ORDER BY e.started_at DESC
            """
        )
        return [
            ExecutionSummary(
                id=r["id"],
                workflow_id=r["workflow_id"],
                status=r["status"],
                started_at=r["started_at"],
                completed_at=r["completed_at"],
                error_message=r["error_message"],
                workflow_name=r["workflow_name"],
            )
            for r in rows
        ]

    async def get_analytics(self) -> AnalyticsOverview:
        conn = await self._connect()
        try:
            total_workflows = await conn.fetchval("SELECT COUNT(*) FROM workflows")
            status_rows = await conn.fetch(
                "SELECT status, COUNT(*) AS count FROM workflow_executions GROUP BY status"
            )
        finally:
            await conn.close()
        return AnalyticsOverview.from_counts(
            total_workflows, [(r["status"], r["count"]) for r in status_rows]
        )
