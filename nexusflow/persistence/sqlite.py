"""SQLite implementation of the workflow repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

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

_TERMINAL = (ExecutionStatus.COMPLETED.value, ExecutionStatus.FAILED.value)


def _ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteWorkflowRepository(WorkflowRepository):
    """Persist workflows and executions using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        with self._lock:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS workflows (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    original_prompt TEXT,
                    steps_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS workflow_executions (
                    id TEXT PRIMARY KEY,
                    workflow_id TEXT NOT NULL REFERENCES workflows(id),
                    status TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    error_message TEXT
                );

                CREATE TABLE IF NOT EXISTS execution_steps (
                    id TEXT PRIMARY KEY,
                    execution_id TEXT NOT NULL REFERENCES workflow_executions(id),
                    step_index INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    agent_type TEXT NOT NULL,
                    status TEXT NOT NULL,
                    result_json TEXT,
                    error_message TEXT,
                    started_at TEXT,
                    completed_at TEXT
                );
                """
            )
            self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        with self._lock:
            try:
                cur = self._conn.cursor()
                cur.execute(query, params)
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise PersistenceFailure(str(e)) from e

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @staticmethod
    def _row_to_plan(row: sqlite3.Row) -> WorkflowPlan:
        return WorkflowPlan(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            original_prompt=row["original_prompt"] or "",
            steps=tuple(StepSpec.model_validate(s) for s in json.loads(row["steps_json"])),
            created_at=_ts(row["created_at"]),
        )

    @staticmethod
    def _row_to_step(row: sqlite3.Row) -> ExecutionStep:
        return ExecutionStep(
            id=row["id"],
            execution_id=row["execution_id"],
            step_index=row["step_index"],
            name=row["name"],
            agent_type=row["agent_type"],
            status=row["status"],
            result=json.loads(row["result_json"]) if row["result_json"] else None,
            error_message=row["error_message"],
            started_at=_ts(row["started_at"]),
            completed_at=_ts(row["completed_at"]),
        )

    # ------------------------------------------------------------------
    # Repository API
    async def create_workflow(self, plan: WorkflowPlan) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO workflows (id, name, description, original_prompt, steps_json, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            plan.id,
            plan.name,
            plan.description,
            plan.original_prompt,
            json.dumps([s.model_dump(mode="json", by_alias=True) for s in plan.steps]),
            plan.created_at.isoformat(),
        )

    async def get_workflow(self, workflow_id: str) -> WorkflowPlan | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT * FROM workflows WHERE id = ?", workflow_id
        )
        return self._row_to_plan(row) if row else None

    async def list_workflows(self) -> list[WorkflowPlan]:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT * FROM workflows ORDER BY created_at DESC, rowid DESC"
        )
        return [self._row_to_plan(r) for r in rows]

    async def create_execution(self, workflow_id: str) -> Execution:
        execution = Execution(
            id=str(uuid.uuid4()),
            workflow_id=workflow_id,
            status=ExecutionStatus.RUNNING,
            started_at=utcnow(),
        )
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO workflow_executions (id, workflow_id, status, started_at) VALUES (?, ?, ?, ?)",
            execution.id,
            workflow_id,
            execution.status.value,
            execution.started_at.isoformat(),
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
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO execution_steps (id, execution_id, step_index, name, agent_type, status, started_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            step.id,
            execution_id,
            index,
            step.name,
            step.agent_type.value,
            step.status.value,
            step.started_at.isoformat(),
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
        await asyncio.to_thread(
            self._execute,
            """
            UPDATE execution_steps
            SET status = ?, result_json = ?, error_message = ?, completed_at = ?
            WHERE id = ? AND status NOT IN (?, ?)
            """,
            status.value,
            json.dumps(result) if result is not None else None,
            error,
            utcnow().isoformat() if status.is_terminal else None,
            step_id,
            *_TERMINAL,
        )

    async def update_execution(
        self, execution_id: str, status: ExecutionStatus, error: str | None = None
    ) -> None:
        status = ExecutionStatus(status)
        await asyncio.to_thread(
            self._execute,
            """
            UPDATE workflow_executions
            SET status = ?, error_message = ?, completed_at = ?
            WHERE id = ? AND status NOT IN (?, ?)
            """,
            status.value,
            error,
            utcnow().isoformat() if status.is_terminal else None,
            execution_id,
            *_TERMINAL,
        )

    async def get_execution(self, execution_id: str) -> ExecutionDetail | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT * FROM workflow_executions WHERE id = ?",
            execution_id,
        )
        if not row:
            return None
        step_rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT * FROM execution_steps WHERE execution_id = ? ORDER BY step_index ASC",
            execution_id,
        )
        return ExecutionDetail(
            id=row["id"],
            workflow_id=row["workflow_id"],
            status=row["status"],
            started_at=_ts(row["started_at"]),
            completed_at=_ts(row["completed_at"]),
            error_message=row["error_message"],
            steps=[self._row_to_step(r) for r in step_rows],
        )

    async def list_executions(self) -> list[ExecutionSummary]:
        rows = await asyncio.to_thread(
            self._fetchall,
            """
            SELECT e.*, w.name AS workflow_name
            FROM workflow_executions e
            LEFT JOIN workflows w ON e.workflow_id = w.id
            ORDER BY e.started_at DESC, e.rowid DESC
            """,
        )
        return [
            ExecutionSummary(
                id=r["id"],
                workflow_id=r["workflow_id"],
                status=r["status"],
                started_at=_ts(r["started_at"]),
                completed_at=_ts(r["completed_at"]),
                error_message=r["error_message"],
                workflow_name=r["workflow_name"],
            )
            for r in rows
        ]

    async def get_analytics(self) -> AnalyticsOverview:
        total_row = await asyncio.to_thread(
            self._fetchone, "SELECT COUNT(*) AS count FROM workflows"
        )
        status_rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT status, COUNT(*) AS count FROM workflow_executions GROUP BY status",
        )
        return AnalyticsOverview.from_counts(
            total_row["count"], [(r["status"], r["count"]) for r in status_rows]
        )
