"""In-memory implementation of the workflow repository."""

from __future__ import annotations

import asyncio
import uuid
from collections import Counter
from typing import Any, Dict, List

from ..contracts import ExecutionStatus, StepSpec, WorkflowPlan, utcnow
from .models import (
    AnalyticsOverview,
    Execution,
    ExecutionDetail,
    ExecutionStep,
    ExecutionSummary,
)
from .repository import WorkflowRepository


class InMemoryWorkflowRepository(WorkflowRepository):
    """Store workflows and executions in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, WorkflowPlan] = {}
        self._executions: Dict[str, Execution] = {}
        self._steps: Dict[str, ExecutionStep] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    async def create_workflow(self, plan: WorkflowPlan) -> None:
        async with self._lock:
            self._workflows[plan.id] = plan

    async def get_workflow(self, workflow_id: str) -> WorkflowPlan | None:
        return self._workflows.get(workflow_id)

    async def list_workflows(self) -> list[WorkflowPlan]:
        return list(reversed(self._workflows.values()))

    async def create_execution(self, workflow_id: str) -> Execution:
        execution = Execution(
            id=str(uuid.uuid4()),
            workflow_id=workflow_id,
            status=ExecutionStatus.RUNNING,
            started_at=utcnow(),
        )
        async with self._lock:
            self._executions[execution.id] = execution
        return execution.model_copy()

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
        async with self._lock:
            self._steps[step.id] = step
        return step.model_copy()

    async def update_execution_step(
        self,
        step_id: str,
        status: ExecutionStatus,
        result: Any = None,
        error: str | None = None,
    ) -> None:
        status = ExecutionStatus(status)
        async with self._lock:
            step = self._steps.get(step_id)
            if step is None or step.status.is_terminal:
                return
            step.status = status
            step.result = result
            step.error_message = error
            if status.is_terminal:
                step.completed_at = utcnow()

    async def update_execution(
        self, execution_id: str, status: ExecutionStatus, error: str | None = None
    ) -> None:
        status = ExecutionStatus(status)
        async with self._lock:
            execution = self._executions.get(execution_id)
            if execution is None or execution.status.is_terminal:
                return
            execution.status = status
            execution.error_message = error
            if status.is_terminal:
                execution.completed_at = utcnow()

    async def get_execution(self, execution_id: str) -> ExecutionDetail | None:
        execution = self._executions.get(execution_id)
        if execution is None:
            return None
        steps: List[ExecutionStep] = sorted(
            (s.model_copy() for s in self._steps.values() if s.execution_id == execution_id),
            key=lambda s: s.step_index,
        )
        return ExecutionDetail(**execution.model_dump(), steps=steps)

    async def list_executions(self) -> list[ExecutionSummary]:
        summaries = []
        for execution in reversed(self._executions.values()):
            workflow = self._workflows.get(execution.workflow_id)
            summaries.append(
                ExecutionSummary(
                    **execution.model_dump(),
                    workflow_name=workflow.name if workflow else None,
                )
            )
        return summaries

    async def get_analytics(self) -> AnalyticsOverview:
        counts = Counter(e.status.value for e in self._executions.values())
        return AnalyticsOverview.from_counts(len(self._workflows), counts.items())
