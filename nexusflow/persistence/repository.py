"""Repository abstraction for workflow and execution persistence."""

from __future__ import annotations

from typing import Any, Protocol

from ..contracts import ExecutionStatus, StepSpec, WorkflowPlan
from .models import (
    AnalyticsOverview,
    Execution,
    ExecutionDetail,
    ExecutionStep,
    ExecutionSummary,
)


class WorkflowRepository(Protocol):
    """Protocol for persistence backends.

    Updates addressed to an execution or step that already reached a terminal
    status are ignored.
    """

    async def create_workflow(self, plan: WorkflowPlan) -> None:
        """Persist a newly planned workflow."""

    async def get_workflow(self, workflow_id: str) -> WorkflowPlan | None:
        """Retrieve a workflow plan by id."""

    async def list_workflows(self) -> list[WorkflowPlan]:
        """Return all workflows, newest first."""

    async def create_execution(self, workflow_id: str) -> Execution:
        """Create a running execution for ``workflow_id``."""

    async def create_execution_step(
        self, execution_id: str, index: int, spec: StepSpec
    ) -> ExecutionStep:
        """Create a running step record at position ``index``."""

    async def update_execution_step(
        self,
        step_id: str,
        status: ExecutionStatus,
        result: Any = None,
        error: str | None = None,
    ) -> None:
        """Record a step's status change."""

    async def update_execution(
        self, execution_id: str, status: ExecutionStatus, error: str | None = None
    ) -> None:
        """Record an execution's status change."""

    async def get_execution(self, execution_id: str) -> ExecutionDetail | None:
        """Retrieve an execution with its ordered steps."""

    async def list_executions(self) -> list[ExecutionSummary]:
        """Return all executions, newest first."""

    async def get_analytics(self) -> AnalyticsOverview:
        """Aggregate workflow and execution counts."""
