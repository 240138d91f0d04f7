"""Data models for persisted execution state."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from ..contracts import AgentType, ExecutionStatus


class Execution(BaseModel):
    """One run of a workflow plan."""

    id: str
    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    started_at: datetime
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None


class ExecutionSummary(Execution):
    """Execution row with the owning workflow's name."""

    workflow_name: Optional[str] = None


class ExecutionStep(BaseModel):
    """Record of an individual step within an execution."""

    id: str
    execution_id: str
    step_index: int
    name: str
    agent_type: AgentType
    status: ExecutionStatus = ExecutionStatus.PENDING
    result: Optional[Any] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ExecutionDetail(Execution):
    """Execution together with its steps in index order."""

    steps: list[ExecutionStep] = Field(default_factory=list)


class StatusCount(BaseModel):
    status: ExecutionStatus
    count: int


class AnalyticsOverview(BaseModel):
    """Aggregate counts over all workflows and executions."""

    total_workflows: int = 0
    total_executions: int = 0
    success_rate: int = 0
    status_breakdown: list[StatusCount] = Field(default_factory=list)

    @classmethod
    def from_counts(
        cls, total_workflows: int, status_counts: Iterable[tuple[str, int]]
    ) -> "AnalyticsOverview":
        breakdown = [
            StatusCount(status=ExecutionStatus(status), count=count)
            for status, count in status_counts
            if count
        ]
        total = sum(item.count for item in breakdown)
        completed = sum(
            item.count
            for item in breakdown
            if item.status == ExecutionStatus.COMPLETED
        )
        # half-up, so 62.5% reports as 63
        rate = math.floor(completed * 100 / total + 0.5) if total else 0
        return cls(
            total_workflows=total_workflows,
            total_executions=total,
            success_rate=rate,
            status_breakdown=breakdown,
        )
