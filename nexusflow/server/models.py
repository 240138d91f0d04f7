"""Request and response bodies for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..persistence import AnalyticsOverview, StatusCount


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateWorkflowRequest(BaseModel):
    prompt: str = Field(..., description="Natural-language description of the workflow")


class ExecuteRequest(_CamelModel):
    workflow_id: str


class ExecuteResponse(_CamelModel):
    execution_id: str


class AnalyticsResponse(_CamelModel):
    total_workflows: int
    total_executions: int
    success_rate: int
    status_breakdown: list[StatusCount]

    @classmethod
    def from_overview(cls, overview: AnalyticsOverview) -> "AnalyticsResponse":
        return cls(**overview.model_dump())
