"""Core contracts for nexusflow workflows."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentType(str, Enum):
    """Category of agent responsible for a step."""

    DATA = "data"
    COMMUNICATION = "communication"
    INTEGRATION = "integration"
    ANALYSIS = "analysis"
    VALIDATION = "validation"
    RECOVERY = "recovery"
    ORCHESTRATOR = "orchestrator"


class ExecutionStatus(str, Enum):
    """Lifecycle state shared by executions and their steps.

    ``pending -> running -> completed | failed``. Terminal states never
    transition again.
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)


class StepSpec(BaseModel):
    """Defines one step in a workflow plan."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    name: str
    description: str = ""
    agent_type: AgentType
    action: str
    params: Dict[str, Any] = Field(default_factory=dict)


class PlanDraft(BaseModel):
    """Planner output before it is stored as a :class:`WorkflowPlan`."""

    name: str
    description: str = ""
    steps: list[StepSpec] = Field(default_factory=list)


class WorkflowPlan(BaseModel):
    """Immutable decomposition of a workflow into ordered steps."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    original_prompt: str = ""
    steps: Tuple[StepSpec, ...] = ()
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_draft(cls, draft: PlanDraft, prompt: str) -> "WorkflowPlan":
        return cls(
            name=draft.name,
            description=draft.description,
            original_prompt=prompt,
            steps=tuple(draft.steps),
        )


class StepOutcome(BaseModel):
    """Result of running a single step."""

    success: bool
    result: Optional[Any] = None
    error: Optional[str] = None


class _Event(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation: camelCase keys, null fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ExecutionUpdate(_Event):
    """Execution-level status change."""

    type: Literal["execution_update"] = "execution_update"
    execution_id: str
    status: ExecutionStatus
    error: Optional[str] = None


class StepUpdate(_Event):
    """Step-level status change."""

    type: Literal["step_update"] = "step_update"
    execution_id: str
    step_id: str
    step_index: int
    status: ExecutionStatus
    result: Optional[Any] = None
    error: Optional[str] = None


NotificationEvent = Annotated[
    Union[ExecutionUpdate, StepUpdate], Field(discriminator="type")
]
