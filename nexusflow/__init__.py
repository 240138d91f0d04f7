"""nexusflow: plan workflows from natural language and run them step by step."""

from .context import ExecutionContext
from .contracts import (
    AgentType,
    ExecutionStatus,
    ExecutionUpdate,
    PlanDraft,
    StepOutcome,
    StepSpec,
    StepUpdate,
    WorkflowPlan,
)
from .exceptions import (
    ExecutionNotFound,
    NotFound,
    PersistenceFailure,
    PlanningFailure,
    StepFailure,
    WorkflowNotFound,
)
from .notifiers import get_notifier
from .orchestrator import ExecutionOrchestrator
from .persistence import get_repository
from .planning import create_workflow_from_prompt
from .runner import StepRunner

__version__ = "0.1.0"
__all__ = [
    "AgentType",
    "ExecutionContext",
    "ExecutionNotFound",
    "ExecutionOrchestrator",
    "ExecutionStatus",
    "ExecutionUpdate",
    "NotFound",
    "PersistenceFailure",
    "PlanDraft",
    "PlanningFailure",
    "StepFailure",
    "StepOutcome",
    "StepRunner",
    "StepSpec",
    "StepUpdate",
    "WorkflowNotFound",
    "WorkflowPlan",
    "create_workflow_from_prompt",
    "get_notifier",
    "get_repository",
]
