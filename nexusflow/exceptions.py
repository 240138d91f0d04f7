"""Exception hierarchy for nexusflow."""

from __future__ import annotations

from typing import Optional


class NexusflowError(Exception):
    """Base class for all nexusflow errors."""


class NotFound(NexusflowError):
    """A referenced entity does not exist."""

    entity = "Entity"

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found: {entity_id}")


class WorkflowNotFound(NotFound):
    entity = "Workflow"


class ExecutionNotFound(NotFound):
    entity = "Execution"


class PlanningFailure(NexusflowError):
    """The planner failed or produced an unusable plan."""


class StepFailure(NexusflowError):
    """A step's executor returned failure or faulted."""

    def __init__(self, message: str, step_index: Optional[int] = None) -> None:
        self.step_index = step_index
        super().__init__(message)


class PersistenceFailure(NexusflowError):
    """A repository write or read failed."""
