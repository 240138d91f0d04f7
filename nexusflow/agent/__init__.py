"""pydantic-ai backed planner and step executor."""

from .executor import AgentStepExecutor, StepDeps
from .planner import AgentPlanner

__all__ = ["AgentPlanner", "AgentStepExecutor", "StepDeps"]
