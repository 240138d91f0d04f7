"""Turn a natural-language goal into a stored workflow plan."""

from __future__ import annotations

import logging
from typing import Protocol

from .contracts import PlanDraft, WorkflowPlan
from .exceptions import PlanningFailure
from .persistence import WorkflowRepository

logger = logging.getLogger(__name__)


class Planner(Protocol):
    """Decomposes free text into an ordered list of typed steps."""

    async def plan(self, prompt: str) -> PlanDraft:
        """Return a draft plan for ``prompt`` or raise ``PlanningFailure``."""


async def create_workflow_from_prompt(
    prompt: str, planner: Planner, repository: WorkflowRepository
) -> WorkflowPlan:
    """Plan ``prompt`` and persist the resulting workflow.

    Raises:
        PlanningFailure: If the prompt is empty or the planner fails.
    """
    if not prompt or not prompt.strip():
        raise PlanningFailure("Prompt must not be empty")

    try:
        draft = await planner.plan(prompt)
    except PlanningFailure:
        raise
    except Exception as e:
        raise PlanningFailure(f"Planner failed: {e}") from e

    plan = WorkflowPlan.from_draft(draft, prompt)
    await repository.create_workflow(plan)
    logger.info(f"Created workflow {plan.id} '{plan.name}' with {len(plan.steps)} steps")
    return plan
