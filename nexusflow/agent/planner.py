"""LLM-backed workflow planner."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic_ai import Agent

from ..contracts import PlanDraft
from ..exceptions import PlanningFailure
from .prompts import PLANNER_SYSTEM_PROMPT, _planner_request

logger = logging.getLogger(__name__)


class AgentPlanner:
    """Plan workflows with a pydantic-ai agent producing a :class:`PlanDraft`.

    The agent is created on first use so constructing a planner does not
    require model credentials.
    """

    def __init__(self, model: str, agent: Optional[Agent] = None) -> None:
        self.model = model
        self._agent = agent

    @property
    def agent(self) -> Agent:
        if self._agent is None:
            self._agent = Agent(
                self.model,
                output_type=PlanDraft,
                system_prompt=PLANNER_SYSTEM_PROMPT,
                name="workflow_planner",
            )
        return self._agent

    async def plan(self, prompt: str) -> PlanDraft:
        try:
            result = await self.agent.run(_planner_request(prompt))
        except Exception as e:
            logger.error(f"Error generating workflow plan: {e}")
            raise PlanningFailure(str(e) or e.__class__.__name__) from e

        draft = result.output
        if not isinstance(draft, PlanDraft):
            raise PlanningFailure(f"Planner returned {type(draft).__name__}, expected a plan")
        logger.debug(f"Planned '{draft.name}' with {len(draft.steps)} steps")
        return draft
