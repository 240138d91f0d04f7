"""LLM-backed step executor."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field
from pydantic_ai import Agent, RunContext

from ..contracts import StepOutcome, StepSpec
from .prompts import _step_instructions, _step_request

logger = logging.getLogger(__name__)


class StepDeps(BaseModel):
    """Dependencies handed to the executing agent."""

    step: StepSpec
    context: Dict[str, Any] = Field(default_factory=dict)


async def _instructions_for_step(ctx: RunContext[StepDeps]) -> str:
    return _step_instructions(ctx.deps.step)


class AgentStepExecutor:
    """Execute steps with a pydantic-ai agent returning a :class:`StepOutcome`.

    Errors raised by the agent propagate; the step runner turns them into a
    failed outcome.
    """

    def __init__(self, model: str, agent: Optional[Agent] = None) -> None:
        self.model = model
        self._agent = agent

    @property
    def agent(self) -> Agent:
        if self._agent is None:
            agent = Agent(
                self.model,
                output_type=StepOutcome,
                deps_type=StepDeps,
                name="step_executor",
            )
            agent.system_prompt(_instructions_for_step)
            self._agent = agent
        return self._agent

    async def run(self, step: StepSpec, context: Mapping[str, Any]) -> StepOutcome:
        deps = StepDeps(step=step, context=dict(context))
        logger.debug(f"Running {step.agent_type.value} agent for step '{step.name}'")
        result = await self.agent.run(_step_request(step, context), deps=deps)
        return result.output
