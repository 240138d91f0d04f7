from __future__ import annotations

import json
from typing import Any, Mapping

from ..contracts import StepSpec

PLANNER_SYSTEM_PROMPT = (
    "You are the Nexus AI Orchestrator. Your job is to break down user requests "
    "into executable steps for specialized agents.\n"
    "Available Agents:\n"
    "- data: Database CRUD operations\n"
    "- communication: Email, Slack, notifications\n"
    "- integration: External API calls\n"
    "- analysis: Data processing & insights\n"
    "- validation: Data validation & compliance\n"
    "- recovery: Error handling (rarely used in initial plan)\n"
    "Give every step a short unique name; later steps can read earlier "
    "results by that name."
)


def _planner_request(prompt: str) -> str:
    return (
        "Parse this natural language workflow description into a structured "
        f'execution plan: "{prompt}"'
    )


def _step_instructions(step: StepSpec) -> str:
    """System instructions for the agent that executes ``step``."""
    return (
        f'You are a specialized AI agent of type "{step.agent_type.value}". '
        f'Simulate the execution of the requested action: "{step.action}" '
        f"with params: {json.dumps(step.params, default=str)}. "
        "Provide a realistic result object. If it's a communication step, "
        "describe what was sent. If data, describe what was stored. "
        "Report success with a result object, or failure with an error message."
    )


def _step_request(step: StepSpec, context: Mapping[str, Any]) -> str:
    return (
        f"Execute this step: {step.model_dump_json(by_alias=True)}. "
        f"Context from previous steps: {json.dumps(dict(context), default=str)}"
    )
