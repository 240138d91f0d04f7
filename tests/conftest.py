"""Shared fakes and fixtures for nexusflow tests."""

from __future__ import annotations

from typing import Any, Mapping

import pytest

import nexusflow.persistence as persistence
from nexusflow.contracts import StepOutcome, StepSpec, WorkflowPlan
from nexusflow.notifiers import BaseNotifier
from nexusflow.persistence import InMemoryWorkflowRepository


class ScriptedExecutor:
    """Step executor returning canned outcomes keyed by step name.

    Steps without a scripted outcome succeed with ``{"step": <name>}``. An
    exception instance as outcome is raised instead of returned.
    """

    def __init__(self) -> None:
        self.outcomes: dict[str, Any] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def run(self, step: StepSpec, context: Mapping[str, Any]) -> Any:
        self.calls.append((step.name, dict(context)))
        outcome = self.outcomes.get(
            step.name, StepOutcome(success=True, result={"step": step.name})
        )
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingNotifier(BaseNotifier):
    """Notifier that keeps every broadcast event."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    async def broadcast(self, event) -> None:
        self.events.append(event)


def build_plan(*steps: tuple[str, str], name: str = "test workflow") -> WorkflowPlan:
    return WorkflowPlan(
        name=name,
        description="built in tests",
        original_prompt="do the things",
        steps=tuple(
            StepSpec(
                name=step_name,
                description=f"{step_name} step",
                agent_type=agent_type,
                action=f"{step_name}_action",
                params={"source": step_name},
            )
            for step_name, agent_type in steps
        ),
    )


@pytest.fixture
def repo() -> InMemoryWorkflowRepository:
    return InMemoryWorkflowRepository()


@pytest.fixture
def executor() -> ScriptedExecutor:
    return ScriptedExecutor()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_plan():
    return build_plan


@pytest.fixture(autouse=True)
def _reset_repository_singleton(monkeypatch, tmp_path):
    monkeypatch.setattr(persistence, "_repository_instance", None)
    monkeypatch.delenv("NEXUSFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("NEXUSFLOW_NOTIFIER", raising=False)
    monkeypatch.setenv("NEXUSFLOW_CONFIG", str(tmp_path / "missing-config.yaml"))
