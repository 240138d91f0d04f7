import asyncio

import pytest

from nexusflow.contracts import AgentType, ExecutionStatus, StepSpec
from nexusflow.persistence import (
    AnalyticsOverview,
    InMemoryWorkflowRepository,
    SQLiteWorkflowRepository,
)


@pytest.fixture(params=["memory", "sqlite"])
def repository(request, tmp_path):
    if request.param == "memory":
        yield InMemoryWorkflowRepository()
    else:
        repo = SQLiteWorkflowRepository(tmp_path / "wf.db")
        yield repo
        repo.close()


@pytest.mark.asyncio
async def test_repository_crud(repository, make_plan):
    plan = make_plan(("fetch", "data"), ("notify", "communication"), name="Daily report")
    await repository.create_workflow(plan)

    stored = await repository.get_workflow(plan.id)
    assert stored is not None
    assert stored.name == "Daily report"
    assert stored.original_prompt == "do the things"
    assert [s.name for s in stored.steps] == ["fetch", "notify"]
    assert stored.steps[1].agent_type == AgentType.COMMUNICATION
    assert stored.steps[0].params == {"source": "fetch"}

    execution = await repository.create_execution(plan.id)
    assert execution.status == ExecutionStatus.RUNNING
    assert execution.completed_at is None

    step = await repository.create_execution_step(execution.id, 0, plan.steps[0])
    await repository.update_execution_step(
        step.id, ExecutionStatus.COMPLETED, result={"rows": [1, 2]}
    )
    await repository.update_execution(execution.id, ExecutionStatus.COMPLETED)

    detail = await repository.get_execution(execution.id)
    assert detail is not None
    assert detail.status == ExecutionStatus.COMPLETED
    assert detail.completed_at is not None
    assert len(detail.steps) == 1
    assert detail.steps[0].name == "fetch"
    assert detail.steps[0].agent_type == AgentType.DATA
    assert detail.steps[0].result == {"rows": [1, 2]}
    assert detail.steps[0].completed_at is not None

    summaries = await repository.list_executions()
    assert [(s.id, s.workflow_name) for s in summaries] == [(execution.id, "Daily report")]


@pytest.mark.asyncio
async def test_missing_rows_return_none(repository):
    assert await repository.get_workflow("nope") is None
    assert await repository.get_execution("nope") is None


@pytest.mark.asyncio
async def test_steps_returned_in_index_order(repository, make_plan):
    plan = make_plan(("a", "data"), ("b", "data"), ("c", "data"))
    await repository.create_workflow(plan)
    execution = await repository.create_execution(plan.id)
    for index in (2, 0, 1):
        await repository.create_execution_step(execution.id, index, plan.steps[index])

    detail = await repository.get_execution(execution.id)
    assert [s.step_index for s in detail.steps] == [0, 1, 2]
    assert [s.name for s in detail.steps] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_terminal_rows_are_not_overwritten(repository, make_plan):
    plan = make_plan(("a", "data"))
    await repository.create_workflow(plan)
    execution = await repository.create_execution(plan.id)
    step = await repository.create_execution_step(execution.id, 0, plan.steps[0])

    await repository.update_execution_step(step.id, ExecutionStatus.FAILED, error="boom")
    await repository.update_execution_step(step.id, ExecutionStatus.COMPLETED, result=1)
    await repository.update_execution(execution.id, ExecutionStatus.FAILED, error="boom")
    await repository.update_execution(execution.id, ExecutionStatus.COMPLETED)

    detail = await repository.get_execution(execution.id)
    assert detail.status == ExecutionStatus.FAILED
    assert detail.error_message == "boom"
    assert detail.steps[0].status == ExecutionStatus.FAILED
    assert detail.steps[0].error_message == "boom"
    assert detail.steps[0].result is None


@pytest.mark.asyncio
async def test_lists_are_newest_first(repository, make_plan):
    first = make_plan(("a", "data"), name="first")
    second = make_plan(("a", "data"), name="second")
    await repository.create_workflow(first)
    await repository.create_workflow(second)

    assert [p.name for p in await repository.list_workflows()] == ["second", "first"]

    e1 = await repository.create_execution(first.id)
    e2 = await repository.create_execution(second.id)
    assert [e.id for e in await repository.list_executions()] == [e2.id, e1.id]


@pytest.mark.asyncio
async def test_analytics(repository, make_plan):
    plan = make_plan(("a", "data"))
    await repository.create_workflow(plan)
    await repository.create_workflow(make_plan(("b", "data")))

    statuses = [ExecutionStatus.COMPLETED] * 5 + [ExecutionStatus.FAILED] * 3
    for status in statuses:
        execution = await repository.create_execution(plan.id)
        await repository.update_execution(execution.id, status)

    overview = await repository.get_analytics()
    assert overview.total_workflows == 2
    assert overview.total_executions == 8
    assert overview.success_rate == 63
    assert {(b.status, b.count) for b in overview.status_breakdown} == {
        (ExecutionStatus.COMPLETED, 5),
        (ExecutionStatus.FAILED, 3),
    }


@pytest.mark.asyncio
async def test_analytics_empty(repository):
    overview = await repository.get_analytics()
    assert overview == AnalyticsOverview()


def test_analytics_counts_running_in_total():
    overview = AnalyticsOverview.from_counts(
        1, [("completed", 1), ("running", 2), ("failed", 0)]
    )
    assert overview.total_executions == 3
    assert overview.success_rate == 33
    assert [b.status for b in overview.status_breakdown] == [
        ExecutionStatus.COMPLETED,
        ExecutionStatus.RUNNING,
    ]


def test_sqlite_survives_reopen(tmp_path, make_plan):
    path = tmp_path / "wf.db"
    plan = make_plan(
        ("fetch", "data"), ("notify", "communication"), name="persisted"
    )

    async def write():
        repo = SQLiteWorkflowRepository(path)
        await repo.create_workflow(plan)
        execution = await repo.create_execution(plan.id)
        repo.close()
        return execution.id

    async def read(execution_id):
        repo = SQLiteWorkflowRepository(path)
        try:
            return await repo.get_workflow(plan.id), await repo.get_execution(execution_id)
        finally:
            repo.close()

    execution_id = asyncio.run(write())
    stored, execution = asyncio.run(read(execution_id))

    assert stored == plan
    assert execution.status == ExecutionStatus.RUNNING


def test_step_spec_accepts_camel_case():
    spec = StepSpec.model_validate(
        {"name": "x", "agentType": "analysis", "action": "summarize"}
    )
    assert spec.agent_type == AgentType.ANALYSIS
    assert spec.params == {}
