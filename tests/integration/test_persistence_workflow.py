import asyncio

import pytest

from nexusflow.contracts import ExecutionStatus, StepOutcome
from nexusflow.notifiers import InMemoryNotifier
from nexusflow.orchestrator import ExecutionOrchestrator
from nexusflow.persistence import SQLiteWorkflowRepository


@pytest.mark.asyncio
async def test_execution_history_survives_restart(tmp_path, executor, make_plan):
    repo_path = tmp_path / "wf.db"
    repo = SQLiteWorkflowRepository(repo_path)
    plan = make_plan(("fetch", "data"), ("analyse", "analysis"), ("notify", "communication"))
    await repo.create_workflow(plan)

    executor.outcomes["fetch"] = StepOutcome(success=True, result={"rows": 3})
    executor.outcomes["notify"] = StepOutcome(success=False, error="smtp down")
    notifier = InMemoryNotifier()
    orchestrator = ExecutionOrchestrator(repo, notifier, executor)

    with notifier.subscribe() as events:
        detail = await orchestrator.run_execution(plan.id)
        received = []
        while not events.queue.empty():
            received.append(await events.get(timeout=1))

    assert detail.status == ExecutionStatus.FAILED
    assert len(received) == 8
    repo.close()

    # reopen against the same file
    repo = SQLiteWorkflowRepository(repo_path)
    stored = await repo.get_execution(detail.id)
    assert stored is not None
    assert stored.status == ExecutionStatus.FAILED
    assert stored.error_message == "smtp down"
    assert [(s.name, s.status) for s in stored.steps] == [
        ("fetch", ExecutionStatus.COMPLETED),
        ("analyse", ExecutionStatus.COMPLETED),
        ("notify", ExecutionStatus.FAILED),
    ]
    assert stored.steps[0].result == {"rows": 3}
    assert executor.calls[2] == (
        "notify",
        {"fetch": {"rows": 3}, "analyse": {"step": "analyse"}},
    )

    overview = await repo.get_analytics()
    assert overview.total_workflows == 1
    assert overview.total_executions == 1
    assert overview.success_rate == 0
    repo.close()


@pytest.mark.asyncio
async def test_concurrent_executions_on_sqlite(tmp_path, executor, make_plan):
    repo = SQLiteWorkflowRepository(tmp_path / "wf.db")
    plan = make_plan(("fetch", "data"), ("notify", "communication"))
    await repo.create_workflow(plan)
    orchestrator = ExecutionOrchestrator(repo, InMemoryNotifier(), executor)

    details = await asyncio.gather(*(orchestrator.run_execution(plan.id) for _ in range(5)))

    assert len({d.id for d in details}) == 5
    assert all(d.status == ExecutionStatus.COMPLETED for d in details)
    assert all(len(d.steps) == 2 for d in details)
    assert (await repo.get_analytics()).success_rate == 100
    repo.close()
