"""Command line interface for planning and running nexusflow workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import typer

from nexusflow.agent import AgentPlanner, AgentStepExecutor
from nexusflow.config import NexusflowConfig, load_config
from nexusflow.contracts import ExecutionStatus, ExecutionUpdate, NotificationEvent
from nexusflow.exceptions import PlanningFailure, WorkflowNotFound
from nexusflow.notifiers import InMemoryNotifier, Subscription
from nexusflow.orchestrator import ExecutionOrchestrator
from nexusflow.persistence import ExecutionDetail, get_repository
from nexusflow.planning import Planner, create_workflow_from_prompt
from nexusflow.runner import StepExecutor

app = typer.Typer(help="CLI for nexusflow workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for planning and inspecting workflows")
execution_app = typer.Typer(help="Commands for running and inspecting executions")

app.add_typer(workflow_app, name="workflow")
app.add_typer(execution_app, name="execution")


def get_planner(config: NexusflowConfig) -> Planner:
    return AgentPlanner(config.agents.planner_model)


def get_step_executor(config: NexusflowConfig) -> StepExecutor:
    return AgentStepExecutor(config.agents.executor_model)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, help="Logging level (defaults to log_level from config)"
    ),
) -> None:
    """nexusflow CLI entry point."""
    config = load_config()
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@workflow_app.command("create")
def workflow_create(prompt: str) -> None:
    """
    Plan a workflow from a natural-language description and store it.

    Example:
        nexusflow workflow create "Import new leads from the CRM and email a summary to sales"
        # Output: Workflow 3f2a...: Lead import digest
        #           0. fetch_leads [data] query_crm
        #           1. send_summary [communication] send_email
    """
    config = load_config()
    repo = get_repository()
    try:
        plan = asyncio.run(
            create_workflow_from_prompt(prompt, get_planner(config), repo)
        )
    except PlanningFailure as exc:
        typer.secho(f"Planning failed: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"Workflow {plan.id}: {plan.name}")
    for index, step in enumerate(plan.steps):
        typer.echo(f"  {index}. {step.name} [{step.agent_type.value}] {step.action}")


@workflow_app.command("list")
def workflow_list() -> None:
    """List stored workflows, newest first."""
    repo = get_repository()
    workflows = asyncio.run(repo.list_workflows())
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        typer.echo(f"{wf.id}\t{wf.name}\t{len(wf.steps)} steps")


@workflow_app.command("show")
def workflow_show(workflow_id: str) -> None:
    """Show a workflow's prompt and ordered steps."""
    repo = get_repository()
    wf = asyncio.run(repo.get_workflow(workflow_id))
    if wf is None:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)
    typer.echo(f"Workflow {wf.id}: {wf.name}")
    if wf.description:
        typer.echo(f"Description: {wf.description}")
    if wf.original_prompt:
        typer.echo(f"Prompt: {wf.original_prompt}")
    for index, step in enumerate(wf.steps):
        typer.echo(f"  {index}. {step.name} [{step.agent_type.value}] {step.action}")
        if step.params:
            typer.echo(f"     params: {json.dumps(step.params, default=str)}")


def _format_event(event: NotificationEvent) -> str:
    if isinstance(event, ExecutionUpdate):
        line = f"execution {event.status.value}"
    else:
        line = f"step {event.step_index} {event.status.value}"
        if event.result is not None:
            line += f": {json.dumps(event.result, default=str)}"
    if event.error:
        line += f" ({event.error})"
    return line


async def _follow(
    orchestrator: ExecutionOrchestrator, events: Subscription, execution_id: str
) -> None:
    while True:
        try:
            event = await events.get(timeout=0.5)
        except asyncio.TimeoutError:
            if execution_id not in orchestrator.active_executions:
                return
            continue
        typer.echo(_format_event(event))
        if isinstance(event, ExecutionUpdate) and event.status.is_terminal:
            return


async def _run_execution(workflow_id: str, config: NexusflowConfig) -> ExecutionDetail | None:
    repo = get_repository()
    notifier = InMemoryNotifier()
    orchestrator = ExecutionOrchestrator(
        repo,
        notifier,
        get_step_executor(config),
        step_timeout=config.execution.step_timeout,
    )
    with notifier.subscribe() as events:
        execution_id = await orchestrator.start_execution(workflow_id)
        typer.echo(f"Execution {execution_id} started")
        await _follow(orchestrator, events, execution_id)
    await orchestrator.wait(execution_id)
    return await repo.get_execution(execution_id)


@execution_app.command("run")
def execution_run(workflow_id: str) -> None:
    """
    Run a stored workflow in this process, printing status events as they arrive.

    Exits with code 1 when the workflow is unknown or the execution fails.

    Example:
        nexusflow execution run 3f2a...
        # Output: Execution 9c1d... started
        #         execution running
        #         step 0 running
        #         step 0 completed: {"rows": 3}
        #         ...
        #         execution completed
    """
    config = load_config()
    try:
        detail = asyncio.run(_run_execution(workflow_id, config))
    except WorkflowNotFound:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)

    if detail is None or detail.status != ExecutionStatus.COMPLETED:
        raise typer.Exit(code=1)


@execution_app.command("list")
def execution_list() -> None:
    """List executions with their workflow name and status, newest first."""
    repo = get_repository()
    executions = asyncio.run(repo.list_executions())
    if not executions:
        typer.echo("No executions found")
        return
    for ex in executions:
        typer.echo(f"{ex.id}\t{ex.workflow_name or ex.workflow_id}\t{ex.status.value}")


@execution_app.command("show")
def execution_show(execution_id: str) -> None:
    """
    Show an execution's status and step-by-step history.

    Example:
        nexusflow execution show 9c1d...
        # Output: Execution 9c1d...: failed (timeout)
        #         0. fetch_leads [data]: failed (timeout)
    """
    repo = get_repository()
    detail = asyncio.run(repo.get_execution(execution_id))
    if detail is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    header = f"Execution {detail.id}: {detail.status.value}"
    if detail.error_message:
        header += f" ({detail.error_message})"
    typer.echo(header)
    for step in detail.steps:
        line = f"  {step.step_index}. {step.name} [{step.agent_type.value}]: {step.status.value}"
        if step.error_message:
            line += f" ({step.error_message})"
        typer.echo(line)
        if step.result is not None:
            typer.echo(f"     result: {json.dumps(step.result, default=str)}")


@app.command("analytics")
def analytics() -> None:
    """Show workflow and execution totals with the success rate."""
    repo = get_repository()
    overview = asyncio.run(repo.get_analytics())
    typer.echo(f"Workflows: {overview.total_workflows}")
    typer.echo(f"Executions: {overview.total_executions}")
    typer.echo(f"Success rate: {overview.success_rate}%")
    for item in overview.status_breakdown:
        typer.echo(f"  {item.status.value}: {item.count}")


@app.command("serve")
def serve(
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> None:
    """Serve the HTTP API and WebSocket event stream."""
    import uvicorn

    from nexusflow.server import create_app

    config = load_config()
    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
