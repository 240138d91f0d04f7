"""Execution engine for nexusflow workflows."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from .context import ExecutionContext
from .contracts import (
    ExecutionStatus,
    ExecutionUpdate,
    NotificationEvent,
    StepUpdate,
    WorkflowPlan,
)
from .exceptions import (
    ExecutionNotFound,
    PersistenceFailure,
    StepFailure,
    WorkflowNotFound,
)
from .notifiers import BaseNotifier
from .persistence import ExecutionDetail, WorkflowRepository
from .runner import StepExecutor, StepRunner

logger = logging.getLogger(__name__)


class ExecutionOrchestrator:
    """Runs stored workflow plans step by step.

    Each execution runs as its own asyncio task. Within an execution steps
    run strictly in plan order; the first failing step fails the execution
    and no later step is started. Every transition is persisted through the
    repository before it is broadcast through the notifier.
    """

    def __init__(
        self,
        repository: WorkflowRepository,
        notifier: BaseNotifier,
        executor: StepExecutor,
        step_timeout: Optional[float] = None,
    ) -> None:
        self._repository = repository
        self._notifier = notifier
        self._runner = StepRunner(executor, timeout=step_timeout)
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def active_executions(self) -> list[str]:
        """Ids of executions whose task has not finished yet."""
        return [eid for eid, task in self._tasks.items() if not task.done()]

    async def start_execution(self, workflow_id: str) -> str:
        """Create an execution for ``workflow_id`` and run it in the background.

        Returns the execution id as soon as the execution row exists; step
        processing continues in a separate task.

        Raises:
            WorkflowNotFound: If no workflow with ``workflow_id`` exists. No
                execution is created in that case.
        """
        plan = await self._repository.get_workflow(workflow_id)
        if plan is None:
            raise WorkflowNotFound(workflow_id)

        execution = await self._repository.create_execution(workflow_id)
        logger.info(
            f"Starting execution {execution.id} of workflow {workflow_id} ({len(plan.steps)} steps)"
        )

        task = asyncio.create_task(
            self._run(execution.id, plan), name=f"execution-{execution.id}"
        )
        self._tasks[execution.id] = task
        task.add_done_callback(lambda _: self._tasks.pop(execution.id, None))
        return execution.id

    async def wait(self, execution_id: str) -> None:
        """Block until the execution's task has finished, if it is still running."""
        task = self._tasks.get(execution_id)
        if task is not None:
            await asyncio.shield(task)

    async def run_execution(
        self, workflow_id: str, raise_on_failure: bool = False
    ) -> ExecutionDetail:
        """Start an execution, wait for it to finish and return its final state.

        Args:
            workflow_id: Workflow to run.
            raise_on_failure: Raise ``StepFailure`` for the failing step
                instead of returning a failed execution.
        """
        execution_id = await self.start_execution(workflow_id)
        await self.wait(execution_id)
        detail = await self._repository.get_execution(execution_id)
        if detail is None:
            raise ExecutionNotFound(execution_id)
        if raise_on_failure and detail.status == ExecutionStatus.FAILED:
            failed = next(
                (s for s in detail.steps if s.status == ExecutionStatus.FAILED), None
            )
            raise StepFailure(
                detail.error_message or "Execution failed",
                step_index=failed.step_index if failed else None,
            )
        return detail

    async def shutdown(self) -> None:
        """Wait for every in-flight execution to finish."""
        tasks = list(self._tasks.values())
        if tasks:
            logger.info(f"Waiting for {len(tasks)} running execution(s)")
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    async def _run(self, execution_id: str, plan: WorkflowPlan) -> None:
        # either way the execution is abandoned; no step is retried
        try:
            await self._execute_steps(execution_id, plan)
        except PersistenceFailure:
            logger.exception(
                f"Execution {execution_id} abandoned after a persistence failure"
            )
        except Exception:
            logger.exception(
                f"Execution {execution_id} abandoned after an unexpected error"
            )

    async def _execute_steps(self, execution_id: str, plan: WorkflowPlan) -> None:
        await self._emit(
            ExecutionUpdate(execution_id=execution_id, status=ExecutionStatus.RUNNING)
        )
        context = ExecutionContext()

        for index, spec in enumerate(plan.steps):
            step = await self._repository.create_execution_step(
                execution_id, index, spec
            )
            await self._emit(
                StepUpdate(
                    execution_id=execution_id,
                    step_id=step.id,
                    step_index=index,
                    status=ExecutionStatus.RUNNING,
                )
            )

            outcome = await self._runner.run(spec, context.snapshot())

            if not outcome.success:
                logger.warning(
                    f"Step {index} '{spec.name}' of execution {execution_id} failed: {outcome.error}"
                )
                await self._repository.update_execution_step(
                    step.id, ExecutionStatus.FAILED, error=outcome.error
                )
                await self._emit(
                    StepUpdate(
                        execution_id=execution_id,
                        step_id=step.id,
                        step_index=index,
                        status=ExecutionStatus.FAILED,
                        error=outcome.error,
                    )
                )
                await self._repository.update_execution(
                    execution_id, ExecutionStatus.FAILED, error=outcome.error
                )
                await self._emit(
                    ExecutionUpdate(
                        execution_id=execution_id,
                        status=ExecutionStatus.FAILED,
                        error=outcome.error,
                    )
                )
                return

            await self._repository.update_execution_step(
                step.id, ExecutionStatus.COMPLETED, result=outcome.result
            )
            await self._emit(
                StepUpdate(
                    execution_id=execution_id,
                    step_id=step.id,
                    step_index=index,
                    status=ExecutionStatus.COMPLETED,
                    result=outcome.result,
                )
            )
            context.merge(spec.name, outcome.result)
            logger.debug(f"Step {index} '{spec.name}' of execution {execution_id} completed")

        await self._repository.update_execution(execution_id, ExecutionStatus.COMPLETED)
        await self._emit(
            ExecutionUpdate(execution_id=execution_id, status=ExecutionStatus.COMPLETED)
        )
        logger.info(f"Execution {execution_id} completed")

    async def _emit(self, event: NotificationEvent) -> None:
        try:
            await self._notifier.broadcast(event)
        except Exception as e:
            logger.warning(
                f"Failed to broadcast {event.type} for execution {event.execution_id}: {e}"
            )
