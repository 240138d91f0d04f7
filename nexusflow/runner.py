"""Run a single workflow step through a pluggable executor backend."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from .contracts import StepOutcome, StepSpec

logger = logging.getLogger(__name__)


class StepExecutor(Protocol):
    """Backend that performs the actual work of one step."""

    async def run(
        self, step: StepSpec, context: Mapping[str, Any]
    ) -> Union[StepOutcome, Mapping[str, Any]]:
        """Execute ``step`` given results of earlier steps."""


class StepRunner:
    """Invoke a :class:`StepExecutor` and normalize its outcome.

    Faults raised by the executor, malformed return values and timeouts are
    all reported as a failed :class:`StepOutcome`; :meth:`run` never raises
    for a single step's fault.
    """

    def __init__(self, executor: StepExecutor, timeout: Optional[float] = None) -> None:
        self._executor = executor
        self._timeout = timeout

    async def run(self, step: StepSpec, context: Mapping[str, Any]) -> StepOutcome:
        try:
            if self._timeout is None:
                raw = await self._executor.run(step, context)
            else:
                # expiry is reported by asyncio.wait; TimeoutErrors from the executor are step faults
                task = asyncio.ensure_future(self._executor.run(step, context))
                done, _ = await asyncio.wait({task}, timeout=self._timeout)
                if not done:
                    task.cancel()
                    await asyncio.gather(task, return_exceptions=True)
                    logger.warning(f"Step '{step.name}' timed out after {self._timeout}s")
                    return StepOutcome(
                        success=False,
                        error=f"Step '{step.name}' timed out after {self._timeout}s",
                    )
                raw = task.result()
            outcome = (
                raw if isinstance(raw, StepOutcome) else StepOutcome.model_validate(raw)
            )
        except ValidationError as e:
            logger.warning(f"Step '{step.name}' returned malformed output: {e}")
            return StepOutcome(
                success=False, error=f"Malformed output from step executor: {e}"
            )
        except Exception as e:
            logger.warning(f"Step '{step.name}' raised {e.__class__.__name__}: {e}")
            return StepOutcome(success=False, error=str(e) or e.__class__.__name__)

        if outcome.success:
            return StepOutcome(success=True, result=outcome.result)
        return StepOutcome(
            success=False,
            error=outcome.error or f"Step '{step.name}' failed without an error message",
        )
