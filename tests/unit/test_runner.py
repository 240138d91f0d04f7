"""StepRunner tests."""

import asyncio

import pytest

from nexusflow.contracts import AgentType, StepOutcome, StepSpec
from nexusflow.runner import StepRunner


STEP = StepSpec(name="send", agent_type=AgentType.COMMUNICATION, action="send_email")


@pytest.mark.asyncio
async def test_success_passes_result_and_context(executor):
    executor.outcomes["send"] = StepOutcome(success=True, result={"sent": True})
    runner = StepRunner(executor)

    outcome = await runner.run(STEP, {"fetch": {"rows": 3}})

    assert outcome == StepOutcome(success=True, result={"sent": True})
    assert executor.calls == [("send", {"fetch": {"rows": 3}})]


@pytest.mark.asyncio
async def test_success_without_result_is_allowed(executor):
    executor.outcomes["send"] = StepOutcome(success=True, error="ignored")
    outcome = await StepRunner(executor).run(STEP, {})
    assert outcome.success
    assert outcome.result is None
    assert outcome.error is None


@pytest.mark.asyncio
async def test_returned_failure_drops_result(executor):
    executor.outcomes["send"] = StepOutcome(success=False, result={"x": 1}, error="smtp down")
    outcome = await StepRunner(executor).run(STEP, {})
    assert outcome == StepOutcome(success=False, error="smtp down")


@pytest.mark.asyncio
async def test_failure_without_message_gets_one(executor):
    executor.outcomes["send"] = StepOutcome(success=False)
    outcome = await StepRunner(executor).run(STEP, {})
    assert not outcome.success
    assert "send" in outcome.error


@pytest.mark.asyncio
async def test_executor_exception_becomes_failure(executor):
    executor.outcomes["send"] = ConnectionError("network unreachable")
    outcome = await StepRunner(executor).run(STEP, {})
    assert outcome == StepOutcome(success=False, error="network unreachable")


@pytest.mark.asyncio
@pytest.mark.parametrize("timeout", [None, 5.0])
async def test_executor_timeout_error_keeps_its_message(executor, timeout):
    executor.outcomes["send"] = TimeoutError("timeout")
    outcome = await StepRunner(executor, timeout=timeout).run(STEP, {})
    assert outcome == StepOutcome(success=False, error="timeout")


@pytest.mark.asyncio
async def test_exception_without_message_uses_class_name(executor):
    executor.outcomes["send"] = RuntimeError()
    outcome = await StepRunner(executor).run(STEP, {})
    assert outcome.error == "RuntimeError"


@pytest.mark.asyncio
async def test_plain_mapping_output_is_accepted(executor):
    executor.outcomes["send"] = {"success": True, "result": {"sent": True}}
    outcome = await StepRunner(executor).run(STEP, {})
    assert outcome.success
    assert outcome.result == {"sent": True}


@pytest.mark.asyncio
async def test_malformed_output_becomes_failure(executor):
    executor.outcomes["send"] = {"result": "no success flag"}
    outcome = await StepRunner(executor).run(STEP, {})
    assert not outcome.success
    assert "Malformed output" in outcome.error


@pytest.mark.asyncio
async def test_timeout_becomes_failure():
    class SlowExecutor:
        async def run(self, step, context):
            await asyncio.sleep(5)
            return StepOutcome(success=True)

    outcome = await StepRunner(SlowExecutor(), timeout=0.05).run(STEP, {})
    assert not outcome.success
    assert "timed out" in outcome.error
