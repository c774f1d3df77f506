import asyncio
from unittest.mock import MagicMock

from agents.base import BaseAgent, capability, fail, ok
from execution.engine import WorkflowExecutor, propagate
from registry.agent_registry import AgentRegistry
from shared.models import AgentContext, AgentSuccess, ErrorKind, WorkflowStep


class _RecorderAgent(BaseAgent):
    """Records the context each call saw and echoes selected fields."""

    name = "recorder"
    CAPABILITIES = (
        capability("set", "Return params as data"),
        capability("read", "Return the current timeframe"),
        capability("fail", "Always fails"),
        capability("slow", "Sleeps before answering"),
    )

    def __init__(self):
        self.seen: list[AgentContext] = []
        self.finished: list[str] = []
        super().__init__()

    def handlers(self):
        return {"set": self._set, "read": self._read, "fail": self._fail, "slow": self._slow}

    def _set(self, context, params):
        self.seen.append(context)
        return ok(dict(params), "set")

    def _read(self, context, params):
        self.seen.append(context)
        return ok({"observed_timeframe": context.timeframe}, "read")

    def _fail(self, context, params):
        return fail("broken step", ErrorKind.DOMAIN)

    async def _slow(self, context, params):
        await asyncio.sleep(params.get("delay", 0))
        self.finished.append(params["tag"])
        return ok({"tag": params["tag"]}, "slow")


def _executor() -> tuple[WorkflowExecutor, _RecorderAgent]:
    registry = AgentRegistry()
    agent = _RecorderAgent()
    registry.register(agent)
    return WorkflowExecutor(registry), agent


def test_sequential_workflow_propagates_step_data() -> None:
    executor, agent = _executor()
    workflow = [
        {"agent": "recorder", "action": "set", "params": {"timeframe": "5m"}},
        {"agent": "recorder", "action": "read", "params": {}},
    ]

    result = asyncio.run(executor.execute(AgentContext(symbol="AAPL", timeframe="1D"), workflow))

    assert result.success is True
    assert result.errors == []
    assert [r.message for r in result.results] == ["set", "read"]
    assert result.results[1].data == {"observed_timeframe": "5m"}
    assert result.message == "Workflow executed with 2 successful steps and 0 errors"
    # The caller's context is untouched.
    assert agent.seen[0].timeframe == "1D"


def test_unknown_agent_is_step_error_and_workflow_continues() -> None:
    executor, _ = _executor()
    workflow = [
        {"agent": "nonexistent", "action": "anything"},
        {"agent": "recorder", "action": "set", "params": {"x": 1}},
    ]

    result = asyncio.run(executor.execute(AgentContext(), workflow))

    assert result.success is False
    assert result.errors == ["Step 1: Agent nonexistent not found"]
    assert len(result.results) == 1
    assert result.message == "Workflow executed with 1 successful steps and 1 errors"


def test_unsupported_action_and_agent_failure_are_reported_in_order() -> None:
    executor, _ = _executor()
    workflow = [
        {"agent": "recorder", "action": "fly"},
        {"agent": "recorder", "action": "fail"},
        {"agent": "recorder", "action": "set"},
    ]

    result = asyncio.run(executor.execute(AgentContext(), workflow))

    assert result.errors == [
        "Step 1: Agent recorder cannot handle fly",
        "Step 2: broken step",
    ]
    assert len(result.results) == 1


def test_failed_step_data_is_not_propagated() -> None:
    executor, agent = _executor()
    workflow = [
        {"agent": "recorder", "action": "fail"},
        {"agent": "recorder", "action": "read"},
    ]

    result = asyncio.run(executor.execute(AgentContext(timeframe="1W"), workflow))

    assert result.results[0].data == {"observed_timeframe": "1W"}


def test_invalid_workflow_is_rejected_before_any_step_runs() -> None:
    executor, agent = _executor()
    workflow = [
        {"agent": "recorder", "action": "set"},
        {"agent": "recorder"},
    ]

    result = asyncio.run(executor.execute(AgentContext(), workflow))

    assert result.success is False
    assert result.results == []
    assert result.message.startswith("Invalid workflow: step 2: action")
    assert agent.seen == []


def test_non_list_workflow_is_invalid() -> None:
    executor, _ = _executor()

    result = asyncio.run(executor.execute(AgentContext(), {"agent": "recorder"}))

    assert result.success is False
    assert result.message == "Invalid workflow: workflow must be a list of steps"


def test_parallel_mode_runs_concurrently_and_keeps_step_order() -> None:
    executor, agent = _executor()
    workflow = [
        {"agent": "recorder", "action": "slow", "params": {"tag": "first", "delay": 0.05}},
        {"agent": "nonexistent", "action": "slow"},
        {"agent": "recorder", "action": "slow", "params": {"tag": "third", "delay": 0}},
    ]

    result = asyncio.run(executor.execute(AgentContext(), workflow, parallel=True))

    # The fast step finished first, but results stay in step order.
    assert agent.finished == ["third", "first"]
    assert [r.data["tag"] for r in result.results] == ["first", "third"]
    assert result.errors == ["Step 2: Agent nonexistent not found"]


def test_parallel_steps_all_see_the_starting_context() -> None:
    executor, agent = _executor()
    workflow = [
        {"agent": "recorder", "action": "set", "params": {"timeframe": "5m"}},
        {"agent": "recorder", "action": "read"},
    ]

    result = asyncio.run(executor.execute(AgentContext(timeframe="1D"), workflow, parallel=True))

    assert result.results[1].data == {"observed_timeframe": "1D"}


def test_cancel_hook_marks_remaining_steps() -> None:
    executor, agent = _executor()
    calls = iter([False, True])
    workflow = [
        {"agent": "recorder", "action": "set"},
        {"agent": "recorder", "action": "set"},
        {"agent": "recorder", "action": "set"},
    ]

    result = asyncio.run(executor.execute(AgentContext(), workflow, should_cancel=lambda: next(calls)))

    assert len(result.results) == 1
    assert result.errors == ["Step 2: cancelled", "Step 3: cancelled"]


def test_raising_agent_outside_base_class_is_internal_step_error() -> None:
    registry = AgentRegistry()
    rogue = MagicMock()
    rogue.name = "rogue"
    rogue.can_handle.return_value = True

    async def explode(context, action, params):
        raise RuntimeError("socket closed")

    rogue.execute = explode
    registry.register(rogue)

    run = asyncio.run(
        WorkflowExecutor(registry).run_step(1, WorkflowStep(agent="rogue", action="x"), AgentContext())
    )

    assert run.error == "Step 1: socket closed"
    assert run.error_kind == ErrorKind.INTERNAL


def test_to_response_keeps_partial_results() -> None:
    executor, _ = _executor()
    workflow = [
        {"agent": "recorder", "action": "set", "params": {"a": 1}},
        {"agent": "recorder", "action": "fail"},
    ]

    response = asyncio.run(executor.execute(AgentContext(), workflow)).to_response()

    assert response.success is False
    assert response.error == "Step 2: broken step"
    assert response.data["results"][0]["data"] == {"a": 1}
    assert response.data["errors"] == ["Step 2: broken step"]


def test_propagate_ignores_non_mapping_data() -> None:
    context = AgentContext(symbol="AAPL")

    assert propagate(context, AgentSuccess(data=["a", "b"])) is context
    assert propagate(context, AgentSuccess(data={"current_price": 12.5})).current_price == 12.5


def test_propagate_drops_only_rejected_keys() -> None:
    context = AgentContext(symbol="AAPL", timeframe="1D")

    merged = propagate(context, AgentSuccess(data={"symbol": None, "timeframe": "5m", "x": 1}))

    assert merged.symbol == "AAPL"
    assert merged.timeframe == "5m"
    assert merged.get("x") == 1


def test_extra_step_keys_are_ignored() -> None:
    executor, _ = _executor()
    workflow = [
        {"agent": "recorder", "action": "set", "params": {"a": 1}, "description": "first step"},
    ]

    result = asyncio.run(executor.execute(AgentContext(), workflow))

    assert result.success is True
    assert result.results[0].data == {"a": 1}


def test_parallel_and_sequential_modes_report_the_same_outcomes() -> None:
    workflow = [
        {"agent": "nonexistent", "action": "set"},
        {"agent": "recorder", "action": "set", "params": {"a": 1}},
        {"agent": "recorder", "action": "fail"},
        {"agent": "recorder", "action": "fly"},
        {"agent": "recorder", "action": "slow", "params": {"tag": "late", "delay": 0.01}},
        {"agent": "recorder", "action": "set", "params": {"b": 2}},
    ]

    sequential_executor, _ = _executor()
    parallel_executor, _ = _executor()
    sequential = asyncio.run(sequential_executor.execute(AgentContext(), workflow))
    parallel = asyncio.run(parallel_executor.execute(AgentContext(), workflow, parallel=True))

    assert parallel.errors == sequential.errors == [
        "Step 1: Agent nonexistent not found",
        "Step 3: broken step",
        "Step 4: Agent recorder cannot handle fly",
    ]
    assert [r.data for r in parallel.results] == [r.data for r in sequential.results] == [
        {"a": 1},
        {"tag": "late"},
        {"b": 2},
    ]
    assert parallel.success is sequential.success is False
    assert parallel.message == sequential.message
