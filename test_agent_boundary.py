import asyncio

import pytest

from agents.base import BaseAgent, capability, fail, ok
from shared.models import AgentContext, AgentFailure, AgentSuccess, ErrorKind


class _FlakyAgent(BaseAgent):
    name = "flaky"
    label = "Flaky"
    CAPABILITIES = (
        capability("boom", "Raises"),
        capability("fine", "Succeeds"),
        capability("refuse", "Returns a domain failure"),
        capability("garbage", "Returns something that is not a response"),
    )

    def handlers(self):
        return {
            "boom": self._boom,
            "fine": self._fine,
            "refuse": lambda ctx, params: fail("nope", ErrorKind.VALIDATION),
            "garbage": lambda ctx, params: {"not": "a response"},
        }

    async def _boom(self, context, params):
        raise RuntimeError("kaboom")

    async def _fine(self, context, params):
        return ok({"symbol": context.symbol}, "fine")


class _CustomExecuteAgent(BaseAgent):
    """Overrides execute directly; the boundary must still apply."""

    name = "custom"
    label = "Custom"
    CAPABILITIES = (capability("anything", "Anything"),)

    def handlers(self):
        return {"anything": lambda ctx, params: ok()}

    async def execute(self, context, action, params=None):
        raise ValueError("custom failure")


def test_handler_exception_becomes_internal_failure() -> None:
    response = asyncio.run(_FlakyAgent().execute(AgentContext(symbol="AAPL"), "boom", {}))

    assert isinstance(response, AgentFailure)
    assert response.error_kind == ErrorKind.INTERNAL
    assert response.error == "Flaky agent error: kaboom"


def test_success_and_domain_failure_pass_through() -> None:
    agent = _FlakyAgent()
    context = AgentContext(symbol="MSFT")

    success = asyncio.run(agent.execute(context, "fine"))
    failure = asyncio.run(agent.execute(context, "refuse", {}))

    assert isinstance(success, AgentSuccess)
    assert success.data == {"symbol": "MSFT"}
    assert failure.error == "nope"
    assert failure.error_kind == ErrorKind.VALIDATION


def test_non_response_return_is_internal_failure() -> None:
    response = asyncio.run(_FlakyAgent().execute(AgentContext(), "garbage", {}))

    assert response.success is False
    assert response.error_kind == ErrorKind.INTERNAL
    assert "invalid response type dict" in response.error


def test_unknown_action_is_resolution_failure() -> None:
    agent = _FlakyAgent()
    response = asyncio.run(agent.execute(AgentContext(), "missing", {}))

    assert agent.can_handle("boom") is True
    assert agent.can_handle("missing") is False
    assert response.error == "Unknown action: missing"
    assert response.error_kind == ErrorKind.RESOLUTION


def test_overridden_execute_is_wrapped() -> None:
    response = asyncio.run(_CustomExecuteAgent().execute(AgentContext(), "anything", {}))

    assert response.success is False
    assert response.error == "Custom agent error: custom failure"


def test_capabilities_and_handlers_must_match() -> None:
    class _Mismatched(BaseAgent):
        name = "mismatched"
        CAPABILITIES = (capability("declared", "Declared only"),)

        def handlers(self):
            return {"undeclared": lambda ctx, params: ok()}

    with pytest.raises(ValueError, match="capabilities and handlers differ"):
        _Mismatched()


def test_context_merge_is_copy_on_write() -> None:
    context = AgentContext(symbol="AAPL", timeframe="1D")
    merged = context.merged({"timeframe": "5m", "signal": {"action": "buy"}})

    assert context.timeframe == "1D"
    assert merged.timeframe == "5m"
    assert merged.symbol == "AAPL"
    assert merged.get("signal") == {"action": "buy"}
    assert context.get("signal") is None
