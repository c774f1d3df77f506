"""
Agent Base — Contract and dispatch boundary for all agents.

Every agent exposes:
- name / description / capabilities
- can_handle(action): membership over declared capability names
- execute(context, action, params): never raises

The dispatch boundary (`agent_boundary`) converts any exception raised by a
handler into an `AgentFailure`. It is applied to `BaseAgent.execute` and to
any subclass that overrides `execute`, so no concrete agent can leak a fault
into the executor.
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from shared.models import (
    AgentCapability,
    AgentContext,
    AgentFailure,
    AgentResponse,
    AgentSuccess,
    ErrorKind,
    ParameterSpec,
)

logger = logging.getLogger(__name__)

ActionHandler = Callable[[AgentContext, dict[str, Any]], "AgentResponse | Awaitable[AgentResponse]"]


@runtime_checkable
class Agent(Protocol):
    """Protocol every registered agent follows."""

    name: str
    description: str

    @property
    def capabilities(self) -> tuple[AgentCapability, ...]:
        ...

    def can_handle(self, action: str) -> bool:
        ...

    async def execute(
        self,
        context: AgentContext,
        action: str,
        params: dict[str, Any] | None = None,
    ) -> AgentResponse:
        ...


def param(
    type_: str,
    *,
    optional: bool = False,
    enum: list[str] | None = None,
    default: Any = None,
    items: str | None = None,
) -> ParameterSpec:
    """Shorthand for a capability parameter spec."""
    return ParameterSpec(type=type_, optional=optional, enum=enum, default=default, items=items)


def capability(name: str, description: str, /, **parameters: ParameterSpec) -> AgentCapability:
    return AgentCapability(name=name, description=description, parameters=parameters)


def agent_boundary(func: Callable[..., Any]) -> Callable[..., Awaitable[AgentResponse]]:
    """Wrap an execute implementation so that failures become AgentFailure."""
    if getattr(func, "__agent_boundary__", False):
        return func

    @functools.wraps(func)
    async def wrapper(self, context: AgentContext, action: str, params: dict[str, Any] | None = None) -> AgentResponse:
        label = getattr(self, "label", None) or type(self).__name__
        try:
            result = func(self, context, action, params)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.exception("%s agent failed on action %s", label, action)
            return AgentFailure(
                error=f"{label} agent error: {exc}",
                error_kind=ErrorKind.INTERNAL,
            )

        if not isinstance(result, (AgentSuccess, AgentFailure)):
            logger.error("%s agent returned %s for %s", label, type(result).__name__, action)
            return AgentFailure(
                error=f"{label} agent error: invalid response type {type(result).__name__}",
                error_kind=ErrorKind.INTERNAL,
            )
        return result

    wrapper.__agent_boundary__ = True  # type: ignore[attr-defined]
    return wrapper


class BaseAgent:
    """Table-driven agent.

    Subclasses set `name`, `description`, `label`, `CAPABILITIES` and return
    their action table from `handlers()`. Construction fails when the table
    and the declared capabilities disagree.
    """

    name: str = ""
    description: str = ""
    label: str = ""
    CAPABILITIES: tuple[AgentCapability, ...] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        own_execute = cls.__dict__.get("execute")
        if own_execute is not None:
            cls.execute = agent_boundary(own_execute)  # type: ignore[method-assign]

    def __init__(self) -> None:
        if not self.name:
            raise ValueError(f"{type(self).__name__} must define a name")
        self._handlers: dict[str, ActionHandler] = self.handlers()
        declared = [cap.name for cap in self.CAPABILITIES]
        if set(declared) != set(self._handlers):
            missing = sorted(set(declared) - set(self._handlers))
            undeclared = sorted(set(self._handlers) - set(declared))
            raise ValueError(
                f"Agent {self.name}: capabilities and handlers differ "
                f"(missing handlers={missing}, undeclared handlers={undeclared})"
            )

    def handlers(self) -> dict[str, ActionHandler]:
        return {}

    @property
    def capabilities(self) -> tuple[AgentCapability, ...]:
        return self.CAPABILITIES

    @property
    def capability_names(self) -> list[str]:
        return [cap.name for cap in self.CAPABILITIES]

    def can_handle(self, action: str) -> bool:
        return action in self.capability_names

    def required_context(self) -> list[str]:
        return ["symbol"]

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "capabilities": self.capability_names,
            "required_context": self.required_context(),
        }

    @agent_boundary
    async def execute(
        self,
        context: AgentContext,
        action: str,
        params: dict[str, Any] | None = None,
    ) -> AgentResponse:
        handler = self._handlers.get(action)
        if handler is None:
            return AgentFailure(error=f"Unknown action: {action}", error_kind=ErrorKind.RESOLUTION)
        result = handler(context, dict(params or {}))
        if inspect.isawaitable(result):
            result = await result
        return result


def ok(data: Any = None, message: str = "") -> AgentSuccess:
    return AgentSuccess(data=data, message=message)


def fail(error: str, kind: ErrorKind = ErrorKind.DOMAIN, data: Any = None) -> AgentFailure:
    return AgentFailure(error=error, error_kind=kind, data=data)
