"""Router agent: the command parser as an agent action."""

from __future__ import annotations

import logging
from typing import Any

from agents.base import BaseAgent, capability, fail, ok, param
from planner.command_parser import CommandParser
from shared.models import AgentContext, AgentResponse, ErrorKind

logger = logging.getLogger(__name__)


class RouterAgent(BaseAgent):
    name = "router"
    label = "Router"
    description = "Classifies user intents and emits a minimal action plan for the chart."

    CAPABILITIES = (
        capability("route", "Parse user text into a compact action plan", text=param("string")),
    )

    def __init__(self, parser: CommandParser | None = None):
        self._parser = parser or CommandParser()
        super().__init__()

    def handlers(self):
        return {"route": self._route}

    def _route(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        text = params.get("text")
        if not isinstance(text, str) or not text.strip():
            return fail("Text is required", ErrorKind.VALIDATION)
        plan = self._parser.parse(text, session_id=context.session_id, plan_id=params.get("plan_id"))
        return ok({"plan": plan.model_dump()}, "Plan created" if plan.steps else "No actionable command found")

    def required_context(self) -> list[str]:
        return []
