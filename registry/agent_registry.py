"""
Registry — Maps agent names and capabilities to agents.

Responsibility:
- Maintain mapping of agent name -> Agent (first registration wins)
- Answer capability / action lookups

Built once at startup and injected; there is no module-level instance.
"""

import logging
import threading
from typing import Any

from agents.base import Agent

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Registry of capability-bearing agents."""

    def __init__(self):
        self._agents: dict[str, Agent] = {}
        self._lock = threading.Lock()

    def register(self, agent: Agent) -> None:
        """Register an agent under its name. Duplicates are ignored with a warning."""
        with self._lock:
            if agent.name in self._agents:
                logger.warning(
                    "Agent %s already registered (%s); ignoring %s",
                    agent.name,
                    self._agents[agent.name].__class__.__name__,
                    agent.__class__.__name__,
                )
                return
            self._agents[agent.name] = agent
        logger.info("Registered agent: %s → %s", agent.name, agent.__class__.__name__)

    def get_agent(self, name: str) -> Agent | None:
        with self._lock:
            return self._agents.get(name)

    def get_agents_by_capability(self, capability_name: str) -> list[Agent]:
        """Agents whose declared capability list contains `capability_name`."""
        with self._lock:
            agents = list(self._agents.values())
        return [a for a in agents if any(cap.name == capability_name for cap in a.capabilities)]

    def get_agents_for_action(self, action: str) -> list[Agent]:
        """Agents whose `can_handle(action)` is true."""
        with self._lock:
            agents = list(self._agents.values())
        return [a for a in agents if a.can_handle(action)]

    def all_agents(self) -> list[Agent]:
        with self._lock:
            return list(self._agents.values())

    def capabilities_summary(self) -> dict[str, list[str]]:
        return {agent.name: [cap.name for cap in agent.capabilities] for agent in self.all_agents()}

    def describe(self) -> list[dict[str, Any]]:
        return [
            {
                "name": agent.name,
                "description": agent.description,
                "capabilities": [cap.model_dump() for cap in agent.capabilities],
            }
            for agent in self.all_agents()
        ]

    @property
    def registered_agents(self) -> list[str]:
        with self._lock:
            return list(self._agents.keys())

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._agents

    def __len__(self) -> int:
        with self._lock:
            return len(self._agents)
