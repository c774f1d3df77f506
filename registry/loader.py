"""
Registry Loader — Builds the runtime agent registry.

Responsibility:
- Instantiate every built-in agent with its collaborators
- Register them (and the orchestrator) into one AgentRegistry

Called once at startup; the result is injected wherever it is needed.
"""

import logging
import random

from agents.alert import AlertAgent
from agents.analysis import AnalysisAgent
from agents.chart_context import ChartContextAgent
from agents.chart_control import ChartControlAgent
from agents.chart_sequence import ChartSequenceAgent
from agents.critique import CritiqueAgent
from agents.router import RouterAgent
from agents.strategy import StrategyAgent
from agents.trading import TradingAgent
from domains.chart.bridge import ChartBridge, InMemoryChartSurface
from domains.chart.catalog import CatalogProvider, StaticCatalogProvider
from orchestrator.orchestrator import OrchestratorAgent
from planner.command_parser import CommandParser
from registry.agent_registry import AgentRegistry

logger = logging.getLogger(__name__)


def build_default_registry(
    bridge: ChartBridge | None = None,
    catalog_provider: CatalogProvider | None = None,
    seed: int | None = None,
) -> AgentRegistry:
    """Register all built-in agents, the router and the orchestrator.

    `seed` makes the simulated analysis / strategy / trading output
    reproducible (each agent gets its own generator derived from it).
    """
    bridge = bridge or InMemoryChartSurface()
    catalog_provider = catalog_provider or StaticCatalogProvider()
    parser = CommandParser(catalog_provider)

    def rng(offset: int) -> random.Random:
        return random.Random(None if seed is None else seed + offset)

    registry = AgentRegistry()
    for agent in (
        ChartControlAgent(bridge, catalog_provider),
        ChartContextAgent(catalog_provider),
        ChartSequenceAgent(bridge, catalog_provider),
        AnalysisAgent(rng(0)),
        StrategyAgent(rng(1)),
        TradingAgent(rng(2)),
        AlertAgent(),
        CritiqueAgent(),
        RouterAgent(parser),
    ):
        registry.register(agent)

    registry.register(OrchestratorAgent(registry, parser=parser))
    logger.info("Agent registry ready: %d agents", len(registry))
    return registry
