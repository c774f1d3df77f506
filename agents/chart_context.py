"""
Chart Context Agent — Read-only access to the chart catalogue.
"""

from __future__ import annotations

import logging
from typing import Any

from agents.base import BaseAgent, capability, fail, ok, param
from domains.chart import config
from domains.chart.catalog import CatalogProvider, StaticCatalogProvider
from shared.models import AgentContext, AgentResponse, ErrorKind

logger = logging.getLogger(__name__)

OPTION_TYPES = ("color", "timeframe", "chartType")
ELEMENT_TYPES = ("colors", "timeframes", "indicators", "chartTypes", "lineStyles")


class ChartContextAgent(BaseAgent):
    name = "chart-context"
    label = "Chart context"
    description = "Manages chart configuration and context information"

    CAPABILITIES = (
        capability("get-chart-context", "Get comprehensive chart context configuration"),
        capability(
            "validate-chart-option",
            "Validate chart options like colors, timeframes, chart types",
            optionType=param("string", enum=list(OPTION_TYPES)),
            value=param("string"),
        ),
        capability(
            "get-available-options",
            "Get available options for specific chart elements",
            elementType=param("string", enum=list(ELEMENT_TYPES)),
        ),
        capability(
            "get-indicator-info",
            "Get detailed information about a specific indicator",
            indicatorName=param("string"),
        ),
    )

    def __init__(self, catalog_provider: CatalogProvider | None = None):
        self._catalog_provider = catalog_provider or StaticCatalogProvider()
        super().__init__()

    def handlers(self):
        return {
            "get-chart-context": self._get_chart_context,
            "validate-chart-option": self._validate_option,
            "get-available-options": self._get_available_options,
            "get-indicator-info": self._get_indicator_info,
        }

    def _get_chart_context(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        catalog = self._catalog_provider.get_catalog()
        # Nested so the catalogue does not shadow session keys when merged into context.
        return ok({"chart_context": catalog.to_dict()}, "Chart context configuration retrieved successfully")

    def _validate_option(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        catalog = self._catalog_provider.get_catalog()
        option_type = params.get("optionType") or params.get("option_type")
        value = params.get("value")

        checks = {
            "color": (catalog.is_valid_color, "color"),
            "timeframe": (catalog.is_valid_timeframe, "timeframe"),
            "chartType": (catalog.is_valid_chart_type, "chart type"),
        }
        if option_type not in checks:
            return fail("Unknown option type", ErrorKind.VALIDATION)

        check, noun = checks[option_type]
        is_valid = check(value)
        return ok(
            {"is_valid": is_valid, "value": value, "option_type": option_type},
            f"Valid {noun}" if is_valid else f"Invalid {noun}",
        )

    def _get_available_options(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        catalog = self._catalog_provider.get_catalog()
        element_type = params.get("elementType") or params.get("element_type")

        if element_type == "colors":
            options: list[Any] = [{"name": n, "value": catalog.resolve_color(n)} for n in catalog.color_names]
        elif element_type == "timeframes":
            options = list(catalog.timeframes)
        elif element_type == "indicators":
            options = [meta.model_dump() for meta in catalog.indicators]
        elif element_type == "chartTypes":
            options = list(catalog.chart_types)
        elif element_type == "lineStyles":
            options = list(config.LINE_STYLES)
        else:
            return fail("Unknown element type", ErrorKind.VALIDATION)

        return ok({"options": options}, f"Available {element_type} retrieved successfully")

    def _get_indicator_info(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        catalog = self._catalog_provider.get_catalog()
        name = params.get("indicatorName") or params.get("indicator") or ""
        meta = catalog.get_indicator(name)
        if meta is None:
            return fail(f"Indicator '{name}' not found", ErrorKind.RESOLUTION)
        return ok({"indicator_info": meta.model_dump()}, f"Indicator information for '{name}' retrieved successfully")
