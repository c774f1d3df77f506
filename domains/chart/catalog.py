"""
Chart Domain — Capability Catalogue.

Responsibility:
- Expose indicator metadata (canonical name, default params, overlay flag)
- Expose valid timeframes, chart types, line styles and colors
- Resolve color words to palette values

Prohibitions:
- No chart mutation
- No caching of parser results

The parser reads the catalogue on every call, so a provider may return a
fresh snapshot each time.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from domains.chart import config

logger = logging.getLogger(__name__)


class IndicatorMeta(BaseModel):
    """Catalogue entry for a single indicator."""
    model_config = {"frozen": True}

    name: str
    title: str = ""
    default_params: list[int] = Field(default_factory=list)
    overlay: bool = False
    default_color: str | None = None


@runtime_checkable
class CatalogProvider(Protocol):
    """Read-only source of chart vocabulary."""

    def get_catalog(self) -> "ChartCatalog":
        ...


class ChartCatalog:
    """Immutable view over the chart vocabulary."""

    def __init__(
        self,
        indicators: list[dict[str, Any]] | None = None,
        timeframes: list[str] | None = None,
        chart_types: list[str] | None = None,
        colors: dict[str, str] | None = None,
        synonyms: dict[str, str] | None = None,
    ):
        raw_indicators = indicators if indicators is not None else config.BUILTIN_INDICATORS
        self._indicators: dict[str, IndicatorMeta] = {}
        for entry in raw_indicators:
            meta = IndicatorMeta(**entry)
            self._indicators[meta.name.upper()] = meta

        self._timeframes = tuple(timeframes or [tf["value"] for tf in config.TIMEFRAMES])
        self._chart_types = tuple(chart_types or [ct["value"] for ct in config.CHART_TYPES])
        self._colors = {
            name.lower(): value
            for name, value in (colors or {c["name"]: c["value"] for c in config.COLOR_PALETTE}).items()
        }
        self._synonyms = {k.lower(): v.upper() for k, v in (synonyms or config.INDICATOR_SYNONYMS).items()}

    # ─── Indicators ───────────────────────────────────────────

    @property
    def indicators(self) -> list[IndicatorMeta]:
        return list(self._indicators.values())

    def get_indicator(self, name: str) -> IndicatorMeta | None:
        """Lookup by canonical name, title or synonym (case-insensitive)."""
        if not name:
            return None
        key = name.strip()
        meta = self._indicators.get(key.upper())
        if meta is not None:
            return meta
        canonical = self._synonyms.get(key.lower())
        if canonical:
            return self._indicators.get(canonical)
        for candidate in self._indicators.values():
            if candidate.title.lower() == key.lower():
                return candidate
        return None

    def default_params(self, name: str) -> list[int]:
        meta = self.get_indicator(name)
        return list(meta.default_params) if meta else []

    def is_overlay(self, name: str) -> bool:
        meta = self.get_indicator(name)
        return bool(meta and meta.overlay)

    def indicator_aliases(self) -> dict[str, str]:
        """alias (lowercase) → canonical name, including built-in synonyms."""
        aliases = {name.lower(): name for name in self._indicators}
        for alias, canonical in self._synonyms.items():
            if canonical in self._indicators:
                aliases[alias] = canonical
        return aliases

    # ─── Chart vocabulary ─────────────────────────────────────

    @property
    def timeframes(self) -> tuple[str, ...]:
        return self._timeframes

    @property
    def chart_types(self) -> tuple[str, ...]:
        return self._chart_types

    @property
    def color_names(self) -> list[str]:
        return list(self._colors.keys())

    def is_valid_timeframe(self, value: str | None) -> bool:
        return bool(value) and value in self._timeframes

    def is_valid_chart_type(self, value: str | None) -> bool:
        return bool(value) and value in self._chart_types

    def resolve_color(self, value: str | None) -> str | None:
        """Color word or hex → hex value, None when unknown."""
        if not value:
            return None
        text = value.strip()
        if text.startswith("#"):
            hex_values = {v.upper() for v in self._colors.values()}
            return text.upper() if text.upper() in hex_values else None
        return self._colors.get(text.lower())

    def is_valid_color(self, value: str | None) -> bool:
        return self.resolve_color(value) is not None

    def to_dict(self) -> dict[str, Any]:
        """Snapshot used by the chart-context agent."""
        return {
            "timeframes": list(self._timeframes),
            "chart_types": list(self._chart_types),
            "line_styles": list(config.LINE_STYLES),
            "line_thickness": dict(config.LINE_THICKNESS),
            "colors": dict(self._colors),
            "display_options": list(config.DISPLAY_OPTIONS),
            "navigation": list(config.NAVIGATION_DIRECTIONS),
            "strategies": list(config.TRADING_STRATEGIES),
            "risk_levels": list(config.RISK_LEVELS),
            "indicators": [meta.model_dump() for meta in self._indicators.values()],
        }


class StaticCatalogProvider:
    """Provider returning the built-in catalogue (or a fixed instance)."""

    def __init__(self, catalog: ChartCatalog | None = None):
        self._catalog = catalog

    def get_catalog(self) -> ChartCatalog:
        if self._catalog is not None:
            return self._catalog
        return ChartCatalog()
