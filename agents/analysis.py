"""
Analysis Agent — Simulated technical, fundamental and chart analysis.

Market data is out of scope, so every figure is drawn from an injected
`random.Random`. Seed it to make results reproducible.
"""

from __future__ import annotations

import logging
import random
from typing import Any

from agents.base import BaseAgent, capability, ok, param
from shared.models import AgentContext, AgentResponse

logger = logging.getLogger(__name__)

RECOMMENDATIONS = [
    "Consider taking a long position",
    "Watch for breakout patterns",
    "Monitor volume for confirmation",
    "Set stop loss at key support level",
    "Consider partial profit taking",
]

PATTERNS = ["head_and_shoulders", "double_top", "double_bottom", "triangle", "flag"]


class AnalysisAgent(BaseAgent):
    name = "analysis"
    label = "Analysis"
    description = "Performs technical and fundamental market analysis"

    CAPABILITIES = (
        capability(
            "technical-analysis",
            "Perform technical analysis on chart data",
            symbol=param("string"),
            timeframe=param("string", optional=True),
            indicators=param("array", optional=True, items="string"),
        ),
        capability("fundamental-analysis", "Perform fundamental analysis on company data", symbol=param("string")),
        capability(
            "comprehensive-analysis",
            "Perform comprehensive analysis combining technical and fundamental",
            symbol=param("string"),
            timeframe=param("string", optional=True),
        ),
        capability(
            "analyze-chart",
            "Analyze current chart state and provide insights",
            symbol=param("string"),
            indicators=param("array", optional=True, items="string"),
        ),
        capability(
            "detect-patterns",
            "Detect chart patterns and formations",
            symbol=param("string"),
            patternTypes=param("array", optional=True, items="string"),
        ),
        capability(
            "calculate-support-resistance",
            "Calculate key support and resistance levels",
            symbol=param("string"),
            timeframe=param("string", optional=True),
        ),
        capability(
            "assess-risk",
            "Assess risk levels and volatility",
            symbol=param("string"),
            timeframe=param("string", optional=True),
        ),
        capability(
            "entry-exit-analysis",
            "Generate entry and exit signals based on indicators",
            symbol=param("string"),
            indicators=param("array", optional=True, items="string"),
        ),
    )

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()
        super().__init__()

    def handlers(self):
        return {
            "technical-analysis": self._technical,
            "fundamental-analysis": self._fundamental,
            "comprehensive-analysis": self._comprehensive,
            "analyze-chart": self._analyze_chart,
            "detect-patterns": self._detect_patterns,
            "calculate-support-resistance": self._support_resistance,
            "assess-risk": self._assess_risk,
            "entry-exit-analysis": self._entry_exit,
        }

    # ─── Handlers ─────────────────────────────────────────────

    def _technical(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = _symbol(context, params)
        indicators = _indicator_names(params.get("indicators"))
        analysis = self._base_analysis(indicators)
        analysis["indicators"] = indicators
        analysis["timeframe"] = params.get("timeframe") or context.timeframe or "1D"
        return ok({"analysis": analysis}, f"Technical analysis completed for {symbol}")

    def _fundamental(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = _symbol(context, params)
        return ok({"analysis": self._fundamental_analysis()}, f"Fundamental analysis completed for {symbol}")

    def _comprehensive(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = _symbol(context, params)
        technical = self._base_analysis([])
        technical["timeframe"] = params.get("timeframe") or context.timeframe or "1D"
        fundamental = self._fundamental_analysis()

        analysis = {
            "trend": technical["trend"] if technical["trend"] == fundamental["trend"] else "neutral",
            "strength": (technical["strength"] + fundamental["strength"]) / 2,
            "confidence": (technical["confidence"] + fundamental["confidence"]) / 2,
            "signals": technical["signals"] + fundamental["signals"],
            "recommendations": technical["recommendations"] + fundamental["recommendations"],
            "technical": technical,
            "fundamental": fundamental,
        }
        return ok({"analysis": analysis}, f"Comprehensive analysis completed for {symbol}")

    def _analyze_chart(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = _symbol(context, params)
        indicators = _indicator_names(params.get("indicators") or context.indicators)
        analysis = self._base_analysis(indicators)
        analysis["chart_state"] = {
            "indicators": indicators,
            "timeframe": context.timeframe or "1D",
            "chart_type": context.chart_type or "candle",
        }
        return ok({"analysis": analysis}, f"Chart analysis completed for {symbol}")

    def _detect_patterns(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = _symbol(context, params)
        requested = [p for p in params.get("patternTypes") or [] if p in PATTERNS]
        candidates = requested or PATTERNS
        patterns = [
            {
                "type": pattern,
                "confidence": self._pct(),
                "target": self._pct(),
                "stop_loss": self._pct(),
            }
            for pattern in candidates[: self._rng.randint(1, min(3, len(candidates)))]
        ]
        analysis = self._base_analysis([])
        analysis["signals"] = patterns
        analysis["patterns"] = patterns
        analysis["recommendations"] = [f"Watch for {p['type']} pattern completion" for p in patterns]
        return ok({"analysis": analysis}, f"Pattern detection completed for {symbol}")

    def _support_resistance(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = _symbol(context, params)
        price = context.current_price or self._rng.uniform(10, 100)
        levels = [
            {"type": "support", "level": round(price * (1 - self._rng.uniform(0.01, 0.05)), 2), "strength": self._pct()},
            {"type": "resistance", "level": round(price * (1 + self._rng.uniform(0.01, 0.05)), 2), "strength": self._pct()},
        ]
        analysis = self._base_analysis([])
        analysis["signals"] = levels
        analysis["support_resistance"] = levels
        analysis["recommendations"] = [f"Key {lvl['type']} at {lvl['level']:.2f}" for lvl in levels]
        return ok({"analysis": analysis}, f"Support and resistance levels calculated for {symbol}")

    def _assess_risk(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = _symbol(context, params)
        volatility = self._pct()
        risk = {
            "volatility": volatility,
            "beta": self._rng.uniform(0, 2),
            "max_drawdown": self._rng.uniform(0, 20),
            "level": "high" if volatility > 66 else "medium" if volatility > 33 else "low",
        }
        analysis = self._base_analysis([])
        analysis["signals"] = [
            {"type": "volatility", "value": volatility, "level": risk["level"]},
            {"type": "correlation", "value": self._pct(), "level": "medium"},
        ]
        analysis["recommendations"] = [
            "Size positions to the measured volatility",
            "Monitor market correlation",
            "Set appropriate stop losses",
        ]
        analysis["risk"] = risk
        return ok({"analysis": analysis}, f"Risk assessment completed for {symbol}")

    def _entry_exit(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = _symbol(context, params)
        indicators = _indicator_names(params.get("indicators") or context.indicators)
        price = context.current_price or self._rng.uniform(10, 100)
        entry = price * (1 - self._rng.uniform(0, 0.02))
        exit_ = price * (1 + self._rng.uniform(0, 0.02))

        analysis = self._base_analysis(indicators)
        analysis.update(
            {
                "indicators": indicators,
                "entry": round(entry, 2),
                "exit": round(exit_, 2),
                "stop_loss": round(entry * 0.98, 2),
                "take_profit": round(exit_ * 1.02, 2),
            }
        )
        return ok({"analysis": analysis}, f"Entry/exit analysis completed for {symbol}")

    # ─── Helpers ──────────────────────────────────────────────

    def _pct(self) -> float:
        return round(self._rng.uniform(0, 100), 2)

    def _trend(self) -> str:
        roll = self._rng.random()
        if roll < 0.4:
            return "bullish"
        if roll < 0.7:
            return "bearish"
        return "neutral"

    def _base_analysis(self, indicators: list[str]) -> dict[str, Any]:
        signals = [
            {
                "type": indicator,
                "value": self._pct(),
                "signal": "buy" if self._rng.random() > 0.5 else "sell",
                "strength": self._pct(),
            }
            for indicator in indicators
        ]
        return {
            "trend": self._trend(),
            "strength": self._pct(),
            "confidence": self._pct(),
            "signals": signals,
            "recommendations": RECOMMENDATIONS[: self._rng.randint(1, 3)],
        }

    def _fundamental_analysis(self) -> dict[str, Any]:
        return {
            "trend": "neutral",
            "strength": self._pct(),
            "confidence": self._pct(),
            "signals": [
                {"type": "pe_ratio", "value": 15.2, "signal": "neutral"},
                {"type": "debt_ratio", "value": 0.3, "signal": "positive"},
                {"type": "revenue_growth", "value": 0.12, "signal": "positive"},
            ],
            "recommendations": [
                "Strong financial position",
                "Moderate growth prospects",
                "Consider for long-term portfolio",
            ],
        }


def _symbol(context: AgentContext, params: dict[str, Any]) -> str:
    return params.get("symbol") or context.symbol or "UNKNOWN"


def _indicator_names(raw: Any) -> list[str]:
    """Accept plain names or chart-state entries ({"indicator": ...})."""
    names: list[str] = []
    for item in raw or []:
        if isinstance(item, dict):
            item = item.get("indicator") or item.get("type") or item.get("name")
        if item and str(item) not in names:
            names.append(str(item))
    return names
