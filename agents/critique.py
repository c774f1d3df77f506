"""
Critique Agent — Rule-based review of analyses, trade plans and chart setups.
"""

from __future__ import annotations

import logging
from typing import Any

from agents.base import BaseAgent, capability, ok, param
from shared.models import AgentContext, AgentResponse

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 50.0
MIN_RISK_REWARD = 1.5
MAX_PANE_INDICATORS = 3


class CritiqueAgent(BaseAgent):
    name = "critique"
    label = "Critique"
    description = "Provides feedback on analyses, trade plans, and chart setups"

    CAPABILITIES = (
        capability("review-analysis", "Review an analysis result and suggest improvements", analysis=param("object")),
        capability("review-trade-plan", "Critique a proposed trade plan for risk and feasibility", plan=param("object")),
        capability("evaluate-chart-setup", "Evaluate chart setup and provide enhancement tips", setup=param("object")),
    )

    def handlers(self):
        return {
            "review-analysis": self._review_analysis,
            "review-trade-plan": self._review_trade_plan,
            "evaluate-chart-setup": self._evaluate_chart_setup,
        }

    def _review_analysis(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        analysis = dict(params.get("analysis") or context.get("analysis") or {})
        issues: list[str] = []
        suggestions: list[str] = []

        confidence = analysis.get("confidence")
        if isinstance(confidence, (int, float)) and confidence < MIN_CONFIDENCE:
            issues.append(f"Low confidence ({confidence:.0f}%)")
            suggestions.append("Confirm with an additional timeframe before acting")
        if not analysis.get("signals"):
            issues.append("No indicator signals backing the conclusion")
            suggestions.append("Add at least one momentum indicator such as RSI or MACD")
        if analysis.get("trend") == "neutral":
            suggestions.append("Neutral trend: prefer range strategies or wait for a breakout")

        return ok({"issues": issues, "suggestions": suggestions, "analysis": analysis}, "Analysis reviewed successfully")

    def _review_trade_plan(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        plan = dict(params.get("plan") or {})
        notes: list[str] = []
        risk = "moderate"

        entry = plan.get("entry") or plan.get("price")
        stop = plan.get("stop_loss")
        target = plan.get("take_profit")
        if stop is None:
            notes.append("No stop loss defined")
            risk = "high"
        if entry is not None and stop is not None and target is not None and entry != stop:
            ratio = abs(target - entry) / abs(entry - stop)
            if ratio < MIN_RISK_REWARD:
                notes.append(f"Risk/reward {ratio:.2f} is below {MIN_RISK_REWARD}")
                risk = "high"
            elif ratio >= 2:
                risk = "low"
        if plan.get("risk_level") == "aggressive":
            notes.append("Aggressive risk level: reduce size on correlated positions")

        return ok({"risk": risk, "notes": notes, "plan": plan}, "Trade plan reviewed successfully")

    def _evaluate_chart_setup(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        setup = dict(params.get("setup") or {})
        indicators = [
            (item.get("indicator") if isinstance(item, dict) else item)
            for item in setup.get("indicators") or context.indicators or []
        ]
        improvements: list[str] = []

        if not indicators:
            improvements.append("Add a trend indicator such as EMA or MA")
        if len([i for i in indicators if i in ("RSI", "MACD", "KDJ", "WR")]) > MAX_PANE_INDICATORS:
            improvements.append("Too many oscillators: keep the ones you act on")
        if (setup.get("timeframe") or context.timeframe) in ("1m", "5m") and "VOL" not in indicators:
            improvements.append("Intraday timeframe: add VOL for confirmation")

        return ok({"improvements": improvements, "setup": setup}, "Chart setup evaluated successfully")
