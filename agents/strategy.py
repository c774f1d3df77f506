"""
Strategy Agent — Strategy generation, validation and risk sizing.

Backtests and optimisation are simulated with an injected `random.Random`.
"""

from __future__ import annotations

import itertools
import logging
import random
import time
from typing import Any

from agents.base import BaseAgent, capability, fail, ok, param
from domains.chart.config import RISK_LEVELS, STRATEGY_COMPLEXITY, TRADING_STRATEGIES
from shared.models import AgentContext, AgentResponse, ErrorKind

logger = logging.getLogger(__name__)

# strategy type → (timeframe, max hold, entry rules, exit rules, risk rule)
STRATEGY_RULES: dict[str, tuple[str, str, list[str], list[str], str]] = {
    "day_trade": (
        "1m", "4 hours",
        ["Breakout above resistance", "Volume confirmation"],
        ["Stop loss at 2%", "Take profit at 4%"],
        "2% account risk per trade",
    ),
    "swing_trade": (
        "1D", "2 weeks",
        ["Pullback to support", "RSI oversold"],
        ["Stop loss at 5%", "Take profit at 10%"],
        "3% account risk per trade",
    ),
    "trend_follow": (
        "1D", "1 month",
        ["Price above 50-day MA", "MACD bullish crossover"],
        ["Price below 50-day MA", "MACD bearish crossover"],
        "4% account risk per trade",
    ),
    "mean_reversion": (
        "1D", "1 week",
        ["RSI below 30", "Price at support"],
        ["RSI above 70", "Price at resistance"],
        "2% account risk per trade",
    ),
    "breakout": (
        "1D", "1 week",
        ["Volume breakout", "Price above resistance"],
        ["Volume decline", "Price below breakout level"],
        "3% account risk per trade",
    ),
}

STRATEGY_TEMPLATES = [
    {
        "id": "template_1",
        "name": "Scalping Strategy",
        "category": "day_trading",
        "description": "High-frequency scalping for volatile markets",
        "complexity": "advanced",
        "risk_level": "aggressive",
    },
    {
        "id": "template_2",
        "name": "Momentum Strategy",
        "category": "swing_trading",
        "description": "Follow strong momentum moves",
        "complexity": "partial",
        "risk_level": "moderate",
    },
    {
        "id": "template_3",
        "name": "Value Strategy",
        "category": "long_term",
        "description": "Buy undervalued stocks",
        "complexity": "simple",
        "risk_level": "conservative",
    },
]


class StrategyAgent(BaseAgent):
    name = "strategy"
    label = "Strategy"
    description = "Generates, validates and backtests trading strategies"

    CAPABILITIES = (
        capability(
            "generate-strategy",
            "Generate a trading strategy for a symbol",
            symbol=param("string"),
            strategyType=param("string", enum=list(TRADING_STRATEGIES)),
            complexity=param("string", optional=True, enum=list(STRATEGY_COMPLEXITY), default="advanced"),
            riskLevel=param("string", optional=True, enum=list(RISK_LEVELS), default="moderate"),
        ),
        capability(
            "optimize-strategy",
            "Optimize an existing strategy",
            strategyId=param("string"),
            performanceData=param("object", optional=True),
            optimizationGoals=param("array", optional=True, items="string"),
        ),
        capability(
            "backtest-strategy",
            "Backtest a strategy over a period",
            symbol=param("string"),
            strategy=param("object"),
            startDate=param("string", optional=True),
            endDate=param("string", optional=True),
            timeframe=param("string", optional=True),
        ),
        capability("get-strategy-templates", "List strategy templates", category=param("string", optional=True)),
        capability("validate-strategy", "Validate strategy rules", strategy=param("object")),
        capability(
            "get-complexity-config",
            "Describe a strategy complexity level",
            complexity=param("string", enum=list(STRATEGY_COMPLEXITY)),
        ),
        capability(
            "calculate-risk-parameters",
            "Derive risk limits from account balance and tolerance",
            strategy=param("object", optional=True),
            accountBalance=param("number"),
            riskTolerance=param("string", optional=True, enum=list(RISK_LEVELS), default="moderate"),
        ),
    )

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()
        self._ids = itertools.count(1)
        super().__init__()

    def handlers(self):
        return {
            "generate-strategy": self._generate,
            "optimize-strategy": self._optimize,
            "backtest-strategy": self._backtest,
            "get-strategy-templates": self._templates,
            "validate-strategy": self._validate,
            "get-complexity-config": self._complexity,
            "calculate-risk-parameters": self._risk_parameters,
        }

    def _generate(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        strategy_type = params.get("strategyType") or params.get("strategy_type")
        strategy = self.build_strategy(
            symbol,
            strategy_type,
            params.get("complexity") or "advanced",
            params.get("riskLevel") or params.get("risk_level") or "moderate",
        )
        return ok({"strategy": strategy}, f"Strategy generated for {symbol}")

    def build_strategy(self, symbol: str, strategy_type: str | None, complexity: str, risk_level: str) -> dict[str, Any]:
        strategy: dict[str, Any] = {
            "id": f"strategy_{next(self._ids)}",
            "symbol": symbol,
            "type": strategy_type,
            "complexity": complexity,
            "risk_level": risk_level,
            "status": "active",
        }
        rules = STRATEGY_RULES.get(strategy_type or "")
        if rules:
            timeframe, max_hold, entry_rules, exit_rules, risk_rule = rules
            strategy.update(
                {
                    "timeframe": timeframe,
                    "max_hold_time": max_hold,
                    "entry_rules": list(entry_rules),
                    "exit_rules": list(exit_rules),
                    "risk_management": risk_rule,
                }
            )
        return strategy

    def _optimize(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        strategy_id = params.get("strategyId") or params.get("strategy_id")
        if not strategy_id:
            return fail("Strategy id is required", ErrorKind.VALIDATION)
        optimized = {
            "id": strategy_id,
            **dict(params.get("performanceData") or {}),
            "optimized": True,
            "goals": list(params.get("optimizationGoals") or []),
            "improvements": [
                f"Reduced drawdown by {self._rng.randint(5, 20)}%",
                f"Increased win rate by {self._rng.randint(2, 10)}%",
                "Improved risk-reward ratio",
            ],
        }
        return ok({"strategy": optimized}, f"Strategy {strategy_id} optimized successfully")

    def _backtest(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        rng = self._rng
        trades = [
            {
                "id": f"trade_{i + 1}",
                "entry": round(rng.uniform(50, 150), 2),
                "exit": round(rng.uniform(50, 150), 2),
                "profit": round(rng.uniform(-100, 100), 2),
            }
            for i in range(20)
        ]
        results = {
            "total_trades": rng.randint(20, 119),
            "win_rate": round(rng.uniform(50, 90), 2),
            "profit_factor": round(rng.uniform(1, 3), 2),
            "max_drawdown": round(rng.uniform(5, 25), 2),
            "sharpe_ratio": round(rng.uniform(0.5, 2.5), 2),
            "total_return": round(rng.uniform(10, 110), 2),
            "average_trade": round(rng.uniform(100, 1100), 2),
        }
        return ok(
            {
                "backtest": {
                    "symbol": symbol,
                    "strategy": params.get("strategy"),
                    "period": {"start_date": params.get("startDate"), "end_date": params.get("endDate")},
                    "timeframe": params.get("timeframe") or "1D",
                    "results": results,
                    "trades": trades,
                    "generated_at": time.time(),
                }
            },
            f"Backtest completed for {symbol}",
        )

    def _templates(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        category = params.get("category")
        templates = [t for t in STRATEGY_TEMPLATES if not category or t["category"] == category]
        return ok({"templates": templates, "count": len(templates)}, f"Retrieved {len(templates)} strategy templates")

    def _validate(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        validation = validate_strategy_rules(params.get("strategy") or {})
        if not validation["is_valid"]:
            return fail("Strategy validation failed: " + "; ".join(validation["errors"]), ErrorKind.VALIDATION, validation)
        return ok(validation, "Strategy is valid")

    def _complexity(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        complexity = params.get("complexity")
        config = STRATEGY_COMPLEXITY.get(complexity or "")
        if config is None:
            return fail(f"Unknown complexity level: {complexity}", ErrorKind.VALIDATION)
        return ok({"complexity": complexity, **config}, f"Complexity configuration for {complexity}")

    def _risk_parameters(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        balance = float(params.get("accountBalance") or params.get("account_balance") or 0)
        if balance <= 0:
            return fail("Account balance must be positive", ErrorKind.VALIDATION)
        tolerance = params.get("riskTolerance") or params.get("risk_tolerance") or "moderate"
        risk_pct = RISK_LEVELS.get(tolerance, RISK_LEVELS["moderate"])
        max_risk = balance * risk_pct
        return ok(
            {
                "account_balance": balance,
                "risk_tolerance": tolerance,
                "max_risk_amount": max_risk,
                "risk_percentage": risk_pct * 100,
                "stop_loss_distance": 2,
                "take_profit_distance": 4,
            },
            "Risk parameters calculated",
        )


def validate_strategy_rules(strategy: dict[str, Any]) -> dict[str, Any]:
    errors: list[str] = []
    if not strategy.get("type"):
        errors.append("Strategy type is required")
    if not strategy.get("entry_rules"):
        errors.append("Entry rules are required")
    if not strategy.get("exit_rules"):
        errors.append("Exit rules are required")
    if not strategy.get("risk_management"):
        errors.append("Risk management is required")
    return {"is_valid": not errors, "errors": errors, "warnings": []}
