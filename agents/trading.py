"""
Trading Agent — Simulated order handling and position maths.

No brokerage is reached. Fills are recorded in an in-process position book
owned by the agent instance.
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Any

from agents.base import BaseAgent, capability, fail, ok, param
from domains.chart.config import RISK_LEVELS
from shared.models import AgentContext, AgentResponse, ErrorKind

logger = logging.getLogger(__name__)

TRADE_ACTIONS = ("buy", "sell", "hold")
DEFAULT_PRICE = 100.0
STOP_LOSS_PCT = 0.02
TAKE_PROFIT_PCT = 0.04
STARTING_CASH = 100_000.0

REASONS = {
    "buy": [
        "Strong bullish momentum detected for {symbol}",
        "Technical indicators suggest upward trend for {symbol}",
        "Support level holding strong for {symbol}",
        "Volume confirmation for {symbol} breakout",
    ],
    "sell": [
        "Bearish divergence detected for {symbol}",
        "Resistance level rejection for {symbol}",
        "Take profit target reached for {symbol}",
    ],
    "hold": [
        "Waiting for clearer signal for {symbol}",
        "Monitoring key levels for {symbol}",
    ],
}


def default_stop_loss(action: str, price: float) -> float:
    return price * (1 - STOP_LOSS_PCT) if action == "buy" else price * (1 + STOP_LOSS_PCT)


def default_take_profit(action: str, price: float) -> float:
    return price * (1 + TAKE_PROFIT_PCT) if action == "buy" else price * (1 - TAKE_PROFIT_PCT)


class TradingAgent(BaseAgent):
    name = "trading"
    label = "Trading"
    description = "Simulates trade execution, signals and position management"

    CAPABILITIES = (
        capability(
            "execute-trade",
            "Execute a simulated trade",
            symbol=param("string"),
            action=param("string", enum=list(TRADE_ACTIONS)),
            quantity=param("number", optional=True),
            price=param("number", optional=True),
            stopLoss=param("number", optional=True),
            takeProfit=param("number", optional=True),
        ),
        capability(
            "generate-trade-signal",
            "Generate a buy/sell/hold signal",
            symbol=param("string"),
            strategy=param("string", optional=True),
            riskLevel=param("string", optional=True, enum=list(RISK_LEVELS)),
        ),
        capability(
            "calculate-position-size",
            "Size a position from account risk",
            symbol=param("string"),
            accountBalance=param("number"),
            riskPercentage=param("number", optional=True, default=2),
            stopLossDistance=param("number"),
        ),
        capability(
            "set-stop-loss",
            "Set stop loss for a position",
            symbol=param("string"),
            stopLoss=param("number"),
            positionType=param("string", optional=True, enum=["long", "short"]),
        ),
        capability(
            "set-take-profit",
            "Set take profit for a position",
            symbol=param("string"),
            takeProfit=param("number"),
            positionType=param("string", optional=True, enum=["long", "short"]),
        ),
        capability(
            "close-position",
            "Close an open position",
            symbol=param("string"),
            reason=param("string", optional=True),
        ),
        capability("get-portfolio-status", "Get current positions and cash"),
        capability(
            "calculate-risk-reward",
            "Compute the risk/reward ratio of a setup",
            entryPrice=param("number"),
            stopLoss=param("number"),
            takeProfit=param("number"),
        ),
    )

    def __init__(self, rng: random.Random | None = None, starting_cash: float = STARTING_CASH):
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._cash = starting_cash
        self._positions: dict[str, dict[str, Any]] = {}
        super().__init__()

    def handlers(self):
        return {
            "execute-trade": self._execute_trade,
            "generate-trade-signal": self._generate_signal,
            "calculate-position-size": self._position_size,
            "set-stop-loss": self._set_stop_loss,
            "set-take-profit": self._set_take_profit,
            "close-position": self._close_position,
            "get-portfolio-status": self._portfolio_status,
            "calculate-risk-reward": self._risk_reward,
        }

    def _reason(self, action: str, symbol: str) -> str:
        return self._rng.choice(REASONS.get(action, REASONS["hold"])).format(symbol=symbol)

    def _execute_trade(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        # A signal produced earlier in the workflow decides the side when none is given.
        signal = context.get("signal") or {}
        action = params.get("action") or (signal.get("action") if isinstance(signal, dict) else None)
        if not symbol:
            return fail("Symbol is required", ErrorKind.VALIDATION)
        if action not in TRADE_ACTIONS:
            return fail(f"Unknown trade action: {action}", ErrorKind.VALIDATION)

        price = float(params.get("price") or context.current_price or DEFAULT_PRICE)
        quantity = int(params.get("quantity") or self._rng.randint(10, 109))
        trade = {
            "symbol": symbol,
            "action": action,
            "quantity": quantity,
            "price": price,
            "stop_loss": params.get("stopLoss") or round(default_stop_loss(action, price), 2),
            "take_profit": params.get("takeProfit") or round(default_take_profit(action, price), 2),
            "reasoning": self._reason(action, symbol),
        }
        if action != "hold":
            self._fill(symbol, action, quantity, price, trade)
        logger.info("Simulated %s %s x%s @ %s", action, symbol, quantity, price)
        return ok({"trade": trade}, f"Trade executed successfully for {symbol}")

    def _fill(self, symbol: str, action: str, quantity: int, price: float, trade: dict[str, Any]) -> None:
        signed = quantity if action == "buy" else -quantity
        with self._lock:
            position = self._positions.setdefault(symbol, {"symbol": symbol, "quantity": 0, "average_price": price})
            new_qty = position["quantity"] + signed
            if new_qty and (position["quantity"] >= 0) == (signed > 0):
                total = position["average_price"] * abs(position["quantity"]) + price * quantity
                position["average_price"] = round(total / abs(new_qty), 4)
            position["quantity"] = new_qty
            position["stop_loss"] = trade["stop_loss"]
            position["take_profit"] = trade["take_profit"]
            self._cash -= signed * price
            if new_qty == 0:
                del self._positions[symbol]

    def _generate_signal(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        action = self._rng.choice(TRADE_ACTIONS)
        signal = {
            "action": action,
            "symbol": symbol,
            "strategy": params.get("strategy") or "technical",
            "risk_level": params.get("riskLevel") or "moderate",
            "confidence": round(self._rng.uniform(0, 100), 2),
            "reasoning": self._reason(action, symbol),
        }
        return ok({"signal": signal}, f"Trading signal generated for {symbol}")

    def _position_size(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        balance = float(params.get("accountBalance") or 0)
        risk_pct = float(params.get("riskPercentage") or 2)
        distance = float(params.get("stopLossDistance") or 0)
        if balance <= 0:
            return fail("Account balance must be positive", ErrorKind.VALIDATION)
        if distance <= 0:
            return fail("Stop loss distance must be positive", ErrorKind.VALIDATION)

        risk_amount = balance * (risk_pct / 100)
        return ok(
            {
                "position_size": int(risk_amount // distance),
                "risk_amount": risk_amount,
                "risk_percentage": risk_pct,
                "stop_loss_distance": distance,
            },
            f"Position size calculated for {symbol}",
        )

    def _set_level(self, context: AgentContext, params: dict[str, Any], key: str, param_name: str, noun: str) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        level = params.get(param_name)
        if level is None:
            return fail(f"{noun} level is required", ErrorKind.VALIDATION)
        position_type = params.get("positionType") or "long"
        with self._lock:
            position = self._positions.get(symbol)
            if position is not None:
                position[key] = level
        trade = {
            "action": "hold",
            key: level,
            "position_type": position_type,
            "reasoning": f"{noun} set at {level} for {position_type} position",
        }
        return ok({"trade": trade}, f"{noun} set for {symbol}")

    def _set_stop_loss(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        return self._set_level(context, params, "stop_loss", "stopLoss", "Stop loss")

    def _set_take_profit(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        return self._set_level(context, params, "take_profit", "takeProfit", "Take profit")

    def _close_position(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        with self._lock:
            position = self._positions.pop(symbol, None)
        if position is None:
            return fail(f"No open position for {symbol}", ErrorKind.RESOLUTION)

        price = float(context.current_price or position["average_price"])
        with self._lock:
            self._cash += position["quantity"] * price
        trade = {
            "action": "sell" if position["quantity"] > 0 else "buy",
            "quantity": abs(position["quantity"]),
            "price": price,
            "reasoning": params.get("reason") or "Position closed by user request",
        }
        return ok({"trade": trade}, f"Position closed for {symbol}")

    def _portfolio_status(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        with self._lock:
            positions = [dict(p) for p in self._positions.values()]
            cash = self._cash
        for position in positions:
            position["value"] = round(position["quantity"] * position["average_price"], 2)
        total = cash + sum(p["value"] for p in positions)
        return ok(
            {"portfolio": {"cash": round(cash, 2), "positions": positions, "total_value": round(total, 2)}},
            "Portfolio status retrieved",
        )

    def _risk_reward(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        try:
            entry = float(params["entryPrice"])
            stop = float(params["stopLoss"])
            target = float(params["takeProfit"])
        except (KeyError, TypeError, ValueError):
            return fail("entryPrice, stopLoss and takeProfit are required numbers", ErrorKind.VALIDATION)

        risk = abs(entry - stop)
        if risk == 0:
            return fail("Stop loss equals entry price", ErrorKind.VALIDATION)
        reward = abs(target - entry)
        ratio = round(reward / risk, 2)
        return ok(
            {
                "risk_reward_ratio": ratio,
                "risk": risk,
                "reward": reward,
                "entry_price": entry,
                "stop_loss": stop,
                "take_profit": target,
            },
            f"Risk-reward ratio calculated: {ratio:.2f}",
        )
