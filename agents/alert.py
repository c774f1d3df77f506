"""
Alert Agent — In-process alert book.

Alerts are owned by the agent instance; nothing is persisted and no
notification is delivered (test-alert only renders the payload).
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Any

from agents.base import BaseAgent, capability, fail, ok, param
from shared.models import AgentContext, AgentResponse, ErrorKind

logger = logging.getLogger(__name__)

PRICE_CONDITIONS = ("above", "below", "crosses_above", "crosses_below")
SENTIMENTS = ("positive", "negative", "neutral")
PRIORITIES = ("low", "medium", "high", "critical")

# Fields an update may not overwrite
IMMUTABLE_FIELDS = {"id", "type", "created"}


class AlertAgent(BaseAgent):
    name = "alert"
    label = "Alert"
    description = "Manages alerts, notifications, and monitoring"

    CAPABILITIES = (
        capability(
            "create-price-alert",
            "Create price-based alert",
            symbol=param("string"),
            condition=param("string", enum=list(PRICE_CONDITIONS)),
            price=param("number"),
            message=param("string", optional=True),
        ),
        capability(
            "create-indicator-alert",
            "Create indicator-based alert",
            symbol=param("string"),
            indicator=param("string"),
            condition=param("string"),
            value=param("number", optional=True),
            message=param("string", optional=True),
        ),
        capability(
            "create-pattern-alert",
            "Create pattern-based alert",
            symbol=param("string"),
            pattern=param("string"),
            timeframe=param("string", optional=True),
            message=param("string", optional=True),
        ),
        capability(
            "create-news-alert",
            "Create news-based alert",
            symbol=param("string"),
            keywords=param("array", optional=True, items="string"),
            sentiment=param("string", optional=True, enum=list(SENTIMENTS)),
            message=param("string", optional=True),
        ),
        capability(
            "create-custom-alert",
            "Create custom alert with specific conditions",
            symbol=param("string"),
            condition=param("string"),
            message=param("string"),
            priority=param("string", optional=True, enum=list(PRIORITIES)),
        ),
        capability(
            "get-active-alerts",
            "Get all active alerts",
            symbol=param("string", optional=True),
            type=param("string", optional=True),
        ),
        capability("update-alert", "Update existing alert", alertId=param("string"), updates=param("object")),
        capability("delete-alert", "Delete alert", alertId=param("string")),
        capability("test-alert", "Test alert notification", alertId=param("string")),
    )

    def __init__(self):
        self._alerts: dict[str, dict[str, Any]] = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        super().__init__()

    def handlers(self):
        return {
            "create-price-alert": self._create_price,
            "create-indicator-alert": self._create_indicator,
            "create-pattern-alert": self._create_pattern,
            "create-news-alert": self._create_news,
            "create-custom-alert": self._create_custom,
            "get-active-alerts": self._active,
            "update-alert": self._update,
            "delete-alert": self._delete,
            "test-alert": self._test,
        }

    def _store(self, kind: str, priority: str, **fields: Any) -> dict[str, Any]:
        with self._lock:
            alert_id = f"{kind}_{next(self._counter)}"
            alert = {
                "id": alert_id,
                "type": kind,
                "priority": priority,
                "created": time.time(),
                "active": True,
                **fields,
            }
            self._alerts[alert_id] = alert
        logger.info("Alert created: %s", alert_id)
        return dict(alert)

    def _create_price(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        condition = params.get("condition")
        price = params.get("price")
        if condition not in PRICE_CONDITIONS:
            return fail(f"Unknown price condition: {condition}", ErrorKind.VALIDATION)
        if price is None:
            return fail("Price is required", ErrorKind.VALIDATION)
        alert = self._store(
            "price",
            "medium",
            symbol=symbol,
            condition=condition,
            price=price,
            message=params.get("message") or f"{symbol} price {condition} {price}",
        )
        return ok({"alert": alert}, f"Price alert created for {symbol}")

    def _create_indicator(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        indicator = params.get("indicator")
        condition = params.get("condition")
        if not indicator or not condition:
            return fail("Indicator and condition are required", ErrorKind.VALIDATION)
        value = params.get("value")
        alert = self._store(
            "indicator",
            "medium",
            symbol=symbol,
            indicator=indicator,
            condition=condition,
            value=value,
            message=params.get("message") or f"{symbol} {indicator} {condition} {value if value is not None else 'threshold'}",
        )
        return ok({"alert": alert}, f"Indicator alert created for {symbol}")

    def _create_pattern(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        pattern = params.get("pattern")
        if not pattern:
            return fail("Pattern is required", ErrorKind.VALIDATION)
        timeframe = params.get("timeframe") or context.timeframe or "1D"
        alert = self._store(
            "pattern",
            "high",
            symbol=symbol,
            pattern=pattern,
            timeframe=timeframe,
            message=params.get("message") or f"{symbol} {pattern} pattern detected on {timeframe}",
        )
        return ok({"alert": alert}, f"Pattern alert created for {symbol}")

    def _create_news(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        sentiment = params.get("sentiment") or "neutral"
        if sentiment not in SENTIMENTS:
            return fail(f"Unknown sentiment: {sentiment}", ErrorKind.VALIDATION)
        alert = self._store(
            "news",
            "medium",
            symbol=symbol,
            keywords=list(params.get("keywords") or []),
            sentiment=sentiment,
            message=params.get("message") or f"News alert for {symbol} with {sentiment} sentiment",
        )
        return ok({"alert": alert}, f"News alert created for {symbol}")

    def _create_custom(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        condition = params.get("condition")
        priority = params.get("priority") or "medium"
        if priority not in PRIORITIES:
            return fail(f"Unknown priority: {priority}", ErrorKind.VALIDATION)
        alert = self._store(
            "custom",
            priority,
            symbol=symbol,
            condition=condition,
            message=params.get("message") or f"Custom alert for {symbol}: {condition}",
        )
        return ok({"alert": alert}, f"Custom alert created for {symbol}")

    def _active(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol")
        kind = params.get("type")
        with self._lock:
            alerts = [
                dict(a)
                for a in self._alerts.values()
                if a["active"] and (not symbol or a.get("symbol") == symbol) and (not kind or a["type"] == kind)
            ]
        return ok({"alerts": alerts, "count": len(alerts)}, f"Found {len(alerts)} active alerts")

    def _update(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        alert_id = params.get("alertId") or params.get("alert_id")
        updates = {k: v for k, v in dict(params.get("updates") or {}).items() if k not in IMMUTABLE_FIELDS}
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                return fail(f"Alert {alert_id} not found", ErrorKind.RESOLUTION)
            alert.update(updates)
            alert["updated"] = time.time()
            snapshot = dict(alert)
        return ok({"alert": snapshot}, f"Alert {alert_id} updated successfully")

    def _delete(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        alert_id = params.get("alertId") or params.get("alert_id")
        with self._lock:
            alert = self._alerts.pop(alert_id, None)
        if alert is None:
            return fail(f"Alert {alert_id} not found", ErrorKind.RESOLUTION)
        return ok({"deleted_alert_id": alert_id}, f"Alert {alert_id} deleted successfully")

    def _test(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        alert_id = params.get("alertId") or params.get("alert_id")
        with self._lock:
            alert = self._alerts.get(alert_id)
            snapshot = dict(alert) if alert else None
        if snapshot is None:
            return fail(f"Alert {alert_id} not found", ErrorKind.RESOLUTION)
        notification = {
            "title": f"Test alert: {snapshot.get('symbol')}",
            "body": snapshot.get("message"),
            "priority": snapshot.get("priority"),
        }
        return ok({"alert": snapshot, "notification": notification}, f"Test notification sent for alert {alert_id}")
