"""
CLI Entry Adapter.

Responsibility:
- Receive user input from terminal
- Normalize to EntryRequest contract
- Build the AgentContext the orchestrator runs against
- NO command parsing, NO chart logic, NO agent access
"""

import uuid
from typing import Any

from shared.models import AgentContext, EntryRequest

EXIT_WORDS = {"exit", "quit", "q", "sair"}


class CLIAdapter:
    """Command-line entry adapter."""

    def __init__(
        self,
        session_id: str | None = None,
        symbol: str = "",
        timeframe: str | None = None,
        chart_type: str | None = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())[:8]
        self.symbol = symbol
        self.timeframe = timeframe
        self.chart_type = chart_type
        self.indicators: list[Any] = []

    def read_input(self, raw_input: str) -> EntryRequest:
        """Normalize raw CLI input to EntryRequest."""
        return EntryRequest(
            session_id=self.session_id,
            input_text=raw_input.strip(),
            metadata={"source": "cli", "symbol": self.symbol},
        )

    def is_exit(self, request: EntryRequest) -> bool:
        return request.input_text.lower() in EXIT_WORDS

    def remember(
        self,
        timeframe: str | None = None,
        chart_type: str | None = None,
        indicators: list[Any] | None = None,
    ) -> None:
        """Carry the chart's read-back state into the next command's context."""
        if timeframe:
            self.timeframe = timeframe
        if chart_type:
            self.chart_type = chart_type
        if indicators is not None:
            self.indicators = list(indicators)

    def context_for(self, request: EntryRequest) -> AgentContext:
        """Session state; a `symbol` in request metadata overrides the adapter's."""
        return AgentContext(
            symbol=str(request.metadata.get("symbol") or self.symbol),
            timeframe=self.timeframe,
            chart_type=self.chart_type,
            indicators=list(self.indicators),
            session_id=request.session_id,
        )
