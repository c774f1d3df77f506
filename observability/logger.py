"""
Observability Layer — Structured workflow events.

Responsibility:
- Log workflow / plan events as one JSON object per line
- Measure the duration of an operation
- Carry session_id / trace_id (and bound fields) on every event

Module loggers (`logging.getLogger(__name__)`) remain the tool for
diagnostics; this layer is for events a dashboard would consume.
"""

import json
import logging
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

logger = logging.getLogger("observability")


class Observability:
    """Structured event logger scoped to one session/trace."""

    def __init__(self, session_id: str | None = None, trace_id: str | None = None, **fields: Any):
        self.session_id = session_id or str(uuid.uuid4())
        self.trace_id = trace_id or str(uuid.uuid4())
        self.fields: dict[str, Any] = dict(fields)

    def log_event(self, event_type: str, payload: dict[str, Any], level: str = "INFO") -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": self.session_id,
            "trace_id": self.trace_id,
            "event": event_type,
            "level": level,
            **self.fields,
            **payload,
        }
        log_method = getattr(logger, level.lower(), logger.info)
        log_method(json.dumps(entry, default=str))

    @contextmanager
    def measure(self, operation: str, metadata: dict[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        """Time the block and log an `execution_metric` event.

        The yielded dict is merged into the event, so callers can attach
        outcome counts computed inside the block.
        """
        extra: dict[str, Any] = dict(metadata or {})
        start = time.perf_counter()
        error = None
        try:
            yield extra
        except Exception as exc:
            error = str(exc)
            raise
        finally:
            self.log_event(
                "execution_metric",
                {
                    "operation": operation,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    "success": error is None,
                    "error": error,
                    **extra,
                },
            )

    def bind(self, **fields: Any) -> "Observability":
        """New instance on the same trace with extra fields on every event."""
        return Observability(self.session_id, self.trace_id, **{**self.fields, **fields})
