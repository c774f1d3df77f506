from __future__ import annotations

import re
from typing import Any

from shared.models import AgentFailure, AgentResponse


def _round_value(value: Any, decimals: int = 2) -> Any:
    if isinstance(value, float):
        return round(value, decimals)
    if isinstance(value, dict):
        return {k: _round_value(v, decimals=decimals) for k, v in value.items()}
    if isinstance(value, list):
        return [_round_value(item, decimals=decimals) for item in value]
    return value


def _round_numbers_in_text(text: str) -> str:
    if not text:
        return ""
    return re.sub(r"-?\d+\.\d{3,}", lambda m: f"{float(m.group(0)):.2f}", text)


def _failed_steps(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        return []
    return [s for s in data.get("steps") or [] if isinstance(s, dict) and s.get("status") == "failure"]


def step_rows(response: AgentResponse) -> list[tuple[str, str, str]]:
    """(index, tool, status/error) rows for a plan response; empty for plain workflows."""
    data = response.data if isinstance(response.data, dict) else {}
    rows: list[tuple[str, str, str]] = []
    for step in data.get("steps") or []:
        if not isinstance(step, dict):
            continue
        status = step.get("status", "")
        detail = status if status == "success" else f"{status}: {step.get('error') or ''}".rstrip(": ")
        rows.append((str(step.get("index", "")), str(step.get("tool", "")), _round_numbers_in_text(detail)))
    return rows


def result_payloads(response: AgentResponse) -> list[Any]:
    """Rounded `data` of every successful step in an aggregate response."""
    data = response.data if isinstance(response.data, dict) else {}
    return [_round_value(item.get("data")) for item in data.get("results") or [] if isinstance(item, dict)]


def format_response(response: AgentResponse) -> str:
    """
    Normalize an agent response into one line of user-facing text:
    - no raw JSON
    - rounded numeric values (2 decimals)
    - partial failures summarised with their step errors
    """
    message = _round_numbers_in_text(str(response.message or "").strip())

    if not isinstance(response, AgentFailure):
        return message or "Done."

    failed = _failed_steps(response.data)
    if failed:
        errors = "; ".join(str(s.get("error") or "") for s in failed)
        return f"{message or 'Some steps failed'} ({_round_numbers_in_text(errors)})"

    error = _round_numbers_in_text(str(response.error or "").strip())
    if error:
        return f"Could not complete: {error}"
    if message:
        return f"Could not complete: {message}"
    return "Could not complete the request."
