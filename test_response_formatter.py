from __future__ import annotations

from shared.models import AgentFailure, AgentSuccess, ErrorKind
from shared.response_formatter import format_response, result_payloads, step_rows


def test_format_response_rounds_numbers_in_message():
    response = AgentSuccess(message="Entry at 98.123456, exit at 101.5")

    assert format_response(response) == "Entry at 98.12, exit at 101.5"


def test_format_response_success_without_message():
    assert format_response(AgentSuccess()) == "Done."


def test_format_response_summarises_failed_steps():
    response = AgentFailure(
        error="Step 2: Unknown tool chart.teleport",
        message="Timeframe set to 5m",
        data={
            "steps": [
                {"index": 1, "tool": "chart.control.set_timeframe", "status": "success"},
                {"index": 2, "tool": "chart.teleport", "status": "failure", "error": "Step 2: Unknown tool chart.teleport"},
            ]
        },
    )

    assert format_response(response) == "Timeframe set to 5m (Step 2: Unknown tool chart.teleport)"


def test_format_response_plain_failure():
    response = AgentFailure(error="Invalid timeframe: 7m", error_kind=ErrorKind.VALIDATION)

    assert format_response(response) == "Could not complete: Invalid timeframe: 7m"
    assert format_response(AgentFailure(error="")) == "Could not complete the request."


def test_step_rows_render_status_and_errors():
    response = AgentFailure(
        error="x",
        data={
            "steps": [
                {"index": 1, "tool": "chart.context.get", "status": "success"},
                {"index": 2, "tool": "history.undo", "status": "failure", "error": "Step 2: Nothing to restore"},
                {"index": 3, "tool": "history.redo", "status": "failure"},
            ]
        },
    )

    assert step_rows(response) == [
        ("1", "chart.context.get", "success"),
        ("2", "history.undo", "failure: Step 2: Nothing to restore"),
        ("3", "history.redo", "failure"),
    ]
    assert step_rows(AgentSuccess(data="plain")) == []


def test_result_payloads_round_nested_floats():
    response = AgentSuccess(
        data={
            "results": [
                {"data": {"analysis": {"entry": 98.123456, "levels": [1.0061, 2]}}},
                {"data": None},
            ]
        }
    )

    assert result_payloads(response) == [{"analysis": {"entry": 98.12, "levels": [1.01, 2]}}, None]
