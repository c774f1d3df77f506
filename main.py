"""
Chart Agent Orchestrator — Main CLI Entrypoint.

Wires the registry, orchestrator and in-memory chart surface, and runs the
interactive loop or one of the one-shot admin commands.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from domains.chart.bridge import ChartState, InMemoryChartSurface
from domains.chart.catalog import StaticCatalogProvider
from entry.cli import CLIAdapter
from planner.command_parser import CommandParser
from registry.agent_registry import AgentRegistry
from registry.loader import build_default_registry
from shared.models import AgentContext, AgentResponse
from shared.response_formatter import format_response, result_payloads, step_rows

# ─── Configuration ──────────────────────────────────────────────

logger = logging.getLogger(__name__)

# Ensure local .env is loaded before reading runtime configuration.
load_dotenv(override=False)

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING").strip().upper()
DEFAULT_SYMBOL = os.getenv("DEFAULT_SYMBOL", "AAPL").strip()
DEFAULT_TIMEFRAME = os.getenv("DEFAULT_TIMEFRAME", "1D").strip()
DEFAULT_CHART_TYPE = os.getenv("DEFAULT_CHART_TYPE", "candle").strip()
_seed_raw = os.getenv("ANALYSIS_SEED", "").strip()
ANALYSIS_SEED = int(_seed_raw) if _seed_raw.lstrip("-").isdigit() else None

# ─── Rich Console ───────────────────────────────────────────────

console = Console()


def setup_logging() -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_pipeline() -> tuple[CLIAdapter, AgentRegistry, InMemoryChartSurface]:
    """Create the chart surface, registry and CLI adapter."""
    surface = InMemoryChartSurface(ChartState(timeframe=DEFAULT_TIMEFRAME, chart_type=DEFAULT_CHART_TYPE))
    registry = build_default_registry(bridge=surface, seed=ANALYSIS_SEED)
    cli = CLIAdapter(symbol=DEFAULT_SYMBOL, timeframe=DEFAULT_TIMEFRAME, chart_type=DEFAULT_CHART_TYPE)
    return cli, registry, surface


async def _orchestrate(registry: AgentRegistry, context: AgentContext, action: str, params: dict[str, Any]) -> AgentResponse:
    orchestrator = registry.get_agent("orchestrator")
    if orchestrator is None:
        raise RuntimeError("orchestrator agent is not registered")
    return await orchestrator.execute(context, action, params)


# ─── Rendering ──────────────────────────────────────────────────

def render_response(response: AgentResponse) -> None:
    """Render an aggregate AgentResponse to the CLI using Rich."""
    console.print()
    if response.success:
        console.print(Panel(
            Text(format_response(response), style="bold green"),
            title="✅ Result",
            border_style="green",
            box=box.ROUNDED,
        ))
    else:
        console.print(Panel(
            Text(format_response(response), style="bold red"),
            title="❌ Failed",
            border_style="red",
            box=box.ROUNDED,
        ))

    rows = step_rows(response)
    if rows:
        table = Table(title="📋 Steps", box=box.SIMPLE_HEAVY, show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim")
        table.add_column("Tool", style="bold white")
        table.add_column("Status", style="white")
        for index, tool, status in rows:
            style = "green" if status == "success" else "red"
            table.add_row(index, tool, Text(status, style=style))
        console.print(table)

    for payload in result_payloads(response):
        if isinstance(payload, dict) and "analysis" in payload:
            console.print(Panel(
                Text(json.dumps(payload["analysis"], indent=2, default=str), style="white"),
                title="📊 Analysis",
                border_style="cyan",
                box=box.ROUNDED,
            ))


def render_chart_state(surface: InMemoryChartSurface) -> None:
    state = surface.snapshot()
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 1))
    table.add_column("", style="bold dim")
    table.add_column("", style="dim")
    table.add_row("Timeframe", str(state.timeframe))
    table.add_row("Type", str(state.chart_type))
    table.add_row("Indicators", ", ".join(e["indicator"] for e in state.indicators) or "-")
    table.add_row("Drawings", str(len(state.drawings)))
    console.print(Panel(table, title="📈 Chart", border_style="dim", box=box.ROUNDED))


# ─── Commands ───────────────────────────────────────────────────

async def run_agent_loop() -> None:
    """Interactive loop: every line is a chart command."""
    console.print(Panel(
        Text.from_markup(
            "[bold cyan]Chart Agent Orchestrator[/bold cyan]\n"
            f"[dim]Symbol: {DEFAULT_SYMBOL} • Timeframe: {DEFAULT_TIMEFRAME}[/dim]\n"
            "[dim]Type a chart command or 'exit' to quit[/dim]"
        ),
        title="🤖",
        border_style="cyan",
        box=box.DOUBLE,
    ))

    cli, registry, surface = build_pipeline()
    console.print(f"[dim]Session: {cli.session_id}[/dim]")
    console.print(f"[dim]Agents: {registry.registered_agents}[/dim]")

    while True:
        try:
            raw = console.input("\n[bold cyan]chart>[/] ")
        except (KeyboardInterrupt, EOFError):
            console.print("\n[dim]Goodbye! 👋[/dim]")
            break

        request = cli.read_input(raw)
        if not request.input_text:
            continue
        if cli.is_exit(request):
            console.print("[dim]Goodbye! 👋[/dim]")
            break

        with console.status("[yellow]Working...[/yellow]", spinner="dots"):
            response = await _orchestrate(
                registry,
                cli.context_for(request),
                "process-chart-command",
                {"command": request.input_text},
            )
        render_response(response)
        state = surface.snapshot()
        cli.remember(state.timeframe, state.chart_type, state.indicators)
        render_chart_state(surface)


def cmd_parse(text: str) -> None:
    plan = CommandParser(StaticCatalogProvider()).parse(text)
    console.print_json(json.dumps(plan.model_dump(mode="json")))


def cmd_agents() -> None:
    _, registry, _ = build_pipeline()
    table = Table(title="Registered Agents")
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Capabilities", style="magenta")
    for entry in registry.describe():
        table.add_row(entry["name"], entry["description"], "\n".join(cap["name"] for cap in entry["capabilities"]))
    console.print(table)


def cmd_plan(path: str) -> None:
    try:
        plan = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        console.print(f"[bold red]Error:[/] Could not read plan file: {exc}")
        sys.exit(1)

    cli, registry, surface = build_pipeline()
    context = cli.context_for(cli.read_input(""))
    response = asyncio.run(_orchestrate(registry, context, "execute-plan", {"plan": plan}))
    render_response(response)
    render_chart_state(surface)
    if not response.success:
        sys.exit(2)


def main() -> None:
    """Entrypoint with CLI args."""
    setup_logging()

    parser = argparse.ArgumentParser(description="Chart Agent Orchestrator")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("run", help="Run interactive chart command loop")

    parse_parser = subparsers.add_parser("parse", help="Print the action plan for a command")
    parse_parser.add_argument("text", help="Chart command text")

    subparsers.add_parser("agents", help="List registered agents and capabilities")

    plan_parser = subparsers.add_parser("plan", help="Execute an action plan JSON file")
    plan_parser.add_argument("file", help="Path to plan JSON")

    args = parser.parse_args()

    if args.command == "parse":
        cmd_parse(args.text)
    elif args.command == "agents":
        cmd_agents()
    elif args.command == "plan":
        cmd_plan(args.file)
    elif args.command == "run" or args.command is None:
        try:
            asyncio.run(run_agent_loop())
        except KeyboardInterrupt:
            pass
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
