import logging

from agents.base import BaseAgent, capability, ok, param
from registry.agent_registry import AgentRegistry
from registry.loader import build_default_registry


class _EchoAgent(BaseAgent):
    name = "echo"
    description = "Echoes params"
    CAPABILITIES = (capability("echo", "Echo params back"), capability("ping", "Reply pong"))

    def handlers(self):
        return {"echo": lambda ctx, params: ok(params), "ping": lambda ctx, params: ok("pong")}


class _OtherEchoAgent(_EchoAgent):
    description = "Second agent with the same name"


def test_registry_lookups_by_name_capability_and_action() -> None:
    registry = AgentRegistry()
    agent = _EchoAgent()
    registry.register(agent)

    assert registry.get_agent("echo") is agent
    assert registry.get_agent("nonexistent") is None
    assert registry.get_agents_by_capability("ping") == [agent]
    assert registry.get_agents_for_action("echo") == [agent]
    assert registry.get_agents_for_action("missing") == []
    assert registry.capabilities_summary() == {"echo": ["echo", "ping"]}
    assert "echo" in registry
    assert len(registry) == 1


def test_duplicate_registration_keeps_first_agent(caplog) -> None:
    registry = AgentRegistry()
    first = _EchoAgent()
    registry.register(first)

    with caplog.at_level(logging.WARNING, logger="registry.agent_registry"):
        registry.register(_OtherEchoAgent())

    assert registry.get_agent("echo") is first
    assert registry.registered_agents == ["echo"]
    assert "already registered" in caplog.text


def test_describe_exposes_capability_parameters() -> None:
    registry = build_default_registry(seed=1)
    described = {entry["name"]: entry for entry in registry.describe()}

    chart = described["chart-control"]
    add_indicator = next(cap for cap in chart["capabilities"] if cap["name"] == "add-indicator")
    assert add_indicator["parameters"]["indicator"]["type"] == "string"
    assert add_indicator["parameters"]["options"]["optional"] is True


def test_default_registry_contains_all_builtin_agents() -> None:
    registry = build_default_registry(seed=7)

    assert set(registry.registered_agents) == {
        "chart-control",
        "chart-context",
        "chart-sequence",
        "analysis",
        "strategy",
        "trading",
        "alert",
        "critique",
        "router",
        "orchestrator",
    }
    assert [a.name for a in registry.get_agents_for_action("process-chart-command")] == ["orchestrator"]


def test_capability_parameters_may_be_named_name_or_description() -> None:
    cap = capability(
        "save-preset",
        "Save a layout",
        name=param("string"),
        description=param("string", optional=True),
    )

    assert cap.name == "save-preset"
    assert cap.description == "Save a layout"
    assert set(cap.parameters) == {"name", "description"}
    assert cap.parameters["description"].optional is True


def test_default_registry_declares_preset_name_parameters() -> None:
    registry = build_default_registry()
    described = {entry["name"]: entry for entry in registry.describe()}

    chart = {cap["name"]: cap for cap in described["chart-control"]["capabilities"]}
    assert chart["save-preset"]["parameters"]["name"]["type"] == "string"
    assert chart["load-preset"]["parameters"]["name"]["type"] == "string"
    sequence = described["chart-sequence"]["capabilities"][0]
    assert sequence["name"] == "run-sequence"
    assert sequence["parameters"]["steps"]["items"] == "object"
