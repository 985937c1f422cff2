"""Tests for capability validation of agent nodes."""

import pytest

from flowsim.graph.node import AgentNode, NodeRole
from flowsim.graph.validator import ValidationResult, validate_node


def make_agent(role: str, tools: list[str], tasks: list[str] | None = None) -> AgentNode:
    return AgentNode(
        name="Agent",
        role=role,
        type="agent",
        tools=tools,
        tasks=["Do the work"] if tasks is None else tasks,
    )


@pytest.mark.parametrize("role", [role.value for role in NodeRole])
def test_structural_roles_always_pass(role):
    n = AgentNode(name="N", role=role, type="logic")
    assert validate_node(n) == ValidationResult(ok=True)


def test_missing_tools():
    result = validate_node(make_agent("writer", tools=[]))

    assert not result.ok
    assert result.error == 'Agent "Agent" has no tools defined.'
    assert "vertex_ai_search" in result.solution


def test_missing_tasks():
    result = validate_node(make_agent("writer", tools=["google_docs_api"], tasks=[]))

    assert not result.ok
    assert result.error == 'Agent "Agent" has no tasks defined.'


def test_tools_are_checked_before_tasks():
    result = validate_node(make_agent("writer", tools=[], tasks=[]))
    assert "no tools defined" in result.error


@pytest.mark.parametrize(
    "role,tools,capability",
    [
        ("data_retriever", ["google_docs_api"], "data retrieval tools"),
        ("trend_analyst", ["vertex_ai_search"], "analysis tools"),
        ("data_analyzer", ["file_search"], "analysis tools"),
        ("report_summarizer", ["bigquery_connector"], "output generation tools"),
    ],
)
def test_role_family_requires_capability(role, tools, capability):
    result = validate_node(make_agent(role, tools))

    assert not result.ok
    assert result.error == f"Agent \"Agent\" with role '{role}' has no {capability}."
    assert result.solution


@pytest.mark.parametrize(
    "role,tools",
    [
        ("data_retriever", ["bigquery_connector"]),
        ("trend_analyst", ["langchain_vertex"]),
        ("report_summarizer", ["google_slides_api"]),
        ("writer", ["anything_at_all"]),
    ],
)
def test_role_family_with_matching_tool_passes(role, tools):
    assert validate_node(make_agent(role, tools)).ok


def test_retriever_rule_decides_before_analysis_rule():
    # Matches both "retriever" and "analy" fragments
    result = validate_node(make_agent("analysis_retriever", ["langchain_vertex"]))
    assert "data retrieval tools" in result.error
