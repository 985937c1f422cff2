"""Capability validation for agent nodes.

Checks that a node declares what its role needs before the simulation
lets it pass. Structural roles are exempt; agent roles must declare tools
and tasks, and some role families must declare a tool from a specific
capability vocabulary.
"""

from dataclasses import dataclass

from flowsim.graph.edge import WorkflowGraph
from flowsim.graph.node import STRUCTURAL_ROLES, AgentNode

RETRIEVAL_TOOLS = frozenset(
    {
        "vertex_ai_search",
        "google_custom_search_api",
        "bigquery_connector",
        "google_drive_api",
        "file_search",
    }
)
ANALYSIS_TOOLS = frozenset(
    {
        "bigquery_connector",
        "vertex_ai_embeddings",
        "langchain_vertex",
        "vertex_ai_natural_language_api",
    }
)
OUTPUT_TOOLS = frozenset(
    {
        "google_docs_api",
        "google_slides_api",
        "cloud_storage_uploader",
        "google_sheets_api",
    }
)


@dataclass
class ValidationResult:
    """Verdict on a single node."""

    ok: bool
    error: str | None = None
    solution: str | None = None

    @classmethod
    def passed(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, error: str, solution: str) -> "ValidationResult":
        return cls(ok=False, error=error, solution=solution)


@dataclass(frozen=True)
class CapabilityRule:
    """A role family that must carry at least one tool from a vocabulary."""

    role_fragment: str
    tools: frozenset[str]
    capability: str
    remedy: str

    def applies_to(self, node: AgentNode) -> bool:
        return self.role_fragment in node.role

    def is_met(self, node: AgentNode) -> bool:
        return any(name in self.tools for name in node.tool_names)


# Evaluated in order; the first unmet rule decides the diagnosis
CAPABILITY_RULES: tuple[CapabilityRule, ...] = (
    CapabilityRule(
        role_fragment="retriever",
        tools=RETRIEVAL_TOOLS,
        capability="data retrieval tools",
        remedy=(
            "Add a tool such as 'vertex_ai_search' or 'bigquery_connector' "
            "so the agent can carry out its tasks."
        ),
    ),
    CapabilityRule(
        role_fragment="analy",
        tools=ANALYSIS_TOOLS,
        capability="analysis tools",
        remedy="Add a tool such as 'vertex_ai_embeddings' or 'langchain_vertex' to analyse data.",
    ),
    CapabilityRule(
        role_fragment="summarizer",
        tools=OUTPUT_TOOLS,
        capability="output generation tools",
        remedy=(
            "Add a tool such as 'google_docs_api' or 'google_slides_api' "
            "so the agent can produce reports."
        ),
    ),
)


def validate_node(node: AgentNode, graph: WorkflowGraph | None = None) -> ValidationResult:
    """
    Validate a node's declared capabilities against its role.

    Args:
        node: The node to check
        graph: The graph the node belongs to (reserved for cross-node rules)

    Returns:
        ValidationResult; on failure ``error`` explains the cause and
        ``solution`` suggests a fix.
    """
    if node.role in STRUCTURAL_ROLES:
        return ValidationResult.passed()

    if not node.tools:
        return ValidationResult.failed(
            error=f'Agent "{node.name}" has no tools defined.',
            solution=(
                "Add at least one tool under the 'tools' key of the agent definition, "
                "e.g. 'vertex_ai_search'."
            ),
        )

    if not node.tasks:
        return ValidationResult.failed(
            error=f'Agent "{node.name}" has no tasks defined.',
            solution="Define at least one task under the 'tasks' key to say what the agent does.",
        )

    for rule in CAPABILITY_RULES:
        if rule.applies_to(node) and not rule.is_met(node):
            return ValidationResult.failed(
                error=f"Agent \"{node.name}\" with role '{node.role}' has no {rule.capability}.",
                solution=rule.remedy,
            )

    return ValidationResult.passed()
