"""
Node Protocol - The declared shape of an agent node.

A node is a named unit of work in a workflow graph. Nodes are pure data:
the simulation engine reads them, it never mutates them.

Roles:
- structural roles (start, end, note, if_else, while, user_approval,
  set_state, guardrails) drive branching and bookkeeping
- any other role string names an agent (e.g. "data_retriever",
  "trend_analyst") and is subject to capability validation
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class NodeCategory(StrEnum):
    """Broad category of a node, as authored under the ``type`` key."""

    CORE = "core"
    TOOL = "tool"
    LOGIC = "logic"
    DATA = "data"
    AGENT = "agent"


class NodeRole(StrEnum):
    """Roles with engine-defined behavior."""

    START = "start"
    END = "end"
    NOTE = "note"
    IF_ELSE = "if_else"
    WHILE = "while"
    USER_APPROVAL = "user_approval"
    SET_STATE = "set_state"
    GUARDRAILS = "guardrails"


# Roles that never need tools or tasks
STRUCTURAL_ROLES = frozenset(role.value for role in NodeRole)

# Categories whose work is modelled by tool latency
WORKING_CATEGORIES = frozenset({NodeCategory.CORE, NodeCategory.AGENT})


class ToolRef(BaseModel):
    """A tool declared on a node."""

    name: str
    interactive: bool | None = None
    description: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow"}


class AgentNode(BaseModel):
    """
    Declaration of a single node in a workflow graph.

    Examples:
        AgentNode(
            name="Researcher",
            role="data_retriever",
            type="agent",
            tools=["vertex_ai_search"],
            tasks=["Collect recent papers"],
        )

        AgentNode(name="Check", role="if_else", type="logic", condition="score > 0.8")
    """

    name: str
    role: str
    category: NodeCategory = Field(default=NodeCategory.AGENT, alias="type")
    description: str = ""

    tools: list[ToolRef] = Field(default_factory=list)
    tasks: list[str] = Field(default_factory=list)
    condition: str | None = None

    # Designer metadata, carried but never interpreted
    model: str | None = None
    context: str | None = None
    x: float | None = None
    y: float | None = None

    model_config = {"extra": "allow", "populate_by_name": True}

    @field_validator("tools", mode="before")
    @classmethod
    def _coerce_tools(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [{"name": item} if isinstance(item, str) else item for item in value]
        return value

    @field_validator("tasks", mode="before")
    @classmethod
    def _coerce_tasks(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def tool_names(self) -> list[str]:
        """Names of the declared tools, in declaration order."""
        return [tool.name for tool in self.tools]

    @property
    def is_structural(self) -> bool:
        return self.role in STRUCTURAL_ROLES
