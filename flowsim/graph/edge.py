"""
Edge Protocol - How nodes connect in a workflow graph.

A flow link connects one source node to an ordered set of target nodes,
optionally through a named output port:

- no port: the default successor edge
- true / false: the branches of an if_else node
- loop / exit: the body and the way out of a while node

Links are evaluated by the simulation engine, never by the graph itself.
The graph only answers structural questions: who follows whom, who
precedes whom, and which nodes have no incoming links.
"""

import logging
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr, ValidationError, field_validator

from flowsim.graph.node import AgentNode

logger = logging.getLogger(__name__)


class Port(StrEnum):
    """Well-known output ports. Any other string is also a valid port."""

    TRUE = "true"
    FALSE = "false"
    LOOP = "loop"
    EXIT = "exit"
    DEFAULT = "default"


class FlowLink(BaseModel):
    """
    A directed link from one node to one or more nodes.

    Examples:
        # Plain sequencing
        FlowLink(source="Planner", targets=["Researcher", "Critic"])

        # Branch of an if_else node, as authored in YAML
        FlowLink.model_validate({"from": "Check", "to": ["Publish"], "port": "true"})
    """

    source: str = Field(alias="from", description="Source node name")
    targets: list[str] = Field(alias="to", default_factory=list, description="Target node names")
    port: str | None = Field(default=None, description="Output port of the source node")
    label: str | None = None

    model_config = {"extra": "allow", "populate_by_name": True}

    @field_validator("targets", mode="before")
    @classmethod
    def _coerce_targets(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            # Ordered set: keep first occurrence
            return list(dict.fromkeys(value))
        return value

    @field_validator("port", mode="before")
    @classmethod
    def _coerce_port(cls, value: Any) -> Any:
        # YAML reads a bare `port: true` as a boolean
        if isinstance(value, bool):
            return Port.TRUE.value if value else Port.FALSE.value
        return value

    def leaves_through(self, port: str | None) -> bool:
        """True if this link belongs to ``port`` (``None`` matches every port)."""
        return port is None or self.port == port


class WorkflowGraph(BaseModel):
    """
    A complete workflow graph: nodes plus the links between them.

    ``flow`` normally holds a list of :class:`FlowLink`. When the authored
    document does not contain a valid link collection the raw value is kept
    as-is so that the engine can report the structural error at run time
    instead of refusing to load the whole document.

    Example:
        WorkflowGraph(
            name="research",
            nodes=[AgentNode(name="Start", role="start", type="core"), ...],
            flow=[FlowLink(source="Start", targets=["Researcher"]), ...],
        )
    """

    name: str = ""
    description: str = ""
    nodes: list[AgentNode] = Field(default_factory=list, alias="agents")
    flow: Any = Field(default_factory=list, description="List of FlowLink, or the raw value")

    model_config = {"extra": "allow", "populate_by_name": True}

    _node_index: dict[str, AgentNode] = PrivateAttr(default_factory=dict)

    @field_validator("nodes", mode="before")
    @classmethod
    def _coerce_nodes(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("flow", mode="before")
    @classmethod
    def _parse_flow(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        try:
            return [
                item if isinstance(item, FlowLink) else FlowLink.model_validate(item)
                for item in value
            ]
        except ValidationError as e:
            logger.warning(f"Flow is not a valid link collection: {e.error_count()} error(s)")
            return value

    def model_post_init(self, __context: Any) -> None:
        # Later declarations win, matching a plain name -> node mapping
        self._node_index = {node.name: node for node in self.nodes}

    @property
    def node_names(self) -> list[str]:
        return [node.name for node in self.nodes]

    def has_valid_flow(self) -> bool:
        """True if ``flow`` is a list made only of FlowLink objects."""
        return isinstance(self.flow, list) and all(isinstance(link, FlowLink) for link in self.flow)

    @property
    def links(self) -> list[FlowLink]:
        """All flow links, or an empty list when the flow is malformed."""
        return list(self.flow) if self.has_valid_flow() else []

    def get_node(self, name: str) -> AgentNode | None:
        """Get a node by name."""
        return self._node_index.get(name)

    def get_outgoing_links(self, name: str, port: str | None = None) -> list[FlowLink]:
        """Get links leaving a node, optionally restricted to one port."""
        return [link for link in self.links if link.source == name and link.leaves_through(port)]

    def get_incoming_links(self, name: str) -> list[FlowLink]:
        """Get all links that name ``name`` as a target."""
        return [link for link in self.links if name in link.targets]

    def successors(self, name: str, port: str | None = None) -> list[str]:
        """Target names of the outgoing links, in link order (may repeat)."""
        return [target for link in self.get_outgoing_links(name, port) for target in link.targets]

    def predecessors(self, name: str) -> list[str]:
        """Source names of the incoming links."""
        return [link.source for link in self.get_incoming_links(name)]

    def in_degree(self) -> dict[str, int]:
        """Count incoming link targets per declared node."""
        degrees = {node.name: 0 for node in self.nodes}
        for link in self.links:
            for target in link.targets:
                if target in degrees:
                    degrees[target] += 1
        return degrees

    def entry_nodes(self) -> list[str]:
        """Declared nodes without incoming links, in declaration order."""
        degrees = self.in_degree()
        return [node.name for node in self.nodes if degrees[node.name] == 0]

    def validate(self) -> list[str]:
        """
        Validate the graph structure.

        The simulation engine tolerates every problem reported here: dangling
        references become dead ends and a malformed flow ends the run with a
        single error. This check exists for authoring tools.
        """
        errors = []

        seen: set[str] = set()
        for node in self.nodes:
            if node.name in seen:
                errors.append(f"Duplicate node name: '{node.name}'")
            seen.add(node.name)

        if not self.has_valid_flow():
            errors.append(f"Flow must be a list of links, got {type(self.flow).__name__}")
            return errors

        for index, link in enumerate(self.links):
            if link.source not in self._node_index:
                errors.append(f"Link #{index} references missing source '{link.source}'")
            for target in link.targets:
                if target not in self._node_index:
                    errors.append(f"Link #{index} references missing target '{target}'")
            if not link.targets:
                errors.append(f"Link #{index} from '{link.source}' has no targets")

        if self.nodes and not self.entry_nodes():
            errors.append("Graph has no entry node (every node has an incoming link)")

        return errors
