"""Load workflow graphs from the designer's YAML documents.

The designer stores a system under a ``system`` root key::

    system:
      name: Research assistant
      agents:
        - name: Start
          role: start
          type: core
          tools: []
          tasks: []
        - name: Researcher
          role: data_retriever
          type: agent
          tools: [vertex_ai_search]
          tasks: [Collect sources]
      flow:
        - from: Start
          to: [Researcher]

Only the document shape is checked here. A ``flow`` that is not a list of
links still loads; the engine reports it when the run starts.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from flowsim.graph.edge import WorkflowGraph

logger = logging.getLogger(__name__)


class GraphLoadError(Exception):
    """The document could not be turned into a workflow graph."""


def parse_system(data: Any) -> WorkflowGraph:
    """
    Build a graph from an already-parsed document.

    Args:
        data: Mapping with a ``system`` root key

    Raises:
        GraphLoadError: The root key is missing or the agents are malformed
    """
    if not isinstance(data, dict) or "system" not in data:
        raise GraphLoadError('Invalid YAML structure. Missing "system" root key.')

    system = data["system"]
    if not isinstance(system, dict):
        raise GraphLoadError(f'"system" must be a mapping, got {type(system).__name__}')

    try:
        graph = WorkflowGraph.model_validate(system)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            errors.append(f"{field_path}: {error['msg']}")
        raise GraphLoadError("Invalid system definition: " + "; ".join(errors)) from e

    logger.debug(f"Loaded graph '{graph.name}' with {len(graph.nodes)} nodes")
    return graph


def load_system(text: str) -> WorkflowGraph:
    """Parse a YAML document into a workflow graph."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise GraphLoadError(f"YAML parsing error: {e}") from e
    return parse_system(data)


def load_system_file(path: str | Path) -> WorkflowGraph:
    """Read and parse a YAML file into a workflow graph."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise GraphLoadError(f"Cannot read {path}: {e}") from e
    return load_system(text)


def dump_system(graph: WorkflowGraph) -> str:
    """Serialize a graph back to the designer's YAML shape."""
    system = graph.model_dump(mode="json", by_alias=True, exclude_none=True)
    if graph.has_valid_flow():
        system["flow"] = [
            link.model_dump(mode="json", by_alias=True, exclude_none=True) for link in graph.links
        ]
    return yaml.safe_dump({"system": system}, sort_keys=False, allow_unicode=True)
