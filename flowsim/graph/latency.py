"""Simulated processing time for nodes.

The sampler has no bearing on the outcome of a run; it only makes the
update stream unfold at a believable pace. Anything with a
``sample(node) -> float`` method can replace it.
"""

import random
from typing import Protocol

from flowsim.graph.node import WORKING_CATEGORIES, AgentNode

# Per-tool latency ranges in milliseconds: (min, max)
TOOL_LATENCY_MS: dict[str, tuple[float, float]] = {
    "bigquery_connector": (800, 2000),
    "vertex_ai_search": (600, 1500),
    "cloud_functions": (200, 500),
    "google_docs_api": (400, 900),
    "google_slides_api": (500, 1200),
    "vertex_ai_embeddings": (700, 1800),
}
DEFAULT_LATENCY_MS: tuple[float, float] = (150, 400)

# Logic, data and tool nodes are quick
STRUCTURAL_LATENCY_MS = 100.0


class LatencyModel(Protocol):
    """Anything that can estimate how long a node takes."""

    def sample(self, node: AgentNode) -> float: ...


class LatencySampler:
    """
    Draws a processing duration from the tools a node declares.

    Example:
        sampler = LatencySampler(rng=random.Random(7))
        sampler.sample(node)  # e.g. 1412.6
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        tool_latency: dict[str, tuple[float, float]] | None = None,
        default_latency: tuple[float, float] = DEFAULT_LATENCY_MS,
        structural_latency: float = STRUCTURAL_LATENCY_MS,
    ):
        self._rng = rng or random.Random()
        self._tool_latency = tool_latency if tool_latency is not None else TOOL_LATENCY_MS
        self._default_latency = default_latency
        self._structural_latency = structural_latency

    def range_for(self, tool_name: str) -> tuple[float, float]:
        return self._tool_latency.get(tool_name, self._default_latency)

    def sample(self, node: AgentNode) -> float:
        """Return a simulated duration for ``node`` in milliseconds."""
        if node.category not in WORKING_CATEGORIES:
            return self._structural_latency
        if not node.tools:
            return self._default_latency[0]

        total = 0.0
        for name in node.tool_names:
            low, high = self.range_for(name)
            total += self._rng.uniform(low, high)
        return total
