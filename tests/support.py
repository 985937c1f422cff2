"""Fakes and builders shared by the test modules."""

import random

from flowsim.graph.edge import FlowLink, WorkflowGraph
from flowsim.graph.executor import SimulationEngine
from flowsim.graph.node import AgentNode
from flowsim.runtime.updates import NodeStatus, SimulationUpdate


# ---- Fake latency model with a constant duration ----
class FixedSampler:
    def __init__(self, latency_ms: float = 250.0):
        self.latency_ms = latency_ms
        self.sampled: list[str] = []

    def sample(self, node: AgentNode) -> float:
        self.sampled.append(node.name)
        return self.latency_ms


# ---- Scripted RNG: replays draws, then repeats the last one ----
class FixedRandom(random.Random):
    def __init__(self, *draws: float):
        super().__init__(0)
        self.draws = list(draws) or [0.0]
        self.calls = 0

    def random(self) -> float:
        value = self.draws[min(self.calls, len(self.draws) - 1)]
        self.calls += 1
        return value


def node(name: str, role: str = "start", type: str = "core", **kwargs) -> AgentNode:
    return AgentNode(name=name, role=role, type=type, **kwargs)


def agent(
    name: str,
    role: str = "data_retriever",
    tools: list[str] | None = None,
    tasks: list[str] | None = None,
) -> AgentNode:
    return AgentNode(
        name=name,
        role=role,
        type="agent",
        tools=["vertex_ai_search"] if tools is None else tools,
        tasks=["Collect sources"] if tasks is None else tasks,
    )


def link(source: str, *targets: str, port: str | None = None) -> FlowLink:
    return FlowLink(source=source, targets=list(targets), port=port)


def graph(nodes: list[AgentNode], flow: list[FlowLink], name: str = "test") -> WorkflowGraph:
    return WorkflowGraph(name=name, nodes=nodes, flow=flow)


def make_engine(
    g: WorkflowGraph,
    step_mode: bool = False,
    draws: tuple[float, ...] = (0.0,),
    **kwargs,
) -> SimulationEngine:
    kwargs.setdefault("sampler", FixedSampler())
    kwargs.setdefault("time_scale", 0)
    return SimulationEngine(
        g,
        step_mode=step_mode,
        rng=FixedRandom(*draws),
        run_id="run_test",
        **kwargs,
    )


def status_sequence(updates: list[SimulationUpdate]) -> list[tuple[str, NodeStatus]]:
    return [(u.status.node_name, u.status.status) for u in updates if u.status is not None]


def log_messages(updates: list[SimulationUpdate], node_name: str | None = None) -> list[str]:
    return [
        u.log.message
        for u in updates
        if u.log is not None and (node_name is None or u.log.node_name == node_name)
    ]


def final_statuses(updates: list[SimulationUpdate]) -> dict[str, NodeStatus]:
    return dict(status_sequence(updates))
