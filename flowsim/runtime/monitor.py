"""
Run Monitor - Folds the update stream into displayable state.

The engine only emits raw records. A monitor keeps what a viewer shows:
- the current status (and error/solution) of every node
- the full log
- cumulative data-flow counters per link
- whether the run is waiting for the caller
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from flowsim.runtime.updates import (
    DataSample,
    LogEntry,
    LogKind,
    NodeStatus,
    SimulationUpdate,
    StatusChange,
)

if TYPE_CHECKING:
    from flowsim.graph.edge import WorkflowGraph


@dataclass
class EdgeMetric:
    """Cumulative transfers along one source -> target pair."""

    source: str
    target: str
    packet_count: int = 0
    total_size_kb: float = 0.0

    @property
    def key(self) -> str:
        return f"{self.source}->{self.target}"

    def to_dict(self) -> dict:
        return {
            "from": self.source,
            "to": self.target,
            "packetCount": self.packet_count,
            "totalSizeKB": self.total_size_kb,
        }


class DataFlowAccumulator:
    """Sums per-transfer samples into per-link totals."""

    def __init__(self) -> None:
        self._metrics: dict[str, EdgeMetric] = {}

    def record(self, sample: DataSample) -> EdgeMetric:
        key = f"{sample.source}->{sample.target}"
        metric = self._metrics.get(key)
        if metric is None:
            metric = EdgeMetric(sample.source, sample.target)
            self._metrics[key] = metric
        metric.packet_count += sample.packet_count
        metric.total_size_kb += sample.size_kb
        return metric

    def get(self, source: str, target: str) -> EdgeMetric | None:
        return self._metrics.get(f"{source}->{target}")

    @property
    def metrics(self) -> dict[str, EdgeMetric]:
        return dict(self._metrics)

    @property
    def total_packets(self) -> int:
        return sum(m.packet_count for m in self._metrics.values())

    @property
    def total_size_kb(self) -> float:
        return sum(m.total_size_kb for m in self._metrics.values())

    def reset(self) -> None:
        self._metrics.clear()


@dataclass
class NodeView:
    """What a viewer knows about one node."""

    status: NodeStatus = NodeStatus.PENDING
    error: str | None = None
    solution: str | None = None
    history: list[NodeStatus] = field(default_factory=list)


class RunMonitor:
    """
    Applies updates to a view of the run.

    Example:
        monitor = RunMonitor(graph)
        async for update in engine:
            monitor.apply(update)
        monitor.status_of("Researcher")  # NodeStatus.SUCCESS
    """

    def __init__(self, graph: WorkflowGraph | None = None):
        self.nodes: dict[str, NodeView] = {}
        self.logs: list[LogEntry] = []
        self.data_flow = DataFlowAccumulator()
        self.waiting = False
        self.suspensions: int = 0
        if graph is not None:
            for name in graph.node_names:
                self.nodes.setdefault(name, NodeView())

    def apply(self, update: SimulationUpdate) -> None:
        """Fold one update into the view."""
        # Any new record means the caller resumed
        self.waiting = False

        if update.log is not None:
            self.logs.append(update.log)
        if update.status is not None:
            self._apply_status(update.status)
        if update.data is not None:
            self.data_flow.record(update.data)
        if update.suspend is not None:
            self.waiting = True
            self.suspensions += 1

    def _apply_status(self, change: StatusChange) -> None:
        view = self.nodes.setdefault(change.node_name, NodeView())
        view.status = change.status
        view.error = change.error
        view.solution = change.solution
        view.history.append(change.status)

    def status_of(self, name: str) -> NodeStatus:
        view = self.nodes.get(name)
        return view.status if view is not None else NodeStatus.PENDING

    def history_of(self, name: str) -> list[NodeStatus]:
        view = self.nodes.get(name)
        return list(view.history) if view is not None else []

    def nodes_with(self, status: NodeStatus) -> list[str]:
        return [name for name, view in self.nodes.items() if view.status == status]

    def logs_of_kind(self, kind: LogKind) -> list[LogEntry]:
        return [entry for entry in self.logs if entry.kind == kind]

    def reset(self) -> None:
        for view in self.nodes.values():
            view.status = NodeStatus.PENDING
            view.error = None
            view.solution = None
            view.history.clear()
        self.logs.clear()
        self.data_flow.reset()
        self.waiting = False
        self.suspensions = 0
