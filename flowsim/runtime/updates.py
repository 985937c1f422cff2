"""Update records emitted by the simulation engine.

Each record is a frozen dataclass. A :class:`SimulationUpdate` carries at
most one of each part: a log line, a node status change, a data-flow
sample and a suspension marker. ``to_dict()`` produces the camelCase shape
the designer UI consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

# Pseudo node name used for run-level log lines
SYSTEM_NODE = "System"


class LogKind(StrEnum):
    """Tone of a log line."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NodeStatus(StrEnum):
    """Display state of a node during a run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class LogEntry:
    """A human-readable line about a node or the run."""

    kind: LogKind
    message: str
    node_name: str = SYSTEM_NODE
    duration_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.kind.value,
            "message": self.message,
            "agentName": self.node_name,
        }
        if self.duration_ms is not None:
            data["durationMs"] = self.duration_ms
        return data


@dataclass(frozen=True)
class StatusChange:
    """A node moved to a new display state."""

    node_name: str
    status: NodeStatus
    error: str | None = None
    solution: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"agentName": self.node_name, "status": self.status.value}
        if self.error is not None:
            data["error"] = self.error
        if self.solution is not None:
            data["solution"] = self.solution
        return data


@dataclass(frozen=True)
class DataSample:
    """One simulated transfer along a link."""

    source: str
    target: str
    packet_count: int = 1
    size_kb: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.source,
            "to": self.target,
            "packetCount": self.packet_count,
            "totalSizeKB": self.size_kb,
        }


@dataclass(frozen=True)
class Suspension:
    """The run will not proceed until the caller asks for the next step."""

    node_name: str
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"agentName": self.node_name}
        if self.message is not None:
            data["message"] = self.message
        return data


@dataclass(frozen=True)
class SimulationUpdate:
    """A single record of the update stream."""

    log: LogEntry | None = None
    status: StatusChange | None = None
    data: DataSample | None = None
    suspend: Suspension | None = None

    @property
    def node_name(self) -> str | None:
        """The node this update is about, if any."""
        for part in (self.status, self.suspend, self.log):
            if part is not None:
                return part.node_name
        if self.data is not None:
            return self.data.source
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the designer's update shape."""
        data: dict[str, Any] = {}
        if self.log is not None:
            data["log"] = self.log.to_dict()
        if self.status is not None:
            data["statusUpdate"] = self.status.to_dict()
        if self.data is not None:
            data["dataFlowUpdate"] = self.data.to_dict()
        if self.suspend is not None:
            data["waitForStep"] = self.suspend.to_dict()
        return data

    # === CONSTRUCTORS ===

    @classmethod
    def of_log(
        cls,
        kind: LogKind,
        message: str,
        node_name: str = SYSTEM_NODE,
        duration_ms: int | None = None,
    ) -> SimulationUpdate:
        return cls(log=LogEntry(kind, message, node_name, duration_ms))

    @classmethod
    def of_status(
        cls,
        node_name: str,
        status: NodeStatus,
        error: str | None = None,
        solution: str | None = None,
    ) -> SimulationUpdate:
        return cls(status=StatusChange(node_name, status, error, solution))

    @classmethod
    def of_data(cls, source: str, target: str, size_kb: float) -> SimulationUpdate:
        return cls(data=DataSample(source, target, packet_count=1, size_kb=size_kb))

    @classmethod
    def of_suspend(cls, node_name: str, message: str | None = None) -> SimulationUpdate:
        return cls(suspend=Suspension(node_name, message))
