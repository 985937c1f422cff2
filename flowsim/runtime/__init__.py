"""Runtime: update records, the run monitor and the event bus."""

from flowsim.runtime.event_bus import EventBus, EventType, SimulationEvent, Subscription
from flowsim.runtime.monitor import DataFlowAccumulator, EdgeMetric, NodeView, RunMonitor
from flowsim.runtime.updates import (
    SYSTEM_NODE,
    DataSample,
    LogEntry,
    LogKind,
    NodeStatus,
    SimulationUpdate,
    StatusChange,
    Suspension,
)

__all__ = [
    # Updates
    "SYSTEM_NODE",
    "DataSample",
    "LogEntry",
    "LogKind",
    "NodeStatus",
    "SimulationUpdate",
    "StatusChange",
    "Suspension",
    # Monitor
    "DataFlowAccumulator",
    "EdgeMetric",
    "NodeView",
    "RunMonitor",
    # Events
    "EventBus",
    "EventType",
    "SimulationEvent",
    "Subscription",
]
