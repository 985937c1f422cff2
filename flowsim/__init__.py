"""
flowsim - Simulate multi-node agent workflow graphs.

Loads a workflow authored in the designer's YAML shape and replays how it
would execute: scheduling, branching, bounded loops, approval checkpoints,
capability validation and failure propagation, without calling any tool.

Example:
    from flowsim import SimulationEngine, load_system_file

    graph = load_system_file("research.yaml")
    engine = SimulationEngine(graph, time_scale=0)
    async for update in engine:
        print(update.to_dict())
"""

from flowsim.config import SimulationConfig
from flowsim.graph import (
    AgentNode,
    ConcurrentStepError,
    FlowLink,
    GraphLoadError,
    RunStatus,
    RunSummary,
    SimulationEngine,
    SimulationError,
    SimulationStoppedError,
    StepResult,
    ValidationResult,
    WorkflowGraph,
    dump_system,
    load_system,
    load_system_file,
    validate_node,
)
from flowsim.runtime import (
    EventBus,
    EventType,
    LogKind,
    NodeStatus,
    RunMonitor,
    SimulationUpdate,
)
from flowsim.runtime.session import SimulationSession

__version__ = "0.1.0"

__all__ = [
    # Graph
    "AgentNode",
    "FlowLink",
    "WorkflowGraph",
    "GraphLoadError",
    "load_system",
    "load_system_file",
    "dump_system",
    "ValidationResult",
    "validate_node",
    # Engine
    "SimulationEngine",
    "SimulationSession",
    "SimulationConfig",
    "StepResult",
    "RunStatus",
    "RunSummary",
    "SimulationError",
    "SimulationStoppedError",
    "ConcurrentStepError",
    # Updates
    "SimulationUpdate",
    "LogKind",
    "NodeStatus",
    "RunMonitor",
    "EventBus",
    "EventType",
]
