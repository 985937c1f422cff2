"""Graph structures: Nodes, Links, Validation and the Simulation Engine."""

from flowsim.graph.edge import FlowLink, Port, WorkflowGraph
from flowsim.graph.executor import (
    ConcurrentStepError,
    RunStatus,
    RunSummary,
    SimulationEngine,
    SimulationError,
    SimulationStoppedError,
    StepResult,
)
from flowsim.graph.latency import LatencyModel, LatencySampler
from flowsim.graph.loader import GraphLoadError, dump_system, load_system, load_system_file
from flowsim.graph.node import AgentNode, NodeCategory, NodeRole, ToolRef
from flowsim.graph.roles import ROLE_BEHAVIORS, RoleBehavior, RoleContext, RoleOutcome
from flowsim.graph.run_state import RunState
from flowsim.graph.validator import ValidationResult, validate_node

__all__ = [
    # Node
    "AgentNode",
    "NodeCategory",
    "NodeRole",
    "ToolRef",
    # Edge
    "FlowLink",
    "Port",
    "WorkflowGraph",
    # Loading
    "GraphLoadError",
    "load_system",
    "load_system_file",
    "dump_system",
    # Validation
    "ValidationResult",
    "validate_node",
    # Latency
    "LatencyModel",
    "LatencySampler",
    # Roles
    "ROLE_BEHAVIORS",
    "RoleBehavior",
    "RoleContext",
    "RoleOutcome",
    # Engine
    "SimulationEngine",
    "StepResult",
    "RunState",
    "RunStatus",
    "RunSummary",
    "SimulationError",
    "SimulationStoppedError",
    "ConcurrentStepError",
]
