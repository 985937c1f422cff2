"""
Role behaviors - What each kind of node does when the scheduler reaches it.

The scheduler treats every node the same way: mark it running, let it
"work", ask its role behavior where to go next, then validate and route.
Everything that differs between roles lives in one behavior object per
role, looked up in ``ROLE_BEHAVIORS``. Adding a role means adding an entry
to that table.

A behavior returns a :class:`RoleOutcome`:
- ``successors``: nodes to hand data to and enqueue if the node passes
- ``requeue``: nodes to enqueue directly, without a data transfer
- ``verdict``: a validation verdict that replaces the Node Validator
- ``logs`` / ``suspend``: updates to emit before the node's final status
"""

import random
from dataclasses import dataclass, field
from typing import Protocol

from flowsim.graph.edge import Port, WorkflowGraph
from flowsim.graph.node import AgentNode, NodeRole
from flowsim.graph.run_state import RunState
from flowsim.graph.validator import ValidationResult, validate_node
from flowsim.runtime.updates import LogEntry, LogKind, Suspension

DEFAULT_MAX_LOOP_ITERATIONS = 3

# Scratch key written by set_state and checked by guardrails
STATE_KEY = "status"
STATE_SENTINEL = "sukses"

APPROVAL_MESSAGE = "Waiting for user approval..."


@dataclass
class RoleContext:
    """Everything a behavior may look at for one node visit."""

    node: AgentNode
    graph: WorkflowGraph
    state: RunState
    rng: random.Random
    duration_ms: int = 0
    max_loop_iterations: int = DEFAULT_MAX_LOOP_ITERATIONS

    def log(self, kind: LogKind, message: str, duration_ms: int | None = None) -> LogEntry:
        return LogEntry(kind, message, self.node.name, duration_ms)

    def default_successors(self) -> list[str]:
        return self.graph.successors(self.node.name)


@dataclass
class RoleOutcome:
    """Routing decision of a behavior."""

    successors: list[str] = field(default_factory=list)
    requeue: list[str] = field(default_factory=list)
    verdict: ValidationResult | None = None
    logs: list[LogEntry] = field(default_factory=list)
    suspend: Suspension | None = None


class RoleBehavior(Protocol):
    """Decides successors (and optionally the verdict) for one role."""

    def resolve(self, ctx: RoleContext) -> RoleOutcome: ...


class NoteBehavior:
    """Notes are annotations: pass straight through."""

    def resolve(self, ctx: RoleContext) -> RoleOutcome:
        return RoleOutcome(
            successors=ctx.default_successors(),
            logs=[ctx.log(LogKind.INFO, "Note skipped.")],
        )


class EndBehavior:
    def resolve(self, ctx: RoleContext) -> RoleOutcome:
        return RoleOutcome(logs=[ctx.log(LogKind.SUCCESS, "Flow path finished.")])


class BranchBehavior:
    """
    Picks the ``true`` or ``false`` port.

    The node's ``condition`` text is not evaluated; the branch is drawn at
    random to exercise both paths of the graph.
    """

    def resolve(self, ctx: RoleContext) -> RoleOutcome:
        port = Port.TRUE if ctx.rng.random() > 0.5 else Port.FALSE
        condition = ctx.node.condition or "default"
        return RoleOutcome(
            successors=ctx.graph.successors(ctx.node.name, port),
            logs=[ctx.log(LogKind.INFO, f"Condition '{condition}' returned: {port}.")],
        )


class LoopBehavior:
    """
    Runs the ``loop`` body a bounded number of times, then leaves via ``exit``.

    While iterating, the body and the while node itself are put straight
    back on the ready-queue so the node is re-evaluated after the body.
    """

    def resolve(self, ctx: RoleContext) -> RoleOutcome:
        name = ctx.node.name
        iteration = ctx.state.bump_loop(name)
        limit = ctx.max_loop_iterations

        if iteration <= limit:
            body = ctx.graph.successors(name, Port.LOOP)
            return RoleOutcome(
                requeue=[*body, name],
                logs=[ctx.log(LogKind.INFO, f"Loop (iteration {iteration}/{limit}).")],
            )

        return RoleOutcome(
            successors=ctx.graph.successors(name, Port.EXIT),
            logs=[ctx.log(LogKind.INFO, "Loop finished (iteration limit reached).")],
        )


class ApprovalBehavior:
    """Human checkpoint: always asks the caller to resume explicitly."""

    def resolve(self, ctx: RoleContext) -> RoleOutcome:
        return RoleOutcome(
            successors=ctx.default_successors(),
            logs=[ctx.log(LogKind.WARNING, APPROVAL_MESSAGE)],
            suspend=Suspension(ctx.node.name, APPROVAL_MESSAGE),
        )


class SetStateBehavior:
    def resolve(self, ctx: RoleContext) -> RoleOutcome:
        ctx.state.scratch[STATE_KEY] = STATE_SENTINEL
        return RoleOutcome(
            successors=ctx.default_successors(),
            logs=[ctx.log(LogKind.INFO, f"State set: {STATE_KEY} = '{STATE_SENTINEL}'.")],
        )


class GuardrailsBehavior:
    """Passes only if a set_state node has already run in this run."""

    def resolve(self, ctx: RoleContext) -> RoleOutcome:
        outcome = RoleOutcome(successors=ctx.default_successors())
        if ctx.state.scratch.get(STATE_KEY) == STATE_SENTINEL:
            outcome.verdict = ValidationResult.passed()
            outcome.logs.append(ctx.log(LogKind.SUCCESS, "Guardrails validation passed."))
        else:
            outcome.verdict = ValidationResult.failed(
                error="Guardrails condition not met.",
                solution='Make sure a preceding "set_state" node sets the required state.',
            )
        return outcome


class AgentBehavior:
    """Standard agent, tool and data nodes: validate, then follow every link."""

    def resolve(self, ctx: RoleContext) -> RoleOutcome:
        verdict = validate_node(ctx.node, ctx.graph)
        outcome = RoleOutcome(successors=ctx.default_successors(), verdict=verdict)
        if verdict.ok:
            outcome.logs.append(
                ctx.log(LogKind.SUCCESS, "Agent passed validation.", ctx.duration_ms)
            )
        return outcome


ROLE_BEHAVIORS: dict[str, RoleBehavior] = {
    NodeRole.NOTE: NoteBehavior(),
    NodeRole.END: EndBehavior(),
    NodeRole.IF_ELSE: BranchBehavior(),
    NodeRole.WHILE: LoopBehavior(),
    NodeRole.USER_APPROVAL: ApprovalBehavior(),
    NodeRole.SET_STATE: SetStateBehavior(),
    NodeRole.GUARDRAILS: GuardrailsBehavior(),
}

DEFAULT_BEHAVIOR: RoleBehavior = AgentBehavior()


def behavior_for(role: str) -> RoleBehavior:
    """Look up the behavior of a role, falling back to the agent behavior."""
    return ROLE_BEHAVIORS.get(role, DEFAULT_BEHAVIOR)
