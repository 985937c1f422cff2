"""
Command-line interface for flowsim.

Usage:
    flowsim run workflows/research.yaml
    flowsim run workflows/research.yaml --step --seed 7
    flowsim run workflows/research.yaml --time-scale 0 --log-format json
    flowsim validate workflows/research.yaml
"""

import argparse
import asyncio
import sys

from flowsim.config import SimulationConfig
from flowsim.graph.edge import WorkflowGraph
from flowsim.graph.loader import GraphLoadError, load_system_file
from flowsim.graph.validator import validate_node
from flowsim.observability import configure_logging
from flowsim.runtime.session import SimulationSession
from flowsim.runtime.updates import SimulationUpdate

STEP_PROMPT = "Press Enter for the next step..."


def format_update(update: SimulationUpdate) -> list[str]:
    """Render one update as console lines."""
    lines = []
    if update.log is not None:
        line = f"[{update.log.node_name}] {update.log.message}"
        if update.log.duration_ms is not None:
            line += f" (Duration: {update.log.duration_ms}ms)"
        lines.append(line)
    if update.status is not None:
        line = f"[{update.status.node_name}] -> {update.status.status}"
        if update.status.error:
            line += f": {update.status.error}"
        lines.append(line)
    if update.data is not None:
        lines.append(
            f"[{update.data.source} -> {update.data.target}] "
            f"{update.data.packet_count} packet(s), {update.data.size_kb:.1f} KB"
        )
    return lines


def _load(path: str) -> WorkflowGraph | None:
    try:
        return load_system_file(path)
    except GraphLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None


# === run ===


async def _run_session(graph: WorkflowGraph, config: SimulationConfig, step: bool) -> int:
    session = SimulationSession(graph, step_mode=step, config=config)
    await session.start()
    try:
        async for update in session.updates():
            for line in format_update(update):
                print(line)
            if session.waiting:
                await asyncio.to_thread(input, STEP_PROMPT)
                session.next_step()
    finally:
        await session.stop()

    summary = session.summary
    return 0 if summary is not None and summary.ok else 1


def cmd_run(args: argparse.Namespace) -> int:
    """Simulate a workflow and print its updates."""
    config = SimulationConfig()
    if args.seed is not None:
        config.seed = args.seed
    if args.time_scale is not None:
        config.time_scale = args.time_scale
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    configure_logging(level=config.log_level, format=config.log_format)

    graph = _load(args.file)
    if graph is None:
        return 1

    try:
        return asyncio.run(_run_session(graph, config, args.step))
    except KeyboardInterrupt:
        print("\nSimulation stopped.", file=sys.stderr)
        return 130


# === validate ===


def cmd_validate(args: argparse.Namespace) -> int:
    """Report structural problems and per-node verdicts."""
    graph = _load(args.file)
    if graph is None:
        return 1

    problems = graph.validate()
    for problem in problems:
        print(f"Structure: {problem}")

    failures = 0
    for node in graph.nodes:
        verdict = validate_node(node, graph)
        if verdict.ok:
            print(f"OK    {node.name} ({node.role})")
        else:
            failures += 1
            print(f"FAIL  {node.name} ({node.role}): {verdict.error}")
            print(f"      Suggested solution: {verdict.solution}")

    if problems or failures:
        print(f"\n{len(problems)} structural problem(s), {failures} failing node(s)")
        return 1

    print(f"\n{graph.name or args.file}: all {len(graph.nodes)} nodes valid")
    return 0


def register_commands(subparsers: argparse._SubParsersAction) -> None:
    """Register the run and validate commands."""
    run_parser = subparsers.add_parser("run", help="Simulate a workflow")
    run_parser.add_argument("file", help="Path to the workflow YAML file")
    run_parser.add_argument(
        "--step",
        action="store_true",
        help="Pause after every node and wait for Enter",
    )
    run_parser.add_argument("--seed", type=int, default=None, help="Seed for random draws")
    run_parser.add_argument(
        "--time-scale",
        type=float,
        default=None,
        help="Multiplier on simulated latency (0 runs instantly)",
    )
    run_parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level for diagnostic logging",
    )
    run_parser.add_argument(
        "--log-format",
        default=None,
        choices=["auto", "json", "human"],
        help="Diagnostic log format",
    )
    run_parser.set_defaults(func=cmd_run)

    validate_parser = subparsers.add_parser("validate", help="Validate a workflow")
    validate_parser.add_argument("file", help="Path to the workflow YAML file")
    validate_parser.set_defaults(func=cmd_validate)


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="flowsim",
        description="flowsim - Simulate multi-node agent workflows",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    register_commands(subparsers)

    args = parser.parse_args(argv)

    if hasattr(args, "func"):
        sys.exit(args.func(args))


if __name__ == "__main__":
    main()
