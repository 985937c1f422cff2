"""Shared flowsim configuration utilities.

Centralises reading of ~/.flowsim/configuration.json so that the CLI and
library callers share one implementation.

Example configuration::

    {
        "simulation": {"time_scale": 0.25, "seed": 42},
        "logging": {"level": "DEBUG", "format": "json"}
    }
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flowsim.graph.roles import DEFAULT_MAX_LOOP_ITERATIONS

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

FLOWSIM_CONFIG_FILE = Path.home() / ".flowsim" / "configuration.json"


def get_flowsim_config(path: Path | None = None) -> dict[str, Any]:
    """Load flowsim configuration; a missing or unreadable file yields ``{}``."""
    config_file = path or FLOWSIM_CONFIG_FILE
    if not config_file.exists():
        return {}
    try:
        with open(config_file, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def _simulation_section() -> dict[str, Any]:
    section = get_flowsim_config().get("simulation", {})
    return section if isinstance(section, dict) else {}


def _logging_section() -> dict[str, Any]:
    section = get_flowsim_config().get("logging", {})
    return section if isinstance(section, dict) else {}


def get_time_scale() -> float:
    """Multiplier applied to simulated latency (0 runs instantly)."""
    return float(_simulation_section().get("time_scale", 1.0))


def get_seed() -> int | None:
    """Seed for the simulation's random draws, or None for a fresh seed."""
    seed = _simulation_section().get("seed")
    return int(seed) if seed is not None else None


def get_log_level() -> str:
    return str(_logging_section().get("level", "INFO"))


def get_log_format() -> str:
    return str(_logging_section().get("format", "auto"))


# ---------------------------------------------------------------------------
# SimulationConfig – shared by the engine, the session driver and the CLI
# ---------------------------------------------------------------------------


@dataclass
class SimulationConfig:
    """Simulation settings loaded from ~/.flowsim/configuration.json."""

    time_scale: float = field(default_factory=get_time_scale)
    seed: int | None = field(default_factory=get_seed)
    max_loop_iterations: int = DEFAULT_MAX_LOOP_ITERATIONS
    log_level: str = field(default_factory=get_log_level)
    log_format: str = field(default_factory=get_log_format)
