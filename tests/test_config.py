"""Tests for ~/.flowsim/configuration.json handling."""

import json

import pytest
from support import agent, graph, link, node

from flowsim.config import (
    SimulationConfig,
    get_flowsim_config,
    get_log_format,
    get_log_level,
    get_seed,
    get_time_scale,
)
from flowsim.graph.executor import SimulationEngine
from flowsim.graph.roles import DEFAULT_MAX_LOOP_ITERATIONS


def test_missing_file_gives_defaults():
    assert get_flowsim_config() == {}
    config = SimulationConfig()
    assert config.time_scale == 1.0
    assert config.seed is None
    assert config.max_loop_iterations == DEFAULT_MAX_LOOP_ITERATIONS
    assert config.log_level == "INFO"
    assert config.log_format == "auto"


def test_values_read_from_file(isolated_config):
    isolated_config.write_text(
        json.dumps(
            {
                "simulation": {"time_scale": 0.25, "seed": 42},
                "logging": {"level": "DEBUG", "format": "json"},
            }
        ),
        encoding="utf-8",
    )

    assert get_time_scale() == 0.25
    assert get_seed() == 42
    assert get_log_level() == "DEBUG"
    assert get_log_format() == "json"

    config = SimulationConfig()
    assert (config.time_scale, config.seed) == (0.25, 42)


def test_malformed_file_is_ignored(isolated_config):
    isolated_config.write_text("{not json", encoding="utf-8")
    assert get_flowsim_config() == {}
    assert SimulationConfig().time_scale == 1.0


def test_non_mapping_sections_are_ignored(isolated_config):
    isolated_config.write_text(json.dumps({"simulation": [1, 2]}), encoding="utf-8")
    assert get_time_scale() == 1.0


def test_explicit_path(tmp_path):
    path = tmp_path / "other.json"
    path.write_text(json.dumps({"simulation": {"seed": 3}}), encoding="utf-8")
    assert get_flowsim_config(path) == {"simulation": {"seed": 3}}


@pytest.mark.asyncio
async def test_engine_from_config_is_reproducible():
    g = graph(
        [node("Check", role="if_else", type="logic"), agent("Yes"), agent("No")],
        [link("Check", "Yes", port="true"), link("Check", "No", port="false")],
    )
    config = SimulationConfig(time_scale=0, seed=11)

    first = SimulationEngine.from_config(g, config=config)
    second = SimulationEngine.from_config(g, config=config)

    assert first.time_scale == 0
    assert first.max_loop_iterations == DEFAULT_MAX_LOOP_ITERATIONS
    # Same seed, same branch and data draws
    assert await first.run() == await second.run()
