from __future__ import annotations

import pytest

from mutualism.config import (
    ConfigError,
    DispersalConfig,
    GrowthConfig,
    LatticeConfig,
    SimulationConfig,
    load_config,
)


def test_defaults_match_published_parameters():
    config = SimulationConfig()
    assert (config.lattice.width, config.lattice.height) == (80, 80)
    assert config.lattice.average_r == 1.70
    assert config.lattice.variance_r == 1.35
    assert (config.dispersal.host, config.dispersal.enemy, config.dispersal.symbiont) == (0.01, 0.01, 0.01)
    assert config.dispersal.legacy_host_inflow is False
    assert (config.sim_steps, config.time_step, config.out_steps) == (5000, 0.005, 5)
    growth = config.growth
    assert (growth.q, growth.b, growth.u, growth.a, growth.g, growth.de, growth.dm) == (
        0.005,
        0.1,
        1.9,
        0.5,
        0.1,
        0.018,
        0.1,
    )
    assert config.validate() is config


def test_configs_are_immutable():
    config = SimulationConfig()
    with pytest.raises(AttributeError):
        config.sim_steps = 10  # type: ignore[misc]


def test_from_yaml_merges_sections(tmp_path):
    path = tmp_path / "run.yaml"
    path.write_text(
        "sim_steps: 20\n"
        "seed: 7\n"
        "lattice:\n"
        "  width: 10\n"
        "  variance_r: 0.0\n"
        "dispersal:\n"
        "  host: 0.2\n"
        "  legacy_host_inflow: true\n"
        "growth:\n"
        "  a: 0.3\n"
    )
    config = SimulationConfig.from_yaml(path)

    assert config.sim_steps == 20
    assert config.seed == 7
    assert config.lattice == LatticeConfig(width=10, variance_r=0.0)
    assert config.dispersal == DispersalConfig(host=0.2, legacy_host_inflow=True)
    assert config.growth == GrowthConfig(a=0.3)
    assert config.out_steps == 5


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert SimulationConfig.from_yaml(path) == SimulationConfig()


def test_unknown_keys_are_rejected():
    with pytest.raises(ConfigError, match="lattice"):
        load_config({"lattice": {"depth": 3}})
    with pytest.raises(ConfigError):
        load_config({"steps": 3})


@pytest.mark.parametrize(
    "config",
    [
        SimulationConfig(lattice=LatticeConfig(width=0)),
        SimulationConfig(lattice=LatticeConfig(height=-2)),
        SimulationConfig(sim_steps=-1),
        SimulationConfig(out_steps=0),
        SimulationConfig(time_step=0.0),
        SimulationConfig(dispersal=DispersalConfig(enemy=-0.1)),
        SimulationConfig(growth=GrowthConfig(de=-0.01)),
        SimulationConfig(growth=GrowthConfig(u=0.0)),
        SimulationConfig(lattice=LatticeConfig(variance_r=-1.0)),
    ],
)
def test_validation_rejects_unusable_configs(config):
    with pytest.raises(ConfigError):
        config.validate()


def test_validation_reports_every_problem():
    config = SimulationConfig(out_steps=0, time_step=-1.0)
    with pytest.raises(ConfigError) as excinfo:
        config.validate()
    assert "out_steps" in str(excinfo.value)
    assert "time_step" in str(excinfo.value)


def test_malformed_yaml_is_a_config_error(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("lattice: {width: 3\n")
    with pytest.raises(ConfigError, match="cannot parse"):
        SimulationConfig.from_yaml(path)


@pytest.mark.parametrize("document", ["- 1\n- 2\n", "just text\n", "lattice: 4\n"])
def test_yaml_that_is_not_a_mapping_is_rejected(tmp_path, document):
    path = tmp_path / "odd.yaml"
    path.write_text(document)
    with pytest.raises(ConfigError):
        SimulationConfig.from_yaml(path)
