from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


class ConfigError(ValueError):
    """Raised when a configuration cannot drive a simulation."""


@dataclass(frozen=True)
class LatticeConfig:
    width: int = 80
    height: int = 80
    average_r: float = 1.70
    # Used as the standard deviation of the productivity draw.
    variance_r: float = 1.35


@dataclass(frozen=True)
class InitialPopulationConfig:
    host_mean: float = 10.0
    host_sd: float = 1.0
    enemy_mean: float = 1.0
    enemy_sd: float = 0.8
    symbiont_mean: float = 1.0
    symbiont_sd: float = 0.8


@dataclass(frozen=True)
class DispersalConfig:
    host: float = 0.01
    enemy: float = 0.01
    symbiont: float = 0.01
    # Read host inflow from patch (X, X mod height) instead of the neighbour (X, Y).
    legacy_host_inflow: bool = False


@dataclass(frozen=True)
class GrowthConfig:
    q: float = 0.005
    b: float = 0.1
    u: float = 1.9
    a: float = 0.5
    g: float = 0.1
    de: float = 0.018
    dm: float = 0.1


@dataclass(frozen=True)
class SimulationConfig:
    sim_steps: int = 5000
    time_step: float = 0.005
    out_steps: int = 5
    seed: Optional[int] = None
    lattice: LatticeConfig = field(default_factory=LatticeConfig)
    initial: InitialPopulationConfig = field(default_factory=InitialPopulationConfig)
    dispersal: DispersalConfig = field(default_factory=DispersalConfig)
    growth: GrowthConfig = field(default_factory=GrowthConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        try:
            data = yaml.safe_load(Path(path).read_text()) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse {path}: {exc}") from exc
        return load_config(data)

    def validate(self) -> "SimulationConfig":
        errors = []
        if self.lattice.width <= 0 or self.lattice.height <= 0:
            errors.append(f"lattice must be at least 1x1, got {self.lattice.width}x{self.lattice.height}")
        if self.sim_steps < 0:
            errors.append(f"sim_steps must be >= 0, got {self.sim_steps}")
        if self.out_steps < 1:
            errors.append(f"out_steps must be >= 1, got {self.out_steps}")
        if self.time_step <= 0:
            errors.append(f"time_step must be > 0, got {self.time_step}")
        if self.lattice.variance_r < 0:
            errors.append(f"lattice.variance_r must be >= 0, got {self.lattice.variance_r}")
        for name in ("host_sd", "enemy_sd", "symbiont_sd"):
            value = getattr(self.initial, name)
            if value < 0:
                errors.append(f"initial.{name} must be >= 0, got {value}")
        for name in ("host", "enemy", "symbiont"):
            value = getattr(self.dispersal, name)
            if value < 0:
                errors.append(f"dispersal.{name} must be >= 0, got {value}")
        for name in ("q", "b", "a", "g", "de", "dm"):
            value = getattr(self.growth, name)
            if value < 0:
                errors.append(f"growth.{name} must be >= 0, got {value}")
        if self.growth.u <= 0:
            errors.append(f"growth.u must be > 0, got {self.growth.u}")
        if errors:
            raise ConfigError("; ".join(errors))
        return self


@dataclass(frozen=True)
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    tick_interval_seconds: float = 0.02
    broadcast_interval: int = 1
    # Serialized snapshots kept for clients that have not acknowledged them yet.
    snapshot_backlog: int = 8


_SECTIONS = {
    "lattice": LatticeConfig,
    "initial": InitialPopulationConfig,
    "dispersal": DispersalConfig,
    "growth": GrowthConfig,
}


def load_config(raw: dict) -> SimulationConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"configuration must be a mapping, got {type(raw).__name__}")
    sections = {}
    for key, section_type in _SECTIONS.items():
        try:
            sections[key] = section_type(**(raw.get(key) or {}))
        except TypeError as exc:
            raise ConfigError(f"invalid '{key}' section: {exc}") from exc
    sim_values = {k: v for k, v in raw.items() if k not in _SECTIONS}
    try:
        return SimulationConfig(**sections, **sim_values)
    except TypeError as exc:
        raise ConfigError(f"invalid simulation config: {exc}") from exc
