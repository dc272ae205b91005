from __future__ import annotations

import logging
from time import perf_counter
from typing import Callable, Optional

from ...config import SimulationConfig
from ...rng import DeterministicRng, resolve_seed
from ..systems import metrics as metrics_system
from ..systems.growth import GrowthStep
from ..systems.migration import MigrationStep
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotRecord
from .lattice import Lattice

logger = logging.getLogger(__name__)

SnapshotSink = Callable[[Snapshot], None]


class Integrator:
    """Drives growth, then migration, once per tick over the whole lattice."""

    def __init__(self, config: SimulationConfig, lattice: Optional[Lattice] = None):
        self._config = config.validate()
        self._seed = resolve_seed(config.seed)
        self._rng = DeterministicRng(self._seed)
        if lattice is not None:
            if lattice.width != config.lattice.width or lattice.height != config.lattice.height:
                raise ValueError(
                    f"Lattice is {lattice.width}x{lattice.height} but the configuration asks for "
                    f"{config.lattice.width}x{config.lattice.height}"
                )
            self._initial_lattice: Optional[Lattice] = lattice.copy()
            self._lattice = lattice
        else:
            self._initial_lattice = None
            self._lattice = Lattice.seeded(config.lattice, config.initial, self._rng)
        self._growth = GrowthStep(config.growth, config.time_step)
        self._migration = MigrationStep(config.dispersal, config.time_step)
        self._metrics: TickMetrics | None = None
        self._negative_reported = False

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def rng(self) -> DeterministicRng:
        return self._rng

    @property
    def lattice(self) -> Lattice:
        return self._lattice

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        if self._initial_lattice is not None:
            self._lattice = self._initial_lattice.copy()
        else:
            self._rng.reset()
            self._lattice = Lattice.seeded(self._config.lattice, self._config.initial, self._rng)
        self._metrics = None
        self._negative_reported = False

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        self._growth.apply(self._lattice)
        self._migration.apply(self._lattice)
        duration_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(tick, self._lattice, duration_ms)
        if metrics.negative_patches and not self._negative_reported:
            logger.warning(
                "Negative population densities in %d patches at tick %d", metrics.negative_patches, tick
            )
            self._negative_reported = True
        self._metrics = metrics
        return metrics

    def should_emit(self, tick: int) -> bool:
        return tick % self._config.out_steps == 0

    def snapshot(self, tick: int) -> Snapshot:
        records = [
            SnapshotRecord(
                t=tick,
                x=state.x,
                y=state.y,
                r=state.productivity,
                h=state.host,
                p=state.enemy,
                m=state.symbiont,
            )
            for state in self._lattice.states()
        ]
        metadata = SnapshotMetadata(
            width=self._lattice.width,
            height=self._lattice.height,
            time_step=self._config.time_step,
            out_steps=self._config.out_steps,
            seed=self._seed,
        )
        return Snapshot(tick=tick, records=records, metadata=metadata, metrics=self._metrics)

    def run(
        self,
        sink: Optional[SnapshotSink] = None,
        on_tick: Optional[Callable[[TickMetrics], None]] = None,
    ) -> int:
        config = self._config
        logger.info(
            "Running %d steps on a %dx%d lattice (seed %d)",
            config.sim_steps,
            self._lattice.width,
            self._lattice.height,
            self._seed,
        )
        emitted = 0
        for tick in range(config.sim_steps + 1):
            metrics = self.step(tick)
            if on_tick is not None:
                on_tick(metrics)
            if self.should_emit(tick):
                emitted += 1
                if sink is not None:
                    sink(self.snapshot(tick))
                logger.debug("Snapshot emitted at tick %d", tick)
        logger.info("Finished %d steps, %d snapshots emitted", config.sim_steps, emitted)
        return emitted
