from __future__ import annotations

from typing import TYPE_CHECKING

from ..types.metrics import TickMetrics

if TYPE_CHECKING:
    from ..core.lattice import Lattice


def create_metrics(tick: int, lattice: Lattice, duration_ms: float) -> TickMetrics:
    total_host = 0.0
    total_enemy = 0.0
    total_symbiont = 0.0
    negative = 0
    for patch in lattice.patches():
        total_host += patch.host
        total_enemy += patch.enemy
        total_symbiont += patch.symbiont
        if patch.host < 0.0 or patch.enemy < 0.0 or patch.symbiont < 0.0:
            negative += 1
    count = len(lattice)
    return TickMetrics(
        tick=tick,
        mean_host=total_host / count,
        mean_enemy=total_enemy / count,
        mean_symbiont=total_symbiont / count,
        total_host=total_host,
        total_enemy=total_enemy,
        total_symbiont=total_symbiont,
        negative_patches=negative,
        tick_duration_ms=duration_ms,
    )
