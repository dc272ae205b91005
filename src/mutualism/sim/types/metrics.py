from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    mean_host: float
    mean_enemy: float
    mean_symbiont: float
    total_host: float
    total_enemy: float
    total_symbiont: float
    negative_patches: int
    tick_duration_ms: float = 0.0
