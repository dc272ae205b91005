from __future__ import annotations

from typing import Optional, Sequence, Tuple, TYPE_CHECKING

from ...config import GrowthConfig

if TYPE_CHECKING:
    from ..core.lattice import Lattice


class GrowthStep:
    """One explicit Euler step of the local host, enemy and symbiont dynamics.

    Symbionts shield the host from the enemy with a saturating factor
    ``u / (u + M)``; enemies and symbionts both convert host biomass with
    efficiency ``g``. Nothing is clamped, so large steps can push densities
    below zero.
    """

    def __init__(self, params: GrowthConfig, time_step: float):
        self._params = params
        self._time_step = time_step

    @property
    def params(self) -> GrowthConfig:
        return self._params

    def derivatives(self, host: float, enemy: float, symbiont: float, productivity: float) -> Tuple[float, float, float]:
        q = self._params.q
        b = self._params.b
        u = self._params.u
        a = self._params.a
        g = self._params.g
        protection = u / (u + symbiont)
        d_host = (productivity - q * host - b * (enemy * protection + a * symbiont)) * host
        d_enemy = (b * g * host * protection - self._params.de) * enemy
        d_symbiont = (b * g * a * host - self._params.dm) * symbiont
        return d_host, d_enemy, d_symbiont

    def apply(self, lattice: Lattice, order: Optional[Sequence[int]] = None) -> None:
        patches = lattice.patches()
        indices = range(len(patches)) if order is None else order
        dt = self._time_step
        derivatives = self.derivatives
        for idx in indices:
            patch = patches[idx]
            d_host, d_enemy, d_symbiont = derivatives(patch.host, patch.enemy, patch.symbiont, patch.productivity)
            patch.host += d_host * dt
            patch.enemy += d_enemy * dt
            patch.symbiont += d_symbiont * dt
