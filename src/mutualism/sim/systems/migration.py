from __future__ import annotations

from typing import Optional, Sequence, TYPE_CHECKING

from ...config import DispersalConfig

if TYPE_CHECKING:
    from ..core.lattice import Lattice

_NEIGHBOR_SHARE = 1 / 8.0


class MigrationStep:
    """Diffusive exchange with the eight toroidal Moore neighbours.

    ``compute_flux`` only reads population fields and only writes the
    accumulators of the patch being visited, so its visiting order does not
    matter. ``apply_flux`` must not start until ``compute_flux`` has covered
    the whole lattice.
    """

    def __init__(self, dispersal: DispersalConfig, time_step: float):
        self._dispersal = dispersal
        self._time_step = time_step

    @property
    def dispersal(self) -> DispersalConfig:
        return self._dispersal

    def apply(self, lattice: Lattice, order: Optional[Sequence[int]] = None) -> None:
        self.compute_flux(lattice, order)
        self.apply_flux(lattice)

    def compute_flux(self, lattice: Lattice, order: Optional[Sequence[int]] = None) -> None:
        patches = lattice.patches()
        indices = range(len(patches)) if order is None else order
        dt = self._time_step
        host_rate = self._dispersal.host
        enemy_rate = self._dispersal.enemy
        symbiont_rate = self._dispersal.symbiont
        legacy = self._dispersal.legacy_host_inflow

        for idx in indices:
            patch = patches[idx]
            host_share = patch.host * dt * host_rate * _NEIGHBOR_SHARE
            enemy_share = patch.enemy * dt * enemy_rate * _NEIGHBOR_SHARE
            symbiont_share = patch.symbiont * dt * symbiont_rate * _NEIGHBOR_SHARE
            neighbors = lattice.neighbor_indices(idx)
            host_sources = lattice.diagonal_indices(idx) if legacy else neighbors

            host_in = 0.0
            enemy_in = 0.0
            symbiont_in = 0.0
            host_out = 0.0
            enemy_out = 0.0
            symbiont_out = 0.0
            for n_idx, h_idx in zip(neighbors, host_sources):
                neighbor = patches[n_idx]
                host_out += host_share
                enemy_out += enemy_share
                symbiont_out += symbiont_share
                host_in += patches[h_idx].host * dt * host_rate * _NEIGHBOR_SHARE
                enemy_in += neighbor.enemy * dt * enemy_rate * _NEIGHBOR_SHARE
                symbiont_in += neighbor.symbiont * dt * symbiont_rate * _NEIGHBOR_SHARE

            patch.host_in += host_in
            patch.enemy_in += enemy_in
            patch.symbiont_in += symbiont_in
            patch.host_out += host_out
            patch.enemy_out += enemy_out
            patch.symbiont_out += symbiont_out

    def apply_flux(self, lattice: Lattice) -> None:
        for patch in lattice.patches():
            patch.host += patch.host_in - patch.host_out
            patch.enemy += patch.enemy_in - patch.enemy_out
            patch.symbiont += patch.symbiont_in - patch.symbiont_out
            patch.clear_flux()
