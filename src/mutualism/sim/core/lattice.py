from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Iterator, List, Optional, Tuple

from ...config import InitialPopulationConfig, LatticeConfig
from ...rng import DeterministicRng
from .patch import FluxState, Patch, PatchState

_BLOCK_OFFSETS: Tuple[int, ...] = (-1, 0, 1)


class Lattice:
    """Fixed-size toroidal grid of patches stored in one flat, x-major list.

    Patch records never leave the lattice: callers get ``PatchState`` and
    ``FluxState`` copies and write through ``set_state``. The growth,
    migration and metrics systems work on ``patches()`` and the neighbour
    tables directly.
    """

    def __init__(self, width: int, height: int, patches: Optional[Iterable[Patch]] = None):
        if width <= 0 or height <= 0:
            raise ValueError(f"Lattice must be at least 1x1, got {width}x{height}")
        self._width = int(width)
        self._height = int(height)
        if patches is None:
            self._patches: List[Patch] = [Patch() for _ in range(self._width * self._height)]
        else:
            self._patches = [replace(patch) for patch in patches]
            if len(self._patches) != self._width * self._height:
                raise ValueError(
                    f"Expected {self._width * self._height} patches for a {width}x{height} lattice, "
                    f"got {len(self._patches)}"
                )
        self._neighbor_table: List[Tuple[int, ...]] = []
        self._diagonal_table: List[Tuple[int, ...]] = []
        self._build_neighbor_tables()

    @classmethod
    def seeded(
        cls,
        lattice_config: LatticeConfig,
        initial: InitialPopulationConfig,
        rng: DeterministicRng,
    ) -> "Lattice":
        patches = []
        for _ in range(lattice_config.width * lattice_config.height):
            productivity = rng.next_gaussian(lattice_config.average_r, lattice_config.variance_r)
            host = rng.next_gaussian(initial.host_mean, initial.host_sd)
            enemy = rng.next_gaussian(initial.enemy_mean, initial.enemy_sd)
            symbiont = rng.next_gaussian(initial.symbiont_mean, initial.symbiont_sd)
            patches.append(
                Patch(
                    host=host,
                    enemy=max(0.0, enemy),
                    symbiont=max(0.0, symbiont),
                    productivity=max(0.0, productivity),
                )
            )
        return cls(lattice_config.width, lattice_config.height, patches)

    @classmethod
    def uniform(
        cls,
        width: int,
        height: int,
        host: float,
        enemy: float,
        symbiont: float,
        productivity: float,
    ) -> "Lattice":
        patches = [
            Patch(host=host, enemy=enemy, symbiont=symbiont, productivity=max(0.0, productivity))
            for _ in range(width * height)
        ]
        return cls(width, height, patches)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def __len__(self) -> int:
        return len(self._patches)

    def patches(self) -> List[Patch]:
        """The live patch records, x-major. Only the simulation systems may mutate them."""
        return self._patches

    def index(self, x: int, y: int) -> int:
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError(f"({x}, {y}) is outside a {self._width}x{self._height} lattice")
        return x * self._height + y

    def coords(self, index: int) -> Tuple[int, int]:
        if not 0 <= index < len(self._patches):
            raise IndexError(f"patch index {index} out of range")
        return divmod(index, self._height)

    def neighbors(self, x: int, y: int) -> Tuple[Tuple[int, int], ...]:
        return tuple(self.coords(i) for i in self._neighbor_table[self.index(x, y)])

    def neighbor_indices(self, index: int) -> Tuple[int, ...]:
        return self._neighbor_table[index]

    def diagonal_indices(self, index: int) -> Tuple[int, ...]:
        """Indices of ``(X, X mod height)`` for every neighbour column ``X``."""
        return self._diagonal_table[index]

    def state(self, x: int, y: int) -> PatchState:
        patch = self._patches[self.index(x, y)]
        return PatchState(
            x=x,
            y=y,
            productivity=patch.productivity,
            host=patch.host,
            enemy=patch.enemy,
            symbiont=patch.symbiont,
        )

    def states(self) -> Iterator[PatchState]:
        height = self._height
        for idx, patch in enumerate(self._patches):
            x, y = divmod(idx, height)
            yield PatchState(
                x=x,
                y=y,
                productivity=patch.productivity,
                host=patch.host,
                enemy=patch.enemy,
                symbiont=patch.symbiont,
            )

    def set_state(
        self,
        x: int,
        y: int,
        host: Optional[float] = None,
        enemy: Optional[float] = None,
        symbiont: Optional[float] = None,
        productivity: Optional[float] = None,
    ) -> None:
        patch = self._patches[self.index(x, y)]
        if host is not None:
            patch.host = float(host)
        if enemy is not None:
            patch.enemy = float(enemy)
        if symbiont is not None:
            patch.symbiont = float(symbiont)
        if productivity is not None:
            patch.productivity = max(0.0, float(productivity))

    def flux(self, x: int, y: int) -> FluxState:
        patch = self._patches[self.index(x, y)]
        return FluxState(
            host_in=patch.host_in,
            enemy_in=patch.enemy_in,
            symbiont_in=patch.symbiont_in,
            host_out=patch.host_out,
            enemy_out=patch.enemy_out,
            symbiont_out=patch.symbiont_out,
        )

    def totals(self) -> Tuple[float, float, float]:
        host = 0.0
        enemy = 0.0
        symbiont = 0.0
        for patch in self._patches:
            host += patch.host
            enemy += patch.enemy
            symbiont += patch.symbiont
        return host, enemy, symbiont

    def copy(self) -> "Lattice":
        patches = [
            Patch(
                host=p.host,
                enemy=p.enemy,
                symbiont=p.symbiont,
                productivity=p.productivity,
            )
            for p in self._patches
        ]
        return Lattice(self._width, self._height, patches)

    def _build_neighbor_tables(self) -> None:
        width = self._width
        height = self._height
        for x in range(width):
            columns = [(x + dx) % width for dx in _BLOCK_OFFSETS]
            for y in range(height):
                rows = [(y + dy) % height for dy in _BLOCK_OFFSETS]
                neighbors = []
                diagonal = []
                for nx in columns:
                    for ny in rows:
                        if nx == x and ny == y:
                            continue
                        neighbors.append(nx * height + ny)
                        diagonal.append(nx * height + nx % height)
                self._neighbor_table.append(tuple(neighbors))
                self._diagonal_table.append(tuple(diagonal))
