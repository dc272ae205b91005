from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Patch:
    host: float = 0.0
    enemy: float = 0.0
    symbiont: float = 0.0
    productivity: float = 0.0
    host_in: float = 0.0
    enemy_in: float = 0.0
    symbiont_in: float = 0.0
    host_out: float = 0.0
    enemy_out: float = 0.0
    symbiont_out: float = 0.0

    def clear_flux(self) -> None:
        self.host_in = 0.0
        self.enemy_in = 0.0
        self.symbiont_in = 0.0
        self.host_out = 0.0
        self.enemy_out = 0.0
        self.symbiont_out = 0.0


@dataclass(frozen=True, slots=True)
class PatchState:
    x: int
    y: int
    productivity: float
    host: float
    enemy: float
    symbiont: float


@dataclass(frozen=True, slots=True)
class FluxState:
    host_in: float
    enemy_in: float
    symbiont_in: float
    host_out: float
    enemy_out: float
    symbiont_out: float

    def is_clear(self) -> bool:
        return (
            self.host_in == 0.0
            and self.enemy_in == 0.0
            and self.symbiont_in == 0.0
            and self.host_out == 0.0
            and self.enemy_out == 0.0
            and self.symbiont_out == 0.0
        )
