from __future__ import annotations

import random
import time
from typing import Optional


def resolve_seed(seed: Optional[int]) -> int:
    if seed is None:
        return int(time.time())
    return int(seed)


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_uniform_pos(self) -> float:
        value = self._random.random()
        while value == 0.0:
            value = self._random.random()
        return value

    def next_gaussian(self, mean: float, sd: float) -> float:
        return self._random.gauss(mean, sd)
