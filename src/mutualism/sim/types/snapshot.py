from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .metrics import TickMetrics

SNAPSHOT_HEADER = ("t", "x", "y", "r", "h", "p", "m")


@dataclass(frozen=True, slots=True)
class SnapshotRecord:
    t: int
    x: int
    y: int
    r: float
    h: float
    p: float
    m: float


@dataclass(slots=True)
class SnapshotMetadata:
    width: int
    height: int
    time_step: float
    out_steps: int
    seed: int


@dataclass(slots=True)
class Snapshot:
    tick: int
    records: List[SnapshotRecord]
    metadata: SnapshotMetadata
    metrics: Optional[TickMetrics] = None
