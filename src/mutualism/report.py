from __future__ import annotations

import csv
from pathlib import Path
from typing import IO, Optional

from .config import SimulationConfig
from .sim.types.snapshot import SNAPSHOT_HEADER, Snapshot

DELIMITERS = {"space": " ", "csv": ","}


def format_value(value: float) -> str:
    """Six significant digits, trailing zeros dropped (``%g``)."""
    return f"{value:g}"


def output_filename(config: SimulationConfig, tag: float) -> str:
    parts = [
        ("v", config.lattice.variance_r),
        ("r", config.lattice.average_r),
        ("H", config.dispersal.host),
        ("M", config.dispersal.symbiont),
        ("P", config.dispersal.enemy),
        ("a", config.growth.a),
        ("i", tag),
    ]
    return "out-" + "-".join(f"{key}{format_value(value)}" for key, value in parts) + ".dat"


class SnapshotWriter:
    """Writes snapshots as delimited text rows under a ``t x y r h p m`` header.

    Instances are callable, so they can be handed straight to
    ``Integrator.run`` as the snapshot sink.
    """

    def __init__(self, path: Path, delimiter: str = " "):
        self._path = Path(path)
        self._delimiter = delimiter
        self._file: Optional[IO[str]] = None
        self._writer = None
        self.rows_written = 0

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> "SnapshotWriter":
        if self._file is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self._path.open("w", newline="")
            self._writer = csv.writer(self._file, delimiter=self._delimiter, lineterminator="\n")
            self._writer.writerow(SNAPSHOT_HEADER)
        return self

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None

    def __enter__(self) -> "SnapshotWriter":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def write(self, snapshot: Snapshot) -> None:
        if self._writer is None:
            raise RuntimeError(f"SnapshotWriter for {self._path} is not open")
        for record in snapshot.records:
            self._writer.writerow(
                [
                    record.t,
                    record.x,
                    record.y,
                    format_value(record.r),
                    format_value(record.h),
                    format_value(record.p),
                    format_value(record.m),
                ]
            )
        self.rows_written += len(snapshot.records)

    __call__ = write
