from __future__ import annotations

import argparse
import json
import logging
import math
from dataclasses import replace
from pathlib import Path
from time import perf_counter
from typing import Optional

from .config import ConfigError, SimulationConfig
from .report import DELIMITERS, SnapshotWriter, output_filename
from .rng import DeterministicRng, resolve_seed
from .sim.core.integrator import Integrator
from .sim.core.lattice import Lattice
from .sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
    }


def run_headless(
    config: SimulationConfig,
    out_path: Optional[Path] = None,
    out_dir: Optional[Path] = None,
    log_format: str = "space",
    summary_path: Optional[Path] = None,
    deterministic_log: bool = False,
) -> Optional[Path]:
    """Run a full simulation and return the path of the snapshot file, if any.

    With neither ``out_path`` nor ``out_dir`` no snapshot file is written.
    ``out_dir`` gets a file named after the run parameters and a random tag.
    """
    fmt = log_format.lower().strip()
    if fmt not in DELIMITERS:
        raise ValueError(f"Unknown log format: {log_format}")

    begin = perf_counter()
    config = replace(config.validate(), seed=resolve_seed(config.seed))
    rng = DeterministicRng(config.seed)
    # The file tag is the first draw, before any patch is seeded.
    tag = rng.next_uniform_pos()
    if out_path is None and out_dir is not None:
        out_path = Path(out_dir) / output_filename(config, tag)
    integrator = Integrator(config, Lattice.seeded(config.lattice, config.initial, rng))

    host_series: list[float] = []
    enemy_series: list[float] = []
    symbiont_series: list[float] = []
    tick_ms_series: list[float] = []
    max_negative = (0, -1)

    def record(metrics: TickMetrics) -> None:
        nonlocal max_negative
        host_series.append(metrics.mean_host)
        enemy_series.append(metrics.mean_enemy)
        symbiont_series.append(metrics.mean_symbiont)
        tick_ms_series.append(0.0 if deterministic_log else metrics.tick_duration_ms)
        if metrics.negative_patches > max_negative[0]:
            max_negative = (metrics.negative_patches, metrics.tick)

    if out_path is not None:
        with SnapshotWriter(out_path, delimiter=DELIMITERS[fmt]) as writer:
            snapshots = integrator.run(sink=writer, on_tick=record)
        logger.info("Wrote %d rows to %s", writer.rows_written, out_path)
    else:
        snapshots = integrator.run(on_tick=record)

    elapsed = perf_counter() - begin
    logger.info("Execution complete in %d seconds", int(elapsed))

    if summary_path:
        final = integrator.metrics
        summary = {
            "steps": config.sim_steps,
            "seed": integrator.seed,
            "width": config.lattice.width,
            "height": config.lattice.height,
            "snapshots": snapshots,
            "output": str(out_path) if out_path is not None else None,
            "final_totals": {
                "host": final.total_host,
                "enemy": final.total_enemy,
                "symbiont": final.total_symbiont,
            },
            "mean_host": _summary_stats(host_series),
            "mean_enemy": _summary_stats(enemy_series),
            "mean_symbiont": _summary_stats(symbiont_series),
            "tick_ms": _summary_stats(tick_ms_series),
            "peaks": {
                "negative_patches": {"value": max_negative[0], "tick": max_negative[1]},
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return out_path


def build_config(args: argparse.Namespace) -> SimulationConfig:
    config = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()

    lattice_overrides = {
        key: value
        for key, value in (
            ("width", args.width),
            ("height", args.height),
            ("average_r", args.rmean),
            ("variance_r", args.rvar),
        )
        if value is not None
    }
    dispersal_overrides = {
        key: value
        for key, value in (("host", args.hdisp), ("enemy", args.pdisp), ("symbiont", args.mdisp))
        if value is not None
    }
    if args.legacy_host_inflow:
        dispersal_overrides["legacy_host_inflow"] = True
    sim_overrides = {
        key: value
        for key, value in (("sim_steps", args.steps), ("out_steps", args.out_steps), ("seed", args.seed))
        if value is not None
    }

    config = replace(
        config,
        lattice=replace(config.lattice, **lattice_overrides),
        dispersal=replace(config.dispersal, **dispersal_overrides),
        growth=replace(config.growth, a=args.alpha) if args.alpha is not None else config.growth,
        **sim_overrides,
    )
    return config.validate()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Headless lattice mutualism simulation")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--rmean", type=float, default=None, help="Average primary productivity")
    parser.add_argument("--rvar", type=float, default=None, help="Spread of primary productivity")
    parser.add_argument("--hdisp", type=float, default=None, help="Host dispersal rate")
    parser.add_argument("--pdisp", type=float, default=None, help="Enemy dispersal rate")
    parser.add_argument("--mdisp", type=float, default=None, help="Symbiont dispersal rate")
    parser.add_argument("--alpha", type=float, default=None, help="Enemy to symbiont conversion asymmetry")
    parser.add_argument("--width", type=int, default=None)
    parser.add_argument("--height", type=int, default=None)
    parser.add_argument("--steps", type=int, default=None, help="Last tick to simulate")
    parser.add_argument("--out-steps", type=int, default=None, help="Snapshot interval in ticks")
    parser.add_argument("--seed", type=int, default=None, help="Defaults to the current time")
    parser.add_argument(
        "--legacy-host-inflow",
        action="store_true",
        help="Read host inflow from patch (X, X) instead of the neighbour (X, Y).",
    )
    parser.add_argument("--out", type=Path, default=None, help="Snapshot file to write")
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path("."),
        help="Directory for an automatically named snapshot file when --out is not given.",
    )
    parser.add_argument(
        "--format",
        choices=sorted(DELIMITERS),
        default="space",
        help="Delimiter for snapshot rows.",
    )
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file with run summary stats.")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write tick_ms as 0.0 in the summary so identical seeds match.",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        config = build_config(args)
    except ConfigError as exc:
        parser.error(str(exc))
    run_headless(
        config,
        out_path=args.out,
        out_dir=args.out_dir,
        log_format=args.format,
        summary_path=args.summary,
        deterministic_log=args.deterministic_log,
    )


if __name__ == "__main__":
    main()
