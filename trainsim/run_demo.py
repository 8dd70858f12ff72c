from __future__ import annotations

"""Command line demo for the track vehicle simulation.

Running ``python -m trainsim.run_demo`` loads a track of Bézier segments,
places one vehicle on it and steps the physics pipeline for a fixed number of
ticks.  Results are written to a time-stamped directory under ``outputs``:

``trajectory.csv``
    Segment, distance, speed, world position and facing direction of the
    vehicle after every tick.
``track.csv``
    Per-segment links and arc lengths.
``summary.json``
    Run length, final speed and the distance covered.
"""

from pathlib import Path
from datetime import datetime
import argparse
import json
import logging
import time

import numpy as np
import matplotlib.pyplot as plt

from . import plots
from .io_utils import load_track_graph, read_vehicle_params_csv, segment_table, write_csv
from .arc_length import DEFAULT_ARC_LENGTH_SAMPLES
from .physics import GRAVITY_ACCELERATION, REST_SPEED_EPSILON
from .simulation import Simulation
from .vehicle import VehiclePhysics

logger = logging.getLogger(__name__)


def run(
    track_file: str,
    vehicle_file: str | None,
    dt: float,
    steps: int,
    start_segment: int = 0,
    start_distance: float = 0.0,
    start_speed: float = 0.0,
    closed: bool | None = None,
    samples: int | None = None,
    drag_factor: float | None = None,
    rolling_resistance: float | None = None,
    output_dir: str | Path = "outputs",
    plot: bool = False,
) -> tuple[dict, Path]:
    """Run the simulation demo and return the summary and output directory.

    Parameters
    ----------
    vehicle_file:
        Optional ``key,value`` CSV with ``drag_factor``, ``rolling_resistance``
        and the optional simulation settings ``gravity``, ``rest_epsilon`` and
        ``arc_length_samples``.
    samples, drag_factor, rolling_resistance:
        Values provided via the CLI override those from ``vehicle_file``.
    plot:
        Save plan view, elevation and speed plots next to the CSV output.
    """
    start_time = time.perf_counter()
    if steps < 0:
        raise ValueError("steps must be non-negative")

    params = read_vehicle_params_csv(vehicle_file) if vehicle_file else {}
    if samples is None:
        samples = int(params.get("arc_length_samples", DEFAULT_ARC_LENGTH_SAMPLES))
    if drag_factor is not None:
        params["drag_factor"] = drag_factor
    if rolling_resistance is not None:
        params["rolling_resistance"] = rolling_resistance
    physics = VehiclePhysics.from_params(params)

    graph = load_track_graph(track_file, closed=closed, samples=samples)
    logger.info(
        "loaded %d segments (%.1f m, closed=%s) from %s",
        len(graph),
        graph.total_length(),
        graph.is_closed(),
        track_file,
    )

    sim = Simulation(
        graph,
        gravity=float(params.get("gravity", GRAVITY_ACCELERATION)),
        rest_epsilon=float(params.get("rest_epsilon", REST_SPEED_EPSILON)),
    )
    sim.add_vehicle(start_segment, start_distance, start_speed, physics)
    trajectory = sim.run(steps, dt)

    positions = trajectory[["x_m", "y_m", "z_m"]].to_numpy()
    path_length = float(np.sum(np.linalg.norm(np.diff(positions, axis=0), axis=1)))
    final = trajectory.iloc[-1]
    summary = {
        "steps": steps,
        "dt_s": dt,
        "simulated_time_s": sim.elapsed,
        "segments": len(graph),
        "track_length_m": graph.total_length(),
        "final_segment": int(final["segment"]),
        "final_distance_m": float(final["distance_m"]),
        "final_speed_mps": float(final["speed_mps"]),
        "max_speed_mps": float(trajectory["speed_mps"].abs().max()),
        "path_length_m": path_length,
    }

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_dir = Path(output_dir) / timestamp
    out_dir.mkdir(parents=True, exist_ok=True)

    write_csv(trajectory, out_dir / "trajectory.csv")
    write_csv(segment_table(graph), out_dir / "track.csv")
    with (out_dir / "summary.json").open("w") as f:
        json.dump(summary, f, indent=2)

    if plot:
        ax = plots.plot_track_plan(graph, trajectory)
        ax.figure.savefig(out_dir / "plan_view.png")
        plt.close(ax.figure)
        ax = plots.plot_elevation_profile(graph, start=start_segment)
        ax.figure.savefig(out_dir / "elevation.png")
        plt.close(ax.figure)
        ax = plots.plot_speed_history(trajectory["time_s"], trajectory["speed_mps"])
        ax.figure.savefig(out_dir / "speed.png")
        plt.close(ax.figure)

    total_runtime = time.perf_counter() - start_time
    print(
        f"Simulated {steps} steps ({sim.elapsed:.2f} s), "
        f"Final speed: {summary['final_speed_mps']:.2f} m/s, "
        f"Total runtime: {total_runtime:.3f} s"
    )

    return summary, out_dir


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run Bézier track vehicle simulation demo")
    parser.add_argument("--track", default="data/loop_track.csv", help="Track segment CSV")
    parser.add_argument(
        "--vehicle", default="data/vehicle_params.csv", help="Vehicle parameter CSV"
    )
    parser.add_argument("--dt", type=float, default=1.0 / 60.0, help="Time step in seconds")
    parser.add_argument("--steps", type=int, default=1800, help="Number of simulation steps")
    parser.add_argument("--start-segment", type=int, default=0, help="Initial segment handle")
    parser.add_argument(
        "--start-distance", type=float, default=0.0, help="Initial distance on segment [m]"
    )
    parser.add_argument("--start-speed", type=float, default=5.0, help="Initial speed [m/s]")
    parser.add_argument(
        "--samples",
        type=int,
        default=None,
        help="Arc-length table resolution per segment",
    )
    parser.add_argument("--drag-factor", type=float, default=None, help="Quadratic drag coefficient")
    parser.add_argument(
        "--rolling-resistance",
        type=float,
        default=None,
        help="Rolling resistance speed loss [m/s^2]",
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--open",
        dest="closed",
        action="store_const",
        const=False,
        help="Force the segment chain to be left open",
    )
    group.add_argument(
        "--closed",
        dest="closed",
        action="store_const",
        const=True,
        help="Force the segment chain to be closed",
    )
    parser.set_defaults(closed=None)
    parser.add_argument("--plot", action="store_true", help="Save plots of the run")
    parser.add_argument("--output-dir", default="outputs", help="Directory for results")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    summary, out_dir = run(
        args.track,
        args.vehicle,
        args.dt,
        args.steps,
        start_segment=args.start_segment,
        start_distance=args.start_distance,
        start_speed=args.start_speed,
        closed=args.closed,
        samples=args.samples,
        drag_factor=args.drag_factor,
        rolling_resistance=args.rolling_resistance,
        output_dir=args.output_dir,
        plot=args.plot,
    )
    print(f"Outputs written to {out_dir}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
