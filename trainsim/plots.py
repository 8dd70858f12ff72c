from __future__ import annotations

"""Plotting helpers for track graphs and simulation runs.

The world ``y`` axis points up, so plan views show ``x`` against ``z`` and
elevation profiles show ``y`` against distance along the track.  All
functions return the :class:`~matplotlib.axes.Axes` they drew on.
"""

from typing import Iterable, Optional

import numpy as np
import matplotlib.pyplot as plt
import pandas as pd

from .arc_length import parameter_for_distance
from .track import TrackGraph


def _segment_points(graph: TrackGraph, handle: int, samples: int) -> np.ndarray:
    seg = graph.segment(handle)
    distances = np.linspace(0.0, seg.length, samples + 1)
    t = np.array([parameter_for_distance(seg.table, d) for d in distances])
    positions, _ = seg.evaluate(t)
    return positions


def plot_track_plan(
    graph: TrackGraph,
    trajectory: Optional[pd.DataFrame] = None,
    samples: int = 32,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """Plot the centreline of every segment seen from above.

    Parameters
    ----------
    graph:
        Track graph to draw.
    trajectory:
        Optional frame returned by :meth:`simulation.Simulation.run`.  The
        ``x_m``/``z_m`` columns of each vehicle are overlaid.
    samples:
        Number of sub-divisions per segment.
    ax:
        Existing axes to draw on.  If ``None`` a new figure and axes are
        created.
    """
    if samples < 1:
        raise ValueError("samples must be at least 1")
    if ax is None:
        _, ax = plt.subplots()

    for i, handle in enumerate(graph):
        pts = _segment_points(graph, handle, samples)
        ax.plot(pts[:, 0], pts[:, 2], color="k", label="Track" if i == 0 else None)
        ax.plot(pts[0, 0], pts[0, 2], "k.", markersize=4)

    if trajectory is not None:
        for vehicle, group in trajectory.groupby("vehicle"):
            ax.plot(
                group["x_m"], group["z_m"], linestyle="--", label=f"Vehicle {vehicle}"
            )

    ax.set_aspect("equal", adjustable="box")
    ax.set_xlabel("x [m]")
    ax.set_ylabel("z [m]")
    ax.legend()
    return ax


def plot_elevation_profile(
    graph: TrackGraph,
    start: int = 0,
    samples: int = 32,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """Plot height against distance along the chain of segments from ``start``."""
    if ax is None:
        _, ax = plt.subplots()

    offset = 0.0
    s_all = []
    y_all = []
    for handle in graph.chain(start):
        seg = graph.segment(handle)
        pts = _segment_points(graph, handle, samples)
        s_all.append(offset + np.linspace(0.0, seg.length, samples + 1))
        y_all.append(pts[:, 1])
        offset += seg.length

    if s_all:
        ax.plot(np.concatenate(s_all), np.concatenate(y_all), color="tab:brown")
    ax.set_xlabel("Distance along track [m]")
    ax.set_ylabel("Height [m]")
    return ax


def plot_speed_history(
    time: Iterable[float],
    speed: Iterable[float],
    label: str | None = None,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """Plot vehicle speed against simulated time."""
    if ax is None:
        _, ax = plt.subplots()

    ax.plot(time, speed, color="tab:blue", label=label)
    ax.axhline(0.0, color="0.7", linewidth=0.8)
    ax.set_xlabel("Time [s]")
    ax.set_ylabel("Speed [m/s]")
    if label is not None:
        ax.legend()
    return ax
