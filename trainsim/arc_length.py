"""Arc-length parameterisation of Bézier segments.

A Bézier parameter ``t`` does not advance at a constant spatial rate, so a
vehicle that moves a fixed distance per tick cannot simply use
``distance / length`` as its curve parameter.  :class:`ArcLengthTable` stores
cumulative chord distances sampled at uniformly spaced parameters and converts
between the two domains by interpolation.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .bezier import evaluate_bezier

DEFAULT_ARC_LENGTH_SAMPLES = 100


@dataclass(frozen=True, eq=False)
class ArcLengthTable:
    """Sampled mapping between cumulative distance and curve parameter.

    ``distances`` and ``parameters`` are parallel, non-decreasing arrays.  A
    table built by :func:`build_arc_length_table` starts at ``(0, 0)`` and
    ends at ``(length, 1)``.
    """

    distances: np.ndarray = field(default_factory=lambda: np.zeros(0))
    parameters: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self) -> None:
        d = np.array(self.distances, dtype=float)
        p = np.array(self.parameters, dtype=float)
        if d.ndim != 1 or p.ndim != 1:
            raise ValueError("distances and parameters must be one-dimensional")
        if d.size != p.size:
            raise ValueError("distances and parameters must have the same length")
        if np.any(np.diff(d) < 0):
            raise ValueError("distances must be non-decreasing")
        if np.any(np.diff(p) < 0):
            raise ValueError("parameters must be non-decreasing")
        d.setflags(write=False)
        p.setflags(write=False)
        object.__setattr__(self, "distances", d)
        object.__setattr__(self, "parameters", p)

    def __len__(self) -> int:
        return int(self.distances.size)

    @property
    def length(self) -> float:
        """Final cumulative distance, or ``0.0`` for an empty table."""
        if self.distances.size == 0:
            return 0.0
        return float(self.distances[-1])


def build_arc_length_table(
    control_points: np.ndarray, samples: int = DEFAULT_ARC_LENGTH_SAMPLES
) -> ArcLengthTable:
    """Sample ``samples + 1`` uniform parameters and accumulate chord lengths."""
    if samples < 1:
        raise ValueError("samples must be at least 1")

    t = np.linspace(0.0, 1.0, int(samples) + 1)
    positions, _ = evaluate_bezier(control_points, t)
    chords = np.linalg.norm(np.diff(positions, axis=0), axis=1)
    distances = np.concatenate(([0.0], np.cumsum(chords)))
    return ArcLengthTable(distances, t)


def parameter_for_distance(table: ArcLengthTable, distance: float) -> float:
    """Return the curve parameter reached after travelling ``distance``.

    Distances before the start of the table map to ``0`` and distances past
    its end map to ``1``.  An empty table always yields ``0``.
    """
    distances = table.distances
    parameters = table.parameters
    n = distances.size
    if n == 0:
        return 0.0

    distance = float(distance)
    i = int(np.searchsorted(distances, distance, side="left"))
    if i < n and distances[i] == distance:
        return float(parameters[i])
    if i == 0:
        return 0.0
    if i >= n:
        return 1.0

    d0, d1 = distances[i - 1], distances[i]
    span = d1 - d0
    if span <= np.finfo(float).eps:
        return float(parameters[i - 1])
    frac = (distance - d0) / span
    return float(parameters[i - 1] + frac * (parameters[i] - parameters[i - 1]))


def distance_for_parameter(table: ArcLengthTable, t: float) -> float:
    """Estimate the distance travelled from the segment start to parameter ``t``."""
    if table.parameters.size == 0:
        return 0.0
    t = float(np.clip(t, 0.0, 1.0))
    return float(np.interp(t, table.parameters, table.distances))


__all__ = [
    "ArcLengthTable",
    "DEFAULT_ARC_LENGTH_SAMPLES",
    "build_arc_length_table",
    "distance_for_parameter",
    "parameter_for_distance",
]
