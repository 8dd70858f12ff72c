"""Cubic Bézier evaluation helpers.

Every track piece is a cubic Bézier curve described by four control points
``P0`` (start anchor), ``P1`` (start control point), ``P2`` (end control
point) and ``P3`` (end anchor).  The functions in this module are pure and
accept either a scalar parameter ``t`` or an array of parameters, in which
case the returned vectors gain a leading axis matching ``t``.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np
from scipy.integrate import quad


def as_control_points(control_points: Iterable[Iterable[float]]) -> np.ndarray:
    """Return ``control_points`` as a validated ``(4, 3)`` float array."""
    cp = np.asarray(control_points, dtype=float)
    if cp.shape != (4, 3):
        raise ValueError("control_points must have shape (4, 3)")
    if not np.all(np.isfinite(cp)):
        raise ValueError("control_points must be finite")
    return cp


def normalize_or_zero(vector: np.ndarray) -> np.ndarray:
    """Normalise ``vector`` along its last axis.

    Rows with zero length come back as zero vectors instead of ``nan``.
    """
    v = np.asarray(vector, dtype=float)
    norm = np.linalg.norm(v, axis=-1, keepdims=True)
    safe = np.where(norm > 0.0, norm, 1.0)
    return np.where(norm > 0.0, v / safe, 0.0)


def _bernstein(t: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    u = 1.0 - t
    return u**3, 3.0 * u**2 * t, 3.0 * u * t**2, t**3


def bezier_derivative(control_points: np.ndarray, t: float | Iterable[float]) -> np.ndarray:
    """Raw (unnormalised) derivative ``dB/dt`` at ``t``."""
    p0, p1, p2, p3 = np.asarray(control_points, dtype=float)
    t = np.asarray(np.clip(np.asarray(t, dtype=float), 0.0, 1.0))[..., np.newaxis]
    u = 1.0 - t
    return 3.0 * u**2 * (p1 - p0) + 6.0 * u * t * (p2 - p1) + 3.0 * t**2 * (p3 - p2)


def evaluate_bezier(
    control_points: np.ndarray, t: float | Iterable[float]
) -> Tuple[np.ndarray, np.ndarray]:
    """Evaluate position and unit tangent of a cubic Bézier curve.

    Parameters
    ----------
    control_points:
        ``(4, 3)`` array holding ``P0``, ``P1``, ``P2`` and ``P3``.
    t:
        Curve parameter.  Values outside ``[0, 1]`` are clamped.

    Returns
    -------
    (numpy.ndarray, numpy.ndarray)
        Position and tangent.  The tangent has unit length, or is the zero
        vector where the derivative vanishes (coincident control points).
    """
    p0, p1, p2, p3 = np.asarray(control_points, dtype=float)
    t_arr = np.clip(np.asarray(t, dtype=float), 0.0, 1.0)
    b0, b1, b2, b3 = (np.asarray(b)[..., np.newaxis] for b in _bernstein(t_arr))
    position = b0 * p0 + b1 * p1 + b2 * p2 + b3 * p3
    tangent = normalize_or_zero(bezier_derivative(control_points, t_arr))
    return position, tangent


def integrated_arc_length(
    control_points: np.ndarray, t0: float = 0.0, t1: float = 1.0
) -> float:
    """Arc length between ``t0`` and ``t1`` by adaptive quadrature.

    This is a reference value for the chord-sum estimate stored in the
    arc-length table; the simulation itself never calls it per tick.
    """
    cp = np.asarray(control_points, dtype=float)
    t0 = float(np.clip(t0, 0.0, 1.0))
    t1 = float(np.clip(t1, 0.0, 1.0))

    def speed(t: float) -> float:
        return float(np.linalg.norm(bezier_derivative(cp, t)))

    value, _ = quad(speed, t0, t1, limit=200)
    return float(value)


__all__ = [
    "as_control_points",
    "bezier_derivative",
    "evaluate_bezier",
    "integrated_arc_length",
    "normalize_or_zero",
]
