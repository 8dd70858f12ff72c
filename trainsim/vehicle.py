"""Vehicle state and physics coefficients.

A :class:`VehicleState` is the mutable part of the simulation: the handle of
the segment the vehicle is on, the signed distance travelled along that
segment and the signed speed.  Positive speed means travel towards the
segment's ``next`` neighbour.  The resolved pose of the last tick is kept on
the state so that a degenerate tangent can fall back to the previous facing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, NamedTuple

import math

import numpy as np


@dataclass(frozen=True)
class VehiclePhysics:
    """Friction coefficients of a single vehicle.

    Parameters
    ----------
    drag_factor:
        Quadratic aerodynamic coefficient.  The drag speed loss per second is
        ``drag_factor * speed**2``.
    rolling_resistance:
        Constant speed loss per second while the vehicle is moving.
    """

    drag_factor: float = 0.0025
    rolling_resistance: float = 0.25

    def __post_init__(self) -> None:
        for name in ("drag_factor", "rolling_resistance"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a non-negative finite number")

    @classmethod
    def from_params(cls, params: Mapping[str, float | bool | str]) -> "VehiclePhysics":
        """Create coefficients from a parameter mapping, keeping defaults for gaps."""
        defaults = cls()
        return cls(
            drag_factor=float(params.get("drag_factor", defaults.drag_factor)),
            rolling_resistance=float(
                params.get("rolling_resistance", defaults.rolling_resistance)
            ),
        )


class VehicleSnapshot(NamedTuple):
    segment: int
    distance_on_segment: float
    speed: float
    position: np.ndarray
    facing: np.ndarray


@dataclass(eq=False)
class VehicleState:
    """Per-vehicle simulation state."""

    segment: int
    distance_on_segment: float = 0.0
    speed: float = 0.0
    physics: VehiclePhysics = field(default_factory=VehiclePhysics)
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    facing: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def snapshot(self) -> VehicleSnapshot:
        """Copy of the mutable fields, used to roll back an abandoned tick."""
        return VehicleSnapshot(
            self.segment,
            self.distance_on_segment,
            self.speed,
            self.position.copy(),
            self.facing.copy(),
        )

    def restore(self, snapshot: VehicleSnapshot) -> None:
        self.segment = snapshot.segment
        self.distance_on_segment = snapshot.distance_on_segment
        self.speed = snapshot.speed
        self.position = snapshot.position.copy()
        self.facing = snapshot.facing.copy()
