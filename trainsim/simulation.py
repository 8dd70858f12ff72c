"""Fixed-order simulation loop over all vehicles on a shared track graph.

Each call to :meth:`Simulation.step` advances every vehicle by ``dt`` using
the gravity, friction and movement steps from :mod:`physics`.  A vehicle
whose segment or one of the links it crosses points at a missing segment has
its tick abandoned: its state is restored to what it was before the tick and
the problem is logged.  Other vehicles are unaffected.
"""

from __future__ import annotations

from typing import Iterable, List, Optional
import logging
import math

import numpy as np
import pandas as pd

from .physics import (
    GRAVITY_ACCELERATION,
    REST_SPEED_EPSILON,
    Pose,
    friction_step,
    gravity_step,
    movement_step,
    resolve_pose,
)
from .track import DanglingSegmentError, TrackGraph
from .vehicle import VehiclePhysics, VehicleState

logger = logging.getLogger(__name__)

TRAJECTORY_COLUMNS = [
    "time_s",
    "vehicle",
    "segment",
    "distance_m",
    "speed_mps",
    "x_m",
    "y_m",
    "z_m",
    "facing_x",
    "facing_y",
    "facing_z",
]


class Simulation:
    """Advance vehicles along a read-only :class:`~track.TrackGraph`.

    Parameters
    ----------
    graph:
        Track graph shared by all vehicles.  It is never modified.
    vehicles:
        Initial vehicle states.  Each is validated and given its pose as if
        placed with :meth:`add_vehicle`.
    gravity:
        Gravitational acceleration along the world ``y`` axis.
    rest_epsilon:
        Speed magnitude below which friction treats a vehicle as at rest.
    """

    def __init__(
        self,
        graph: TrackGraph,
        vehicles: Iterable[VehicleState] = (),
        gravity: float = GRAVITY_ACCELERATION,
        rest_epsilon: float = REST_SPEED_EPSILON,
    ) -> None:
        if rest_epsilon < 0:
            raise ValueError("rest_epsilon must be non-negative")
        self.graph = graph
        self.vehicles: List[VehicleState] = []
        self.gravity = float(gravity)
        self.rest_epsilon = float(rest_epsilon)
        self.elapsed = 0.0
        for state in vehicles:
            self._place(state)

    def _place(self, state: VehicleState) -> VehicleState:
        """Validate ``state`` against the graph, resolve its pose and track it."""
        track_segment = self.graph.get(state.segment)
        if track_segment is None:
            raise ValueError(f"unknown segment handle: {state.segment}")
        if not 0.0 <= state.distance_on_segment <= track_segment.length:
            raise ValueError("distance must lie within the segment length")
        resolve_pose(state, self.graph)
        self.vehicles.append(state)
        return state

    def add_vehicle(
        self,
        segment: int,
        distance: float = 0.0,
        speed: float = 0.0,
        physics: VehiclePhysics | None = None,
    ) -> VehicleState:
        """Place a vehicle on ``segment`` and resolve its initial pose."""
        state = VehicleState(
            segment=segment,
            distance_on_segment=float(distance),
            speed=float(speed),
            physics=physics or VehiclePhysics(),
        )
        return self._place(state)

    def step_vehicle(self, state: VehicleState, dt: float) -> Pose:
        """Run gravity, friction and movement for one vehicle."""
        gravity_step(state, self.graph, dt, self.gravity)
        friction_step(state, dt, self.rest_epsilon)
        pose, _ = movement_step(state, self.graph, dt)
        return pose

    def step(self, dt: float) -> List[Optional[Pose]]:
        """Advance every vehicle by ``dt`` seconds.

        Returns the new pose of each vehicle in order, or ``None`` for a
        vehicle whose tick was abandoned because of a dangling segment handle.
        """
        if not math.isfinite(dt) or dt < 0:
            raise ValueError("dt must be a non-negative finite number")

        poses: List[Optional[Pose]] = []
        for index, state in enumerate(self.vehicles):
            snapshot = state.snapshot()
            try:
                poses.append(self.step_vehicle(state, dt))
            except DanglingSegmentError as exc:
                state.restore(snapshot)
                logger.warning("vehicle %d: tick abandoned: %s", index, exc)
                poses.append(None)
        self.elapsed += dt
        return poses

    def _rows(self) -> List[list]:
        return [
            [
                self.elapsed,
                i,
                v.segment,
                v.distance_on_segment,
                v.speed,
                *np.asarray(v.position, dtype=float),
                *np.asarray(v.facing, dtype=float),
            ]
            for i, v in enumerate(self.vehicles)
        ]

    def run(self, steps: int, dt: float) -> pd.DataFrame:
        """Run ``steps`` ticks and record every vehicle after each one.

        The returned frame also holds the state before the first tick, so it
        has ``(steps + 1) * len(vehicles)`` rows.
        """
        if steps < 0:
            raise ValueError("steps must be non-negative")
        rows = self._rows()
        for _ in range(steps):
            self.step(dt)
            rows.extend(self._rows())
        return pd.DataFrame(rows, columns=TRAJECTORY_COLUMNS)


__all__ = ["Simulation", "TRAJECTORY_COLUMNS"]
