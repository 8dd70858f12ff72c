"""Per-tick physics steps for vehicles on a track graph.

The steps must run in the order gravity → friction → movement for each
vehicle: friction acts on the speed produced by gravity and movement
integrates the speed left after friction.  :class:`simulation.Simulation`
runs them in that order.

Sign convention: the ``y`` axis points up and gravity is ``-9.81 m/s^2``.
A vehicle on a climbing tangent (``tangent_y > 0``) is therefore pulled
towards negative speed, i.e. back down the slope.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .arc_length import parameter_for_distance
from .track import TrackGraph
from .traversal import TraversalResult, resolve_segment_crossings
from .vehicle import VehicleState

GRAVITY_ACCELERATION = -9.81  # m/s^2 along the world y axis
REST_SPEED_EPSILON = 1e-3  # m/s below which friction is not applied
VERTICAL_AXIS = 1
_MIN_SEGMENT_LENGTH = 1e-9


@dataclass(frozen=True, eq=False)
class Pose:
    """World-space output of the movement step."""

    position: np.ndarray
    facing: np.ndarray


def coarse_progress(distance: float, length: float) -> float:
    """``distance / length`` clamped to ``[0, 1]``.

    Segments without measurable length count as already traversed.
    """
    if length <= _MIN_SEGMENT_LENGTH:
        return 1.0
    return float(np.clip(distance / length, 0.0, 1.0))


def gravity_step(
    state: VehicleState,
    graph: TrackGraph,
    dt: float,
    gravity: float = GRAVITY_ACCELERATION,
) -> float:
    """Accelerate ``state`` along the local slope and return the acceleration.

    The slope is sampled at the plain distance ratio rather than the
    arc-length corrected parameter; only the local direction matters here.
    """
    segment = graph.segment(state.segment)
    progress = coarse_progress(state.distance_on_segment, segment.length)
    _, tangent = segment.evaluate(progress)
    acceleration = gravity * float(tangent[VERTICAL_AXIS])
    state.speed += acceleration * dt
    return acceleration


def friction_step(
    state: VehicleState, dt: float, rest_epsilon: float = REST_SPEED_EPSILON
) -> float:
    """Apply rolling resistance and quadratic drag; return the speed lost.

    Both terms oppose the direction of motion.  If the reduction would carry
    the vehicle through zero, the speed is set to exactly ``0`` instead of
    reversing.
    """
    initial_speed = state.speed
    if abs(initial_speed) < rest_epsilon:
        return 0.0

    physics = state.physics
    rolling = physics.rolling_resistance * dt
    drag = physics.drag_factor * initial_speed**2 * dt
    direction = float(np.sign(initial_speed))

    state.speed = float(initial_speed - (rolling + drag) * direction)
    if np.sign(state.speed) != direction:
        state.speed = 0.0
    return abs(initial_speed - state.speed)


def resolve_pose(state: VehicleState, graph: TrackGraph) -> Pose:
    """Evaluate the exact pose of ``state`` and store it on the state.

    The facing direction follows the tangent, reversed while the vehicle
    moves backwards.  A zero tangent keeps the previous facing.
    """
    segment = graph.segment(state.segment)
    t = parameter_for_distance(segment.table, state.distance_on_segment)
    position, tangent = segment.evaluate(t)

    state.position = position
    if np.any(tangent):
        state.facing = -tangent if state.speed < 0.0 else tangent
    return Pose(state.position.copy(), state.facing.copy())


def movement_step(
    state: VehicleState, graph: TrackGraph, dt: float
) -> tuple[Pose, TraversalResult]:
    """Integrate position, cross segment boundaries and resolve the pose."""
    graph.segment(state.segment)
    state.distance_on_segment += state.speed * dt
    result = resolve_segment_crossings(state, graph)
    return resolve_pose(state, graph), result


__all__ = [
    "GRAVITY_ACCELERATION",
    "Pose",
    "REST_SPEED_EPSILON",
    "coarse_progress",
    "friction_step",
    "gravity_step",
    "movement_step",
    "resolve_pose",
]
