"""Segment boundary resolution.

After the movement step adds ``speed * dt`` to a vehicle's distance, the
distance may lie outside ``[0, length]`` of its segment.  The functions here
walk the ``next``/``previous`` links until the distance fits again, possibly
crossing several short segments in one tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging

from .track import DanglingSegmentError, TrackGraph
from .vehicle import VehicleState

logger = logging.getLogger(__name__)

# Distance a full pass over every segment must consume before the walk is
# considered stuck on a loop of zero-length segments.
_MIN_PASS_DISTANCE = 1e-9


class Crossing(Enum):
    NONE = "none"
    FORWARD = "forward"
    BACKWARD = "backward"
    END_OF_TRACK = "end_of_track"
    START_OF_TRACK = "start_of_track"


@dataclass(frozen=True)
class TraversalResult:
    """Outcome of :func:`resolve_segment_crossings`."""

    crossing: Crossing
    boundaries_crossed: int = 0

    @property
    def stopped(self) -> bool:
        return self.crossing in (Crossing.END_OF_TRACK, Crossing.START_OF_TRACK)


def _stop(state: VehicleState, distance: float) -> None:
    state.distance_on_segment = distance
    state.speed = 0.0


def _resolve_overflow(state: VehicleState, graph: TrackGraph) -> TraversalResult:
    segment = graph.segment(state.segment)
    hops = 0
    consumed = 0.0
    while state.distance_on_segment >= segment.length:
        connection = graph.connection(state.segment)
        if connection.next is None:
            logger.debug("vehicle stopped at end of segment %s", state.segment)
            _stop(state, segment.length)
            return TraversalResult(Crossing.END_OF_TRACK, hops)

        next_segment = graph.get(connection.next)
        if next_segment is None:
            raise DanglingSegmentError(
                connection.next,
                f"segment {state.segment} links to missing next segment {connection.next!r}",
            )

        state.distance_on_segment -= segment.length
        consumed += segment.length
        state.segment = connection.next
        segment = next_segment
        hops += 1

        if hops % len(graph) == 0:
            if consumed <= _MIN_PASS_DISTANCE:
                logger.warning(
                    "loop through segment %s has no length; stopping vehicle", state.segment
                )
                _stop(state, segment.length)
                return TraversalResult(Crossing.END_OF_TRACK, hops)
            consumed = 0.0

    return TraversalResult(Crossing.FORWARD if hops else Crossing.NONE, hops)


def _resolve_underflow(state: VehicleState, graph: TrackGraph) -> TraversalResult:
    graph.segment(state.segment)
    hops = 0
    consumed = 0.0
    while state.distance_on_segment < 0.0:
        connection = graph.connection(state.segment)
        if connection.previous is None:
            logger.debug("vehicle stopped at start of segment %s", state.segment)
            _stop(state, 0.0)
            return TraversalResult(Crossing.START_OF_TRACK, hops)

        previous_segment = graph.get(connection.previous)
        if previous_segment is None:
            raise DanglingSegmentError(
                connection.previous,
                f"segment {state.segment} links to missing previous segment "
                f"{connection.previous!r}",
            )

        state.segment = connection.previous
        state.distance_on_segment += previous_segment.length
        consumed += previous_segment.length
        hops += 1

        if hops % len(graph) == 0:
            if consumed <= _MIN_PASS_DISTANCE:
                logger.warning(
                    "loop through segment %s has no length; stopping vehicle", state.segment
                )
                _stop(state, 0.0)
                return TraversalResult(Crossing.START_OF_TRACK, hops)
            consumed = 0.0

    return TraversalResult(Crossing.BACKWARD if hops else Crossing.NONE, hops)


def resolve_segment_crossings(state: VehicleState, graph: TrackGraph) -> TraversalResult:
    """Move ``state`` onto the segment that contains its distance.

    Dead ends clamp the distance to the segment boundary and stop the
    vehicle.  A link to a segment that does not exist raises
    :class:`~track.DanglingSegmentError`; when that happens ``state`` may
    have been advanced part of the way, so callers roll it back.
    """
    segment = graph.segment(state.segment)
    if state.distance_on_segment >= segment.length:
        return _resolve_overflow(state, graph)
    if state.distance_on_segment < 0.0:
        return _resolve_underflow(state, graph)
    return TraversalResult(Crossing.NONE)


__all__ = ["Crossing", "TraversalResult", "resolve_segment_crossings"]
