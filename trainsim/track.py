"""Track segments and the segment graph.

The graph is an arena: segments are stored in a list and addressed by their
integer index (a *handle*).  Links between neighbouring segments are optional
handles, so a missing link marks a dead end and a link to an index outside the
arena marks a broken graph.  Vehicles hold handles only and never copy
segments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence

import numpy as np

from .arc_length import (
    DEFAULT_ARC_LENGTH_SAMPLES,
    ArcLengthTable,
    build_arc_length_table,
)
from .bezier import as_control_points, evaluate_bezier


class TrackGraphError(LookupError):
    """Base class for inconsistencies in a :class:`TrackGraph`."""


class DanglingSegmentError(TrackGraphError):
    """A handle refers to a segment that does not exist in the graph."""

    def __init__(self, handle: object, message: str | None = None) -> None:
        self.handle = handle
        super().__init__(message or f"segment {handle!r} does not exist")


@dataclass(frozen=True, eq=False)
class TrackSegment:
    """One cubic Bézier track piece and its arc-length table."""

    control_points: np.ndarray
    table: ArcLengthTable

    @classmethod
    def from_points(
        cls,
        start_anchor: Iterable[float],
        start_control: Iterable[float],
        end_control: Iterable[float],
        end_anchor: Iterable[float],
        samples: int = DEFAULT_ARC_LENGTH_SAMPLES,
    ) -> "TrackSegment":
        """Build a segment and its arc-length table from four control points."""
        cp = as_control_points([start_anchor, start_control, end_control, end_anchor])
        cp.setflags(write=False)
        return cls(cp, build_arc_length_table(cp, samples))

    @property
    def start_anchor(self) -> np.ndarray:
        return self.control_points[0]

    @property
    def start_control(self) -> np.ndarray:
        return self.control_points[1]

    @property
    def end_control(self) -> np.ndarray:
        return self.control_points[2]

    @property
    def end_anchor(self) -> np.ndarray:
        return self.control_points[3]

    @property
    def length(self) -> float:
        """Arc-length estimate in metres (final entry of the table)."""
        return self.table.length

    def evaluate(self, t: float | Iterable[float]):
        """Shortcut for :func:`bezier.evaluate_bezier` on this segment."""
        return evaluate_bezier(self.control_points, t)


@dataclass
class TrackConnection:
    """Optional handles of the neighbouring segments."""

    previous: Optional[int] = None
    next: Optional[int] = None


class TrackGraph:
    """Arena of :class:`TrackSegment` objects linked into chains or loops."""

    def __init__(self) -> None:
        self._segments: List[TrackSegment] = []
        self._connections: List[TrackConnection] = []

    @classmethod
    def from_segments(
        cls, segments: Sequence[TrackSegment], closed: bool = True
    ) -> "TrackGraph":
        """Link ``segments`` in order, joining last to first when ``closed``."""
        graph = cls()
        handles = [graph.add_segment(seg) for seg in segments]
        for a, b in zip(handles, handles[1:]):
            graph.link(a, b)
        if closed and handles:
            graph.link(handles[-1], handles[0])
        return graph

    def __len__(self) -> int:
        return len(self._segments)

    def __contains__(self, handle: object) -> bool:
        return self.get(handle) is not None

    def __iter__(self) -> Iterator[int]:
        return iter(range(len(self._segments)))

    def add_segment(self, segment: TrackSegment) -> int:
        """Store ``segment`` without links and return its handle."""
        self._segments.append(segment)
        self._connections.append(TrackConnection())
        return len(self._segments) - 1

    def _check(self, handle: int) -> None:
        if handle not in self:
            raise ValueError(f"unknown segment handle: {handle}")

    def link(self, previous: int, next: int) -> None:
        """Connect ``previous`` → ``next`` in both directions."""
        self._check(previous)
        self._check(next)
        self._connections[previous].next = next
        self._connections[next].previous = previous

    def set_connection(
        self, handle: int, previous: Optional[int] = None, next: Optional[int] = None
    ) -> None:
        """Overwrite the raw links of ``handle``.

        Unlike :meth:`link` the targets are not validated, which allows broken
        graphs to be described as loaded.
        """
        self._check(handle)
        self._connections[handle] = TrackConnection(previous, next)

    def get(self, handle: object) -> Optional[TrackSegment]:
        """Return the segment for ``handle`` or ``None`` when it does not exist."""
        if isinstance(handle, (bool, np.bool_)) or not isinstance(handle, (int, np.integer)):
            return None
        if 0 <= handle < len(self._segments):
            return self._segments[handle]
        return None

    def connection(self, handle: object) -> Optional[TrackConnection]:
        if self.get(handle) is None:
            return None
        return self._connections[handle]

    def segment(self, handle: object) -> TrackSegment:
        """Like :meth:`get` but raise :class:`DanglingSegmentError` when missing."""
        seg = self.get(handle)
        if seg is None:
            raise DanglingSegmentError(handle)
        return seg

    def is_closed(self) -> bool:
        """``True`` when every segment is linked on both sides to real segments."""
        if not self._segments:
            return False
        return all(
            c.previous in self and c.next in self for c in self._connections
        )

    def total_length(self) -> float:
        return float(sum(seg.length for seg in self._segments))

    def chain(self, start: int = 0) -> List[int]:
        """Handles reached by following ``next`` links from ``start``.

        Stops at a dead end, a dangling link or when the walk returns to a
        segment already visited.
        """
        order: List[int] = []
        seen = set()
        handle: Optional[int] = start
        while handle is not None and handle in self and handle not in seen:
            order.append(handle)
            seen.add(handle)
            handle = self._connections[handle].next
        return order


__all__ = [
    "DanglingSegmentError",
    "TrackConnection",
    "TrackGraph",
    "TrackGraphError",
    "TrackSegment",
]
