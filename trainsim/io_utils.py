from __future__ import annotations

"""Utility functions for reading and writing CSV data.

Two input formats are supported:

``track CSV``
    One row per Bézier segment with the columns ``p0_x`` … ``p3_z`` holding
    the start anchor, the two control points and the end anchor.  Optional
    ``previous`` and ``next`` columns give the row index of the neighbouring
    segments; a blank cell marks a dead end.  Without these columns the rows
    are linked in order.
``parameter CSV``
    ``key,value`` pairs such as ``drag_factor,0.0025``.  ``true``/``false``
    are read as booleans and other values as floats.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import csv
import numpy as np
import pandas as pd

from .arc_length import DEFAULT_ARC_LENGTH_SAMPLES
from .bezier import integrated_arc_length
from .track import TrackGraph, TrackSegment

POINT_COLUMNS = [f"p{i}_{axis}" for i in range(4) for axis in "xyz"]


def read_track_csv(path: str | Path) -> pd.DataFrame:
    """Read a track CSV into a :class:`~pandas.DataFrame`.

    Parameters
    ----------
    path:
        Location of the CSV file describing the segments.
    """
    df = pd.read_csv(path)
    missing = set(POINT_COLUMNS).difference(df.columns)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ValueError(f"track file missing required columns: {missing_str}")
    return df


def _optional_handle(value: object) -> Optional[int]:
    if value is None or pd.isna(value):
        return None
    return int(value)


def build_track_graph(
    df: pd.DataFrame,
    closed: bool | None = None,
    samples: int = DEFAULT_ARC_LENGTH_SAMPLES,
) -> TrackGraph:
    """Create a :class:`~track.TrackGraph` from a track data frame.

    Parameters
    ----------
    df:
        Frame with the ``p0_x`` … ``p3_z`` columns and optional ``previous``
        and ``next`` link columns.
    closed:
        Only used when the frame has no link columns.  ``True`` joins the last
        segment to the first, ``False`` leaves the chain open and ``None``
        closes it if the last end anchor coincides with the first start
        anchor.
    samples:
        Resolution of each segment's arc-length table.
    """
    if df.empty:
        raise ValueError("track must contain at least one segment")

    points = df[POINT_COLUMNS].to_numpy(float).reshape(-1, 4, 3)
    segments: List[TrackSegment] = [
        TrackSegment.from_points(*cp, samples=samples) for cp in points
    ]

    has_links = "previous" in df.columns or "next" in df.columns
    if not has_links:
        if closed is None:
            closed = bool(np.allclose(points[-1, 3], points[0, 0], atol=1e-6))
        return TrackGraph.from_segments(segments, closed=closed)

    graph = TrackGraph()
    for seg in segments:
        graph.add_segment(seg)
    previous = df.get("previous", pd.Series(np.nan, index=df.index))
    nxt = df.get("next", pd.Series(np.nan, index=df.index))
    for handle, (prev_value, next_value) in enumerate(zip(previous, nxt)):
        graph.set_connection(
            handle,
            previous=_optional_handle(prev_value),
            next=_optional_handle(next_value),
        )
    return graph


def load_track_graph(
    path: str | Path,
    closed: bool | None = None,
    samples: int = DEFAULT_ARC_LENGTH_SAMPLES,
) -> TrackGraph:
    """Read ``path`` and build its track graph."""
    return build_track_graph(read_track_csv(path), closed=closed, samples=samples)


def read_vehicle_params_csv(path: str | Path) -> Dict[str, float | bool]:
    """Read vehicle and simulation parameters from ``path``.

    Values of ``true``/``false`` are interpreted as booleans while other entries
    are parsed as floating point numbers.  Rows with a missing or unparsable
    value are skipped.
    """
    params: Dict[str, float | bool] = {}
    with Path(path).open(newline="") as f:
        reader = csv.reader(f)
        for row in reader:
            if not row or all(cell.strip() == "" for cell in row):
                continue
            key = row[0].strip()
            if key.startswith("#"):
                continue
            try:
                raw_value = row[1].strip()
            except IndexError:
                continue

            value_lower = raw_value.lower()
            if value_lower == "true":
                params[key] = True
            elif value_lower == "false":
                params[key] = False
            else:
                try:
                    params[key] = float(raw_value)
                except ValueError:
                    continue
    return params


def segment_table(graph: TrackGraph) -> pd.DataFrame:
    """Summarise each segment: links, lengths and anchors.

    ``length_m`` is the chord-sum estimate used by the simulation and
    ``integrated_length_m`` the quadrature reference value.
    """
    rows = []
    for handle in graph:
        seg = graph.segment(handle)
        conn = graph.connection(handle)
        rows.append(
            {
                "segment": handle,
                "previous": conn.previous,
                "next": conn.next,
                "length_m": seg.length,
                "integrated_length_m": integrated_arc_length(seg.control_points),
                "start_x_m": seg.start_anchor[0],
                "start_y_m": seg.start_anchor[1],
                "start_z_m": seg.start_anchor[2],
                "end_x_m": seg.end_anchor[0],
                "end_y_m": seg.end_anchor[1],
                "end_z_m": seg.end_anchor[2],
            }
        )
    return pd.DataFrame(rows)


def write_csv(data: Mapping[str, Iterable] | pd.DataFrame, file_path: str | Path) -> None:
    """Write ``data`` to ``file_path`` ensuring parent directories exist."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(data, pd.DataFrame):
        data.to_csv(file_path, index=False)
    else:
        pd.DataFrame(data).to_csv(file_path, index=False)
