import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure the repository root is on the path so ``trainsim`` is importable
sys.path.append(str(Path(__file__).resolve().parents[1]))

from trainsim.arc_length import (
    ArcLengthTable,
    build_arc_length_table,
    distance_for_parameter,
    parameter_for_distance,
)
from trainsim.bezier import integrated_arc_length

# B(t) = 10 t^3 along x: the parameter advances very unevenly with distance.
CUBIC_RAMP = np.array(
    [[0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [10.0, 0.0, 0.0]]
)
S_CURVE = np.array(
    [[0.0, 0.0, 0.0], [15.0, 4.0, 0.0], [5.0, -3.0, 20.0], [20.0, 1.0, 20.0]]
)


def test_table_shape_and_endpoints() -> None:
    table = build_arc_length_table(S_CURVE, samples=100)
    assert len(table) == 101
    assert table.distances[0] == 0.0
    assert table.parameters[0] == 0.0
    assert table.parameters[-1] == 1.0
    assert table.length == table.distances[-1]


def test_table_is_monotonic() -> None:
    table = build_arc_length_table(S_CURVE, samples=50)
    assert np.all(np.diff(table.distances) >= 0)
    assert np.all(np.diff(table.parameters) >= 0)


def test_chord_sum_approaches_integrated_length() -> None:
    exact = integrated_arc_length(S_CURVE)
    coarse = build_arc_length_table(S_CURVE, samples=10).length
    fine = build_arc_length_table(S_CURVE, samples=100).length
    # Chords never exceed the arc they span.
    assert coarse <= fine <= exact + 1e-9
    assert np.isclose(fine, exact, rtol=1e-2)


def test_collinear_curve_length_is_exact() -> None:
    table = build_arc_length_table(CUBIC_RAMP, samples=100)
    assert np.isclose(table.length, 10.0)


def test_lookup_corrects_non_uniform_parameterisation() -> None:
    table = build_arc_length_table(CUBIC_RAMP, samples=100)
    # Half the distance is reached at t = 0.5 ** (1/3), not at t = 0.5.
    t = parameter_for_distance(table, 5.0)
    assert np.isclose(t, 0.5 ** (1.0 / 3.0), atol=1e-3)
    assert np.isclose(10.0 * t**3, 5.0, atol=0.05)


def test_lookup_exact_match_and_interpolation() -> None:
    table = ArcLengthTable([0.0, 1.0, 3.0], [0.0, 0.5, 1.0])
    assert parameter_for_distance(table, 0.0) == 0.0
    assert parameter_for_distance(table, 1.0) == 0.5
    assert parameter_for_distance(table, 3.0) == 1.0
    assert np.isclose(parameter_for_distance(table, 2.0), 0.75)
    assert np.isclose(parameter_for_distance(table, 0.5), 0.25)


def test_lookup_out_of_range() -> None:
    table = ArcLengthTable([0.0, 1.0, 3.0], [0.0, 0.5, 1.0])
    assert parameter_for_distance(table, -2.0) == 0.0
    assert parameter_for_distance(table, 3.5) == 1.0


def test_lookup_empty_table_returns_zero() -> None:
    table = ArcLengthTable()
    assert len(table) == 0
    assert table.length == 0.0
    assert parameter_for_distance(table, 4.0) == 0.0
    assert distance_for_parameter(table, 0.5) == 0.0


def test_lookup_zero_span_returns_lower_parameter() -> None:
    table = ArcLengthTable([0.0, 1e-300, 1.0], [0.0, 0.2, 1.0])
    assert parameter_for_distance(table, 5e-301) == 0.0


def test_duplicate_distances_match_first_entry() -> None:
    table = ArcLengthTable([0.0, 1.0, 1.0, 2.0], [0.0, 0.4, 0.6, 1.0])
    assert parameter_for_distance(table, 1.0) == 0.4


def test_round_trip_within_table_resolution() -> None:
    samples = 100
    table = build_arc_length_table(S_CURVE, samples=samples)
    max_chord = float(np.max(np.diff(table.distances)))
    for d in np.linspace(0.0, table.length, 37):
        t = parameter_for_distance(table, d)
        assert 0.0 <= t <= 1.0
        assert np.isclose(distance_for_parameter(table, t), d, atol=1e-9)
        t_again = parameter_for_distance(table, distance_for_parameter(table, t))
        assert abs(t_again - t) <= 1.0 / samples
        assert abs(distance_for_parameter(table, t_again) - d) <= max_chord


def test_invalid_tables_rejected() -> None:
    with pytest.raises(ValueError):
        build_arc_length_table(S_CURVE, samples=0)
    with pytest.raises(ValueError, match="same length"):
        ArcLengthTable([0.0, 1.0], [0.0])
    with pytest.raises(ValueError, match="non-decreasing"):
        ArcLengthTable([0.0, 2.0, 1.0], [0.0, 0.5, 1.0])
    with pytest.raises(ValueError, match="parameters must be non-decreasing"):
        ArcLengthTable([0.0, 1.0, 2.0], [1.0, 0.5, 0.0])
