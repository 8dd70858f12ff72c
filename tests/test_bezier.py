import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure the repository root is on the path so ``trainsim`` is importable
sys.path.append(str(Path(__file__).resolve().parents[1]))

from trainsim.bezier import (
    as_control_points,
    evaluate_bezier,
    integrated_arc_length,
    normalize_or_zero,
)

CURVE = np.array(
    [
        [0.0, 0.0, 0.0],
        [10.0, 5.0, 0.0],
        [20.0, -5.0, 10.0],
        [30.0, 2.0, 10.0],
    ]
)


def test_endpoints_match_anchors() -> None:
    start, _ = evaluate_bezier(CURVE, 0.0)
    end, _ = evaluate_bezier(CURVE, 1.0)
    assert np.allclose(start, CURVE[0])
    assert np.allclose(end, CURVE[3])


def test_parameter_is_clamped() -> None:
    below, tan_below = evaluate_bezier(CURVE, -0.5)
    above, tan_above = evaluate_bezier(CURVE, 1.5)
    start, tan_start = evaluate_bezier(CURVE, 0.0)
    end, tan_end = evaluate_bezier(CURVE, 1.0)
    assert np.allclose(below, start)
    assert np.allclose(above, end)
    assert np.allclose(tan_below, tan_start)
    assert np.allclose(tan_above, tan_end)


def test_tangent_is_unit_and_follows_control_polygon() -> None:
    _, tangent = evaluate_bezier(CURVE, 0.0)
    expected = (CURVE[1] - CURVE[0]) / np.linalg.norm(CURVE[1] - CURVE[0])
    assert np.allclose(tangent, expected)
    _, tangent = evaluate_bezier(CURVE, 0.37)
    assert np.isclose(np.linalg.norm(tangent), 1.0)


def test_tangent_matches_finite_difference() -> None:
    t, h = 0.4, 1e-6
    p_plus, _ = evaluate_bezier(CURVE, t + h)
    p_minus, _ = evaluate_bezier(CURVE, t - h)
    _, tangent = evaluate_bezier(CURVE, t)
    fd = (p_plus - p_minus) / np.linalg.norm(p_plus - p_minus)
    assert np.allclose(tangent, fd, atol=1e-6)


def test_degenerate_curve_has_zero_tangent() -> None:
    point = np.tile([1.0, 2.0, 3.0], (4, 1))
    position, tangent = evaluate_bezier(point, 0.5)
    assert np.allclose(position, [1.0, 2.0, 3.0])
    assert np.array_equal(tangent, np.zeros(3))
    assert not np.any(np.isnan(tangent))


def test_vectorised_evaluation_matches_scalar() -> None:
    t = np.linspace(0.0, 1.0, 7)
    positions, tangents = evaluate_bezier(CURVE, t)
    assert positions.shape == (7, 3)
    assert tangents.shape == (7, 3)
    for i, ti in enumerate(t):
        p, tan = evaluate_bezier(CURVE, ti)
        assert np.allclose(positions[i], p)
        assert np.allclose(tangents[i], tan)


def test_normalize_or_zero_rows() -> None:
    v = np.array([[3.0, 0.0, 4.0], [0.0, 0.0, 0.0]])
    out = normalize_or_zero(v)
    assert np.allclose(out[0], [0.6, 0.0, 0.8])
    assert np.array_equal(out[1], np.zeros(3))


def test_integrated_length_of_straight_line() -> None:
    line = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0], [3.0, 0.0, 0.0]])
    assert np.isclose(integrated_arc_length(line), 3.0)
    # Half of a uniformly parameterised line is half its length.
    assert np.isclose(integrated_arc_length(line, 0.0, 0.5), 1.5)


def test_control_point_validation() -> None:
    with pytest.raises(ValueError, match="shape"):
        as_control_points([[0.0, 0.0, 0.0]] * 3)
    with pytest.raises(ValueError, match="finite"):
        as_control_points([[0.0, 0.0, np.nan]] + [[0.0, 0.0, 0.0]] * 3)
