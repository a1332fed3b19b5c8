import math

import numpy as np
import pytest

from laserflat.curves import (
    de_boor,
    expand_knots,
    extract_segment,
    find_knot_span,
    is_curved_geometry,
    sample_bspline,
    sample_curve,
)
from laserflat.primitives import (
    Axis2Placement3D,
    BSplineCurveWithKnots,
    Circle,
    Ellipse,
    LineCurve,
    UnknownCurve,
    VertexPoint,
)
from laserflat.segments import Arc3D, Line3D


def _placement(center=(0.0, 0.0, 0.0), axis=(0.0, 0.0, 1.0), ref=(1.0, 0.0, 0.0)):
    return Axis2Placement3D(center, axis, ref)


def _vertex(x, y, z=0.0):
    return VertexPoint((x, y, z))


def _polyline_spline():
    # degree 1 through (0,0) -> (1,0) -> (1,1)
    return BSplineCurveWithKnots(
        degree=1,
        control_points=((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (1.0, 1.0, 0.0)),
        knot_multiplicities=(2, 1, 2),
        knots=(0.0, 1.0, 2.0),
    )


def _quadratic_bezier():
    return BSplineCurveWithKnots(
        degree=2,
        control_points=((0.0, 0.0, 0.0), (1.0, 2.0, 0.0), (2.0, 0.0, 0.0)),
        knot_multiplicities=(3, 3),
        knots=(0.0, 1.0),
    )


def test_missing_curve_degrades_to_line():
    seg = extract_segment(None, _vertex(1, 2), _vertex(3, 4))
    assert seg == Line3D((1.0, 2.0, 0.0), (3.0, 4.0, 0.0))


def test_missing_vertices_use_zero_point():
    circle = Circle(_placement(), 1.0)
    assert extract_segment(circle, None, None) == Line3D((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))
    assert extract_segment(circle, _vertex(1, 0), VertexPoint(None)) == \
        Line3D((1.0, 0.0, 0.0), (0.0, 0.0, 0.0))


def test_circle_becomes_counter_clockwise_arc():
    seg = extract_segment(Circle(_placement(), 2.0), _vertex(2, 0), _vertex(0, 2), True)
    assert isinstance(seg, Arc3D)
    assert seg.start == (2.0, 0.0, 0.0)
    assert seg.end == (0.0, 2.0, 0.0)
    assert seg.start_angle == pytest.approx(0.0)
    assert seg.end_angle == pytest.approx(math.pi / 2)
    assert seg.radius == 2.0
    assert not seg.clockwise


def test_reversed_circle_swaps_vertices_and_turns_clockwise():
    seg = extract_segment(Circle(_placement(), 2.0), _vertex(2, 0), _vertex(0, 2), False)
    assert seg.start == (0.0, 2.0, 0.0)
    assert seg.end == (2.0, 0.0, 0.0)
    assert seg.clockwise
    assert seg.start_angle == pytest.approx(math.pi / 2)
    assert seg.end_angle == pytest.approx(2 * math.pi)
    assert seg.end_angle > seg.start_angle


def test_closed_circle_spans_full_turn():
    v = _vertex(5, 0)
    seg = extract_segment(Circle(_placement(), 5.0), v, v)
    assert seg.end_angle - seg.start_angle == pytest.approx(2 * math.pi)


def test_circle_uses_placement_frame():
    # circle in the XZ plane, normal -Y, reference +Z
    placement = _placement((0.0, 0.0, 0.0), (0.0, -1.0, 0.0), (0.0, 0.0, 1.0))
    seg = extract_segment(Circle(placement, 1.0), _vertex(0, 0, 1), _vertex(1, 0, 0))
    assert seg.normal == pytest.approx((0.0, -1.0, 0.0))
    assert seg.ref_direction == pytest.approx((0.0, 0.0, 1.0))
    assert seg.start_angle == pytest.approx(0.0)
    # y axis = normal x ref = (-1, 0, 0), so +X sits at -90 degrees
    assert seg.end_angle == pytest.approx(3 * math.pi / 2)


def test_unrecognized_placement_gives_semicircle():
    seg = extract_segment(Circle(None, 3.0), _vertex(0, 0), _vertex(6, 0))
    assert isinstance(seg, Arc3D)
    assert seg.center == (3.0, 0.0, 0.0)
    assert seg.end_angle - seg.start_angle == pytest.approx(math.pi)


@pytest.mark.parametrize("curve", [
    Ellipse(_placement(), 2.0, 1.0),
    _polyline_spline(),
    LineCurve((0.0, 0.0, 0.0), (1.0, 0.0, 0.0)),
    UnknownCurve('HYPERBOLA'),
])
def test_other_curves_become_lines(curve):
    seg = extract_segment(curve, _vertex(0, 0), _vertex(1, 1), False)
    assert seg == Line3D((1.0, 1.0, 0.0), (0.0, 0.0, 0.0))


def test_is_curved_geometry():
    assert is_curved_geometry(Circle(_placement(), 1.0))
    assert is_curved_geometry(Ellipse(_placement(), 2.0, 1.0))
    assert is_curved_geometry(_polyline_spline())
    assert not is_curved_geometry(LineCurve())
    assert not is_curved_geometry(UnknownCurve('X'))
    assert not is_curved_geometry(None)


def test_sample_circle_quarter():
    points = sample_curve(Circle(_placement(), 2.0), _vertex(2, 0), _vertex(0, 2), True, 8)
    assert len(points) == 9
    assert points[0] == pytest.approx((2.0, 0.0, 0.0))
    assert points[-1] == pytest.approx((0.0, 2.0, 0.0))
    for p in points:
        assert math.hypot(p[0], p[1]) == pytest.approx(2.0)


def test_sample_reverses_when_orientation_false():
    forward = sample_curve(Circle(_placement(), 2.0), _vertex(2, 0), _vertex(0, 2), True, 8)
    backward = sample_curve(Circle(_placement(), 2.0), _vertex(2, 0), _vertex(0, 2), False, 8)
    assert backward == list(reversed(forward))


def test_sample_ellipse_stays_on_ellipse():
    ellipse = Ellipse(_placement(), 4.0, 2.0)
    points = sample_curve(ellipse, _vertex(4, 0), _vertex(-4, 0), True, 16)
    assert len(points) == 17
    assert points[0] == pytest.approx((4.0, 0.0, 0.0))
    assert points[-1] == pytest.approx((-4.0, 0.0, 0.0), abs=1e-9)
    for x, y, _ in points:
        assert (x / 4.0) ** 2 + (y / 2.0) ** 2 == pytest.approx(1.0)
        assert y >= -1e-9


def test_sample_line_returns_start_only():
    assert sample_curve(LineCurve(), _vertex(1, 2), _vertex(3, 4)) == [(1.0, 2.0, 0.0)]
    assert sample_curve(UnknownCurve('X'), _vertex(1, 2), _vertex(3, 4), False) == [(3.0, 4.0, 0.0)]


def test_expand_knots():
    assert expand_knots((0.0, 0.5, 1.0), (3, 1, 3)) == [0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0]


def test_find_knot_span():
    knots = [0.0, 0.0, 1.0, 2.0, 2.0]
    assert find_knot_span(2, 1, 0.0, knots) == 1
    assert find_knot_span(2, 1, 0.5, knots) == 1
    assert find_knot_span(2, 1, 1.5, knots) == 2
    assert find_knot_span(2, 1, 2.0, knots) == 2
    assert find_knot_span(2, 1, 5.0, knots) == 2


def test_de_boor_linear_spline():
    curve = _polyline_spline()
    ctrl = np.asarray(curve.control_points)
    knots = expand_knots(curve.knots, curve.knot_multiplicities)
    assert de_boor(ctrl, knots, 1, 0.0) == pytest.approx((0.0, 0.0, 0.0))
    assert de_boor(ctrl, knots, 1, 0.5) == pytest.approx((0.5, 0.0, 0.0))
    assert de_boor(ctrl, knots, 1, 1.5) == pytest.approx((1.0, 0.5, 0.0))


def test_sample_bspline_covers_domain():
    points = sample_bspline(_polyline_spline(), 4)
    assert len(points) == 5
    assert points[0] == pytest.approx((0.0, 0.0, 0.0))
    assert points[2] == pytest.approx((1.0, 0.0, 0.0))
    assert points[-1] == pytest.approx((1.0, 1.0, 0.0), abs=1e-6)
    assert all(np.isfinite(p).all() for p in points)


def test_sample_quadratic_bezier():
    points = sample_curve(_quadratic_bezier(), _vertex(0, 0), _vertex(2, 0), True, 2)
    assert points[0] == pytest.approx((0.0, 0.0, 0.0))
    assert points[1] == pytest.approx((1.0, 1.0, 0.0))
    assert points[2] == pytest.approx((2.0, 0.0, 0.0), abs=1e-6)


def test_short_knot_vector_yields_no_samples():
    curve = BSplineCurveWithKnots(2, ((0.0, 0.0, 0.0), (1.0, 1.0, 0.0), (2.0, 0.0, 0.0)), (1, 1), (0.0, 1.0))
    assert sample_bspline(curve, 8) == []


def test_knot_vector_too_short_for_degree_yields_no_samples():
    # five knots, but degree 2 over three control points needs six
    curve = BSplineCurveWithKnots(2, ((0.0, 0.0, 0.0), (1.0, 1.0, 0.0), (2.0, 0.0, 0.0)), (3, 1), (0.0, 1.0))
    assert sample_bspline(curve, 8) == []
    assert sample_curve(curve, _vertex(0, 0), _vertex(2, 0), True, 8) == []
