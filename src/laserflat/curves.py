"""Curve evaluation for edge geometry.

:func:`extract_segment` turns an edge curve plus its two boundary vertices
into a 3D segment: an exact :class:`~laserflat.segments.Arc3D` for circles and
a straight :class:`~laserflat.segments.Line3D` for everything else.
:func:`sample_curve` produces a point sequence for curves whose shape must
survive as a polyline (ellipses, B-splines).

Neither function raises on malformed input; missing curves, vertices or
placements degrade to the documented fallbacks.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from laserflat.primitives import (
    Axis2Placement3D,
    BSplineCurveWithKnots,
    Circle,
    Curve,
    Ellipse,
    VertexPoint,
)
from laserflat.segments import TWO_PI, Arc3D, Line3D, Segment3D
from laserflat.vectors import (
    ORIGIN,
    X_AXIS,
    Z_AXIS,
    Vec3,
    cross,
    dot,
    midpoint,
    normalize_or,
    scale,
    sub,
)

logger = logging.getLogger(__name__)

DEFAULT_SAMPLES_PER_CURVE = 32

# final B-spline sample is pulled this far inside the closed domain end
DOMAIN_END_EPSILON = 1e-10


def _location(vertex: Optional[VertexPoint]) -> Optional[Vec3]:
    if vertex is None:
        return None
    return vertex.location


def _placement_axes(placement: Axis2Placement3D) -> Tuple[Vec3, Vec3, Vec3, Vec3]:
    """Return ``(center, normal, x_dir, y_dir)`` of a placement, unit axes."""

    center = placement.location if placement.location is not None else ORIGIN
    normal = normalize_or(placement.axis or Z_AXIS, Z_AXIS)
    ref = normalize_or(placement.ref_direction or X_AXIS, X_AXIS)
    # drop any component along the normal so x_dir lies in the curve plane
    x_dir = normalize_or(sub(ref, scale(normal, dot(ref, normal))), ref)
    y_dir = cross(normal, x_dir)
    return center, normal, x_dir, y_dir


def angle_on_circle(p: Vec3, center: Vec3, x_dir: Vec3, y_dir: Vec3) -> float:
    rel = sub(p, center)
    return math.atan2(dot(rel, y_dir), dot(rel, x_dir))


def angle_on_ellipse(p: Vec3, center: Vec3, x_dir: Vec3, y_dir: Vec3,
                     semi_axis_1: float, semi_axis_2: float) -> float:
    rel = sub(p, center)
    return math.atan2(dot(rel, y_dir) / semi_axis_2, dot(rel, x_dir) / semi_axis_1)


def _unwrap_end(start_angle: float, end_angle: float) -> float:
    """Advance ``end_angle`` by whole turns until it exceeds ``start_angle``."""

    while end_angle <= start_angle:
        end_angle += TWO_PI
    return end_angle


def extract_segment(curve: Optional[Curve],
                    start_vertex: Optional[VertexPoint],
                    end_vertex: Optional[VertexPoint],
                    orientation: bool = True) -> Segment3D:
    """Build the 3D segment for an edge walked from ``start_vertex`` to ``end_vertex``.

    ``orientation=False`` means the edge is traversed backwards: the vertex
    positions are swapped before anything else is computed, and a circle arc
    is marked clockwise.
    """

    start_loc = _location(start_vertex)
    end_loc = _location(end_vertex)
    if curve is None or start_loc is None or end_loc is None:
        logger.debug("edge without curve or vertex location, using a straight line")
        return Line3D(start_loc if start_loc is not None else ORIGIN,
                      end_loc if end_loc is not None else ORIGIN)

    if not orientation:
        start_loc, end_loc = end_loc, start_loc

    if isinstance(curve, Circle):
        return _circle_arc(curve, start_loc, end_loc, orientation)

    # ellipses and splines keep their shape only through sample_curve
    return Line3D(start_loc, end_loc)


def _circle_arc(circle: Circle, start: Vec3, end: Vec3, orientation: bool) -> Arc3D:
    if circle.position is None:
        logger.debug("circle with unrecognized placement, approximating as semicircle")
        return Arc3D(
            start=start,
            end=end,
            center=midpoint(start, end),
            radius=circle.radius,
            normal=Z_AXIS,
            ref_direction=X_AXIS,
            start_angle=0.0,
            end_angle=math.pi,
            clockwise=False,
        )

    center, normal, x_dir, y_dir = _placement_axes(circle.position)
    start_angle = angle_on_circle(start, center, x_dir, y_dir)
    end_angle = _unwrap_end(start_angle, angle_on_circle(end, center, x_dir, y_dir))
    return Arc3D(
        start=start,
        end=end,
        center=center,
        radius=circle.radius,
        normal=normal,
        ref_direction=x_dir,
        start_angle=start_angle,
        end_angle=end_angle,
        clockwise=not orientation,
    )


def sample_curve(curve: Optional[Curve],
                 start_vertex: Optional[VertexPoint],
                 end_vertex: Optional[VertexPoint],
                 orientation: bool = True,
                 samples_per_curve: int = DEFAULT_SAMPLES_PER_CURVE) -> List[Vec3]:
    """Sample ``curve`` between its vertices.

    Circles and ellipses yield ``samples_per_curve + 1`` points across the
    resolved angular range, knotted B-splines the same number across their
    valid parameter domain.  Lines and unknown curves yield only the start
    point; the next edge supplies the rest.  The sequence is reversed when
    ``orientation`` is false.
    """

    start_loc = _location(start_vertex)
    end_loc = _location(end_vertex)

    if curve is None:
        return [start_loc] if start_loc is not None else []

    if isinstance(curve, BSplineCurveWithKnots):
        points = sample_bspline(curve, samples_per_curve)
    elif isinstance(curve, Circle):
        points = _sample_circle(curve, start_loc, end_loc, samples_per_curve)
    elif isinstance(curve, Ellipse):
        points = _sample_ellipse(curve, start_loc, end_loc, samples_per_curve)
    else:
        if start_loc is None:
            return []
        if orientation or end_loc is None:
            return [start_loc]
        return [end_loc]

    if not orientation:
        points.reverse()
    return points


def _angle_range(start_loc: Optional[Vec3], end_loc: Optional[Vec3], angle_of) -> Tuple[float, float]:
    start_angle = angle_of(start_loc) if start_loc is not None else 0.0
    end_angle = angle_of(end_loc) if end_loc is not None else TWO_PI
    return start_angle, _unwrap_end(start_angle, end_angle)


def _sample_circle(circle: Circle, start_loc: Optional[Vec3], end_loc: Optional[Vec3],
                   count: int) -> List[Vec3]:
    if circle.position is None:
        return [start_loc] if start_loc is not None else []

    center, _, x_dir, y_dir = _placement_axes(circle.position)
    start_angle, end_angle = _angle_range(
        start_loc, end_loc, lambda p: angle_on_circle(p, center, x_dir, y_dir))
    radius = circle.radius
    points = []
    for i in range(count + 1):
        angle = start_angle + (end_angle - start_angle) * i / count
        c, s = math.cos(angle), math.sin(angle)
        points.append(tuple(center[k] + radius * (c * x_dir[k] + s * y_dir[k]) for k in range(3)))
    return points


def _sample_ellipse(ellipse: Ellipse, start_loc: Optional[Vec3], end_loc: Optional[Vec3],
                    count: int) -> List[Vec3]:
    if ellipse.position is None:
        return [start_loc] if start_loc is not None else []

    center, _, x_dir, y_dir = _placement_axes(ellipse.position)
    a, b = ellipse.semi_axis_1, ellipse.semi_axis_2
    start_angle, end_angle = _angle_range(
        start_loc, end_loc, lambda p: angle_on_ellipse(p, center, x_dir, y_dir, a, b))
    points = []
    for i in range(count + 1):
        angle = start_angle + (end_angle - start_angle) * i / count
        c, s = math.cos(angle), math.sin(angle)
        points.append(tuple(center[k] + a * c * x_dir[k] + b * s * y_dir[k] for k in range(3)))
    return points


def expand_knots(knots: Sequence[float], multiplicities: Sequence[int]) -> List[float]:
    """Expand a compressed knot list into the full knot vector."""

    full: List[float] = []
    for knot, count in zip(knots, multiplicities):
        full.extend([float(knot)] * int(count))
    return full


def find_knot_span(n: int, degree: int, t: float, knots: Sequence[float]) -> int:
    """Index ``k`` with ``knots[k] <= t < knots[k + 1]``; ``t`` at or past ``knots[n + 1]`` gives ``n``."""

    if t >= knots[n + 1]:
        return n
    if t < knots[degree]:
        return degree
    low, high = degree, n + 1
    mid = (low + high) // 2
    # bounded so a non-monotonic knot vector cannot spin forever
    for _ in range(len(knots)):
        if knots[mid] <= t < knots[mid + 1]:
            break
        if t < knots[mid]:
            high = mid
        else:
            low = mid
        mid = (low + high) // 2
    return mid


def de_boor(control_points: np.ndarray, knots: Sequence[float], degree: int, t: float) -> Vec3:
    """Evaluate a non-rational B-spline at ``t`` with de Boor's algorithm."""

    n = len(control_points) - 1
    k = find_knot_span(n, degree, t, knots)
    d = np.zeros((degree + 1, 3))
    for j in range(degree + 1):
        idx = k - degree + j
        if 0 <= idx <= n:
            d[j] = control_points[idx]

    for r in range(1, degree + 1):
        for j in range(degree, r - 1, -1):
            i = k - degree + j
            denom = knots[i + degree - r + 1] - knots[i]
            alpha = (t - knots[i]) / denom if abs(denom) > 1e-10 else 0.0
            d[j] = (1.0 - alpha) * d[j - 1] + alpha * d[j]

    x, y, z = d[degree]
    return float(x), float(y), float(z)


def bspline_domain(curve: BSplineCurveWithKnots) -> Optional[Tuple[float, float]]:
    knots = expand_knots(curve.knots, curve.knot_multiplicities)
    n = len(curve.control_points) - 1
    # a full knot vector has n + degree + 2 entries
    if n < 0 or curve.degree < 1 or len(knots) < n + curve.degree + 2:
        return None
    return knots[curve.degree], knots[n + 1]


def sample_bspline(curve: BSplineCurveWithKnots, count: int) -> List[Vec3]:
    """``count + 1`` points spaced evenly in parameter across the valid domain."""

    if not curve.control_points:
        return []
    knots = expand_knots(curve.knots, curve.knot_multiplicities)
    domain = bspline_domain(curve)
    if domain is None:
        logger.debug("B-spline knot vector too short for %d control points",
                     len(curve.control_points))
        return []

    t_min, t_max = domain
    ctrl = np.asarray(curve.control_points, dtype=float)
    points = []
    for i in range(count + 1):
        t = t_min + (t_max - t_min) * i / count
        if i == count:
            t = t_max - DOMAIN_END_EPSILON
        points.append(de_boor(ctrl, knots, curve.degree, t))
    return points


def is_curved_geometry(curve: Optional[Curve]) -> bool:
    return isinstance(curve, (Circle, Ellipse, BSplineCurveWithKnots))


__all__ = [
    'DEFAULT_SAMPLES_PER_CURVE',
    'angle_on_circle',
    'angle_on_ellipse',
    'extract_segment',
    'sample_curve',
    'expand_knots',
    'find_knot_span',
    'de_boor',
    'bspline_domain',
    'sample_bspline',
    'is_curved_geometry',
]
