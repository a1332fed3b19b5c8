"""Line and arc segments in 3D and 2D.

Segments are immutable tagged values: ``Line3D``/``Arc3D`` before projection,
``Line2D``/``Arc2D`` after.  Every operation is a module-level function that
dispatches on the segment type and returns a new segment:

* :func:`project_to_2d` maps a 3D segment into a :class:`Frame`,
* :func:`rotate` and :func:`translate` move 2D segments rigidly,
* :func:`to_path_command` and :func:`to_arc_path_command` emit relative SVG
  path commands (polyline approximation and true arc respectively).

For a 2D arc, ``angular_sweep`` is the single source of truth for direction
and magnitude (positive is counter-clockwise in math coordinates).  The SVG
``large_arc_flag`` and ``sweep_flag`` are derived from it on demand, so they
cannot drift under rotation or translation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import List, Union

from laserflat.vectors import (
    ORIGIN,
    X_AXIS,
    Y_AXIS,
    Vec2,
    Vec3,
    cross,
    dot,
    rotate2d,
    sub,
)

TWO_PI = 2.0 * math.pi

# arcs whose sweep is smaller than this (radians) are emitted as lines
DEGENERATE_SWEEP = 0.01

MIN_POLYLINE_SAMPLES = 16
MAX_POLYLINE_SAMPLES = 120
DEGREES_PER_SAMPLE = 3.0


@dataclass(frozen=True)
class Frame:
    """Orthonormal projection frame: ``origin`` plus in-plane axes ``u`` and ``v``."""

    origin: Vec3 = ORIGIN
    u: Vec3 = X_AXIS
    v: Vec3 = Y_AXIS

    @property
    def normal(self) -> Vec3:
        return cross(self.u, self.v)

    def project(self, p: Vec3) -> Vec2:
        rel = sub(p, self.origin)
        return dot(rel, self.u), dot(rel, self.v)


@dataclass(frozen=True)
class Line3D:
    start: Vec3
    end: Vec3


@dataclass(frozen=True)
class Arc3D:
    """Circular arc in 3D.

    ``start_angle``/``end_angle`` are measured in the arc's local frame
    (``ref_direction``, ``normal x ref_direction``).  ``clockwise`` is the
    walking direction from ``start`` to ``end`` viewed from the tip of
    ``normal``.
    """

    start: Vec3
    end: Vec3
    center: Vec3
    radius: float
    normal: Vec3 = (0.0, 0.0, 1.0)
    ref_direction: Vec3 = X_AXIS
    start_angle: float = 0.0
    end_angle: float = math.pi
    clockwise: bool = False


@dataclass(frozen=True)
class Line2D:
    start: Vec2
    end: Vec2


@dataclass(frozen=True)
class Arc2D:
    start: Vec2
    end: Vec2
    center: Vec2
    radius_x: float
    radius_y: float
    angular_sweep: float
    x_axis_rotation_deg: float = 0.0

    @property
    def large_arc_flag(self) -> bool:
        return abs(self.angular_sweep) > math.pi

    @property
    def sweep_flag(self) -> bool:
        return self.angular_sweep > 0.0

    @property
    def is_degenerate(self) -> bool:
        return abs(self.angular_sweep) < DEGENERATE_SWEEP


Segment3D = Union[Line3D, Arc3D]
Segment2D = Union[Line2D, Arc2D]


def fmt(value: float) -> str:
    """Fixed three-decimal formatting without a ``-0.000`` artefact."""

    text = f"{value:.3f}"
    if text == "-0.000":
        return "0.000"
    return text


def resolve_sweep(start_angle: float, end_angle: float, clockwise: bool) -> float:
    """Signed sweep walking from ``start_angle`` to ``end_angle``.

    The magnitude is normalized into ``(0, 2*pi]``, so coincident angles mean a
    full turn.  Clockwise sweeps are negative.
    """

    if clockwise:
        sweep = math.fmod(start_angle - end_angle, TWO_PI)
    else:
        sweep = math.fmod(end_angle - start_angle, TWO_PI)
    if sweep <= 0.0:
        sweep += TWO_PI
    return -sweep if clockwise else sweep


def project_to_2d(segment: Segment3D, frame: Frame) -> Segment2D:
    """Project ``segment`` into ``frame``.

    Arc direction is carried across the change of frame: when the frame
    normal faces away from the arc normal the apparent rotation is flipped.
    """

    if isinstance(segment, Line3D):
        return Line2D(frame.project(segment.start), frame.project(segment.end))
    if isinstance(segment, Arc3D):
        start = frame.project(segment.start)
        end = frame.project(segment.end)
        center = frame.project(segment.center)

        dxs, dys = start[0] - center[0], start[1] - center[1]
        radius = math.hypot(dxs, dys)
        start_angle = math.atan2(dys, dxs)
        end_angle = math.atan2(end[1] - center[1], end[0] - center[0])

        facing = dot(segment.normal, frame.normal)
        clockwise = segment.clockwise if facing >= 0.0 else not segment.clockwise

        return Arc2D(
            start=start,
            end=end,
            center=center,
            radius_x=radius,
            radius_y=radius,
            angular_sweep=resolve_sweep(start_angle, end_angle, clockwise),
        )
    raise TypeError(f"not a 3D segment: {segment!r}")


def rotate(segment: Segment2D, angle: float, cx: float, cy: float) -> Segment2D:
    """Rotate ``segment`` by ``angle`` radians counter-clockwise about ``(cx, cy)``.

    Arcs keep their ``angular_sweep``; ``x_axis_rotation_deg`` accumulates the
    rotation in degrees.
    """

    if isinstance(segment, Line2D):
        return Line2D(rotate2d(segment.start, angle, cx, cy),
                      rotate2d(segment.end, angle, cx, cy))
    if isinstance(segment, Arc2D):
        return replace(
            segment,
            start=rotate2d(segment.start, angle, cx, cy),
            end=rotate2d(segment.end, angle, cx, cy),
            center=rotate2d(segment.center, angle, cx, cy),
            x_axis_rotation_deg=segment.x_axis_rotation_deg + math.degrees(angle),
        )
    raise TypeError(f"not a 2D segment: {segment!r}")


def translate(segment: Segment2D, dx: float, dy: float) -> Segment2D:
    if isinstance(segment, Line2D):
        return Line2D((segment.start[0] + dx, segment.start[1] + dy),
                      (segment.end[0] + dx, segment.end[1] + dy))
    if isinstance(segment, Arc2D):
        return replace(
            segment,
            start=(segment.start[0] + dx, segment.start[1] + dy),
            end=(segment.end[0] + dx, segment.end[1] + dy),
            center=(segment.center[0] + dx, segment.center[1] + dy),
        )
    raise TypeError(f"not a 2D segment: {segment!r}")


def _line_command(start: Vec2, end: Vec2) -> str:
    return f"l {fmt(end[0] - start[0])},{fmt(end[1] - start[1])}"


def polyline_sample_count(sweep: float) -> int:
    count = int(round(abs(math.degrees(sweep)) / DEGREES_PER_SAMPLE))
    return max(MIN_POLYLINE_SAMPLES, min(MAX_POLYLINE_SAMPLES, count))


def sample_arc_points(arc: Arc2D, count: int) -> List[Vec2]:
    """Points along ``arc`` from ``start`` to ``end`` split into ``count`` steps."""

    points = [arc.start]
    if arc.is_degenerate:
        points.append(arc.end)
        return points
    start_angle = math.atan2(arc.start[1] - arc.center[1], arc.start[0] - arc.center[0])
    for i in range(1, count):
        angle = start_angle + arc.angular_sweep * i / count
        points.append((arc.center[0] + arc.radius_x * math.cos(angle),
                       arc.center[1] + arc.radius_y * math.sin(angle)))
    points.append(arc.end)
    return points


def to_path_command(segment: Segment2D) -> str:
    """Relative path commands approximating ``segment`` with straight lines."""

    if isinstance(segment, Line2D):
        return _line_command(segment.start, segment.end)
    if isinstance(segment, Arc2D):
        if segment.is_degenerate:
            return _line_command(segment.start, segment.end)
        points = sample_arc_points(segment, polyline_sample_count(segment.angular_sweep))
        return " ".join(_line_command(a, b) for a, b in zip(points, points[1:]))
    raise TypeError(f"not a 2D segment: {segment!r}")


def to_arc_path_command(segment: Segment2D) -> str:
    """Relative path command for ``segment`` using a true SVG arc where possible."""

    if isinstance(segment, Line2D):
        return _line_command(segment.start, segment.end)
    if isinstance(segment, Arc2D):
        if segment.is_degenerate:
            return _line_command(segment.start, segment.end)
        large = 1 if segment.large_arc_flag else 0
        sweep = 1 if segment.sweep_flag else 0
        dx = segment.end[0] - segment.start[0]
        dy = segment.end[1] - segment.start[1]
        return (f"a {fmt(segment.radius_x)},{fmt(segment.radius_y)} 0 {large} {sweep} "
                f"{fmt(dx)},{fmt(dy)}")
    raise TypeError(f"not a 2D segment: {segment!r}")


__all__ = [
    'TWO_PI',
    'DEGENERATE_SWEEP',
    'Frame',
    'Line3D',
    'Arc3D',
    'Line2D',
    'Arc2D',
    'Segment3D',
    'Segment2D',
    'fmt',
    'resolve_sweep',
    'project_to_2d',
    'rotate',
    'translate',
    'polyline_sample_count',
    'sample_arc_points',
    'to_path_command',
    'to_arc_path_command',
]
