"""Small tuple-based vector helpers shared by the geometry modules."""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence, Tuple

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]

epsilon = 1e-10

ORIGIN: Vec3 = (0.0, 0.0, 0.0)
X_AXIS: Vec3 = (1.0, 0.0, 0.0)
Y_AXIS: Vec3 = (0.0, 1.0, 0.0)
Z_AXIS: Vec3 = (0.0, 0.0, 1.0)


def to_vec3(values: Sequence[float]) -> Vec3:
    """Return the XYZ components of a coordinate sequence, padding 2D input with ``z=0``."""

    if len(values) < 2:
        raise ValueError("value must have at least two components")
    z = float(values[2]) if len(values) > 2 else 0.0
    return float(values[0]), float(values[1]), z


def sub(a: Vec3, b: Vec3) -> Vec3:
    return a[0] - b[0], a[1] - b[1], a[2] - b[2]


def scale(a: Vec3, s: float) -> Vec3:
    return a[0] * s, a[1] * s, a[2] * s


def dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def cross(a: Vec3, b: Vec3) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def length(a: Vec3) -> float:
    return math.sqrt(dot(a, a))


def normalize(a: Vec3, tol: float = epsilon) -> Optional[Vec3]:
    """Return ``a`` scaled to unit length, or ``None`` if it is (nearly) zero."""

    mag = length(a)
    if mag <= tol:
        return None
    return a[0] / mag, a[1] / mag, a[2] / mag


def normalize_or(a: Vec3, default: Vec3, tol: float = epsilon) -> Vec3:
    unit = normalize(a, tol)
    return default if unit is None else unit


def distance(a: Vec3, b: Vec3) -> float:
    return length(sub(a, b))


def midpoint(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0, (a[2] + b[2]) / 2.0


def rotate2d(p: Vec2, angle: float, cx: float, cy: float) -> Vec2:
    """Rotate ``p`` by ``angle`` radians (counter-clockwise) about ``(cx, cy)``."""

    c = math.cos(angle)
    s = math.sin(angle)
    dx = p[0] - cx
    dy = p[1] - cy
    return dx * c - dy * s + cx, dx * s + dy * c + cy


def centroid2d(points: Iterable[Vec2]) -> Vec2:
    pts = list(points)
    if not pts:
        return 0.0, 0.0
    return (sum(p[0] for p in pts) / len(pts),
            sum(p[1] for p in pts) / len(pts))


__all__ = [
    'Vec2',
    'Vec3',
    'epsilon',
    'ORIGIN',
    'X_AXIS',
    'Y_AXIS',
    'Z_AXIS',
    'to_vec3',
    'sub',
    'scale',
    'dot',
    'cross',
    'length',
    'normalize',
    'normalize_or',
    'distance',
    'midpoint',
    'rotate2d',
    'centroid2d',
]
