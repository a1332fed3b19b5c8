"""Typed geometric primitives handed to the curve evaluator and layout engine.

These are plain immutable values produced by the STEP model
(:mod:`laserflat.step.model`).  Topology items (faces, bounds, edges) refer to
each other by entity id rather than by object reference, so layout code never
holds live references into the resolver's entity table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from laserflat.vectors import Vec3


@dataclass(frozen=True)
class Axis2Placement3D:
    """Local coordinate system of a circle, ellipse or plane.

    ``axis`` and ``ref_direction`` may be ``None`` when the file leaves them
    unset; consumers substitute +Z and +X respectively.
    """

    location: Optional[Vec3] = None
    axis: Optional[Vec3] = None
    ref_direction: Optional[Vec3] = None


@dataclass(frozen=True)
class VertexPoint:
    location: Optional[Vec3] = None


@dataclass(frozen=True)
class Circle:
    """Circle curve.  ``position`` is ``None`` for unrecognized placement types."""

    position: Optional[Axis2Placement3D]
    radius: float


@dataclass(frozen=True)
class Ellipse:
    position: Optional[Axis2Placement3D]
    semi_axis_1: float
    semi_axis_2: float


@dataclass(frozen=True)
class BSplineCurveWithKnots:
    """Non-rational B-spline with a compressed knot vector.

    ``knots[i]`` is repeated ``knot_multiplicities[i]`` times in the full
    knot vector.
    """

    degree: int
    control_points: Tuple[Vec3, ...]
    knot_multiplicities: Tuple[int, ...]
    knots: Tuple[float, ...]


@dataclass(frozen=True)
class LineCurve:
    point: Optional[Vec3] = None
    direction: Optional[Vec3] = None


@dataclass(frozen=True)
class UnknownCurve:
    type_name: str


Curve = Union[Circle, Ellipse, BSplineCurveWithKnots, LineCurve, UnknownCurve]


@dataclass(frozen=True)
class EdgeCurve:
    entity_id: int
    start: Optional[VertexPoint]
    end: Optional[VertexPoint]
    curve: Optional[Curve]
    same_sense: bool = True


@dataclass(frozen=True)
class OrientedEdge:
    edge: Optional[EdgeCurve]
    orientation: bool = True


@dataclass(frozen=True)
class FaceBound:
    loop_id: Optional[int]
    orientation: bool = True
    is_outer: bool = False


@dataclass(frozen=True)
class Face:
    """A face of a solid; ``surface_type`` is the surface entity keyword (``PLANE`` etc.)."""

    entity_id: int
    surface_type: str
    bounds: Tuple[FaceBound, ...] = field(default_factory=tuple)
    surface_position: Optional[Axis2Placement3D] = None

    @property
    def is_planar(self) -> bool:
        return self.surface_type == 'PLANE'


__all__ = [
    'Axis2Placement3D',
    'VertexPoint',
    'Circle',
    'Ellipse',
    'BSplineCurveWithKnots',
    'LineCurve',
    'UnknownCurve',
    'Curve',
    'EdgeCurve',
    'OrientedEdge',
    'FaceBound',
    'Face',
]
