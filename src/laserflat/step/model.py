"""Typed access to the geometry and topology entities of a STEP file.

:class:`StepModel` wraps the entity table produced by
:func:`laserflat.step.reader.read_step` and resolves references into the
immutable values of :mod:`laserflat.primitives`.  Resolution never raises on
malformed data: dangling references and unexpected parameter shapes resolve
to ``None`` (or :class:`~laserflat.primitives.UnknownCurve` for curves).
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, List, Optional, Tuple

from laserflat.primitives import (
    Axis2Placement3D,
    BSplineCurveWithKnots,
    Circle,
    Curve,
    EdgeCurve,
    Ellipse,
    Face,
    FaceBound,
    LineCurve,
    OrientedEdge,
    UnknownCurve,
    VertexPoint,
)
from laserflat.step.reader import EntityInstance, StepFile, read_step
from laserflat.vectors import Vec3, scale, to_vec3

logger = logging.getLogger(__name__)

FACE_TYPES = ('ADVANCED_FACE', 'FACE_SURFACE')
SOLID_TYPES = ('MANIFOLD_SOLID_BREP', 'BREP_WITH_VOIDS')
SHELL_TYPES = ('CLOSED_SHELL', 'OPEN_SHELL')

# curves that only wrap a basis curve; index of the wrapped curve parameter
_WRAPPER_CURVES = {
    'SURFACE_CURVE': 1,
    'SEAM_CURVE': 1,
    'TRIMMED_CURVE': 1,
}

# supertype parts of complex instances that never name the concrete kind
_GENERIC_PARTS = frozenset((
    'REPRESENTATION_ITEM',
    'GEOMETRIC_REPRESENTATION_ITEM',
    'CURVE',
    'BOUNDED_CURVE',
    'SURFACE',
    'BOUNDED_SURFACE',
    'B_SPLINE_CURVE',
    'B_SPLINE_SURFACE',
    'RATIONAL_B_SPLINE_CURVE',
    'RATIONAL_B_SPLINE_SURFACE',
))


def _param(params: Tuple[Any, ...], index: int) -> Any:
    if index < len(params):
        return params[index]
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _flag(value: Any, default: bool = True) -> bool:
    if isinstance(value, bool):
        return value
    return default


def _sequence(value: Any) -> Tuple[Any, ...]:
    if isinstance(value, tuple):
        return value
    return ()


def primary_type(inst: EntityInstance) -> str:
    """Most specific entity keyword of a (possibly complex) instance."""

    if not inst.is_complex:
        return inst.name
    for name in inst.type_names:
        if name not in _GENERIC_PARTS:
            return name
    return inst.name


class StepModel:
    """Reference resolver over a parsed STEP entity table."""

    def __init__(self, step: StepFile):
        self.step = step

    @classmethod
    def from_text(cls, text: str) -> 'StepModel':
        return cls(read_step(text))

    @property
    def item_count(self) -> int:
        return len(self.step)

    def entity(self, ref) -> Optional[EntityInstance]:
        return self.step.get(ref)

    def instances_of(self, *names: str) -> Iterator[EntityInstance]:
        """Instances of any of ``names``, in file order."""
        for inst in self.step.instances.values():
            if any(inst.has_type(name) for name in names):
                yield inst

    def label(self, ref) -> Optional[str]:
        inst = self.entity(ref)
        if inst is None:
            return None
        name = _param(inst.params, 0)
        return name if isinstance(name, str) else None

    # --- geometry ---

    def point(self, ref) -> Optional[Vec3]:
        inst = self.entity(ref)
        if inst is None or not inst.has_type('CARTESIAN_POINT'):
            return None
        coords = _sequence(_param(inst.part('CARTESIAN_POINT').params, 1))
        values = [_number(c) for c in coords]
        if len(values) < 2 or any(v is None for v in values):
            return None
        return to_vec3(values)

    def direction(self, ref) -> Optional[Vec3]:
        inst = self.entity(ref)
        if inst is None or not inst.has_type('DIRECTION'):
            return None
        ratios = _sequence(_param(inst.part('DIRECTION').params, 1))
        values = [_number(c) for c in ratios]
        if len(values) < 2 or any(v is None for v in values):
            return None
        return to_vec3(values)

    def placement(self, ref) -> Optional[Axis2Placement3D]:
        """``AXIS2_PLACEMENT_3D`` at ``ref``; ``None`` for any other placement kind."""

        inst = self.entity(ref)
        if inst is None or not inst.has_type('AXIS2_PLACEMENT_3D'):
            return None
        params = inst.part('AXIS2_PLACEMENT_3D').params
        return Axis2Placement3D(
            location=self.point(_param(params, 1)),
            axis=self.direction(_param(params, 2)),
            ref_direction=self.direction(_param(params, 3)),
        )

    def vertex(self, ref) -> Optional[VertexPoint]:
        inst = self.entity(ref)
        if inst is None or not inst.has_type('VERTEX_POINT'):
            return None
        return VertexPoint(self.point(_param(inst.part('VERTEX_POINT').params, 1)))

    def curve(self, ref) -> Optional[Curve]:
        """Resolve a curve, unwrapping surface, seam and trimmed curves."""

        inst = self.entity(ref)
        for _ in range(len(_WRAPPER_CURVES) + 1):
            if inst is None:
                return None
            kind = primary_type(inst)
            if kind not in _WRAPPER_CURVES:
                break
            inst = self.entity(_param(inst.params, _WRAPPER_CURVES[kind]))
        else:
            return None

        if inst.has_type('B_SPLINE_CURVE_WITH_KNOTS'):
            return self._bspline(inst)
        if kind == 'CIRCLE':
            return self._circle(inst)
        if kind == 'ELLIPSE':
            return self._ellipse(inst)
        if kind == 'LINE':
            return self._line(inst)
        logger.debug("#%d: unsupported curve type %s", inst.id, kind)
        return UnknownCurve(kind)

    def _circle(self, inst: EntityInstance) -> Curve:
        params = inst.part('CIRCLE').params
        radius = _number(_param(params, 2))
        if radius is None:
            return UnknownCurve('CIRCLE')
        return Circle(self.placement(_param(params, 1)), radius)

    def _ellipse(self, inst: EntityInstance) -> Curve:
        params = inst.part('ELLIPSE').params
        a = _number(_param(params, 2))
        b = _number(_param(params, 3))
        if a is None or b is None or a == 0.0 or b == 0.0:
            return UnknownCurve('ELLIPSE')
        return Ellipse(self.placement(_param(params, 1)), a, b)

    def _line(self, inst: EntityInstance) -> Curve:
        params = inst.part('LINE').params
        direction = None
        vector = self.entity(_param(params, 2))
        if vector is not None and vector.has_type('VECTOR'):
            orientation = self.direction(_param(vector.params, 1))
            magnitude = _number(_param(vector.params, 2))
            if orientation is not None:
                direction = scale(orientation, magnitude) if magnitude else orientation
        return LineCurve(self.point(_param(params, 1)), direction)

    def _bspline(self, inst: EntityInstance) -> Curve:
        if inst.is_complex:
            curve_params = inst.part('B_SPLINE_CURVE')
            knot_params = inst.part('B_SPLINE_CURVE_WITH_KNOTS').params
            if curve_params is None:
                return UnknownCurve('B_SPLINE_CURVE_WITH_KNOTS')
            degree = _param(curve_params.params, 0)
            ctrl_refs = _param(curve_params.params, 1)
            mults = _param(knot_params, 0)
            knots = _param(knot_params, 1)
        else:
            params = inst.params
            degree = _param(params, 1)
            ctrl_refs = _param(params, 2)
            mults = _param(params, 6)
            knots = _param(params, 7)

        control_points = [self.point(r) for r in _sequence(ctrl_refs)]
        mult_values = [_number(m) for m in _sequence(mults)]
        knot_values = [_number(k) for k in _sequence(knots)]
        if (not isinstance(degree, int) or isinstance(degree, bool) or degree < 1
                or not control_points or any(p is None for p in control_points)
                or any(m is None for m in mult_values) or any(k is None for k in knot_values)
                or len(mult_values) != len(knot_values)):
            logger.debug("#%d: malformed B-spline curve", inst.id)
            return UnknownCurve('B_SPLINE_CURVE_WITH_KNOTS')
        return BSplineCurveWithKnots(
            degree=degree,
            control_points=tuple(control_points),
            knot_multiplicities=tuple(int(m) for m in mult_values),
            knots=tuple(knot_values),
        )

    # --- topology ---

    def edge_curve(self, ref) -> Optional[EdgeCurve]:
        inst = self.entity(ref)
        if inst is None or not inst.has_type('EDGE_CURVE'):
            return None
        params = inst.part('EDGE_CURVE').params
        return EdgeCurve(
            entity_id=inst.id,
            start=self.vertex(_param(params, 1)),
            end=self.vertex(_param(params, 2)),
            curve=self.curve(_param(params, 3)),
            same_sense=_flag(_param(params, 4)),
        )

    def oriented_edge(self, ref) -> Optional[OrientedEdge]:
        inst = self.entity(ref)
        if inst is None:
            return None
        if inst.has_type('EDGE_CURVE'):
            return OrientedEdge(self.edge_curve(ref), True)
        if not inst.has_type('ORIENTED_EDGE'):
            return None
        params = inst.part('ORIENTED_EDGE').params
        return OrientedEdge(self.edge_curve(_param(params, 3)), _flag(_param(params, 4)))

    def edge_loop(self, ref) -> List[OrientedEdge]:
        inst = self.entity(ref)
        if inst is None or not inst.has_type('EDGE_LOOP'):
            return []
        edges = []
        for edge_ref in _sequence(_param(inst.part('EDGE_LOOP').params, 1)):
            edge = self.oriented_edge(edge_ref)
            if edge is not None:
                edges.append(edge)
        return edges

    def face_bound(self, ref) -> Optional[FaceBound]:
        inst = self.entity(ref)
        if inst is None:
            return None
        if inst.has_type('FACE_OUTER_BOUND'):
            params, is_outer = inst.part('FACE_OUTER_BOUND').params, True
        elif inst.has_type('FACE_BOUND'):
            params, is_outer = inst.part('FACE_BOUND').params, False
        else:
            return None
        loop = _param(params, 1)
        return FaceBound(
            loop_id=int(loop) if self.entity(loop) is not None else None,
            orientation=_flag(_param(params, 2)),
            is_outer=is_outer,
        )

    def face(self, ref) -> Optional[Face]:
        inst = self.entity(ref)
        if inst is None:
            return None
        part = next((inst.part(t) for t in FACE_TYPES if inst.has_type(t)), None)
        if part is None:
            return None
        bounds = []
        for bound_ref in _sequence(_param(part.params, 1)):
            bound = self.face_bound(bound_ref)
            if bound is not None:
                bounds.append(bound)

        surface = self.entity(_param(part.params, 2))
        surface_type = primary_type(surface) if surface is not None else 'UNKNOWN'
        position = None
        if surface is not None and surface_type == 'PLANE':
            position = self.placement(_param(surface.part('PLANE').params, 1))
        return Face(inst.id, surface_type, tuple(bounds), position)

    def shell_faces(self, ref) -> List[Face]:
        inst = self.entity(ref)
        if inst is None:
            return []
        part = next((inst.part(t) for t in SHELL_TYPES if inst.has_type(t)), None)
        if part is None:
            return []
        faces = []
        for face_ref in _sequence(_param(part.params, 1)):
            face = self.face(face_ref)
            if face is not None:
                faces.append(face)
        return faces


__all__ = [
    'FACE_TYPES',
    'SOLID_TYPES',
    'SHELL_TYPES',
    'primary_type',
    'StepModel',
]
