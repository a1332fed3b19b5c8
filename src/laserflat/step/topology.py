"""Solid discovery, thickness measurement and face loop extraction.

:class:`StepTopologyResolver` is the bridge between the STEP entity graph and
the layout engine.  It hands out flat values only: solids as ``(name, faces)``
pairs, bounding dimensions, and face loops as ordered 3D segment lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np

from laserflat.curves import extract_segment, is_curved_geometry, sample_curve
from laserflat.errors import TopologyError
from laserflat.options import Dimensions, ProcessingOptions
from laserflat.primitives import BSplineCurveWithKnots, EdgeCurve, Ellipse, Face, FaceBound, OrientedEdge
from laserflat.segments import Line3D, Segment3D
from laserflat.step.model import FACE_TYPES, SOLID_TYPES, StepModel
from laserflat.vectors import Vec3, distance, dot, normalize

logger = logging.getLogger(__name__)

Loop3D = List[Segment3D]

# plane normals closer than this (|cos|) share a thickness direction
PARALLEL_COSINE = 0.999

# sampled points closer than this collapse into one
SNAP_TOLERANCE = 1e-9


@dataclass(frozen=True)
class Solid:
    name: str
    faces: Tuple[Face, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BoundingDimensions:
    """Extents of a solid.

    ``thin_separation`` is the narrowest extent measured along a planar face
    normal, or ``None`` when the solid has no usable planar face.
    """

    vertices: Tuple[Vec3, ...]
    width: float
    height: float
    depth: float
    thin_separation: Optional[float] = None

    @property
    def dimensions(self) -> Dimensions:
        return Dimensions(self.width, self.height, self.depth)


class TopologyResolver(Protocol):

    def resolve_solids(self) -> List[Solid]:
        ...

    def extract_bounding_dimensions(self, faces: Sequence[Face]) -> BoundingDimensions:
        ...

    def extract_face_loops_as_segments(self, face: Face) -> Tuple[Loop3D, List[Loop3D]]:
        ...


class StepTopologyResolver:
    """Topology resolver over a :class:`~laserflat.step.model.StepModel`."""

    def __init__(self, model: StepModel, options: Optional[ProcessingOptions] = None):
        self.model = model
        self.options = options or ProcessingOptions()

    # --- solids ---

    def resolve_solids(self) -> List[Solid]:
        """Every B-rep solid with at least one face, in file order.

        Files without solid entities fall back to pseudo-solids of
        ``faces_per_pseudo_solid`` consecutive faces each.
        """

        solids: List[Solid] = []
        for inst in self.model.instances_of(*SOLID_TYPES):
            part = next(inst.part(t) for t in SOLID_TYPES if inst.has_type(t))
            shell = part.params[1] if len(part.params) > 1 else None
            if self.model.entity(shell) is None:
                raise TopologyError(f"#{inst.id}: solid references missing shell {shell!r}")
            faces = self.model.shell_faces(shell)
            if not faces:
                logger.debug("#%d: solid without faces skipped", inst.id)
                continue
            label = self.model.label(inst.id)
            if label is not None and label.strip():
                name = label
            else:
                name = f"Solid_{len(solids)}"
            solids.append(Solid(name, tuple(faces)))

        if solids:
            return solids

        loose = [self.model.face(inst.id) for inst in self.model.instances_of(*FACE_TYPES)]
        loose = [face for face in loose if face is not None]
        if not loose:
            return []
        size = self.options.faces_per_pseudo_solid
        logger.debug("[SOLID] No solid entities found, grouping %d faces into pseudo-solids", len(loose))
        return [
            Solid(f"Solid{k + 1}", tuple(loose[i:i + size]))
            for k, i in enumerate(range(0, len(loose), size))
        ]

    # --- dimensions ---

    def _boundary_points(self, faces: Sequence[Face]) -> List[Vec3]:
        points: List[Vec3] = []
        seen = set()

        def add(p: Optional[Vec3]) -> None:
            if p is None:
                return
            key = (round(p[0], 6), round(p[1], 6), round(p[2], 6))
            if key not in seen:
                seen.add(key)
                points.append(p)

        for face in faces:
            for bound in face.bounds:
                for oriented in self.model.edge_loop(bound.loop_id):
                    edge = oriented.edge
                    if edge is None:
                        continue
                    for vertex in (edge.start, edge.end):
                        if vertex is not None:
                            add(vertex.location)
                    if is_curved_geometry(edge.curve):
                        curve_start, curve_end = _curve_order(edge)
                        for p in sample_curve(edge.curve, curve_start, curve_end, True,
                                              self.options.samples_per_curve):
                            add(p)
        return points

    @staticmethod
    def _plane_normals(faces: Sequence[Face]) -> List[Vec3]:
        normals: List[Vec3] = []
        for face in faces:
            position = face.surface_position
            if not face.is_planar or position is None or position.axis is None:
                continue
            n = normalize(position.axis)
            if n is None:
                continue
            if all(abs(dot(n, m)) <= PARALLEL_COSINE for m in normals):
                normals.append(n)
        return normals

    def extract_bounding_dimensions(self, faces: Sequence[Face]) -> BoundingDimensions:
        """Axis-aligned extents, refined by the thinnest planar-normal extent.

        When the narrowest extent along any planar face normal is smaller
        than the smallest axis-aligned extent (a plate not aligned with the
        model axes), it replaces that extent.
        """

        points = self._boundary_points(faces)
        if not points:
            return BoundingDimensions((), 0.0, 0.0, 0.0)

        pts = np.asarray(points, dtype=float)
        extents = pts.max(axis=0) - pts.min(axis=0)
        width, height, depth = (float(e) for e in extents)

        thin = None
        for n in self._plane_normals(faces):
            along = pts @ np.asarray(n, dtype=float)
            span = float(along.max() - along.min())
            if thin is None or span < thin:
                thin = span

        if thin is not None and thin < min(width, height, depth):
            dims = sorted((width, height, depth))
            dims[0] = thin
            width, height, depth = dims
            logger.debug("[TOPO] thin dimension from face normals: %.1fmm", thin)

        return BoundingDimensions(tuple(points), width, height, depth, thin)

    # --- loops ---

    def extract_face_loops_as_segments(self, face: Face) -> Tuple[Loop3D, List[Loop3D]]:
        """Outer loop and hole loops of ``face`` as ordered 3D segments.

        The outer loop is the ``FACE_OUTER_BOUND`` when present, otherwise
        the first bound.
        """

        if not face.bounds:
            return [], []
        outer_index = next((i for i, b in enumerate(face.bounds) if b.is_outer), 0)
        outer = self._loop_segments(face.bounds[outer_index])
        holes = []
        for i, bound in enumerate(face.bounds):
            if i == outer_index:
                continue
            segments = self._loop_segments(bound)
            if segments:
                holes.append(segments)
        return outer, holes

    def _loop_segments(self, bound: FaceBound) -> Loop3D:
        edges = self.model.edge_loop(bound.loop_id)
        if not bound.orientation:
            edges = [OrientedEdge(e.edge, not e.orientation) for e in reversed(edges)]

        segments: Loop3D = []
        for oriented in edges:
            edge = oriented.edge
            if edge is None:
                continue
            forward = oriented.orientation == edge.same_sense
            if self.options.sample_freeform_edges and isinstance(edge.curve, (Ellipse, BSplineCurveWithKnots)):
                sampled = self._sampled_segments(edge, oriented.orientation, forward)
                if sampled:
                    segments.extend(sampled)
                    continue
            curve_start, curve_end = _curve_order(edge)
            segments.append(extract_segment(edge.curve, curve_start, curve_end, forward))
        return segments

    def _sampled_segments(self, edge: EdgeCurve, orientation: bool, forward: bool) -> Loop3D:
        curve_start, curve_end = _curve_order(edge)
        points = sample_curve(edge.curve, curve_start, curve_end, forward, self.options.samples_per_curve)
        if len(points) < 2:
            return []

        first, last = (edge.start, edge.end) if orientation else (edge.end, edge.start)
        if first is not None and first.location is not None:
            points[0] = first.location
        if last is not None and last.location is not None:
            points[-1] = last.location

        segments: Loop3D = []
        for a, b in zip(points, points[1:]):
            if distance(a, b) > SNAP_TOLERANCE:
                segments.append(Line3D(a, b))
        return segments


def _curve_order(edge: EdgeCurve):
    """Edge vertices ordered along the curve's own parameter direction."""

    if edge.same_sense:
        return edge.start, edge.end
    return edge.end, edge.start


__all__ = [
    'Solid',
    'BoundingDimensions',
    'TopologyResolver',
    'StepTopologyResolver',
]
