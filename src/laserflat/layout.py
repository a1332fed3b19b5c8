"""Per-solid layout: choose the cutting face and flatten it into 2D.

For one solid the layout engine

1. keeps only planar faces and picks the one with the largest projected area,
2. builds a projection frame whose X axis follows the face's first edge,
3. projects the outer loop and the hole loops into that frame,
4. rotates the result when the outline is dominated by 45 degree edges,
5. translates it so the outline starts flush at the origin,

and finally writes the outer wall and holes into an SVG group.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from laserflat.options import AlignmentThresholds, ProcessingOptions
from laserflat.primitives import Face
from laserflat.segments import (
    Frame,
    Segment2D,
    Segment3D,
    project_to_2d,
    rotate,
    translate,
)
from laserflat.svg import HOLE_STROKE, OUTER_STROKE, STROKE_WIDTH, SvgBuilder, build_path_from_segments_as_curves
from laserflat.vectors import ORIGIN, X_AXIS, Y_AXIS, Vec2, Vec3, centroid2d, cross, normalize, sub

logger = logging.getLogger(__name__)

Log = Callable[[str, bool], None]
Loop3D = List[Segment3D]


class LoopSource(Protocol):
    """The part of the topology resolver the layout engine needs."""

    def extract_face_loops_as_segments(self, face: Face) -> Tuple[Loop3D, List[Loop3D]]:
        ...


@dataclass(frozen=True)
class FaceCandidate:
    face: Face
    outer: Tuple[Segment3D, ...]
    holes: Tuple[Tuple[Segment3D, ...], ...]
    area: float


@dataclass(frozen=True)
class SolidLayout:
    """Flattened outline of one solid, normalized to the origin.

    ``rotation`` is the alignment rotation applied, in radians.
    """

    name: str
    outer: Tuple[Segment2D, ...]
    holes: Tuple[Tuple[Segment2D, ...], ...] = field(default_factory=tuple)
    rotation: float = 0.0


def build_frame(points: Sequence[Vec3]) -> Frame:
    """Frame from a face's boundary start points.

    The origin is the first point and the X axis runs along the first edge;
    the plane normal comes from the first three points and Y = normal x X.
    Degenerate input yields the XY frame at the first point.
    """

    if len(points) < 3:
        return Frame(points[0] if points else ORIGIN, X_AXIS, Y_AXIS)

    p0, p1, p2 = points[0], points[1], points[2]
    edge = sub(p1, p0)
    normal = normalize(cross(edge, sub(p2, p0)))
    x_axis = normalize(edge)
    if normal is None or x_axis is None:
        logger.debug("degenerate boundary, projecting onto the XY plane")
        return Frame(p0, X_AXIS, Y_AXIS)
    y_axis = normalize(cross(normal, x_axis)) or Y_AXIS
    return Frame(p0, x_axis, y_axis)


def shoelace_area(points: Sequence[Vec2]) -> float:
    if len(points) < 3:
        return 0.0
    pts = np.asarray(points, dtype=float)
    x, y = pts[:, 0], pts[:, 1]
    return float(abs(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)) / 2.0)


def projected_area(points: Sequence[Vec3]) -> float:
    """Area of the polygon through ``points`` in its own best-fit frame."""

    if len(points) < 3:
        return 0.0
    frame = build_frame(points)
    return shoelace_area([frame.project(p) for p in points])


def select_face(name: str, faces: Sequence[Face], loops: LoopSource,
                log: Log) -> Optional[FaceCandidate]:
    """Planar face with the largest projected outer-boundary area, if any."""

    best: Optional[FaceCandidate] = None
    for face in faces:
        if not face.is_planar:
            continue
        outer, holes = loops.extract_face_loops_as_segments(face)
        if len(outer) < 2:
            continue
        area = projected_area([s.start for s in outer])
        log(f"[FACE] {name}: Planar face with {len(outer)} segments, area={area:.1f}", True)
        if area > (best.area if best is not None else 0.0):
            best = FaceCandidate(face, tuple(outer), tuple(tuple(h) for h in holes), area)
    return best


def _folded_edge_angles(points: Sequence[Vec2], min_length: float) -> List[Tuple[float, float]]:
    """``(length, angle)`` of each closed-polygon edge, angle folded into [0, pi/2]."""

    edges = []
    n = len(points)
    for i in range(n):
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % n]
        length = math.hypot(x2 - x1, y2 - y1)
        if length < min_length:
            continue
        angle = math.atan2(y2 - y1, x2 - x1) % math.pi
        if angle > math.pi / 2:
            angle = math.pi - angle
        edges.append((length, angle))
    return edges


def compute_axis_alignment_angle(points: Sequence[Vec2],
                                 thresholds: AlignmentThresholds = AlignmentThresholds()) -> float:
    """Rotation (radians) that makes a dominant 45 degree edge cluster horizontal.

    Returns exactly ``0.0`` when the outline is already mostly axis aligned
    or no strong diagonal cluster exists.
    """

    if len(points) < 3:
        return 0.0
    edges = _folded_edge_angles(points, thresholds.min_edge_length)
    if not edges:
        return 0.0

    lengths = np.array([e[0] for e in edges])
    angles = np.array([e[1] for e in edges])
    total = float(lengths.sum())

    axis_tol = math.radians(thresholds.axis_tolerance_deg)
    aligned = (np.abs(angles) < axis_tol) | (np.abs(angles - math.pi / 2) < axis_tol)
    if float(lengths[aligned].sum()) > total * thresholds.axis_aligned_fraction:
        return 0.0

    diagonal = math.radians(thresholds.diagonal_angle_deg)
    in_cluster = np.abs(angles - diagonal) < math.radians(thresholds.diagonal_tolerance_deg)
    cluster_weight = float(lengths[in_cluster].sum())
    if cluster_weight > 0.0 and cluster_weight > total * thresholds.diagonal_fraction:
        mean_angle = float(np.dot(angles[in_cluster], lengths[in_cluster])) / cluster_weight
        return -mean_angle
    return 0.0


def layout_face(name: str, candidate: FaceCandidate,
                thresholds: AlignmentThresholds, log: Log) -> SolidLayout:
    """Project, align and normalize the chosen face."""

    frame = build_frame([s.start for s in candidate.outer])
    outer = [project_to_2d(s, frame) for s in candidate.outer]
    holes = [[project_to_2d(s, frame) for s in hole] for hole in candidate.holes]

    starts = [s.start for s in outer]
    angle = compute_axis_alignment_angle(starts, thresholds)
    applied = 0.0
    if abs(angle) > thresholds.min_rotation:
        log(f"[ALIGN] {name}: Rotating by {math.degrees(angle):.1f} degrees for axis alignment", True)
        cx, cy = centroid2d(starts)
        outer = [rotate(s, angle, cx, cy) for s in outer]
        holes = [[rotate(s, angle, cx, cy) for s in hole] for hole in holes]
        applied = angle

    min_x = min(s.start[0] for s in outer)
    min_y = min(s.start[1] for s in outer)
    outer = [translate(s, -min_x, -min_y) for s in outer]
    holes = [[translate(s, -min_x, -min_y) for s in hole] for hole in holes]

    return SolidLayout(name, tuple(outer), tuple(tuple(h) for h in holes), applied)


def layout_solid(name: str, faces: Sequence[Face], loops: LoopSource,
                 options: ProcessingOptions, log: Log) -> Optional[SolidLayout]:
    candidate = select_face(name, faces, loops, log)
    if candidate is None:
        log(f"[{name}] No valid planar face found", True)
        return None
    return layout_face(name, candidate, options.alignment, log)


def emit_layout(layout: SolidLayout, svg: SvgBuilder, log: Log) -> None:
    """Write the outer wall and holes of ``layout`` into the open SVG group."""

    if len(layout.outer) < 2:
        return
    svg.path(build_path_from_segments_as_curves(layout.outer), STROKE_WIDTH, "none", OUTER_STROKE)
    log(f"[SVG] {layout.name}: Generated outline from {len(layout.outer)} curve segments", True)

    for hole in layout.holes:
        if not hole:
            continue
        d = build_path_from_segments_as_curves(hole)
        if d:
            svg.path(d, STROKE_WIDTH, "none", HOLE_STROKE)
            log(f"[SVG] {layout.name}: Generated hole from {len(hole)} curve segments", True)


def process_solid(name: str, faces: Sequence[Face], loops: LoopSource, svg: SvgBuilder,
                  options: ProcessingOptions, log: Log) -> Optional[SolidLayout]:
    """Lay out one solid into its own SVG group; the group is empty when nothing is cuttable."""

    svg.begin_group(name)
    try:
        layout = layout_solid(name, faces, loops, options, log)
        if layout is not None:
            emit_layout(layout, svg, log)
    finally:
        svg.end_group()
    return layout


__all__ = [
    'LoopSource',
    'FaceCandidate',
    'SolidLayout',
    'build_frame',
    'shoelace_area',
    'projected_area',
    'select_face',
    'compute_axis_alignment_angle',
    'layout_face',
    'layout_solid',
    'emit_layout',
    'process_solid',
]
