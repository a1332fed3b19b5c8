import math

import pytest

from laserflat.layout import (
    build_frame,
    compute_axis_alignment_angle,
    layout_face,
    layout_solid,
    process_solid,
    projected_area,
    select_face,
    shoelace_area,
)
from laserflat.options import AlignmentThresholds, ProcessingOptions
from laserflat.primitives import Face
from laserflat.segments import Arc3D, Line2D, Line3D
from laserflat.svg import SvgBuilder


class _Loops:
    """Loop source backed by a dict of face id -> (outer, holes)."""

    def __init__(self, loops):
        self.loops = loops

    def extract_face_loops_as_segments(self, face):
        return self.loops.get(face.entity_id, ([], []))


class _Log:
    def __init__(self):
        self.messages = []

    def __call__(self, text, is_debug_only):
        self.messages.append((text, is_debug_only))

    def texts(self):
        return [m[0] for m in self.messages]


def _polygon(points):
    return [Line3D(points[i], points[(i + 1) % len(points)]) for i in range(len(points))]


def _rectangle(w, h, z=0.0):
    return _polygon([(0.0, 0.0, z), (w, 0.0, z), (w, h, z), (0.0, h, z)])


def _hexagon():
    # short horizontal edges, long 45 degree flanks
    return _polygon([(0.0, 0.0, 0.0), (2.0, 0.0, 0.0), (12.0, 10.0, 0.0),
                     (2.0, 20.0, 0.0), (0.0, 20.0, 0.0), (-10.0, 10.0, 0.0)])


def test_build_frame_follows_first_edge():
    frame = build_frame([(1.0, 0.0, 0.0), (1.0, 0.0, 5.0), (1.0, 3.0, 5.0)])
    assert frame.origin == (1.0, 0.0, 0.0)
    assert frame.u == pytest.approx((0.0, 0.0, 1.0))
    assert frame.v == pytest.approx((0.0, 1.0, 0.0))
    # right handed: u x v is the plane normal
    assert frame.normal == pytest.approx((-1.0, 0.0, 0.0))


@pytest.mark.parametrize("points", [
    [(2.0, 2.0, 2.0)],
    [(2.0, 2.0, 2.0), (3.0, 2.0, 2.0)],
    [(2.0, 2.0, 2.0), (2.0, 2.0, 2.0), (3.0, 4.0, 2.0)],
    [(2.0, 2.0, 2.0), (3.0, 2.0, 2.0), (4.0, 2.0, 2.0)],
])
def test_build_frame_degenerate_falls_back_to_xy(points):
    frame = build_frame(points)
    assert frame.origin == (2.0, 2.0, 2.0)
    assert frame.u == (1.0, 0.0, 0.0)
    assert frame.v == (0.0, 1.0, 0.0)


def test_shoelace_area():
    assert shoelace_area([(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)]) == pytest.approx(4.0)
    assert shoelace_area([(0.0, 0.0), (0.0, 2.0), (2.0, 2.0), (2.0, 0.0)]) == pytest.approx(4.0)
    assert shoelace_area([(0.0, 0.0), (1.0, 1.0)]) == 0.0


def test_projected_area_is_frame_independent():
    tilted = [(0.0, 0.0, 0.0), (4.0, 0.0, 0.0), (4.0, 3.0, 3.0), (0.0, 3.0, 3.0)]
    assert projected_area(tilted) == pytest.approx(4.0 * math.hypot(3.0, 3.0))


def test_axis_aligned_outline_is_not_rotated():
    starts = [(0.0, 0.0), (50.0, 0.0), (50.0, 30.0), (0.0, 30.0)]
    assert compute_axis_alignment_angle(starts) == 0.0


def test_diamond_outline_is_rotated_back():
    starts = [(0.0, 0.0), (10.0, 10.0), (0.0, 20.0), (-10.0, 10.0)]
    assert compute_axis_alignment_angle(starts) == pytest.approx(-math.pi / 4)


def test_alignment_is_idempotent():
    starts = [(0.0, 0.0), (10.0, 10.0), (0.0, 20.0), (-10.0, 10.0)]
    angle = compute_axis_alignment_angle(starts)
    c, s = math.cos(angle), math.sin(angle)
    rotated = [(x * c - y * s, x * s + y * c) for x, y in starts]
    assert compute_axis_alignment_angle(rotated) == 0.0


def test_weak_diagonal_signal_is_ignored():
    # mostly 30 degree edges: neither aligned nor near 45
    starts = [(0.0, 0.0), (10.0, 5.7735), (20.0, 0.0)]
    assert compute_axis_alignment_angle(starts) == 0.0


def test_short_edges_are_ignored():
    thresholds = AlignmentThresholds(min_edge_length=100.0)
    starts = [(0.0, 0.0), (10.0, 10.0), (0.0, 20.0), (-10.0, 10.0)]
    assert compute_axis_alignment_angle(starts, thresholds) == 0.0


def test_select_face_prefers_largest_planar_face():
    small = Face(1, 'PLANE')
    large = Face(2, 'PLANE')
    curved = Face(3, 'CYLINDRICAL_SURFACE')
    loops = _Loops({
        1: (_rectangle(10.0, 3.0), []),
        2: (_rectangle(50.0, 30.0), []),
        3: (_rectangle(100.0, 100.0), []),
    })
    log = _Log()
    candidate = select_face("Part", [small, large, curved], loops, log)
    assert candidate.face is large
    assert candidate.area == pytest.approx(1500.0)
    assert "[FACE] Part: Planar face with 4 segments, area=1500.0" in log.texts()


def test_select_face_rejects_short_outer_loops():
    loops = _Loops({1: ([Line3D((0.0, 0.0, 0.0), (1.0, 0.0, 0.0))], [])})
    assert select_face("Part", [Face(1, 'PLANE')], loops, _Log()) is None


def test_layout_face_normalizes_to_origin():
    outer = _rectangle(20.0, 10.0, z=5.0)
    outer = [Line3D((s.start[0] + 7, s.start[1] - 3, s.start[2]), (s.end[0] + 7, s.end[1] - 3, s.end[2]))
             for s in outer]
    hole = [Arc3D((16.0, 2.0, 5.0), (16.0, 2.0, 5.0), (15.0, 2.0, 5.0), 1.0,
                  start_angle=0.0, end_angle=2 * math.pi, clockwise=True)]
    loops = _Loops({1: (outer, [hole])})
    candidate = select_face("Part", [Face(1, 'PLANE')], loops, _Log())
    layout = layout_face("Part", candidate, AlignmentThresholds(), _Log())

    assert layout.rotation == 0.0
    assert min(s.start[0] for s in layout.outer) == pytest.approx(0.0)
    assert min(s.start[1] for s in layout.outer) == pytest.approx(0.0)
    arc = layout.holes[0][0]
    assert arc.center == pytest.approx((8.0, 5.0))
    assert arc.angular_sweep == pytest.approx(-2 * math.pi)


def test_layout_face_rotates_diagonal_outline():
    loops = _Loops({1: (_hexagon(), [])})
    log = _Log()
    candidate = select_face("Gem", [Face(1, 'PLANE')], loops, log)
    layout = layout_face("Gem", candidate, AlignmentThresholds(), log)

    assert layout.rotation == pytest.approx(-math.pi / 4)
    assert any(t.startswith("[ALIGN] Gem: Rotating by") for t in log.texts())
    for seg in layout.outer:
        assert isinstance(seg, Line2D)
        dx, dy = seg.end[0] - seg.start[0], seg.end[1] - seg.start[1]
        if math.hypot(dx, dy) < 5.0:
            continue
        assert min(abs(dx), abs(dy)) == pytest.approx(0.0, abs=1e-9)
    assert min(s.start[0] for s in layout.outer) == pytest.approx(0.0)
    assert min(s.start[1] for s in layout.outer) == pytest.approx(0.0)


def test_layout_solid_without_planar_face():
    log = _Log()
    result = layout_solid("Tube", [Face(1, 'CYLINDRICAL_SURFACE')], _Loops({}), ProcessingOptions(), log)
    assert result is None
    assert ("[Tube] No valid planar face found", True) in log.messages


def test_process_solid_writes_group():
    svg = SvgBuilder()
    loops = _Loops({1: (_rectangle(50.0, 30.0), [])})
    layout = process_solid("Plate 1", [Face(1, 'PLANE')], loops, svg, ProcessingOptions(), _Log())
    doc = svg.build()
    assert layout.name == "Plate 1"
    assert '<g id="Plate1">' in doc
    assert 'd="M 0.000,0.000 l 50.000,0.000 l 0.000,30.000 l -50.000,0.000 l 0.000,-30.000"' in doc


def test_process_solid_emits_empty_group():
    svg = SvgBuilder()
    layout = process_solid("Tube", [Face(1, 'CYLINDRICAL_SURFACE')], _Loops({}), svg,
                           ProcessingOptions(), _Log())
    assert layout is None
    doc = svg.build()
    assert '  <g id="Tube">\n  </g>' in doc
    assert "<path" not in doc
