import math

import pytest


def _real(v):
    return f"{float(v):.6f}"


class StepWriter:
    """Builds the DATA section of a STEP file one entity at a time."""

    def __init__(self):
        self.lines = []

    def add(self, text):
        entity_id = len(self.lines) + 1
        self.lines.append(f"#{entity_id}={text};")
        return entity_id

    def point(self, p):
        return self.add("CARTESIAN_POINT('',({}))".format(",".join(_real(c) for c in p)))

    def direction(self, d):
        return self.add("DIRECTION('',({}))".format(",".join(_real(c) for c in d)))

    def placement(self, origin, axis=(0, 0, 1), ref=(1, 0, 0)):
        return self.add("AXIS2_PLACEMENT_3D('',#{},#{},#{})".format(
            self.point(origin), self.direction(axis), self.direction(ref)))

    def vertex(self, p):
        return self.add(f"VERTEX_POINT('',#{self.point(p)})")

    def line_edge(self, v1, p1, v2, p2):
        d = [b - a for a, b in zip(p1, p2)]
        length = math.sqrt(sum(c * c for c in d))
        vector = self.add(f"VECTOR('',#{self.direction([c / length for c in d])},{_real(length)})")
        line = self.add(f"LINE('',#{self.point(p1)},#{vector})")
        return self.add(f"EDGE_CURVE('',#{v1},#{v2},#{line},.T.)")

    def circle_edge(self, v1, v2, center, radius, axis=(0, 0, 1), ref=(1, 0, 0), same_sense=True):
        circle = self.add(f"CIRCLE('',#{self.placement(center, axis, ref)},{_real(radius)})")
        sense = ".T." if same_sense else ".F."
        return self.add(f"EDGE_CURVE('',#{v1},#{v2},#{circle},{sense})")

    def loop(self, edges):
        oriented = []
        for edge, forward in edges:
            flag = ".T." if forward else ".F."
            oriented.append(self.add(f"ORIENTED_EDGE('',*,*,#{edge},{flag})"))
        return self.add("EDGE_LOOP('',({}))".format(",".join(f"#{o}" for o in oriented)))

    def bound(self, loop, outer=True, orientation=True):
        kind = "FACE_OUTER_BOUND" if outer else "FACE_BOUND"
        flag = ".T." if orientation else ".F."
        return self.add(f"{kind}('',#{loop},{flag})")

    def plane_face(self, bounds, origin, normal, ref=(1, 0, 0)):
        plane = self.add(f"PLANE('',#{self.placement(origin, normal, ref)})")
        return self.add("ADVANCED_FACE('',({}),#{},.T.)".format(
            ",".join(f"#{b}" for b in bounds), plane))

    def cylinder_face(self, bounds, origin, radius):
        surface = self.add(f"CYLINDRICAL_SURFACE('',#{self.placement(origin)},{_real(radius)})")
        return self.add("ADVANCED_FACE('',({}),#{},.T.)".format(
            ",".join(f"#{b}" for b in bounds), surface))

    def solid(self, name, faces):
        shell = self.add("CLOSED_SHELL('',({}))".format(",".join(f"#{f}" for f in faces)))
        return self.add(f"MANIFOLD_SOLID_BREP('{name}',#{shell})")

    def text(self):
        return "\n".join([
            "ISO-10303-21;",
            "HEADER;",
            "FILE_DESCRIPTION(('test model'),'2;1');",
            "FILE_NAME('test.step','2024-01-01T00:00:00',(''),(''),'','','');",
            "FILE_SCHEMA(('AUTOMOTIVE_DESIGN { 1 0 10303 214 1 1 1 1 }'));",
            "ENDSEC;",
            "DATA;",
            *self.lines,
            "ENDSEC;",
            "END-ISO-10303-21;",
            "",
        ])


def rotate_about_x(angle):
    c, s = math.cos(angle), math.sin(angle)

    def apply(p):
        x, y, z = p
        return (x, y * c - z * s, y * s + z * c)
    return apply


def build_plate(writer, name="Plate", width=50.0, height=30.0, thickness=3.0, hole_radius=5.0,
                transform=None):
    """Box plate from the origin with a through hole at its centre; top face listed first.

    ``transform`` is a linear map applied to every point and direction.
    """

    xf = transform or (lambda p: tuple(float(c) for c in p))
    w, h, t = width, height, thickness
    corners = [(0, 0), (w, 0), (w, h), (0, h)]
    bottom = [xf((x, y, 0.0)) for x, y in corners]
    top = [xf((x, y, t)) for x, y in corners]
    vb = [writer.vertex(p) for p in bottom]
    vt = [writer.vertex(p) for p in top]

    eb = [writer.line_edge(vb[i], bottom[i], vb[(i + 1) % 4], bottom[(i + 1) % 4]) for i in range(4)]
    et = [writer.line_edge(vt[i], top[i], vt[(i + 1) % 4], top[(i + 1) % 4]) for i in range(4)]
    ev = [writer.line_edge(vb[i], bottom[i], vt[i], top[i]) for i in range(4)]

    faces = []
    top_bounds = [writer.bound(writer.loop([(e, True) for e in et]))]
    bottom_bounds = [writer.bound(writer.loop([(e, False) for e in reversed(eb)]))]
    z_axis, x_axis = xf((0, 0, 1)), xf((1, 0, 0))

    if hole_radius:
        cx, cy = w / 2.0, h / 2.0
        hb_p, ht_p = xf((cx + hole_radius, cy, 0.0)), xf((cx + hole_radius, cy, t))
        center_b, center_t = xf((cx, cy, 0.0)), xf((cx, cy, t))
        hb, ht = writer.vertex(hb_p), writer.vertex(ht_p)
        cb = writer.circle_edge(hb, hb, center_b, hole_radius, z_axis, x_axis)
        ct = writer.circle_edge(ht, ht, center_t, hole_radius, z_axis, x_axis)
        seam = writer.line_edge(hb, hb_p, ht, ht_p)
        top_bounds.append(writer.bound(writer.loop([(ct, False)]), outer=False))
        bottom_bounds.append(writer.bound(writer.loop([(cb, True)]), outer=False))
        hole_face = writer.cylinder_face(
            [writer.bound(writer.loop([(cb, False), (seam, True), (ct, True), (seam, False)]))],
            center_b, hole_radius)
    else:
        hole_face = None

    faces.append(writer.plane_face(top_bounds, top[0], z_axis, x_axis))
    faces.append(writer.plane_face(bottom_bounds, bottom[0], xf((0, 0, -1)), x_axis))
    normals = [(0, -1, 0), (1, 0, 0), (0, 1, 0), (-1, 0, 0)]
    for i in range(4):
        j = (i + 1) % 4
        loop = writer.loop([(eb[i], True), (ev[j], True), (et[i], False), (ev[i], False)])
        faces.append(writer.plane_face([writer.bound(loop)], bottom[i], xf(normals[i]), z_axis))
    if hole_face is not None:
        faces.append(hole_face)
    return writer.solid(name, faces)


def build_tube(writer, name="Tube", radius=10.0, height=3.0):
    """Solid bounded only by one cylindrical face."""

    pb, pt = (radius, 0.0, 0.0), (radius, 0.0, height)
    vb, vt = writer.vertex(pb), writer.vertex(pt)
    cb = writer.circle_edge(vb, vb, (0.0, 0.0, 0.0), radius)
    ct = writer.circle_edge(vt, vt, (0.0, 0.0, height), radius)
    seam = writer.line_edge(vb, pb, vt, pt)
    loop = writer.loop([(cb, True), (seam, True), (ct, False), (seam, False)])
    face = writer.cylinder_face([writer.bound(loop)], (0.0, 0.0, 0.0), radius)
    return writer.solid(name, [face])


@pytest.fixture
def step_writer():
    return StepWriter()


@pytest.fixture
def plate_step_text():
    writer = StepWriter()
    build_plate(writer)
    return writer.text()


@pytest.fixture
def tube_step_text():
    writer = StepWriter()
    build_tube(writer)
    return writer.text()


@pytest.fixture
def empty_step_text():
    return StepWriter().text()
