"""DXF export of flattened layouts using ezdxf.

Outer walls go to the ``OUTER`` layer and cutouts to ``HOLES``.  Coordinates
are mirrored in Y so the drawing matches the SVG output, whose Y axis points
down.
"""

import math
from pathlib import Path
from typing import Iterable

import ezdxf

from laserflat.layout import SolidLayout
from laserflat.segments import TWO_PI, Arc2D, Line2D, Segment2D

OUTER_LAYER = 'OUTER'
HOLES_LAYER = 'HOLES'

# sweeps within this of a full turn are written as circles
FULL_TURN_TOLERANCE = 1e-9


def new_document():
    """Empty R2010 drawing in millimetres with the cutting layers defined."""

    doc = ezdxf.new(dxfversion='R2010', setup=False)
    doc.header['$MEASUREMENT'] = 1  # metric
    doc.header['$INSUNITS'] = 4  # millimeters
    doc.layers.new(OUTER_LAYER, dxfattribs={'color': 6})  # magenta
    doc.layers.new(HOLES_LAYER, dxfattribs={'color': 1})  # red
    return doc


def _flip(p):
    return (p[0], -p[1])


def add_segment(msp, segment: Segment2D, layer: str) -> None:
    attribs = {'layer': layer}
    if isinstance(segment, Line2D):
        msp.add_line(_flip(segment.start), _flip(segment.end), dxfattribs=attribs)
    elif isinstance(segment, Arc2D):
        if segment.is_degenerate:
            msp.add_line(_flip(segment.start), _flip(segment.end), dxfattribs=attribs)
            return
        center = _flip(segment.center)
        # mirroring reverses the rotation sense
        sweep = -segment.angular_sweep
        if abs(sweep) >= TWO_PI - FULL_TURN_TOLERANCE:
            msp.add_circle(center, segment.radius_x, dxfattribs=attribs)
            return
        start = _flip(segment.start)
        start_angle = math.degrees(math.atan2(start[1] - center[1], start[0] - center[0]))
        end_angle = start_angle + math.degrees(sweep)
        if sweep < 0:
            start_angle, end_angle = end_angle, start_angle
        msp.add_arc(center, segment.radius_x, start_angle, end_angle, dxfattribs=attribs)
    else:
        raise TypeError(f"not a 2D segment: {segment!r}")


def build_document(layouts: Iterable[SolidLayout]):
    doc = new_document()
    msp = doc.modelspace()
    for layout in layouts:
        for segment in layout.outer:
            add_segment(msp, segment, OUTER_LAYER)
        for hole in layout.holes:
            for segment in hole:
                add_segment(msp, segment, HOLES_LAYER)
    return doc


def write_dxf(layouts: Iterable[SolidLayout], output) -> None:
    """Write ``layouts`` to ``output``, a file path or a text stream."""

    doc = build_document(layouts)
    if hasattr(output, 'write'):
        doc.write(output)
    else:
        doc.saveas(Path(output))


__all__ = [
    'OUTER_LAYER',
    'HOLES_LAYER',
    'new_document',
    'add_segment',
    'build_document',
    'write_dxf',
]
