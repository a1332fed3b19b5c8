"""SVG document and path emission.

The document has a fixed physical page of 482 x 266 mm with a matching
viewBox, so one user unit is one millimetre.  Each solid becomes a ``<g>``
group holding one path for its outer wall and one per hole.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from laserflat.segments import Segment2D, fmt, to_arc_path_command, to_path_command

PAGE_WIDTH_MM = 482
PAGE_HEIGHT_MM = 266

OUTER_STROKE = "#9600c8"
HOLE_STROKE = "#960000"
STROKE_WIDTH = 0.2

PLACEHOLDER_ID = "object"

# paths whose end is farther than this from their start get a closing Z
CLOSE_TOLERANCE = 0.001

def sanitize_id(name: Optional[str]) -> str:
    """Keep letters, decimal digits, ``_`` and ``-``; fall back to a placeholder.

    Superscripts and other numeric symbols are not digits here.
    """

    if name is None or not name.strip():
        return PLACEHOLDER_ID
    cleaned = "".join(ch for ch in name if ch.isalpha() or ch.isdecimal() or ch in "_-")
    return cleaned or PLACEHOLDER_ID


def format_width(value: float) -> str:
    """Up to three decimals with trailing zeros dropped (``0.2``, ``1``, ``0.125``)."""

    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def _build_path(segments: Sequence[Segment2D], command) -> str:
    if not segments:
        return ""
    first = segments[0]
    parts = [f"M {fmt(first.start[0])},{fmt(first.start[1])}"]
    parts.extend(command(segment) for segment in segments)
    last = segments[-1]
    if (abs(last.end[0] - first.start[0]) > CLOSE_TOLERANCE
            or abs(last.end[1] - first.start[1]) > CLOSE_TOLERANCE):
        parts.append("Z")
    return " ".join(parts)


def build_path_from_segments(segments: Sequence[Segment2D]) -> str:
    """Path data with every arc approximated by line commands."""

    return _build_path(segments, to_path_command)


def build_path_from_segments_as_curves(segments: Sequence[Segment2D]) -> str:
    """Path data with true SVG arc commands."""

    return _build_path(segments, to_arc_path_command)


class SvgBuilder:
    """Accumulates groups and paths and renders the final document."""

    def __init__(self, width_mm: float = PAGE_WIDTH_MM, height_mm: float = PAGE_HEIGHT_MM):
        self.width_mm = width_mm
        self.height_mm = height_mm
        self._content: List[str] = []
        self._open_groups = 0

    def begin_group(self, name: Optional[str]) -> None:
        self._content.append(f'  <g id="{sanitize_id(name)}">')
        self._open_groups += 1

    def end_group(self) -> None:
        if self._open_groups == 0:
            raise RuntimeError("end_group() without matching begin_group()")
        self._content.append("  </g>")
        self._open_groups -= 1

    def path(self, d: str, stroke_width: float = STROKE_WIDTH, fill: str = "none",
             stroke: str = OUTER_STROKE) -> None:
        self._content.append(
            f'    <path d="{d}" stroke="{stroke}" stroke-width="{format_width(stroke_width)}" '
            f'fill="{fill}" vector-effect="non-scaling-stroke"/>'
        )

    def build(self) -> str:
        w = format_width(self.width_mm)
        h = format_width(self.height_mm)
        lines = [
            f'<svg xmlns="http://www.w3.org/2000/svg" version="1.1" '
            f'width="{w}mm" height="{h}mm" viewBox="0 0 {w} {h}">',
            "<defs/>",
        ]
        lines.extend(self._content)
        lines.extend("  </g>" for _ in range(self._open_groups))
        lines.append("</svg>")
        return "\n".join(lines) + "\n"


__all__ = [
    'PAGE_WIDTH_MM',
    'PAGE_HEIGHT_MM',
    'OUTER_STROKE',
    'HOLE_STROKE',
    'STROKE_WIDTH',
    'PLACEHOLDER_ID',
    'sanitize_id',
    'format_width',
    'build_path_from_segments',
    'build_path_from_segments_as_curves',
    'SvgBuilder',
]
