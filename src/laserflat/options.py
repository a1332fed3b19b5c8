"""Processing options, solid dimensions and processing results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional

if TYPE_CHECKING:  # pragma: no cover
    from laserflat.layout import SolidLayout

MessageCallback = Callable[[str, bool], None]

RETURN_NO_OUTPUT = 0
RETURN_SUCCESS = 1
RETURN_ERROR = 2


@dataclass(frozen=True)
class AlignmentThresholds:
    """Tuning of the diagonal axis-alignment heuristic.

    Attributes:
        min_edge_length: edges shorter than this (mm) are ignored
        axis_tolerance_deg: an edge within this of 0 or 90 degrees counts as aligned
        axis_aligned_fraction: aligned length share above which nothing rotates
        diagonal_angle_deg: the diagonal the heuristic looks for
        diagonal_tolerance_deg: half-width of the diagonal cluster
        diagonal_fraction: length share of the cluster needed to rotate
        min_rotation: rotations smaller than this (radians) are skipped
    """
    min_edge_length: float = 1.0
    axis_tolerance_deg: float = 5.0
    axis_aligned_fraction: float = 0.6
    diagonal_angle_deg: float = 45.0
    diagonal_tolerance_deg: float = 10.0
    diagonal_fraction: float = 0.3
    min_rotation: float = 0.01


@dataclass(frozen=True)
class ProcessingOptions:
    """Options controlling a conversion.

    Attributes:
        thickness: target material thickness (mm)
        thickness_tolerance: accepted deviation from ``thickness`` (mm)
        debug_mode: forward debug-only messages to ``on_message`` as well
        on_message: optional live message sink ``(text, is_debug_only)``
        samples_per_curve: sample count for ellipse and B-spline edges
        sample_freeform_edges: emit ellipse/B-spline edges as sampled polylines
        isolate_solid_failures: keep going when one solid fails instead of
            aborting the whole document
        alignment: axis-alignment heuristic thresholds
        faces_per_pseudo_solid: face group size used when a file has faces
            but no solid entities
    """
    thickness: float = 3.0
    thickness_tolerance: float = 0.5
    debug_mode: bool = False
    on_message: Optional[MessageCallback] = None
    samples_per_curve: int = 32
    sample_freeform_edges: bool = True
    isolate_solid_failures: bool = False
    alignment: AlignmentThresholds = field(default_factory=AlignmentThresholds)
    faces_per_pseudo_solid: int = 6

    def __post_init__(self):
        if self.thickness_tolerance < 0:
            raise ValueError(f"thickness_tolerance must be >= 0, got {self.thickness_tolerance}")
        if self.samples_per_curve < 1:
            raise ValueError(f"samples_per_curve must be >= 1, got {self.samples_per_curve}")
        if self.faces_per_pseudo_solid < 1:
            raise ValueError(f"faces_per_pseudo_solid must be >= 1, got {self.faces_per_pseudo_solid}")

    @property
    def min_thickness(self) -> float:
        return self.thickness - self.thickness_tolerance

    @property
    def max_thickness(self) -> float:
        return self.thickness + self.thickness_tolerance


@dataclass(frozen=True)
class Dimensions:
    """Extents of a solid along three directions, in no particular order."""
    width: float
    height: float
    depth: float

    def sorted(self) -> List[float]:
        return sorted((self.width, self.height, self.depth))

    def has_thin_dimension(self, min_thickness: float, max_thickness: float) -> bool:
        return any(min_thickness <= d <= max_thickness for d in self.sorted())

    def __str__(self) -> str:
        return f"[{self.width:.1f}, {self.height:.1f}, {self.depth:.1f}]"


@dataclass(frozen=True)
class ProcessMessage:
    text: str
    is_debug_only: bool


@dataclass
class ProcessResult:
    """Outcome of a conversion.

    Attributes:
        return_code: 0 no qualifying geometry, 1 success, 2 error
        document_text: the SVG document (empty unless ``return_code == 1``)
        messages: every message logged, debug-only ones included
        layouts: the 2D layout of each emitted solid
    """
    return_code: int = RETURN_NO_OUTPUT
    document_text: str = ""
    messages: List[ProcessMessage] = field(default_factory=list)
    layouts: List["SolidLayout"] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.return_code == RETURN_SUCCESS

    def message_texts(self, include_debug: bool = True) -> List[str]:
        return [m.text for m in self.messages if include_debug or not m.is_debug_only]


__all__ = [
    'MessageCallback',
    'RETURN_NO_OUTPUT',
    'RETURN_SUCCESS',
    'RETURN_ERROR',
    'AlignmentThresholds',
    'ProcessingOptions',
    'Dimensions',
    'ProcessMessage',
    'ProcessResult',
]
