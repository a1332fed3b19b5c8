"""Conversion entry points: STEP text in, SVG document out.

Usage:
    result = process(text, ProcessingOptions(thickness=3.0))
    if result.succeeded:
        Path('out.svg').write_text(result.document_text)
"""

from __future__ import annotations

import logging
import traceback
from pathlib import Path
from typing import List, Optional

from laserflat.layout import SolidLayout, process_solid
from laserflat.messages import RecordingSink, make_sink
from laserflat.options import RETURN_ERROR, RETURN_SUCCESS, ProcessingOptions, ProcessResult
from laserflat.step.model import StepModel
from laserflat.step.topology import Solid, StepTopologyResolver
from laserflat.svg import SvgBuilder

logger = logging.getLogger(__name__)


def _num(value: float) -> str:
    """Shortest round-trip text of ``value``, without a trailing ``.0``."""

    text = repr(float(value))
    return text[:-2] if text.endswith('.0') else text


def _filter_thin_solids(solids: List[Solid], resolver: StepTopologyResolver,
                        options: ProcessingOptions, sink: RecordingSink) -> List[Solid]:
    thin = []
    for solid in solids:
        dimensions = resolver.extract_bounding_dimensions(solid.faces).dimensions
        if dimensions.has_thin_dimension(options.min_thickness, options.max_thickness):
            thin.append(solid)
            sink.debug(f"[FILTER] {solid.name}: dimensions {dimensions} - PASS "
                       f"(target thickness: {_num(options.thickness)}mm)")
        else:
            sink.always(f"Warning! [FILTER] {solid.name}: dimensions {dimensions} - FAIL "
                        f"(target thickness: {_num(options.thickness)}mm)")
    return thin


def _layout_solids(solids: List[Solid], resolver: StepTopologyResolver, svg: SvgBuilder,
                   options: ProcessingOptions, sink: RecordingSink) -> List[SolidLayout]:
    layouts = []
    for solid in solids:
        try:
            layout = process_solid(solid.name, solid.faces, resolver, svg, options, sink)
        except Exception as exc:
            if not options.isolate_solid_failures:
                raise
            logger.debug("solid %s failed", solid.name, exc_info=True)
            sink.always(f"Error: [{solid.name}] {exc}")
            continue
        if layout is not None:
            layouts.append(layout)
    return layouts


def process(file_contents: str, options: Optional[ProcessingOptions] = None) -> ProcessResult:
    """Convert the text of a STEP file into an SVG cutting layout.

    Returns a :class:`ProcessResult` whose ``return_code`` is 1 when at least
    one thin solid was laid out, 0 when the file holds no qualifying solid,
    and 2 when processing failed; in the last case the document is empty.
    """

    options = options or ProcessingOptions()
    sink = make_sink(options)
    result = ProcessResult(messages=sink.messages)
    try:
        sink.always("Parsing STEP file contents...")
        model = StepModel.from_text(file_contents)
        sink.debug(f"File loaded. Total items: {model.item_count}")
        sink.debug(f"Processing with thickness={_num(options.thickness)}mm, "
                   f"tolerance={_num(options.thickness_tolerance)}mm "
                   f"(range: {_num(options.min_thickness)}-{_num(options.max_thickness)}mm)")

        resolver = StepTopologyResolver(model, options)
        solids = resolver.resolve_solids()
        sink.debug(f"Found {len(solids)} solids")
        if not solids:
            sink.debug("No solids found in STEP file.")
            return result

        thin_solids = _filter_thin_solids(solids, resolver, options, sink)
        if not thin_solids:
            sink.always(f"Warning! No thin solids found matching thickness "
                        f"{_num(options.thickness)}mm (+/- {_num(options.thickness_tolerance)}mm).")
            return result

        svg = SvgBuilder()
        layouts = _layout_solids(thin_solids, resolver, svg, options, sink)
        result.return_code = RETURN_SUCCESS
        result.document_text = svg.build()
        result.layouts = layouts
        return result
    except Exception as exc:
        sink.always(f"Error: {exc}")
        sink.always(traceback.format_exc())
        return ProcessResult(return_code=RETURN_ERROR, messages=sink.messages)


def process_file(path, options: Optional[ProcessingOptions] = None) -> ProcessResult:
    """Read ``path`` as UTF-8 text and :func:`process` it."""

    try:
        text = Path(path).read_text(encoding='utf-8-sig', errors='replace')
    except OSError as exc:
        sink = make_sink(options or ProcessingOptions())
        sink.always(f"Error: {exc}")
        return ProcessResult(return_code=RETURN_ERROR, messages=sink.messages)
    return process(text, options)


__all__ = ['process', 'process_file']
