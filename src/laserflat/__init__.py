# -*- coding: utf-8 -*-
"""Flatten thin B-Rep solids from STEP files into laser-cutting outlines."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("laserflat")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"


from laserflat.options import (  # noqa: E402
    AlignmentThresholds,
    Dimensions,
    ProcessingOptions,
    ProcessMessage,
    ProcessResult,
)
from laserflat.process import process, process_file  # noqa: E402

__all__ = [
    "__version__",
    "AlignmentThresholds",
    "Dimensions",
    "ProcessingOptions",
    "ProcessMessage",
    "ProcessResult",
    "process",
    "process_file",
]
