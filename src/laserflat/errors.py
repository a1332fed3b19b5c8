"""Exceptions raised by laserflat.

Local geometry fallbacks never raise; these exceptions cover structural
problems that the top-level :func:`laserflat.process.process` turns into
return code 2.
"""

from typing import Optional


class LaserFlatError(Exception):
    """Base exception for laserflat errors."""
    pass


class StepParseError(LaserFlatError):
    """Malformed ISO 10303-21 text."""

    def __init__(self, message: str, offset: int = 0, line: Optional[int] = None):
        self.message = message
        self.offset = offset
        self.line = line
        super().__init__(message)

    def __str__(self) -> str:
        if self.line is None:
            return f"{self.message} (offset {self.offset})"
        return f"line {self.line}: {self.message}"


class TopologyError(LaserFlatError):
    """The entity graph cannot be walked the way the resolver needs."""
    pass
