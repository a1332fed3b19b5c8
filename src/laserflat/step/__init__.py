"""STEP (ISO 10303-21) input: text reader, typed model and topology resolver."""

from .reader import read_step, StepFile
from .model import StepModel
from .topology import BoundingDimensions, Solid, StepTopologyResolver, TopologyResolver

__all__ = [
    'read_step',
    'StepFile',
    'StepModel',
    'BoundingDimensions',
    'Solid',
    'StepTopologyResolver',
    'TopologyResolver',
]
