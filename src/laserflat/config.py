"""Build :class:`ProcessingOptions` from mappings or YAML files.

A configuration document mirrors the option fields::

    thickness: 3.0
    thickness_tolerance: 0.5
    debug_mode: false
    alignment:
      diagonal_fraction: 0.3
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from laserflat.options import AlignmentThresholds, MessageCallback, ProcessingOptions

_OPTION_FIELDS = {f.name for f in fields(ProcessingOptions)} - {'on_message', 'alignment'}
_ALIGNMENT_FIELDS = {f.name for f in fields(AlignmentThresholds)}

_INT_FIELDS = ('samples_per_curve', 'faces_per_pseudo_solid')
_BOOL_FIELDS = ('debug_mode', 'sample_freeform_edges', 'isolate_solid_failures')


def _check_keys(data: Mapping[str, Any], allowed, section: str) -> None:
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ValueError(f"unknown {section} option(s): {', '.join(unknown)}")


def _coerce(name: str, value: Any) -> Any:
    if name in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise ValueError(f"option '{name}' must be true or false, got {value!r}")
        return value
    if isinstance(value, bool):
        raise ValueError(f"option '{name}' must be a number, got {value!r}")
    convert = int if name in _INT_FIELDS else float
    try:
        return convert(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"option '{name}': {exc}") from exc


def options_from_mapping(data: Optional[Mapping[str, Any]],
                         on_message: Optional[MessageCallback] = None) -> ProcessingOptions:
    """Create options from ``data``; missing keys keep their defaults."""

    data = dict(data or {})
    alignment_data = data.pop('alignment', None) or {}
    _check_keys(data, _OPTION_FIELDS, 'processing')
    if not isinstance(alignment_data, Mapping):
        raise ValueError("'alignment' must be a mapping")
    _check_keys(alignment_data, _ALIGNMENT_FIELDS, 'alignment')

    alignment = AlignmentThresholds(**{k: _coerce(k, v) for k, v in alignment_data.items()})
    values = {k: _coerce(k, v) for k, v in data.items()}
    return ProcessingOptions(alignment=alignment, on_message=on_message, **values)


def load_options(path, on_message: Optional[MessageCallback] = None) -> ProcessingOptions:
    """Read options from the YAML file at ``path``."""

    with Path(path).open('r', encoding='utf-8') as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return options_from_mapping(data, on_message=on_message)


__all__ = ['options_from_mapping', 'load_options']
