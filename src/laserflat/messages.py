"""Message sinks.

Every diagnostic goes to one sink as ``(text, is_debug_only)``.  Sinks decide
their own policy: :class:`FilteringSink` drops debug-only messages unless
debug mode is on, :class:`RecordingSink` keeps everything and forwards to an
inner sink.  The recorded list becomes :attr:`ProcessResult.messages`.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from laserflat.options import MessageCallback, ProcessingOptions, ProcessMessage

logger = logging.getLogger("laserflat")


class FilteringSink:
    """Forward always-visible messages, and debug-only ones in debug mode."""

    def __init__(self, target: MessageCallback, debug_mode: bool = False):
        self.target = target
        self.debug_mode = debug_mode

    def __call__(self, text: str, is_debug_only: bool) -> None:
        if self.debug_mode or not is_debug_only:
            self.target(text, is_debug_only)


class RecordingSink:
    """Record every message, mirror it to the ``laserflat`` logger, then forward."""

    def __init__(self, inner: Optional[MessageCallback] = None):
        self.inner = inner
        self.messages: List[ProcessMessage] = []

    def __call__(self, text: str, is_debug_only: bool) -> None:
        self.messages.append(ProcessMessage(text, is_debug_only))
        logger.log(logging.DEBUG if is_debug_only else logging.INFO, text)
        if self.inner is not None:
            self.inner(text, is_debug_only)

    def debug(self, text: str) -> None:
        self(text, True)

    def always(self, text: str) -> None:
        self(text, False)


def make_sink(options: ProcessingOptions) -> RecordingSink:
    """Recording sink wrapping the caller's live callback, if any."""

    if options.on_message is None:
        return RecordingSink()
    return RecordingSink(FilteringSink(options.on_message, options.debug_mode))


__all__ = ['FilteringSink', 'RecordingSink', 'make_sink']
