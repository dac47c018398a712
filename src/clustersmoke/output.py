"""User-facing output sink.

The engine only ever emits ``(kind, text)`` pairs; how they are rendered is
up to the sink. ``ConsoleSink`` writes plain prefixed lines.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import Protocol, TextIO


class OutputKind(str, Enum):
    HEADER = "header"
    SECTION = "section"
    STEP = "step"
    SUCCESS = "success"
    ERROR = "error"
    HINT = "hint"
    INFO = "info"


class OutputSink(Protocol):
    def emit(self, kind: OutputKind, text: str) -> None: ...


_PREFIXES = {
    OutputKind.HEADER: "",
    OutputKind.SECTION: "\n",
    OutputKind.STEP: "  → ",
    OutputKind.SUCCESS: "  ✅ ",
    OutputKind.ERROR: "  ❌ ",
    OutputKind.HINT: "  💡 ",
    OutputKind.INFO: "  ",
}


class ConsoleSink:
    """Render messages as prefixed lines on a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream

    def emit(self, kind: OutputKind, text: str) -> None:
        stream = self.stream or sys.stdout
        if kind == OutputKind.HEADER:
            rule = "=" * max(len(text), 20)
            stream.write(f"{rule}\n{text}\n{rule}\n")
        else:
            stream.write(f"{_PREFIXES[kind]}{text}\n")
        stream.flush()
