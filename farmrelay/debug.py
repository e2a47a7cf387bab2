"""Console debug output with verbosity levels and an optional display sink."""

from __future__ import annotations

import sys
from typing import Callable, Optional, TextIO


class DebugLogger:
    """Writes debug messages; level 1 and 2 messages appear only at that verbosity."""

    def __init__(
        self,
        enabled: bool = True,
        level: int = 0,
        stream: Optional[TextIO] = None,
        display: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.enabled = enabled
        self.level = level
        self.stream = stream if stream is not None else sys.stdout
        self.display = display

    def _write(self, prefix: str, message: object) -> None:
        self.stream.write(f"{prefix}{message}\n")

    def dbg(self, message: object) -> None:
        """Always-shown message; also sent to the display sink if one is set."""
        if self.enabled:
            self._write("    ", message)
        if self.display is not None:
            self.display(str(message))

    def dbg1(self, message: object) -> None:
        """Troubleshooting message, shown at level 1 and above."""
        if self.enabled and self.level >= 1:
            self._write("[1] ", message)

    def dbg2(self, message: object) -> None:
        """Development message, shown at level 2 and above."""
        if self.enabled and self.level >= 2:
            self._write("[2] ", message)