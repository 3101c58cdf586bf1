"""FFmpeg output capture and classification."""

import logging
import threading

FATAL_KEYWORDS = ("error", "fatal")


class FFmpegOutputMonitor:
    """Collects encoder output lines from both pipes and decides what to surface.

    Safe to feed from the two drain threads at once.
    """

    def __init__(self, encoder_id: str, logger: logging.Logger, debug: bool = False):
        self.encoder_id = encoder_id
        self.logger = logger
        self.debug = debug
        self._lines: list[str] = []
        self._lock = threading.Lock()

    def feed(self, stream_name: str, line: str) -> None:
        """Record one line read from ``stdout`` or ``stderr``."""
        line = line.rstrip("\r\n")
        with self._lock:
            self._lines.append(line)
        if stream_name == "stderr" and is_fatal_line(line):
            self.logger.warning("ffmpeg stderr (%s): %s", self.encoder_id, line)
        elif self.debug:
            self.logger.debug("ffmpeg %s (%s): %s", stream_name, self.encoder_id, line)

    @property
    def text(self) -> str:
        """All captured lines, newline-joined. Never truncated."""
        with self._lock:
            if not self._lines:
                return ""
            return "\n".join(self._lines) + "\n"


def is_fatal_line(line: str) -> bool:
    lowered = line.lower()
    return any(keyword in lowered for keyword in FATAL_KEYWORDS)
