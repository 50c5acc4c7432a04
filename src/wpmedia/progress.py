"""Progress bar for the media scan."""

import shutil
import sys
import time
from typing import Optional

from tqdm import tqdm


def _truncate_middle(text: str, max_width: int) -> str:
    """Truncate text to max_width, showing head...tail if too long."""
    if max_width <= 0 or len(text) <= max_width:
        return text
    if max_width <= 3:
        return text[:max_width]
    head = max_width // 2 - 1
    tail = max_width - head - 3
    return f"{text[:head]}...{text[-tail:]}"


class ProgressBar:
    """Single-line progress bar redrawn in place.

    Example:
        progress = ProgressBar("Check if media exists", total=len(ids))
        for attachment_id in ids:
            ...
            progress.tick()
        progress.finish()
    """

    def __init__(self, label: str, total: int, unit: str = "media", enabled: Optional[bool] = None, file=None):
        """Initialize progress display.

        Args:
            label: Text shown before the bar
            total: Number of items the scan will tick
            unit: Unit name shown in the rate column
            enabled: Force enable/disable. If None, auto-detects TTY.
            file: Output stream (default: stdout)
        """
        self.file = file or sys.stdout
        if enabled is None:
            enabled = self.file.isatty()
        self.enabled = enabled
        self.label = label
        self.total = total
        self.unit = unit
        self.n = 0
        self.desc = None
        self.start = time.monotonic()

    def _width(self) -> int:
        try:
            width = shutil.get_terminal_size((120, 20)).columns
        except OSError:
            width = 120
        return max(10, width - 2)

    def render(self, desc: Optional[str] = None) -> str:
        """Build the tqdm-formatted progress line."""
        width = self._width()
        elapsed = max(time.monotonic() - self.start, 1e-9)
        prefix = f"{self.label} {desc}" if desc else self.label
        line = tqdm.format_meter(
            self.n,
            self.total,
            elapsed,
            ncols=width,
            prefix=prefix,
            unit=self.unit,
        )
        return _truncate_middle(line, width)

    def tick(self, desc: Optional[str] = None, advance: int = 1) -> None:
        self.n += advance
        if not self.enabled:
            return
        self.desc = desc
        self.file.write("\r\x1b[2K" + self.render(desc))
        self.file.flush()

    def write(self, message: str) -> None:
        """Print a message on its own line, then redraw the bar below it."""
        if not self.enabled:
            print(message, file=self.file)
            return
        self.file.write("\r\x1b[2K" + message + "\n")
        self.file.write(self.render(self.desc))
        self.file.flush()

    def finish(self) -> None:
        """Draw the final state and move to a fresh line."""
        if not self.enabled:
            return
        self.file.write("\r\x1b[2K" + self.render() + "\n")
        self.file.flush()
