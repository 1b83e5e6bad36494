"""
Colour-coded console logging with stage timing for the inpainting service.
"""

import os
import sys
import time
from contextlib import contextmanager
from typing import Iterator, Optional


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    BLUE = "\033[34m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"

    BRIGHT_GREEN = "\033[92m"


class Logger:
    """Simple logger with color coding, job prefixes and timing."""

    def __init__(self, name: str = "Pipeline", debug_enabled: Optional[bool] = None):
        self.name = name
        if debug_enabled is None:
            debug_enabled = os.environ.get("LOG_LEVEL", "INFO").upper() == "DEBUG"
        self.debug_enabled = debug_enabled

    def _format(self, message: str, color: str, prefix: str = "") -> str:
        timestamp = time.strftime("%H:%M:%S")
        colored_prefix = f"{color}{Colors.BOLD}{prefix}{Colors.RESET}" if prefix else ""
        colored_msg = f"{color}{message}{Colors.RESET}"
        return f"[{timestamp}] {colored_prefix} {colored_msg}"

    def _emit(self, line: str, stream=None):
        print(line, file=stream or sys.stdout, flush=True)

    def info(self, message: str):
        """Log an info message (blue)."""
        self._emit(self._format(message, Colors.BLUE, "INFO"))

    def debug(self, message: str):
        """Log a debug message (dim); only when LOG_LEVEL=DEBUG."""
        if self.debug_enabled:
            self._emit(self._format(message, Colors.DIM, "DEBUG"))

    def success(self, message: str):
        """Log a success message (green)."""
        self._emit(self._format(message, Colors.BRIGHT_GREEN, "✓"))

    def warning(self, message: str):
        """Log a warning message (yellow)."""
        self._emit(self._format(message, Colors.YELLOW, "⚠"), sys.stderr)

    def error(self, message: str):
        """Log an error message (red)."""
        self._emit(self._format(message, Colors.RED, "✗"), sys.stderr)

    def step(self, message: str):
        """Log a pipeline step (cyan)."""
        self._emit(self._format(message, Colors.CYAN, "→"))

    def stage(self, message: str):
        """Log a pipeline stage (magenta)."""
        self._emit(self._format(message, Colors.MAGENTA, "═"))

    @contextmanager
    def timer(self, step_name: str) -> Iterator[None]:
        """Time a step. A step that raises is logged as failed instead of completed."""
        self.step(f"Starting: {step_name}")
        start = time.time()
        failed = False
        try:
            yield
        except BaseException:
            failed = True
            raise
        finally:
            elapsed = time.time() - start
            if failed:
                self.error(f"Failed: {step_name} ({elapsed:.2f}s)")
            else:
                self.success(f"Completed: {step_name} ({elapsed:.2f}s)")


# Global logger instance
logger = Logger("Label Inpaint")
