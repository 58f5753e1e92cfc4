"""Console logging for the artifact tracker.

All output goes to stderr so command output on stdout stays parseable:
- Errors with an optional suggestion line
- Warnings (e.g. a move rolled back)
- Debug details (sync outcomes, retries, orphaned comments) only when verbose
- ANSI colours when stderr is a terminal
"""

import sys
import traceback
from typing import Any


class Logger:
    """Stderr logger shared by the CLI, the MCP server, and the engine.

    Attributes:
        verbose: If True, DEBUG messages are printed
        use_colors: If True, use ANSI color codes
    """

    def __init__(self, verbose: bool = False, use_colors: bool = True) -> None:
        self.verbose = verbose
        self.use_colors = use_colors and sys.stderr.isatty()

    def _colorize(self, text: str, color_code: str) -> str:
        if not self.use_colors:
            return text
        return f"\033[{color_code}m{text}\033[0m"

    def _emit(self, text: str) -> None:
        print(text, file=sys.stderr)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message with optional key=value details (verbose only)."""
        if not self.verbose:
            return

        formatted = self._colorize(f"DEBUG: {message}", "36")  # Cyan
        if kwargs:
            details = " ".join(f"{k}={v!r}" for k, v in kwargs.items())
            formatted += f" ({details})"
        self._emit(formatted)

    def warning(self, message: str) -> None:
        self._emit(self._colorize(f"Warning: {message}", "33"))  # Yellow

    def error(self, message: str, suggestion: str | None = None) -> None:
        """Log error message with optional suggestion.

        Args:
            message: Error message to log
            suggestion: Optional hint for fixing the error
        """
        self._emit(self._colorize(f"Error: {message}", "31"))  # Red
        if suggestion:
            self._emit(self._colorize(f"  -> {suggestion}", "33"))

    def exception(self, message: str, exc: BaseException) -> None:
        """Log an exception; the traceback is included in verbose mode."""
        self.error(f"{message}: {exc}")

        if self.verbose:
            tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            self._emit(self._colorize(tb, "90"))  # Gray


_logger: Logger | None = None


def init_logger(verbose: bool = False, use_colors: bool = True) -> Logger:
    """Initialize the global logger.

    Args:
        verbose: Enable debug output
        use_colors: Enable ANSI color codes

    Returns:
        Logger instance
    """
    global _logger
    _logger = Logger(verbose=verbose, use_colors=use_colors)
    return _logger


def get_logger() -> Logger:
    """Get the global logger, creating a quiet default one on first use."""
    global _logger
    if _logger is None:
        _logger = Logger(verbose=False)
    return _logger


def reset_logger() -> None:
    """Drop the global logger (used by tests)."""
    global _logger
    _logger = None
