"""Exception types for avutils."""

from __future__ import annotations

from pathlib import Path

__all__ = ["AvutilsError", "ConfigError", "DivimeError", "ParseError"]


class AvutilsError(Exception):
    """Base class for errors raised by avutils."""


class ParseError(AvutilsError):
    """Raised when an annotation file cannot be parsed.

    ``path`` and ``line`` are populated whenever the failure can be pinned to a
    location in the input; ``line`` is 1-based.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | Path | None = None,
        line: int | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.line = line
        location = ""
        if self.path is not None:
            location = str(self.path)
            if line is not None:
                location = f"{location}:{line}"
        super().__init__(f"{location}: {message}" if location else message)


class ConfigError(AvutilsError, RuntimeError):
    """Raised when configuration loading or validation fails."""


class DivimeError(AvutilsError, RuntimeError):
    """Raised when a DiViMe collaborator (vagrant, sox) exits with an error."""
