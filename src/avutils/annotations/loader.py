"""Format dispatch for annotation files."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from ..exceptions import ParseError
from .elan import read_elan
from .intervals import IntervalStore
from .rttm import read_rttm

__all__ = ["AnnotationFormat", "detect_format", "load_intervals"]

AnnotationFormat = Literal["rttm", "elan"]

_SUFFIXES: dict[str, AnnotationFormat] = {
    ".rttm": "rttm",
    ".eaf": "elan",
}


def detect_format(path: str | Path) -> AnnotationFormat:
    """Infer the annotation format from the file suffix."""
    suffix = Path(path).suffix.lower()
    try:
        return _SUFFIXES[suffix]
    except KeyError:
        raise ParseError(f"unknown annotation format for suffix {suffix!r}", path=path) from None


def load_intervals(
    path: str | Path,
    fmt: AnnotationFormat | None = None,
    *,
    include_dependents: bool = False,
) -> IntervalStore:
    """Read ``path`` as RTTM or ELAN, inferring the format when ``fmt`` is None."""
    resolved = fmt or detect_format(path)
    if resolved == "rttm":
        return read_rttm(path)
    if resolved == "elan":
        return read_elan(path, include_dependents=include_dependents)
    raise ParseError(f"unsupported annotation format {resolved!r}", path=path)
