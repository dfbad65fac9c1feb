"""Annotation parsing and writing (RTTM and ELAN)."""

from __future__ import annotations

from .elan import is_dependent_tier, read_elan
from .intervals import Interval, IntervalStore
from .loader import AnnotationFormat, detect_format, load_intervals
from .rttm import combine_rttm, parse_rttm_lines, read_rttm, write_rttm

__all__ = [
    "AnnotationFormat",
    "Interval",
    "IntervalStore",
    "combine_rttm",
    "detect_format",
    "is_dependent_tier",
    "load_intervals",
    "parse_rttm_lines",
    "read_elan",
    "read_rttm",
    "write_rttm",
]
