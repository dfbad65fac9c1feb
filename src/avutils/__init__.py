"""Annotation conversion, DiViMe orchestration and frame-based annotation scoring."""

from __future__ import annotations

from .annotations import Interval, IntervalStore, load_intervals, read_elan, read_rttm, write_rttm
from .exceptions import AvutilsError, ConfigError, DivimeError, ParseError
from .scoring import RoleMap, evaluate_roles

__version__ = "0.3.0"

__all__ = [
    "AvutilsError",
    "ConfigError",
    "DivimeError",
    "Interval",
    "IntervalStore",
    "ParseError",
    "RoleMap",
    "evaluate_roles",
    "load_intervals",
    "read_elan",
    "read_rttm",
    "write_rttm",
]
