"""Frame-based scoring of annotations against a reference."""

from __future__ import annotations

from .evaluate import (
    FRAME_BASE_COLUMNS,
    NO_LABEL,
    SUMMARY_COLUMNS,
    ConfusionCounts,
    EvaluationResult,
    FrameMatrix,
    RoleScore,
    evaluate_roles,
    label_key,
    score_frames,
)
from .frames import FrameSequence, frame_count, frame_range, resample
from .roles import ALLSPEECH, RoleMap, RoleMapper

__all__ = [
    "ALLSPEECH",
    "FRAME_BASE_COLUMNS",
    "NO_LABEL",
    "SUMMARY_COLUMNS",
    "ConfusionCounts",
    "EvaluationResult",
    "FrameMatrix",
    "FrameSequence",
    "RoleMap",
    "RoleMapper",
    "RoleScore",
    "evaluate_roles",
    "frame_count",
    "frame_range",
    "label_key",
    "resample",
    "score_frames",
]
