"""Frame-based comparison of a test annotation against a reference annotation.

The summary table has one row per role with the columns listed in
:data:`SUMMARY_COLUMNS`. Ratios whose denominator is zero are ``NaN`` (``None``
once serialised), which is distinct from a genuine score of ``0.0``.

The raw frame matrix (``summarize=False``) has the columns ``frame``, ``start``,
``end``, ``test``, ``ref`` followed by ``test:<role>`` and ``ref:<role>`` booleans
for every role in class order. ``test``/``ref`` hold the ``+``-joined active roles
of the frame, or ``<none>``.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from ..annotations.intervals import IntervalStore
from ..annotations.loader import load_intervals
from ..exceptions import ConfigError
from ..utils.io import save_csv, save_json
from ..utils.logging import get_logger
from .frames import FrameSequence, resample
from .roles import ALLSPEECH, RoleMap, RoleMapper, RoleSpec

LOGGER = get_logger(__name__)

__all__ = [
    "FRAME_BASE_COLUMNS",
    "NO_LABEL",
    "SUMMARY_COLUMNS",
    "ConfusionCounts",
    "EvaluationResult",
    "FrameMatrix",
    "RoleScore",
    "evaluate_roles",
    "label_key",
    "score_frames",
]

NO_LABEL = "<none>"
LABEL_SEPARATOR = "+"
SUMMARY_COLUMNS = (
    "role",
    "tp",
    "fp",
    "fn",
    "tn",
    "precision",
    "recall",
    "f1",
    "accuracy",
    "test_frames",
    "ref_frames",
)
FRAME_BASE_COLUMNS = ("frame", "start", "end", "test", "ref")

Annotation = IntervalStore | str | Path


def _ratio(numerator: int, denominator: int) -> float:
    if denominator == 0:
        return math.nan
    return numerator / denominator


def _json_number(value: float) -> float | None:
    return None if math.isnan(value) else value


def label_key(labels: Iterable[str]) -> str:
    """Render a set of active roles as a stable string."""
    ordered = sorted(labels)
    return LABEL_SEPARATOR.join(ordered) if ordered else NO_LABEL


@dataclass(frozen=True, slots=True)
class ConfusionCounts:
    """2x2 frame counts for one role."""

    tp: int
    fp: int
    fn: int
    tn: int

    @classmethod
    def from_vectors(cls, test: np.ndarray, reference: np.ndarray) -> ConfusionCounts:
        return cls(
            tp=int(np.count_nonzero(test & reference)),
            fp=int(np.count_nonzero(test & ~reference)),
            fn=int(np.count_nonzero(~test & reference)),
            tn=int(np.count_nonzero(~test & ~reference)),
        )

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.fn + self.tn

    def as_matrix(self) -> np.ndarray:
        """Return ``[[tp, fp], [fn, tn]]`` (rows: test active/inactive)."""
        return np.array([[self.tp, self.fp], [self.fn, self.tn]], dtype=np.int64)


@dataclass(frozen=True, slots=True)
class RoleScore:
    """Summary statistics of one role."""

    role: str
    counts: ConfusionCounts

    @property
    def precision(self) -> float:
        return _ratio(self.counts.tp, self.counts.tp + self.counts.fp)

    @property
    def recall(self) -> float:
        return _ratio(self.counts.tp, self.counts.tp + self.counts.fn)

    @property
    def f1(self) -> float:
        return _ratio(2 * self.counts.tp, 2 * self.counts.tp + self.counts.fp + self.counts.fn)

    @property
    def accuracy(self) -> float:
        return _ratio(self.counts.tp + self.counts.tn, self.counts.total)

    def to_row(self) -> dict[str, Any]:
        counts = self.counts
        return {
            "role": self.role,
            "tp": counts.tp,
            "fp": counts.fp,
            "fn": counts.fn,
            "tn": counts.tn,
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "accuracy": self.accuracy,
            "test_frames": counts.tp + counts.fp,
            "ref_frames": counts.tp + counts.fn,
        }


@dataclass(slots=True)
class EvaluationResult:
    """Per-role scores plus the pooled label-set confusion."""

    scores: list[RoleScore]
    pooled: dict[tuple[str, str], int]
    overall_accuracy: float
    n_frames: int
    resolution: float
    duration: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def roles(self) -> list[str]:
        return [score.role for score in self.scores]

    def __getitem__(self, role: str) -> RoleScore:
        for score in self.scores:
            if score.role == role:
                return score
        raise KeyError(role)

    def to_rows(self) -> list[dict[str, Any]]:
        """Return the summary table, one mapping per role."""
        return [score.to_row() for score in self.scores]

    def pooled_matrix(self) -> tuple[list[str], list[str], np.ndarray]:
        """Return (test keys, reference keys, counts) of the pooled confusion."""
        test_keys = sorted({key for key, _ in self.pooled})
        ref_keys = sorted({key for _, key in self.pooled})
        matrix = np.zeros((len(test_keys), len(ref_keys)), dtype=np.int64)
        for (test_key, ref_key), count in self.pooled.items():
            matrix[test_keys.index(test_key), ref_keys.index(ref_key)] = count
        return test_keys, ref_keys, matrix

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable version; NaN ratios become ``None``."""
        rows = []
        for row in self.to_rows():
            for key in ("precision", "recall", "f1", "accuracy"):
                row[key] = _json_number(row[key])
            rows.append(row)
        return {
            "resolution": self.resolution,
            "duration": self.duration,
            "n_frames": self.n_frames,
            "overall_accuracy": _json_number(self.overall_accuracy),
            "roles": rows,
            "pooled": [
                {"test": test_key, "ref": ref_key, "frames": count}
                for (test_key, ref_key), count in sorted(self.pooled.items())
            ],
            "metadata": dict(self.metadata),
        }

    def to_csv(self, path: str | Path) -> None:
        save_csv(self.to_rows(), path, SUMMARY_COLUMNS)

    def to_json(self, path: str | Path) -> None:
        save_json(self.to_dict(), path)


@dataclass(slots=True)
class FrameMatrix:
    """Frame-by-frame test and reference labels for external analysis."""

    test: FrameSequence
    reference: FrameSequence

    @property
    def roles(self) -> tuple[str, ...]:
        return self.test.roles

    @property
    def columns(self) -> list[str]:
        role_columns = []
        for role in self.roles:
            role_columns.extend([f"test:{role}", f"ref:{role}"])
        return [*FRAME_BASE_COLUMNS, *role_columns]

    def __len__(self) -> int:
        return self.test.n_frames

    def to_rows(self) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        test_sets = self.test.label_sets()
        ref_sets = self.reference.label_sets()
        for index in range(self.test.n_frames):
            start, end = self.test.frame_bounds(index)
            row: dict[str, Any] = {
                "frame": index,
                "start": start,
                "end": end,
                "test": label_key(test_sets[index]),
                "ref": label_key(ref_sets[index]),
            }
            for position, role in enumerate(self.roles):
                row[f"test:{role}"] = bool(self.test.active[index, position])
                row[f"ref:{role}"] = bool(self.reference.active[index, position])
            rows.append(row)
        return rows

    def to_csv(self, path: str | Path) -> None:
        save_csv(self.to_rows(), path, self.columns)


def score_frames(test: FrameSequence, reference: FrameSequence) -> EvaluationResult:
    """Score two frame sequences built on the same grid and role columns."""
    if test.n_frames != reference.n_frames:
        raise ValueError(
            f"Frame sequences differ in length: test={test.n_frames}, "
            f"reference={reference.n_frames}"
        )
    if test.resolution != reference.resolution:
        raise ValueError(
            f"Frame sequences differ in resolution: test={test.resolution}, "
            f"reference={reference.resolution}"
        )
    if test.roles != reference.roles:
        raise ValueError(f"Frame sequences differ in roles: {test.roles} vs {reference.roles}")

    scores: list[RoleScore] = []
    for position, role in enumerate(test.roles):
        counts = ConfusionCounts.from_vectors(
            test.active[:, position], reference.active[:, position]
        )
        if counts.tp + counts.fn == 0:
            LOGGER.info("Role %s has no reference frames; recall is undefined.", role)
        scores.append(RoleScore(role=role, counts=counts))

    pooled: Counter[tuple[str, str]] = Counter(
        (label_key(test_set), label_key(ref_set))
        for test_set, ref_set in zip(test.label_sets(), reference.label_sets())
    )
    matching = int(np.count_nonzero(np.all(test.active == reference.active, axis=1)))

    return EvaluationResult(
        scores=scores,
        pooled=dict(pooled),
        overall_accuracy=_ratio(matching, test.n_frames),
        n_frames=test.n_frames,
        resolution=test.resolution,
        duration=test.duration,
    )


def _as_store(annotation: Annotation, *, include_dependents: bool) -> IntervalStore:
    if isinstance(annotation, IntervalStore):
        return annotation
    return load_intervals(annotation, include_dependents=include_dependents)


def _class_order(
    test_mapper: RoleMapper,
    ref_mapper: RoleMapper,
    test_store: IntervalStore,
    ref_store: IntervalStore,
) -> list[str]:
    roles = set(test_mapper.roles(test_store.labels()))
    roles.update(ref_mapper.roles(ref_store.labels()))
    return sorted(roles)


def evaluate_roles(
    test: Annotation,
    reference: Annotation,
    *,
    resolution: float = 1.0,
    duration: float | None = None,
    test_roles: RoleMap | RoleSpec | None = None,
    ref_roles: RoleMap | RoleSpec | None = None,
    test_ignore: Sequence[str] = (),
    ref_ignore: Sequence[str] = (),
    allspeech: bool = False,
    summarize: bool = True,
    include_dependents: bool = False,
) -> EvaluationResult | FrameMatrix:
    """Compare a test annotation with a reference annotation frame by frame.

    Args:
        test: Test annotation, as a path (RTTM or ELAN) or an IntervalStore
        reference: Reference annotation, as a path or an IntervalStore
        resolution: Frame length in seconds
        duration: Length of the shared grid; defaults to the latest interval end on either side
        test_roles: Role map for the test side (identity when omitted)
        ref_roles: Role map for the reference side (identity when omitted)
        test_ignore: Raw test labels excluded from role scoring
        ref_ignore: Raw reference labels excluded from role scoring
        allspeech: Additionally score the ``allspeech`` pseudo-class built from all intervals
        summarize: Return summary statistics; otherwise the raw frame matrix
        include_dependents: Keep dependent ELAN tiers when reading ELAN files

    Returns:
        EvaluationResult when ``summarize`` is true, FrameMatrix otherwise
    """
    if not resolution > 0:
        raise ValueError(f"resolution must be > 0, got {resolution}")

    # Role maps are validated before any file is read.
    test_mapper = RoleMapper(test_roles, ignore=test_ignore)
    ref_mapper = RoleMapper(ref_roles, ignore=ref_ignore)

    test_store = _as_store(test, include_dependents=include_dependents)
    ref_store = _as_store(reference, include_dependents=include_dependents)

    classes = _class_order(test_mapper, ref_mapper, test_store, ref_store)
    if allspeech:
        if ALLSPEECH in classes:
            raise ConfigError(
                f"Role name {ALLSPEECH!r} is reserved for the allspeech aggregate."
            )
        classes.append(ALLSPEECH)

    if duration is None:
        duration = max(test_store.max_end(), ref_store.max_end())
        if duration <= 0:
            raise ValueError("Cannot infer a duration from two empty annotations; pass duration.")
        LOGGER.debug("Inferred duration %.3fs from annotations", duration)

    test_frames = resample(
        test_store,
        resolution,
        duration,
        mapper=test_mapper,
        roles=classes,
        allspeech=allspeech,
        side="test",
    )
    ref_frames = resample(
        ref_store,
        resolution,
        duration,
        mapper=ref_mapper,
        roles=classes,
        allspeech=allspeech,
        side="reference",
    )

    if not summarize:
        return FrameMatrix(test=test_frames, reference=ref_frames)

    result = score_frames(test_frames, ref_frames)
    result.metadata.update(
        {
            "test": test_store.source or test_store.file_id,
            "reference": ref_store.source or ref_store.file_id,
            "allspeech": allspeech,
        }
    )
    LOGGER.info(
        "Scored %d roles over %d frames (%.3fs resolution)",
        len(result.scores),
        result.n_frames,
        resolution,
    )
    return result
