"""Resampling labeled intervals onto a fixed frame grid."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..annotations.intervals import IntervalStore
from ..utils.logging import get_logger
from .roles import ALLSPEECH, RoleMapper

LOGGER = get_logger(__name__)

__all__ = ["FrameSequence", "frame_count", "frame_range", "resample"]

# Quotients are rounded before floor/ceil so that e.g. 0.3 / 0.1 lands on frame 3.
_INDEX_DECIMALS = 9


def _validate_grid(resolution: float, duration: float) -> None:
    if not resolution > 0:
        raise ValueError(f"resolution must be > 0, got {resolution}")
    if not duration > 0:
        raise ValueError(f"duration must be > 0, got {duration}")


def frame_count(duration: float, resolution: float) -> int:
    """Return ``ceil(duration / resolution)``."""
    _validate_grid(resolution, duration)
    return max(1, int(math.ceil(round(duration / resolution, _INDEX_DECIMALS))))


def frame_range(start: float, end: float, resolution: float) -> tuple[int, int]:
    """Return the half-open frame index range touched by ``[start, end)``."""
    first = int(math.floor(round(start / resolution, _INDEX_DECIMALS)))
    stop = int(math.ceil(round(end / resolution, _INDEX_DECIMALS)))
    return first, stop


@dataclass(frozen=True, slots=True, eq=False)
class FrameSequence:
    """Per-frame role activity for one annotation.

    ``active[i, j]`` is True when role ``roles[j]`` is present in frame ``i``,
    which covers ``[i * resolution, (i + 1) * resolution)``.
    """

    roles: tuple[str, ...]
    active: np.ndarray
    resolution: float
    duration: float

    @property
    def n_frames(self) -> int:
        return int(self.active.shape[0])

    def column(self, role: str) -> np.ndarray:
        """Return the boolean activity vector of ``role``."""
        try:
            index = self.roles.index(role)
        except ValueError:
            raise KeyError(f"Role {role!r} is not part of this frame sequence.") from None
        return self.active[:, index]

    def label_sets(self) -> list[frozenset[str]]:
        """Return the set of active roles for every frame."""
        return [
            frozenset(role for role, flag in zip(self.roles, row) if flag) for row in self.active
        ]

    def frame_bounds(self, index: int) -> tuple[float, float]:
        return index * self.resolution, (index + 1) * self.resolution

    def same_frames(self, other: FrameSequence) -> bool:
        return (
            self.roles == other.roles
            and self.resolution == other.resolution
            and np.array_equal(self.active, other.active)
        )


def resample(
    store: IntervalStore,
    resolution: float,
    duration: float,
    *,
    mapper: RoleMapper | None = None,
    roles: Sequence[str] | None = None,
    allspeech: bool = False,
    side: str = "annotation",
) -> FrameSequence:
    """Convert ``store`` into a :class:`FrameSequence`.

    Args:
        store: Intervals to resample
        resolution: Frame length in seconds
        duration: Total duration in seconds; yields ``ceil(duration / resolution)`` frames
        mapper: Role mapper applied to each tier (identity when omitted)
        roles: Explicit column order; defaults to the mapper's roles for this store
        allspeech: Also fill the ``allspeech`` pseudo-class from every interval
        side: Name used in log messages (``"test"``, ``"reference"``)

    Returns:
        Frame sequence whose content depends only on the intervals, resolution and duration
    """
    n_frames = frame_count(duration, resolution)
    mapper = mapper or RoleMapper()

    columns = list(roles) if roles is not None else mapper.roles(store.labels())
    if allspeech and ALLSPEECH not in columns:
        columns.append(ALLSPEECH)
    index = {role: position for position, role in enumerate(columns)}
    speech_column = index.get(ALLSPEECH) if allspeech else None

    active = np.zeros((n_frames, len(columns)), dtype=bool)
    outside = 0
    for interval in store:
        if interval.duration == 0:
            continue
        if interval.start >= duration or interval.end <= 0:
            outside += 1
            continue
        first, stop = frame_range(interval.start, interval.end, resolution)
        first, stop = max(first, 0), min(stop, n_frames)

        role = mapper.resolve(interval.tier)
        column = index.get(role) if role is not None else None
        if column is not None:
            active[first:stop, column] = True
        if speech_column is not None:
            active[first:stop, speech_column] = True

    if outside:
        LOGGER.warning(
            "%d %s interval(s) lie beyond the %.3fs duration and were ignored; "
            "the duration may be underestimated.",
            outside,
            side,
            duration,
        )

    unmapped = mapper.unmapped(store.labels())
    if unmapped:
        LOGGER.warning(
            "Unmapped %s labels excluded from role scoring: %s", side, ", ".join(unmapped)
        )

    return FrameSequence(
        roles=tuple(columns),
        active=active,
        resolution=float(resolution),
        duration=float(duration),
    )
