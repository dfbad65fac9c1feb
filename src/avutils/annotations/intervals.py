"""In-memory representation of labeled annotation intervals."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

__all__ = ["Interval", "IntervalStore"]


@dataclass(frozen=True, slots=True)
class Interval:
    """One labeled time span in seconds."""

    tier: str
    start: float
    duration: float

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(
                f"Interval start must be >= 0, got {self.start} for tier {self.tier!r}."
            )
        if self.duration < 0:
            raise ValueError(
                f"Interval duration must be >= 0, got {self.duration} for tier {self.tier!r}."
            )

    @property
    def end(self) -> float:
        return self.start + self.duration

    def to_dict(self) -> dict[str, Any]:
        """Serialise the interval."""
        return {
            "tier": self.tier,
            "start": self.start,
            "duration": self.duration,
            "end": self.end,
        }


@dataclass(frozen=True, slots=True)
class IntervalStore:
    """Intervals belonging to a single annotation file.

    Order is preserved as read but carries no meaning: consumers must not rely on
    intervals being sorted. Intervals of different tiers may overlap in time.
    """

    intervals: tuple[Interval, ...] = ()
    file_id: str | None = None
    source: str | None = field(default=None, compare=False)

    @classmethod
    def from_iterable(
        cls,
        intervals: Iterable[Interval],
        *,
        file_id: str | None = None,
        source: str | None = None,
    ) -> IntervalStore:
        return cls(intervals=tuple(intervals), file_id=file_id, source=source)

    def __iter__(self) -> Iterator[Interval]:
        return iter(self.intervals)

    def __len__(self) -> int:
        return len(self.intervals)

    def labels(self) -> list[str]:
        """Return the distinct tier labels in first-seen order."""
        return list(dict.fromkeys(interval.tier for interval in self.intervals))

    def max_end(self) -> float:
        """Return the latest interval end, or 0.0 for an empty store."""
        return max((interval.end for interval in self.intervals), default=0.0)

    def sorted(self) -> IntervalStore:
        """Return a copy ordered by start time, then tier."""
        ordered = sorted(self.intervals, key=lambda item: (item.start, item.tier, item.duration))
        return replace(self, intervals=tuple(ordered))

    def shifted(self, offset: float) -> IntervalStore:
        """Return a copy with every interval moved ``offset`` seconds later."""
        moved = (replace(interval, start=interval.start + offset) for interval in self.intervals)
        return replace(self, intervals=tuple(moved))

    def relabel(self, mapping: Mapping[str, str]) -> IntervalStore:
        """Return a copy whose tiers are renamed through ``mapping``.

        Tiers missing from ``mapping`` keep their name.
        """
        renamed = (
            replace(interval, tier=mapping.get(interval.tier, interval.tier))
            for interval in self.intervals
        )
        return replace(self, intervals=tuple(renamed))

    @classmethod
    def concatenate(
        cls,
        stores: Iterable[IntervalStore],
        *,
        file_id: str | None = None,
    ) -> IntervalStore:
        """Join several stores into one, keeping their intervals unchanged."""
        merged: list[Interval] = []
        for store in stores:
            merged.extend(store.intervals)
        return cls(intervals=tuple(merged), file_id=file_id)
