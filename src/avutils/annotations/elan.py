"""ELAN (.eaf) reading built on pympi."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any
from xml.etree.ElementTree import ParseError as XMLParseError

from pympi.Elan import Eaf

from ..exceptions import ParseError
from ..utils.logging import get_logger
from .intervals import Interval, IntervalStore

LOGGER = get_logger(__name__)

__all__ = ["DEPENDENT_MARKER", "is_dependent_tier", "read_elan"]

# Dependent tiers are named "<type>@<parent>", e.g. "xds@CHI".
DEPENDENT_MARKER = "@"


def is_dependent_tier(name: str, attributes: Mapping[str, Any] | None = None) -> bool:
    """Return True for tiers that hang off another tier."""
    if DEPENDENT_MARKER in name:
        return True
    return bool(attributes and attributes.get("PARENT_REF"))


def read_elan(path: str | Path, *, include_dependents: bool = False) -> IntervalStore:
    """Parse an ELAN file into an :class:`IntervalStore`.

    Only time-aligned annotations produce intervals. Dependent tiers are skipped
    unless ``include_dependents`` is set.
    """
    eaf_path = Path(path)
    if not eaf_path.is_file():
        raise ParseError("file does not exist", path=eaf_path)
    try:
        eaf = Eaf(str(eaf_path))
    except (XMLParseError, KeyError, ValueError) as exc:
        raise ParseError(f"not a readable ELAN file ({exc})", path=eaf_path) from exc

    intervals: list[Interval] = []
    dropped: list[str] = []
    for tier_name, tier_data in eaf.tiers.items():
        aligned, _references, attributes, _ordinal = tier_data
        if not include_dependents and is_dependent_tier(tier_name, attributes):
            dropped.append(tier_name)
            continue
        for annotation_id, annotation in aligned.items():
            slot_start, slot_end = annotation[0], annotation[1]
            start_ms = _resolve_slot(eaf.timeslots, slot_start, annotation_id, eaf_path)
            end_ms = _resolve_slot(eaf.timeslots, slot_end, annotation_id, eaf_path)
            if end_ms < start_ms:
                raise ParseError(
                    f"annotation {annotation_id} on tier {tier_name!r} ends before it starts",
                    path=eaf_path,
                )
            intervals.append(
                Interval(
                    tier=tier_name,
                    start=start_ms / 1000.0,
                    duration=(end_ms - start_ms) / 1000.0,
                )
            )

    if dropped:
        LOGGER.debug("Ignored dependent tiers in %s: %s", eaf_path.name, ", ".join(dropped))

    return IntervalStore.from_iterable(intervals, file_id=eaf_path.stem, source=str(eaf_path))


def _resolve_slot(
    timeslots: Mapping[str, int | None],
    slot_id: str,
    annotation_id: str,
    path: Path,
) -> int:
    if slot_id not in timeslots:
        raise ParseError(
            f"annotation {annotation_id} references unknown time slot {slot_id!r}",
            path=path,
        )
    value = timeslots[slot_id]
    if value is None:
        raise ParseError(
            f"annotation {annotation_id} references time slot {slot_id!r} without a time value",
            path=path,
        )
    return value
