"""Batch conversion of ELAN files to RTTM."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .annotations.elan import read_elan
from .annotations.rttm import write_rttm
from .scoring.roles import RoleMap, RoleSpec
from .utils.logging import get_logger

LOGGER = get_logger(__name__)

__all__ = ["ConversionRecord", "elan_to_rttm"]


@dataclass(slots=True)
class ConversionRecord:
    """Outcome of converting one ELAN file."""

    file_in: str
    file_out: str
    out_location: Path
    intervals: int
    success: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_in": self.file_in,
            "file_out": self.file_out,
            "out_location": str(self.out_location),
            "intervals": self.intervals,
            "success": self.success,
        }


def elan_to_rttm(
    paths: Iterable[str | Path],
    *,
    outpath: str | Path | None = None,
    include_dependents: bool = False,
    merge_tiers: RoleMap | RoleSpec | None = None,
    precision: int | None = None,
) -> list[ConversionRecord]:
    """Convert ELAN files to RTTM files named after their input.

    Output goes next to each input unless ``outpath`` names a directory. Existing
    files are overwritten. ``merge_tiers`` renames raw tiers to the role they are
    listed under, e.g. ``{"FEM": ["FA1", "FA2"], "MAL": "MA1"}``; other tiers keep
    their name. Intervals are written in order of start time.
    """
    rename: dict[str, str] = {}
    if merge_tiers is not None:
        role_map = (
            merge_tiers if isinstance(merge_tiers, RoleMap) else RoleMap.from_mapping(merge_tiers)
        )
        rename = role_map.as_rename_table()

    sources = [Path(item).expanduser().resolve() for item in paths]
    target_dir = Path(outpath).expanduser().resolve() if outpath is not None else None

    if target_dir is not None:
        collisions = [name for name, count in Counter(p.stem for p in sources).items() if count > 1]
        if collisions:
            LOGGER.warning(
                "Several inputs share a file name and will overwrite each other in %s: %s",
                target_dir,
                ", ".join(sorted(collisions)),
            )

    records: list[ConversionRecord] = []
    for source in sources:
        store = read_elan(source, include_dependents=include_dependents)
        if rename:
            store = store.relabel(rename)
        location = target_dir or source.parent
        target = location / f"{source.stem}.rttm"
        write_rttm(store.sorted(), target, file_id=source.stem, precision=precision)
        LOGGER.info("%s  -->  %s (%d intervals)", source.name, target.name, len(store))
        records.append(
            ConversionRecord(
                file_in=source.name,
                file_out=target.name,
                out_location=location,
                intervals=len(store),
                success=target.exists(),
            )
        )
    return records
