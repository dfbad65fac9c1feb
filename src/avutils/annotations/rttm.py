"""RTTM reading, writing and chunk merging.

An RTTM speaker record looks like::

    SPEAKER <file-id> <channel> <start> <dur> <NA> <NA> <tier> <conf> [<NA>]

Only ``start``, ``dur`` and ``tier`` are interpreted; the remaining fields are
carried through as written by the upstream tool.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from pathlib import Path

from ..exceptions import ParseError
from ..utils.logging import get_logger
from .intervals import Interval, IntervalStore

LOGGER = get_logger(__name__)

__all__ = ["combine_rttm", "parse_rttm_lines", "read_rttm", "write_rttm"]

MIN_FIELDS = 8
SPEAKER_RECORD = "SPEAKER"
_CHUNK_NUMBER = re.compile(r"(\d+)(?!.*\d)")


def read_rttm(path: str | Path) -> IntervalStore:
    """Parse an RTTM file into an :class:`IntervalStore`."""
    rttm_path = Path(path)
    with rttm_path.open("r", encoding="utf-8") as handle:
        store = parse_rttm_lines(handle, path=rttm_path)
    LOGGER.debug("Read %d intervals from %s", len(store), rttm_path)
    return store


def parse_rttm_lines(lines: Iterable[str], *, path: str | Path | None = None) -> IntervalStore:
    """Parse RTTM records from an iterable of text lines."""
    intervals: list[Interval] = []
    file_id: str | None = None
    skipped_types: set[str] = set()

    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        fields = line.split()
        if len(fields) < MIN_FIELDS:
            raise ParseError(
                f"expected at least {MIN_FIELDS} fields, found {len(fields)}",
                path=path,
                line=line_number,
            )
        if fields[0] != SPEAKER_RECORD:
            skipped_types.add(fields[0])
            continue

        start = _parse_seconds(fields[3], "start", path=path, line=line_number)
        duration = _parse_seconds(fields[4], "duration", path=path, line=line_number)
        if file_id is None:
            file_id = fields[1]
        intervals.append(Interval(tier=fields[7], start=start, duration=duration))

    if skipped_types:
        LOGGER.debug("Skipped non-speaker RTTM records: %s", ", ".join(sorted(skipped_types)))

    return IntervalStore.from_iterable(
        intervals, file_id=file_id, source=str(path) if path is not None else None
    )


def _parse_seconds(value: str, name: str, *, path: str | Path | None, line: int) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise ParseError(f"{name} is not numeric: {value!r}", path=path, line=line) from None
    if not math.isfinite(seconds) or seconds < 0:
        raise ParseError(f"{name} must be a finite value >= 0, got {value!r}", path=path, line=line)
    return seconds


def write_rttm(
    store: IntervalStore,
    path: str | Path,
    *,
    file_id: str | None = None,
    precision: int | None = None,
) -> Path:
    """Write ``store`` as RTTM and return the written path.

    With ``precision`` left as ``None`` times are written using the shortest
    representation that reads back to the same float, so a subsequent
    :func:`read_rttm` reproduces the store exactly.
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    record_id = file_id or store.file_id or output_path.stem

    with output_path.open("w", encoding="utf-8") as handle:
        for interval in store:
            start = _format_seconds(interval.start, precision)
            duration = _format_seconds(interval.duration, precision)
            handle.write(
                f"{SPEAKER_RECORD} {record_id} 1 {start} {duration} "
                f"<NA> <NA> {interval.tier} <NA> <NA>\n"
            )

    LOGGER.debug("Saved RTTM with %d intervals to %s", len(store), output_path)
    return output_path


def _format_seconds(value: float, precision: int | None) -> str:
    if precision is None:
        return repr(float(value))
    return f"{value:.{precision}f}"


def combine_rttm(
    paths: Sequence[str | Path],
    chunk_duration: float,
    *,
    file_id: str | None = None,
) -> IntervalStore:
    """Merge per-chunk RTTM files back onto the timeline of the unsplit audio.

    Chunks are ordered by the last number in their file name; the i-th chunk is
    shifted by ``i * chunk_duration`` seconds.
    """
    if chunk_duration <= 0:
        raise ValueError(f"chunk_duration must be > 0, got {chunk_duration}")

    ordered = sorted((Path(item) for item in paths), key=_chunk_sort_key)
    shifted = [
        read_rttm(chunk_path).shifted(index * chunk_duration)
        for index, chunk_path in enumerate(ordered)
    ]
    combined = IntervalStore.concatenate(shifted, file_id=file_id)
    LOGGER.info(
        "Combined %d RTTM chunks (%.1fs each) into %d intervals",
        len(ordered),
        chunk_duration,
        len(combined),
    )
    return combined


def _chunk_sort_key(path: Path) -> tuple[int, str]:
    match = _CHUNK_NUMBER.search(path.stem)
    number = int(match.group(1)) if match else -1
    return number, path.name
