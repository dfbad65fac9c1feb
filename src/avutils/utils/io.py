"""Small file I/O helpers shared by the CLI and result exporters."""

from __future__ import annotations

import csv
import json
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from .logging import get_logger

LOGGER = get_logger(__name__)

__all__ = ["ensure_dir", "load_json", "save_csv", "save_json"]


def save_json(data: Any, output_path: str | Path, pretty: bool = True) -> None:
    """Save data as JSON.

    Args:
        data: Data to serialise
        output_path: Output file path
        pretty: If True, use indentation
    """
    output_path = Path(output_path)
    ensure_dir(output_path.parent)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2 if pretty else None)

    LOGGER.debug("Saved JSON to %s", output_path)


def load_json(input_path: str | Path) -> Any:
    """Load a JSON file."""
    with open(input_path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_csv(
    rows: Iterable[Mapping[str, Any]],
    output_path: str | Path,
    fieldnames: Sequence[str],
) -> None:
    """Write mapping rows as CSV with a fixed column order.

    Args:
        rows: Rows to write; keys outside ``fieldnames`` are rejected
        output_path: Output file path
        fieldnames: Column order for the header and every row
    """
    output_path = Path(output_path)
    ensure_dir(output_path.parent)

    count = 0
    with open(output_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(fieldnames))
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
            count += 1

    LOGGER.debug("Saved %d CSV rows to %s", count, output_path)


def ensure_dir(path: str | Path) -> Path:
    """Create ``path`` if needed and return it as a Path."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
