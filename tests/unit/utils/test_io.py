"""Tests for the JSON and CSV helpers."""

from __future__ import annotations

import csv
from pathlib import Path

import pytest

from avutils.utils.io import ensure_dir, load_json, save_csv, save_json


def test_save_and_load_json_creates_parent(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "data.json"
    save_json({"role": "CHI", "score": None}, path)
    assert load_json(path) == {"role": "CHI", "score": None}


def test_save_csv_uses_column_order(tmp_path: Path) -> None:
    path = tmp_path / "rows.csv"
    save_csv([{"b": 2, "a": 1}, {"a": 3, "b": 4}], path, ["a", "b"])

    with path.open(encoding="utf-8", newline="") as handle:
        lines = list(csv.reader(handle))
    assert lines == [["a", "b"], ["1", "2"], ["3", "4"]]


def test_save_csv_rejects_unknown_columns(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        save_csv([{"a": 1, "c": 2}], tmp_path / "rows.csv", ["a"])


def test_ensure_dir(tmp_path: Path) -> None:
    target = ensure_dir(tmp_path / "x" / "y")
    assert target.is_dir()
