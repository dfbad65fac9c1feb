"""Tests for ELAN parsing and format dispatch."""

from __future__ import annotations

from pathlib import Path

import pytest

from avutils.annotations.elan import is_dependent_tier, read_elan
from avutils.annotations.loader import detect_format, load_intervals
from avutils.exceptions import ParseError


def test_read_elan_skips_dependent_tiers(sample_eaf: Path) -> None:
    store = read_elan(sample_eaf)

    assert store.file_id == "session"
    assert sorted(store.labels()) == ["CHI", "FA1"]
    spans = sorted((i.tier, i.start, i.end) for i in store)
    assert spans == [("CHI", 0.0, 1.5), ("CHI", 5.0, 6.0), ("FA1", 2.0, 4.25)]


def test_read_elan_can_include_dependent_tiers(sample_eaf: Path) -> None:
    store = read_elan(sample_eaf, include_dependents=True)
    assert "xds@FA1" in store.labels()


def test_is_dependent_tier() -> None:
    assert is_dependent_tier("vcm@CHI")
    assert is_dependent_tier("comment", {"PARENT_REF": "CHI"})
    assert not is_dependent_tier("CHI", {"PARTICIPANT": "child"})


def test_unresolved_time_slot_raises(tmp_path: Path, eaf_text: str) -> None:
    path = tmp_path / "broken.eaf"
    path.write_text(eaf_text.replace('TIME_SLOT_REF2="ts6"', 'TIME_SLOT_REF2="ts99"'))

    with pytest.raises(ParseError, match="ts99"):
        read_elan(path)


def test_malformed_xml_raises(tmp_path: Path, eaf_text: str) -> None:
    path = tmp_path / "truncated.eaf"
    path.write_text(eaf_text[:400])

    with pytest.raises(ParseError):
        read_elan(path)


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ParseError):
        read_elan(tmp_path / "absent.eaf")


def test_load_intervals_dispatches_on_suffix(sample_eaf: Path, write_rttm_file) -> None:
    rttm = write_rttm_file("session.rttm", [("CHI", 0.0, 1.0)])

    assert detect_format(sample_eaf) == "elan"
    assert detect_format(rttm) == "rttm"
    assert len(load_intervals(sample_eaf)) == 3
    assert len(load_intervals(rttm)) == 1
    assert len(load_intervals(sample_eaf, include_dependents=True)) == 4


def test_unknown_suffix_raises(tmp_path: Path) -> None:
    with pytest.raises(ParseError):
        load_intervals(tmp_path / "notes.txt")
