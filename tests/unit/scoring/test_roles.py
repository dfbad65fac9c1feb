"""Tests for role maps and role mapping."""

from __future__ import annotations

import pytest

from avutils.exceptions import ConfigError
from avutils.scoring.roles import RoleMap, RoleMapper


def test_role_map_builds_lookup_and_accepts_single_labels() -> None:
    role_map = RoleMap.from_mapping({"CHI": ["CHI", "UC1"], "MAL": "MA1"})

    assert role_map.roles == ("CHI", "MAL")
    assert role_map.resolve("UC1") == "CHI"
    assert role_map.resolve("MA1") == "MAL"
    assert role_map.resolve("FA1") is None
    assert role_map.as_rename_table() == {"CHI": "CHI", "UC1": "CHI", "MA1": "MAL"}


def test_duplicate_raw_label_across_roles_fails() -> None:
    with pytest.raises(ConfigError, match="'X'"):
        RoleMap.from_mapping({"CHI": ["X"], "FEM": ["X"]})


def test_lookup_does_not_depend_on_entry_order() -> None:
    forward = RoleMap.from_mapping({"FEM": ["FA1", "FA2"], "MAL": ["MA1"]})
    backward = RoleMap.from_mapping({"MAL": ["MA1"], "FEM": ["FA2", "FA1"]})
    assert forward.as_rename_table() == backward.as_rename_table()


@pytest.mark.parametrize("mapping", [{}, {"CHI": []}, {"": ["CHI"]}])
def test_empty_role_map_or_role_fails(mapping) -> None:
    with pytest.raises(ConfigError):
        RoleMap.from_mapping(mapping)


def test_identity_mapper_honours_ignore_list() -> None:
    mapper = RoleMapper(ignore=["SIL"])

    assert mapper.is_identity
    assert mapper.resolve("CHI") == "CHI"
    assert mapper.resolve("SIL") is None
    assert mapper.roles(["CHI", "SIL", "FEM", "CHI"]) == ["CHI", "FEM"]
    assert mapper.unmapped(["CHI", "SIL"]) == []


def test_mapper_reports_unmapped_labels() -> None:
    mapper = RoleMapper({"CHI": ["CHI"]}, ignore=["OCH"])

    assert mapper.resolve("FEM") is None
    assert mapper.is_ignored("OCH")
    assert mapper.unmapped(["CHI", "OCH", "FEM"]) == ["FEM"]
    assert mapper.roles(["FEM"]) == ["CHI"]


def test_label_cannot_be_mapped_and_ignored() -> None:
    with pytest.raises(ConfigError):
        RoleMapper({"CHI": ["CHI"]}, ignore=["CHI"])
