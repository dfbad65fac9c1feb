"""Mapping raw tier labels onto canonical scoring roles."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Union

from ..exceptions import ConfigError

__all__ = ["ALLSPEECH", "RoleMap", "RoleMapper", "RoleSpec"]

# Name of the pseudo-class aggregating every interval on one side.
ALLSPEECH = "allspeech"

RoleSpec = Mapping[str, Union[str, Iterable[str]]]


@dataclass(frozen=True, slots=True)
class RoleMap:
    """Canonical role names and the raw labels treated as synonyms of each.

    Build instances through :meth:`from_mapping`, which rejects a raw label listed
    under more than one role as well as roles without any label.
    """

    roles: tuple[str, ...]
    lookup: Mapping[str, str]

    @classmethod
    def from_mapping(cls, mapping: RoleSpec) -> RoleMap:
        lookup: dict[str, str] = {}
        roles: list[str] = []
        for role, raw in mapping.items():
            if not isinstance(role, str) or not role:
                raise ConfigError(f"Role names must be non-empty strings, got {role!r}.")
            labels = [raw] if isinstance(raw, str) else list(raw)
            if not labels:
                raise ConfigError(f"Role {role!r} has no raw labels.")
            for label in labels:
                owner = lookup.get(label)
                if owner is not None and owner != role:
                    raise ConfigError(
                        f"Raw label {label!r} is listed under both {owner!r} and {role!r}."
                    )
                lookup[label] = role
            roles.append(role)
        if not roles:
            raise ConfigError("Role map is empty.")
        return cls(roles=tuple(roles), lookup=dict(lookup))

    def resolve(self, label: str) -> str | None:
        return self.lookup.get(label)

    def as_rename_table(self) -> dict[str, str]:
        """Return the raw-label to role table, e.g. for tier merging."""
        return dict(self.lookup)


class RoleMapper:
    """Resolve raw labels of one annotation side to roles.

    Without a role map every label maps to itself. Labels in ``ignore`` never
    resolve to a role; labels that are neither mapped nor ignored are reported by
    :meth:`unmapped` so callers can surface them.
    """

    def __init__(
        self,
        role_map: RoleMap | RoleSpec | None = None,
        ignore: Iterable[str] = (),
    ) -> None:
        if role_map is not None and not isinstance(role_map, RoleMap):
            role_map = RoleMap.from_mapping(role_map)
        self.role_map: RoleMap | None = role_map
        self.ignore = frozenset(ignore)
        if self.role_map is not None:
            clashing = sorted(self.ignore.intersection(self.role_map.lookup))
            if clashing:
                raise ConfigError(
                    f"Labels cannot be both mapped and ignored: {', '.join(clashing)}."
                )

    @property
    def is_identity(self) -> bool:
        return self.role_map is None

    def resolve(self, label: str) -> str | None:
        if self.is_ignored(label):
            return None
        if self.is_identity:
            return label
        return self.role_map.resolve(label)

    def is_ignored(self, label: str) -> bool:
        return label in self.ignore

    def roles(self, observed: Iterable[str] = ()) -> list[str]:
        """Return the roles this side can produce.

        For an identity mapper the roles are the non-ignored ``observed`` labels.
        """
        if not self.is_identity:
            return list(self.role_map.roles)
        return [label for label in dict.fromkeys(observed) if not self.is_ignored(label)]

    def unmapped(self, observed: Iterable[str]) -> list[str]:
        """Return observed labels that are neither mapped nor ignored."""
        return [
            label
            for label in dict.fromkeys(observed)
            if not self.is_ignored(label) and self.resolve(label) is None
        ]
