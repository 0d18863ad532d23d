"""Typed reconciliation policy and its closed set of updates."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from enum import Enum

from repo_symlink.security import normalize_relative_path

DEFAULT_DIR_IGNORE = ("node_modules", ".git")
DEFAULT_DIR_LINK = ("docs",)


class ListField(str, Enum):
    """List-valued policy fields."""

    DIR_IGNORE = "dir_ignore"
    DIR_LINK = "dir_link"
    REPOSITORY_IGNORE = "repository_ignore"
    REPOSITORY_INCLUDE = "repository_include"


class FlagField(str, Enum):
    """Boolean policy fields."""

    IS_WHITELIST = "is_whitelist"
    SYMLINK_ON_START = "symlink_on_start"


@dataclass(slots=True, frozen=True)
class ReconciliationPolicy:
    """Which repositories and which of their subpaths appear in the workspace."""

    dir_ignore: tuple[str, ...] = DEFAULT_DIR_IGNORE
    dir_link: tuple[str, ...] = DEFAULT_DIR_LINK
    repository_ignore: tuple[str, ...] = ()
    repository_include: tuple[str, ...] = ()
    is_whitelist: bool = True
    symlink_on_start: bool = False

    def entries(self, field: ListField) -> tuple[str, ...]:
        """Return the values of a list field."""
        return getattr(self, field.value)

    def flag(self, field: FlagField) -> bool:
        """Return the value of a boolean field."""
        return getattr(self, field.value)

    def to_dict(self) -> dict[str, object]:
        """Return the JSON-serializable persisted form."""
        payload: dict[str, object] = {field.value: list(self.entries(field)) for field in ListField}
        for field in FlagField:
            payload[field.value] = self.flag(field)
        return payload


@dataclass(slots=True, frozen=True)
class ListUpdate:
    """Replace every value of one list field."""

    field: ListField
    values: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class FlagUpdate:
    """Set one boolean field."""

    field: FlagField
    value: bool


PolicyUpdate = ListUpdate | FlagUpdate


def unique_entries(values: Iterable[str]) -> tuple[str, ...]:
    """Normalize entries and drop duplicates while keeping first-seen order."""
    output: dict[str, None] = {}
    for value in values:
        output[normalize_relative_path(value)] = None
    return tuple(output)


def apply_updates(
    policy: ReconciliationPolicy, updates: Iterable[PolicyUpdate]
) -> ReconciliationPolicy:
    """Return a new policy with ``updates`` applied in order."""
    changes: dict[str, object] = {}
    for update in updates:
        if isinstance(update, ListUpdate):
            changes[update.field.value] = unique_entries(update.values)
        else:
            changes[update.field.value] = update.value
    return replace(policy, **changes)


def add_entry(policy: ReconciliationPolicy, field: ListField, value: str) -> ReconciliationPolicy:
    """Append ``value`` to a list field unless already present."""
    normalized = normalize_relative_path(value)
    current = policy.entries(field)
    if normalized in current:
        return policy
    return apply_updates(policy, [ListUpdate(field=field, values=(*current, normalized))])


def remove_entry(
    policy: ReconciliationPolicy, field: ListField, value: str
) -> ReconciliationPolicy:
    """Remove ``value`` from a list field when present."""
    normalized = normalize_relative_path(value)
    current = policy.entries(field)
    if normalized not in current:
        return policy
    remaining = tuple(item for item in current if item != normalized)
    return apply_updates(policy, [ListUpdate(field=field, values=remaining)])


def parse_policy_changes(payload: Mapping[str, object]) -> tuple[PolicyUpdate, ...]:
    """Validate a partial policy mapping into typed updates."""
    list_fields = {field.value: field for field in ListField}
    flag_fields = {field.value: field for field in FlagField}
    updates: list[PolicyUpdate] = []
    for key in sorted(payload.keys()):
        value = payload[key]
        if key in list_fields:
            updates.append(ListUpdate(field=list_fields[key], values=_tuple_of_strings(value, key)))
            continue
        if key in flag_fields:
            if not isinstance(value, bool):
                raise ValueError(f"Policy field '{key}' must be a boolean.")
            updates.append(FlagUpdate(field=flag_fields[key], value=value))
            continue
        raise ValueError(f"Unknown policy field '{key}'.")
    return tuple(updates)


def _tuple_of_strings(value: object, key: str) -> tuple[str, ...]:
    if not isinstance(value, list | tuple):
        raise ValueError(f"Policy field '{key}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Policy field '{key}' must contain only strings.")
        output.append(item)
    return tuple(output)
