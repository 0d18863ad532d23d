from __future__ import annotations

import pytest

from repo_symlink.policy import (
    FlagField,
    FlagUpdate,
    ListField,
    ListUpdate,
    ReconciliationPolicy,
    add_entry,
    apply_updates,
    parse_policy_changes,
    remove_entry,
)
from repo_symlink.security import PathBlockedError


def test_defaults_and_persisted_shape() -> None:
    assert ReconciliationPolicy().to_dict() == {
        "dir_ignore": ["node_modules", ".git"],
        "dir_link": ["docs"],
        "repository_ignore": [],
        "repository_include": [],
        "is_whitelist": True,
        "symlink_on_start": False,
    }


def test_updates_apply_in_order_and_normalize() -> None:
    policy = apply_updates(
        ReconciliationPolicy(),
        [
            ListUpdate(field=ListField.REPOSITORY_INCLUDE, values=("team\\alpha", "./beta/", "beta")),
            FlagUpdate(field=FlagField.IS_WHITELIST, value=False),
            FlagUpdate(field=FlagField.IS_WHITELIST, value=True),
        ],
    )

    assert policy.repository_include == ("team/alpha", "beta")
    assert policy.is_whitelist is True


def test_add_and_remove_entry() -> None:
    policy = add_entry(ReconciliationPolicy(), ListField.DIR_LINK, "wiki")
    policy = add_entry(policy, ListField.DIR_LINK, "wiki/")

    assert policy.dir_link == ("docs", "wiki")

    policy = remove_entry(policy, ListField.DIR_LINK, "docs")

    assert policy.dir_link == ("wiki",)
    assert remove_entry(policy, ListField.DIR_LINK, "absent") is policy


def test_traversal_entries_are_blocked() -> None:
    with pytest.raises(PathBlockedError):
        add_entry(ReconciliationPolicy(), ListField.DIR_IGNORE, "../outside")


def test_parse_rejects_unknown_and_mistyped_fields() -> None:
    with pytest.raises(ValueError, match="Unknown policy field 'colour'"):
        parse_policy_changes({"colour": "blue"})
    with pytest.raises(ValueError, match="'is_whitelist' must be a boolean"):
        parse_policy_changes({"is_whitelist": "yes"})
    with pytest.raises(ValueError, match="'dir_link' must be a list of strings"):
        parse_policy_changes({"dir_link": "docs"})
    with pytest.raises(ValueError, match="'dir_link' must contain only strings"):
        parse_policy_changes({"dir_link": ["docs", 3]})


def test_parse_is_partial() -> None:
    updates = parse_policy_changes({"symlink_on_start": True, "dir_ignore": ["build"]})

    policy = apply_updates(ReconciliationPolicy(), updates)

    assert policy.dir_ignore == ("build",)
    assert policy.symlink_on_start is True
    assert policy.dir_link == ("docs",)
