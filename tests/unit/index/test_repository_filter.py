from __future__ import annotations

from repo_symlink.index import filter_repositories
from repo_symlink.policy import ReconciliationPolicy

REPOSITORIES = ["alpha", "group/beta", "gamma"]


def test_whitelist_keeps_included_in_discovery_order() -> None:
    policy = ReconciliationPolicy(is_whitelist=True, repository_include=("gamma", "alpha", "ghost"))

    assert filter_repositories(REPOSITORIES, policy) == ["alpha", "gamma"]


def test_whitelist_with_empty_include_selects_nothing() -> None:
    assert filter_repositories(REPOSITORIES, ReconciliationPolicy()) == []


def test_blacklist_drops_ignored() -> None:
    policy = ReconciliationPolicy(
        is_whitelist=False,
        repository_ignore=("group/beta",),
        repository_include=("group/beta",),
    )

    assert filter_repositories(REPOSITORIES, policy) == ["alpha", "gamma"]
