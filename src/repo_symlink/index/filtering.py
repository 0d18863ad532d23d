"""Whitelist and blacklist selection over discovered repositories."""

from __future__ import annotations

from collections.abc import Sequence

from repo_symlink.policy import ReconciliationPolicy


def filter_repositories(
    repositories: Sequence[str], policy: ReconciliationPolicy
) -> list[str]:
    """Return the repositories the policy selects, keeping discovery order."""
    if policy.is_whitelist:
        included = set(policy.repository_include)
        return [repo for repo in repositories if repo in included]
    ignored = set(policy.repository_ignore)
    return [repo for repo in repositories if repo not in ignored]
