"""Classification of workspace tree items for presentation layers."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from repo_symlink.policy import ReconciliationPolicy
from repo_symlink.security import is_under, join_under_root, normalize_relative_path


class IconKind(str, Enum):
    """Icon a file-tree renderer should attach to an item."""

    FILE_SYMLINK = "file-symlink"
    UNLINKED_FILE = "unlinked-file"
    FOLDER_SYMLINK = "folder-symlink"
    UNCONFIGURED_FOLDER_SYMLINK = "unconfigured-folder-symlink"
    IGNORED_DIRECTORY = "ignored-directory"
    REPOSITORY_INCLUDED = "repository-included"
    REPOSITORY_EXCLUDED = "repository-excluded"


@dataclass(slots=True, frozen=True)
class TreeItemState:
    """Everything the icon choice depends on for one workspace path."""

    path: str
    exists: bool
    is_file: bool
    is_symlink: bool
    in_selected_repository: bool
    is_configured_link: bool
    is_ignored: bool
    inside_linked_directory: bool
    is_selected_repository: bool
    is_known_repository: bool


def compute_icon(state: TreeItemState) -> IconKind | None:
    """Return the icon for ``state``, or None when the item gets no icon."""
    if not state.exists:
        return None
    highlight = state.in_selected_repository
    if state.is_file and state.is_symlink and highlight:
        return IconKind.FILE_SYMLINK
    if state.is_file and highlight and not state.inside_linked_directory:
        return IconKind.UNLINKED_FILE
    if state.is_symlink and highlight:
        if state.is_configured_link:
            return IconKind.FOLDER_SYMLINK
        return IconKind.UNCONFIGURED_FOLDER_SYMLINK
    if state.is_ignored and highlight:
        return IconKind.IGNORED_DIRECTORY
    if state.is_selected_repository:
        return IconKind.REPOSITORY_INCLUDED
    if state.is_known_repository:
        return IconKind.REPOSITORY_EXCLUDED
    return None


def describe_path(
    workspace_root: Path,
    path: str,
    repositories: Sequence[str],
    selected: Sequence[str],
    policy: ReconciliationPolicy,
) -> TreeItemState:
    """Build the tree item state of one workspace-relative path from disk."""
    relative = normalize_relative_path(path)
    absolute = join_under_root(workspace_root, relative)

    owner = next((repo for repo in selected if is_under(relative, repo)), None)
    in_repository_path = ""
    if owner is not None and relative != owner:
        in_repository_path = relative[len(owner) + 1 :]

    return TreeItemState(
        path=relative,
        exists=absolute.exists(),
        is_file=absolute.is_file(),
        is_symlink=os.path.islink(absolute),
        in_selected_repository=owner is not None,
        is_configured_link=owner is None or in_repository_path in policy.dir_link,
        is_ignored=owner is not None and in_repository_path in policy.dir_ignore,
        inside_linked_directory=owner is not None
        and any(is_under(in_repository_path, link) for link in policy.dir_link),
        is_selected_repository=relative in selected,
        is_known_repository=relative in repositories,
    )
