"""Deterministic repository discovery and document enumeration."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

DEFAULT_MARKER = ".git"
DEFAULT_DOCUMENT_EXTENSIONS = (".md",)


def index_repositories(
    root: Path,
    marker: str = DEFAULT_MARKER,
    exclude: Iterable[Path] = (),
) -> list[str]:
    """Return every directory under ``root`` that directly contains ``marker``.

    Paths are relative to ``root`` in depth-first discovery order. A directory
    classified as a repository is never descended into, symlinks are never
    followed, and entries that vanish mid-scan are skipped.
    """
    root = root.resolve()
    excluded = {path.resolve() for path in exclude}
    repositories: list[str] = []
    stack: list[Path] = list(reversed(_child_directories(root)))
    while stack:
        current = stack.pop()
        if current in excluded:
            continue
        if os.path.lexists(current / marker):
            repositories.append(current.relative_to(root).as_posix())
            continue
        stack.extend(reversed(_child_directories(current)))
    return repositories


def _child_directories(directory: Path) -> list[Path]:
    """Return real (non-symlink) subdirectories sorted by name; [] if it vanished."""
    try:
        with os.scandir(directory) as entries:
            ordered_entries = sorted(entries, key=lambda item: item.name)
    except (FileNotFoundError, NotADirectoryError):
        return []
    children: list[Path] = []
    for entry in ordered_entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                children.append(Path(entry.path))
        except FileNotFoundError:
            continue
    return children


def matches_ignore(relative_path: str, ignore: Iterable[str]) -> bool:
    """Return True when a repository-relative path falls under an ignore entry.

    Entries with a slash are anchored at the repository root; bare names match a
    directory of that name at any depth.
    """
    segments = relative_path.split("/")
    for entry in ignore:
        if "/" in entry:
            if relative_path == entry or relative_path.startswith(f"{entry}/"):
                return True
            continue
        if entry in segments:
            return True
    return False


def matches_link(relative_path: str, linked: Iterable[str]) -> bool:
    """Return True when a path lies inside a wholesale-linked subpath."""
    return any(
        relative_path == entry or relative_path.startswith(f"{entry}/") for entry in linked
    )


def iter_document_files(
    repo_dir: Path,
    extensions: tuple[str, ...] = DEFAULT_DOCUMENT_EXTENSIONS,
    ignore: tuple[str, ...] = (),
    linked: tuple[str, ...] = (),
    exclude: Iterable[Path] = (),
) -> list[str]:
    """List document files under one repository, sorted, relative to ``repo_dir``.

    Ignored subpaths, subpaths that are linked as whole directories and excluded
    directories (such as a workspace stored inside the repository) are pruned
    before descent, so nothing beneath them is enumerated.
    """
    wanted = {extension.lower() for extension in extensions}
    excluded = {path.resolve() for path in exclude}
    documents: list[str] = []
    stack: list[Path] = [repo_dir]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except (FileNotFoundError, NotADirectoryError):
            continue
        children: list[Path] = []
        for entry in ordered_entries:
            full_path = Path(entry.path)
            relative = full_path.relative_to(repo_dir).as_posix()
            if matches_ignore(relative, ignore) or matches_link(relative, linked):
                continue
            if full_path in excluded:
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    children.append(full_path)
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
            except FileNotFoundError:
                continue
            if full_path.suffix.lower() in wanted:
                documents.append(relative)
        stack.extend(reversed(children))
    return sorted(documents)
