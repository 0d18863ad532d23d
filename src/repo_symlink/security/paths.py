"""Path helpers that never step outside a configured root."""

from __future__ import annotations

import os
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Final

WINDOWS_ABSOLUTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:[\\/]")
LAST_SEGMENT_PATTERN: Final[re.Pattern[str]] = re.compile(r"(?:/|^)[^/]*/?$")


class PathBlockedError(Exception):
    """Raised when a requested path violates root confinement."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


def _normalize_relative_input(candidate: str) -> tuple[str, bool]:
    """Normalize path separators and detect absolute-style inputs."""
    normalized = candidate.replace("\\", "/")
    if normalized.startswith("/"):
        return normalized, True
    if WINDOWS_ABSOLUTE_PATTERN.match(normalized):
        return normalized, True
    return normalized, False


def normalize_relative_path(candidate: str) -> str:
    """Return a canonical slash-separated relative path or raise PathBlockedError."""
    normalized, is_absolute_style = _normalize_relative_input(candidate.strip())
    if is_absolute_style:
        raise PathBlockedError(
            reason="Absolute paths are not accepted.",
            hint="Use a path relative to the repository or project root.",
        )

    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if not parts:
        raise PathBlockedError(
            reason="Path is empty.",
            hint="Provide a relative path such as 'docs' or 'team/project'.",
        )
    if any(part == ".." for part in parts):
        raise PathBlockedError(
            reason="Path traversal is blocked.",
            hint="Remove '..' segments and use a relative path.",
        )
    return "/".join(parts)


def parent_relative_path(path: str) -> str:
    """Strip the final segment of a relative path.

    The empty string stands for the root itself and is returned unchanged, so
    repeated application always terminates at the root instead of climbing
    above it. The parent is computed by pattern, never by appending ``..``.
    """
    if not path:
        return ""
    return LAST_SEGMENT_PATTERN.sub("", path, count=1)


def iter_ancestors(path: str) -> Iterator[str]:
    """Yield every proper ancestor of ``path``, nearest first, excluding the root."""
    current = parent_relative_path(path)
    while current:
        yield current
        current = parent_relative_path(current)


def join_under_root(root: Path, relative: str) -> Path:
    """Join ``relative`` onto ``root`` and verify the result stays inside it."""
    if not relative:
        return root
    joined = Path(os.path.normpath(root / relative))
    if not joined.is_relative_to(root):
        raise PathBlockedError(
            reason="Resolved path escapes its root.",
            hint="Use a path located under the configured root.",
        )
    return joined


def is_under(path: str, prefix: str) -> bool:
    """Return True when ``path`` equals ``prefix`` or lies below it, by whole segments."""
    return path == prefix or path.startswith(f"{prefix}/")
