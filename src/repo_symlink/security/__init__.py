"""Root confinement and path safety primitives."""

from .paths import (
    PathBlockedError,
    is_under,
    iter_ancestors,
    join_under_root,
    normalize_relative_path,
    parent_relative_path,
)

__all__ = [
    "PathBlockedError",
    "is_under",
    "iter_ancestors",
    "join_under_root",
    "normalize_relative_path",
    "parent_relative_path",
]
