"""Repository discovery and selection package."""

from .discovery import (
    DEFAULT_DOCUMENT_EXTENSIONS,
    DEFAULT_MARKER,
    index_repositories,
    iter_document_files,
    matches_ignore,
    matches_link,
)
from .filtering import filter_repositories

__all__ = [
    "DEFAULT_DOCUMENT_EXTENSIONS",
    "DEFAULT_MARKER",
    "filter_repositories",
    "index_repositories",
    "iter_document_files",
    "matches_ignore",
    "matches_link",
]
