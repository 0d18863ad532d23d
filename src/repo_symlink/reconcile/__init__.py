"""Workspace symlink reconciliation."""

from .engine import LinkSummary, PassReport, RefreshResult, SymlinkReconciler
from .tracer import DeletionTrace, paths_equal

__all__ = [
    "DeletionTrace",
    "LinkSummary",
    "PassReport",
    "RefreshResult",
    "SymlinkReconciler",
    "paths_equal",
]
