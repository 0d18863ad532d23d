"""Presentation-facing helpers driven by reconciler state."""

from .icons import IconKind, TreeItemState, compute_icon, describe_path

__all__ = ["IconKind", "TreeItemState", "compute_icon", "describe_path"]
