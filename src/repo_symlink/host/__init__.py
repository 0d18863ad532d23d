"""Host-side collaborators: cached workspace view and its deletion events."""

from .cache import DeletionEventSource, DeletionHandler, WorkspaceCache

__all__ = ["DeletionEventSource", "DeletionHandler", "WorkspaceCache"]
