"""Polling snapshot of the workspace that publishes deletion events."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Protocol

DeletionHandler = Callable[[str], None]


class DeletionEventSource(Protocol):
    """Host notification of workspace paths leaving its cache."""

    def on_deletion(self, handler: DeletionHandler) -> int:
        """Subscribe ``handler`` and return a handle for unsubscribing."""

    def off_deletion(self, handle: int) -> None:
        """Remove a subscription; unknown handles are ignored."""


class WorkspaceCache:
    """Host-side view of the workspace tree, refreshed by polling.

    Symlinks are cached as leaves and never followed, so the cached paths line
    up with what the reconciler deletes.
    """

    def __init__(self, workspace_root: Path, exclude: Iterable[Path] = ()) -> None:
        self._root = workspace_root.resolve()
        self._exclude = {path.resolve() for path in exclude}
        self._paths: set[str] = set()
        self._handlers: dict[int, DeletionHandler] = {}
        self._next_handle = 0

    @property
    def paths(self) -> frozenset[str]:
        return frozenset(self._paths)

    def on_deletion(self, handler: DeletionHandler) -> int:
        self._next_handle += 1
        self._handlers[self._next_handle] = handler
        return self._next_handle

    def off_deletion(self, handle: int) -> None:
        self._handlers.pop(handle, None)

    def subscriber_count(self) -> int:
        return len(self._handlers)

    def sync(self) -> list[str]:
        """Rescan the workspace and publish every path that disappeared.

        Removed paths are published deepest first; the list is returned too.
        """
        current = self._scan()
        removed = sorted(self._paths - current, key=lambda item: (-item.count("/"), item))
        self._paths = current
        for path in removed:
            for handler in list(self._handlers.values()):
                handler(path)
        return removed

    async def watch(self, interval_seconds: float) -> None:
        """Poll ``sync`` until cancelled."""
        while True:
            self.sync()
            await asyncio.sleep(interval_seconds)

    def _scan(self) -> set[str]:
        found: set[str] = set()
        stack: list[Path] = [self._root]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as entries:
                    ordered_entries = list(entries)
            except (FileNotFoundError, NotADirectoryError):
                continue
            for entry in ordered_entries:
                full_path = Path(entry.path)
                if full_path in self._exclude:
                    continue
                found.add(full_path.relative_to(self._root).as_posix())
                try:
                    if entry.is_dir(follow_symlinks=False):
                        stack.append(full_path)
                except FileNotFoundError:
                    continue
        return found
