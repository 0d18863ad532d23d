"""Per-pass bookkeeping of engine deletions and host confirmations."""

from __future__ import annotations

from collections.abc import Collection


def paths_equal(left: Collection[str], right: Collection[str]) -> bool:
    """Return True when both collections hold exactly the same paths."""
    if len(left) != len(right):
        return False
    return all(path in right for path in left)


class DeletionTrace:
    """Tracks what the engine removed and what the host has seen disappear.

    Mutated synchronously by the teardown phase and by the host deletion
    listener; discarded when its pass ends.
    """

    def __init__(self) -> None:
        self._deleted: dict[str, None] = {}
        self._confirmed: dict[str, None] = {}
        self._removal_phase_complete = False

    @property
    def deleted_paths(self) -> tuple[str, ...]:
        return tuple(self._deleted)

    @property
    def cache_confirmed_paths(self) -> tuple[str, ...]:
        return tuple(self._confirmed)

    @property
    def removal_phase_complete(self) -> bool:
        return self._removal_phase_complete

    def record_deleted(self, path: str) -> None:
        """Record a workspace-relative path removed from the live filesystem."""
        self._deleted[path] = None

    def confirm_removed(self, path: str) -> None:
        """Record a workspace-relative path the host reported as gone."""
        self._confirmed[path] = None

    def mark_removal_complete(self) -> None:
        self._removal_phase_complete = True

    def pending(self) -> tuple[str, ...]:
        """Return deleted paths the host has not confirmed yet."""
        return tuple(path for path in self._deleted if path not in self._confirmed)

    def is_settled(self) -> bool:
        """Return True once teardown finished and both path sets match."""
        return self._removal_phase_complete and paths_equal(self._deleted, self._confirmed)
