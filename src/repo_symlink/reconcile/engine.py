"""Four-phase reconciliation of the workspace symlink layout."""

from __future__ import annotations

import os
import time
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
from pathlib import Path

from repo_symlink.config import GateConfig, LinkConfig
from repo_symlink.host import DeletionEventSource
from repo_symlink.index import filter_repositories, index_repositories, iter_document_files
from repo_symlink.logging import JsonlAuditLogger, ReconcileEvent, utc_timestamp
from repo_symlink.policy import ReconciliationPolicy
from repo_symlink.reconcile.tracer import DeletionTrace
from repo_symlink.scheduling import BackoffScheduler, linear_delay
from repo_symlink.security import is_under, iter_ancestors, join_under_root


@dataclass(slots=True, frozen=True)
class RefreshResult:
    """Repositories found on disk and the subset the policy selects."""

    repositories: tuple[str, ...]
    selected: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class LinkSummary:
    """Counters from one link phase."""

    linked_directories: int
    linked_files: int
    unchanged: int
    skipped_missing: int
    skipped_outside: int


@dataclass(slots=True, frozen=True)
class PassReport:
    """Deterministic summary of one reconciliation pass."""

    pass_id: str
    repository_count: int
    selected_count: int
    deleted_count: int
    gate_settled: bool
    linked_directories: int
    linked_files: int
    duration_ms: int

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class _DeletionSubscription:
    """Feeds host deletion events into a trace until it settles."""

    def __init__(self, events: DeletionEventSource, trace: DeletionTrace) -> None:
        self._events = events
        self._trace = trace
        self._handle: int | None = events.on_deletion(self._on_deletion)

    @property
    def active(self) -> bool:
        return self._handle is not None

    def close(self) -> None:
        if self._handle is None:
            return
        self._events.off_deletion(self._handle)
        self._handle = None

    def _on_deletion(self, path: str) -> None:
        self._trace.confirm_removed(path)
        if self._trace.is_settled():
            self.close()


class SymlinkReconciler:
    """Tears the workspace down to nothing, waits for the host, then relinks."""

    def __init__(
        self,
        project_root: Path,
        workspace_root: Path,
        deletion_events: DeletionEventSource,
        scheduler: BackoffScheduler | None = None,
        gate: GateConfig | None = None,
        link: LinkConfig | None = None,
        exclude: Iterable[Path] = (),
        event_log: JsonlAuditLogger | None = None,
        on_repository_set_changed: Callable[[], None] | None = None,
    ) -> None:
        self._project_root = project_root.resolve()
        self._workspace_root = workspace_root.resolve()
        self._events = deletion_events
        self._scheduler = scheduler or BackoffScheduler()
        self._gate = gate or GateConfig()
        self._link = link or LinkConfig()
        self._exclude = (self._workspace_root, *exclude)
        self._event_log = event_log
        self._on_repository_set_changed = on_repository_set_changed

    def index(self) -> list[str]:
        """Return repositories under the project root."""
        return index_repositories(
            self._project_root, marker=self._link.marker, exclude=self._exclude
        )

    def refresh(self, policy: ReconciliationPolicy) -> RefreshResult:
        repositories = self.index()
        selected = filter_repositories(repositories, policy)
        if self._on_repository_set_changed is not None:
            self._on_repository_set_changed()
        return RefreshResult(repositories=tuple(repositories), selected=tuple(selected))

    async def run(self, policy: ReconciliationPolicy, pass_id: str) -> PassReport:
        """Run refresh, teardown, gate and link for one pass."""
        started = time.perf_counter()
        refreshed = self.refresh(policy)
        self._log(
            pass_id,
            "refresh",
            "ok",
            {
                "repository_count": len(refreshed.repositories),
                "selected_count": len(refreshed.selected),
            },
        )

        trace = DeletionTrace()
        subscription = _DeletionSubscription(self._events, trace)
        try:
            try:
                self.teardown(refreshed.repositories, trace)
            except OSError as error:
                self._log(pass_id, "teardown", "failed", _error_metadata(error))
                raise
            trace.mark_removal_complete()
            self._log(pass_id, "teardown", "ok", {"deleted_count": len(trace.deleted_paths)})
            settled = await self.wait_for_host(trace, subscription, pass_id)
        finally:
            subscription.close()

        try:
            summary = self.link(refreshed.selected, policy)
        except OSError as error:
            self._log(pass_id, "link", "failed", _error_metadata(error))
            raise
        self._log(pass_id, "link", "ok", asdict(summary))
        return PassReport(
            pass_id=pass_id,
            repository_count=len(refreshed.repositories),
            selected_count=len(refreshed.selected),
            deleted_count=len(trace.deleted_paths),
            gate_settled=settled,
            linked_directories=summary.linked_directories,
            linked_files=summary.linked_files,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )

    def teardown(self, repositories: Sequence[str], trace: DeletionTrace) -> None:
        """Remove every repository's workspace presence, recording each deletion."""
        for repository in repositories:
            self._remove_tree(repository, trace)
            self._remove_empty_ancestors(repository, trace)

    async def wait_for_host(
        self,
        trace: DeletionTrace,
        subscription: _DeletionSubscription,
        pass_id: str,
    ) -> bool:
        """Wait until the host confirmed every deletion or the time budget ran out."""
        handle = self._scheduler.schedule(
            callback=subscription.close,
            condition=trace.is_settled,
            delay=linear_delay(self._gate.base_delay_seconds),
            max_elapsed=self._gate.max_wait_seconds,
        )
        try:
            settled = await handle.wait()
        finally:
            handle.cancel()
        if settled:
            self._log(pass_id, "gate", "settled", {"retries": handle.retries})
        else:
            self._log(
                pass_id,
                "gate",
                "timeout",
                {"retries": handle.retries, "pending_count": len(trace.pending())},
            )
        return settled

    def link(self, selected: Sequence[str], policy: ReconciliationPolicy) -> LinkSummary:
        """Materialize linked directories and document files for ``selected``."""
        directory_outcomes: Counter[str] = Counter()
        file_outcomes: Counter[str] = Counter()
        linked = outermost_entries(policy.dir_link)
        for repository in selected:
            join_under_root(self._workspace_root, repository).mkdir(parents=True, exist_ok=True)
            for entry in linked:
                directory_outcomes[self._link_directory(repository, entry)] += 1
            source_dir = join_under_root(self._project_root, repository)
            documents = iter_document_files(
                source_dir,
                extensions=self._link.document_extensions,
                ignore=policy.dir_ignore,
                linked=linked,
                exclude=self._exclude,
            )
            for document in documents:
                file_outcomes[self._link_file(repository, document)] += 1
        outcomes = directory_outcomes + file_outcomes
        return LinkSummary(
            linked_directories=directory_outcomes["linked"],
            linked_files=file_outcomes["linked"],
            unchanged=outcomes["unchanged"],
            skipped_missing=outcomes["missing"],
            skipped_outside=outcomes["outside"],
        )

    def _remove_tree(self, relative: str, trace: DeletionTrace | None) -> None:
        """Post-order removal that unlinks symlinks instead of traversing them."""
        target = join_under_root(self._workspace_root, relative)
        if not os.path.lexists(target) or self._leaves_workspace(target):
            return
        if target.is_symlink() or not target.is_dir():
            self._unlink(target, trace)
            return
        stack: list[tuple[Path, bool]] = [(target, False)]
        while stack:
            current, expanded = stack.pop()
            if expanded:
                try:
                    current.rmdir()
                except FileNotFoundError:
                    continue
                self._record(current, trace)
                continue
            try:
                with os.scandir(current) as entries:
                    ordered_entries = sorted(entries, key=lambda item: item.name)
            except FileNotFoundError:
                continue
            stack.append((current, True))
            for entry in ordered_entries:
                child = Path(entry.path)
                if entry.is_dir(follow_symlinks=False):
                    stack.append((child, False))
                    continue
                self._unlink(child, trace)

    def _remove_empty_ancestors(self, repository: str, trace: DeletionTrace) -> None:
        for ancestor in iter_ancestors(repository):
            path = join_under_root(self._workspace_root, ancestor)
            if self._leaves_workspace(path) or path.is_symlink() or not path.is_dir():
                continue
            try:
                with os.scandir(path) as entries:
                    if any(True for _ in entries):
                        continue
                path.rmdir()
            except FileNotFoundError:
                continue
            self._record(path, trace)

    def _link_directory(self, repository: str, entry: str) -> str:
        target = join_under_root(self._project_root, f"{repository}/{entry}")
        if not target.is_dir():
            return "missing"
        if self._workspace_root.is_relative_to(target):
            return "outside"
        destination = join_under_root(self._workspace_root, f"{repository}/{entry}")
        if self._leaves_workspace(destination):
            return "outside"
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.is_symlink():
            if os.readlink(destination) == str(target):
                return "unchanged"
            destination.unlink()
        elif destination.is_dir():
            self._remove_tree(destination.relative_to(self._workspace_root).as_posix(), None)
        elif destination.exists():
            return "unchanged"
        os.symlink(target, destination, target_is_directory=True)
        return "linked"

    def _link_file(self, repository: str, document: str) -> str:
        target = join_under_root(self._project_root, f"{repository}/{document}")
        if not target.is_file():
            return "missing"
        destination = join_under_root(self._workspace_root, f"{repository}/{document}")
        if self._leaves_workspace(destination):
            return "outside"
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.is_symlink():
            if os.readlink(destination) == str(target):
                return "unchanged"
            destination.unlink()
        elif destination.is_file():
            destination.unlink()
        elif destination.exists():
            return "unchanged"
        os.symlink(target, destination)
        return "linked"

    def _leaves_workspace(self, path: Path) -> bool:
        """Return True when a symlinked ancestor of ``path`` resolves outside the workspace."""
        if path == self._workspace_root:
            return False
        return not path.parent.resolve().is_relative_to(self._workspace_root)

    def _unlink(self, path: Path, trace: DeletionTrace | None) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            return
        self._record(path, trace)

    def _record(self, path: Path, trace: DeletionTrace | None) -> None:
        if trace is not None:
            trace.record_deleted(path.relative_to(self._workspace_root).as_posix())

    def _log(self, pass_id: str, phase: str, status: str, metadata: dict[str, object]) -> None:
        if self._event_log is None:
            return
        self._event_log.append(
            ReconcileEvent(
                timestamp=utc_timestamp(),
                pass_id=pass_id,
                phase=phase,
                status=status,
                metadata=metadata,
            )
        )


def _error_metadata(error: OSError) -> dict[str, object]:
    return {"error_type": type(error).__name__, "errno": error.errno}


def outermost_entries(entries: Sequence[str]) -> tuple[str, ...]:
    """Drop entries nested under another entry; the outer link already covers them."""
    return tuple(
        entry
        for entry in entries
        if not any(other != entry and is_under(entry, other) for other in entries)
    )
