"""Host-facing API over the reconciler, policy store and workspace cache."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from contextlib import suppress

from repo_symlink.config import WorkspaceConfig
from repo_symlink.host import DeletionEventSource, WorkspaceCache
from repo_symlink.index import filter_repositories
from repo_symlink.logging import JsonlAuditLogger
from repo_symlink.policy import (
    FlagField,
    FlagUpdate,
    ListField,
    PolicyStore,
    ReconciliationPolicy,
    add_entry,
    apply_updates,
    parse_policy_changes,
    remove_entry,
)
from repo_symlink.presentation import IconKind, compute_icon, describe_path
from repo_symlink.reconcile import PassReport, SymlinkReconciler
from repo_symlink.scheduling import BackoffScheduler


class SymlinkService:
    """Owns the live policy and runs at most one reconciliation pass at a time.

    Starting a pass while an earlier one is still waiting at its gate cancels
    the earlier one; its link phase never runs, since the new pass tears down
    and relinks everything anyway.
    """

    def __init__(
        self,
        config: WorkspaceConfig,
        store: PolicyStore | None = None,
        event_log: JsonlAuditLogger | None = None,
        deletion_events: DeletionEventSource | None = None,
        scheduler: BackoffScheduler | None = None,
        on_repository_set_changed: Callable[[], None] | None = None,
        on_presentation_refresh: Callable[[], None] | None = None,
    ) -> None:
        self._config = config
        self._store = store or PolicyStore(config.policy_path)
        self._policy = self._store.load()
        self._event_log = event_log or JsonlAuditLogger(config.audit_path)
        self._cache: WorkspaceCache | None = None
        if deletion_events is None:
            self._cache = WorkspaceCache(config.workspace_root, exclude=(config.data_dir,))
            deletion_events = self._cache
        self._on_repository_set_changed = on_repository_set_changed
        self._on_presentation_refresh = on_presentation_refresh
        self._reconciler = SymlinkReconciler(
            project_root=config.project_root,
            workspace_root=config.workspace_root,
            deletion_events=deletion_events,
            scheduler=scheduler,
            gate=config.gate,
            link=config.link,
            exclude=(config.data_dir,),
            event_log=self._event_log,
            on_repository_set_changed=on_repository_set_changed,
        )
        self._current: asyncio.Task[PassReport] | None = None
        self._watcher: asyncio.Task[None] | None = None
        self._pass_counter = 0
        self._last_report: PassReport | None = None

    @property
    def config(self) -> WorkspaceConfig:
        return self._config

    @property
    def policy(self) -> ReconciliationPolicy:
        return self._policy

    @property
    def event_log(self) -> JsonlAuditLogger:
        return self._event_log

    @property
    def last_report(self) -> PassReport | None:
        return self._last_report

    def index_repositories(self) -> list[str]:
        """Return every repository under the project root."""
        return self._reconciler.index()

    def selected_repositories(self) -> list[str]:
        """Return the repositories the current policy materializes."""
        return filter_repositories(self.index_repositories(), self._policy)

    def reconcile(self) -> asyncio.Task[PassReport]:
        """Start a full pass and return its task; callers may ignore it."""
        if self._current is not None and not self._current.done():
            self._current.cancel()
        self._pass_counter += 1
        pass_id = f"pass-{self._pass_counter:06d}"
        self._current = asyncio.get_running_loop().create_task(self._run_pass(pass_id))
        return self._current

    def update_policy(self, changes: Mapping[str, object]) -> ReconciliationPolicy:
        """Merge a partial policy change, persist it and notify listeners."""
        return self._commit(apply_updates(self._policy, parse_policy_changes(changes)))

    def add_entry(self, field: ListField, value: str) -> ReconciliationPolicy:
        return self._commit(add_entry(self._policy, field, value))

    def remove_entry(self, field: ListField, value: str) -> ReconciliationPolicy:
        return self._commit(remove_entry(self._policy, field, value))

    def set_flag(self, field: FlagField, value: bool) -> ReconciliationPolicy:
        return self._commit(apply_updates(self._policy, [FlagUpdate(field=field, value=value)]))

    def describe(self, path: str) -> tuple[IconKind | None, dict[str, object]]:
        """Classify one workspace-relative path for presentation."""
        repositories = self.index_repositories()
        state = describe_path(
            self._config.workspace_root,
            path,
            repositories=repositories,
            selected=filter_repositories(repositories, self._policy),
            policy=self._policy,
        )
        return compute_icon(state), {
            "path": state.path,
            "exists": state.exists,
            "is_file": state.is_file,
            "is_symlink": state.is_symlink,
            "in_selected_repository": state.in_selected_repository,
        }

    async def start(self) -> None:
        """Begin cache polling and run the startup pass when configured."""
        if self._cache is not None and self._watcher is None:
            self._cache.sync()
            self._watcher = asyncio.get_running_loop().create_task(
                self._cache.watch(self._config.gate.poll_interval_seconds)
            )
        if self._policy.symlink_on_start:
            await self.reconcile()

    async def close(self) -> None:
        """Stop background work and persist the policy."""
        for task in (self._current, self._watcher):
            if task is None or task.done():
                continue
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._watcher = None
        self._store.save(self._policy)

    async def _run_pass(self, pass_id: str) -> PassReport:
        if self._cache is not None:
            self._cache.sync()
        report = await self._reconciler.run(self._policy, pass_id)
        self._last_report = report
        self._notify_presentation()
        return report

    def _commit(self, policy: ReconciliationPolicy) -> ReconciliationPolicy:
        self._policy = policy
        self._store.save(policy)
        if self._on_repository_set_changed is not None:
            self._on_repository_set_changed()
        self._notify_presentation()
        return policy

    def _notify_presentation(self) -> None:
        if self._on_presentation_refresh is not None:
            self._on_presentation_refresh()
