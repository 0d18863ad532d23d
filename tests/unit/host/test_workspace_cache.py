from __future__ import annotations

import asyncio
import os
import shutil
from contextlib import suppress
from pathlib import Path

from repo_symlink.host import WorkspaceCache


def _tree(workspace: Path) -> None:
    (workspace / "alpha" / "docs").mkdir(parents=True)
    (workspace / "alpha" / "docs" / "guide.md").write_text("g\n", encoding="utf-8")
    (workspace / "alpha" / "README.md").write_text("r\n", encoding="utf-8")


def test_sync_reports_removals_deepest_first(tmp_path: Path) -> None:
    _tree(tmp_path)
    cache = WorkspaceCache(tmp_path)
    cache.sync()
    seen: list[str] = []
    cache.on_deletion(seen.append)

    shutil.rmtree(tmp_path / "alpha")
    removed = cache.sync()

    assert removed == ["alpha/docs/guide.md", "alpha/README.md", "alpha/docs", "alpha"]
    assert seen == removed
    assert cache.paths == frozenset()


def test_first_sync_publishes_nothing(tmp_path: Path) -> None:
    _tree(tmp_path)
    cache = WorkspaceCache(tmp_path)
    seen: list[str] = []
    cache.on_deletion(seen.append)

    assert cache.sync() == []
    assert seen == []
    assert "alpha/docs/guide.md" in cache.paths


def test_unsubscribed_handlers_are_not_called(tmp_path: Path) -> None:
    _tree(tmp_path)
    cache = WorkspaceCache(tmp_path)
    cache.sync()
    seen: list[str] = []
    handle = cache.on_deletion(seen.append)
    cache.off_deletion(handle)
    cache.off_deletion(handle)

    (tmp_path / "alpha" / "README.md").unlink()
    cache.sync()

    assert seen == []
    assert cache.subscriber_count() == 0


def test_symlinks_are_leaves_and_exclusions_are_skipped(tmp_path: Path) -> None:
    workspace = tmp_path / "vault"
    source = tmp_path / "source"
    _tree(source)
    (workspace / ".data").mkdir(parents=True)
    (workspace / ".data" / "policy.json").write_text("{}", encoding="utf-8")
    os.symlink(source / "alpha", workspace / "alpha", target_is_directory=True)

    cache = WorkspaceCache(workspace, exclude=[workspace / ".data"])
    cache.sync()

    assert cache.paths == frozenset({"alpha"})


def test_watch_publishes_while_running(tmp_path: Path) -> None:
    _tree(tmp_path)
    cache = WorkspaceCache(tmp_path)
    cache.sync()
    seen: list[str] = []
    cache.on_deletion(seen.append)

    async def scenario() -> None:
        watcher = asyncio.get_running_loop().create_task(cache.watch(0.005))
        (tmp_path / "alpha" / "README.md").unlink()
        for _ in range(200):
            if seen:
                break
            await asyncio.sleep(0.005)
        watcher.cancel()
        with suppress(asyncio.CancelledError):
            await watcher

    asyncio.run(scenario())

    assert seen == ["alpha/README.md"]
