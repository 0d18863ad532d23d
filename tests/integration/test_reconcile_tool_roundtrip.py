from __future__ import annotations

import os
from pathlib import Path

import pytest

from repo_symlink.config import CliOverrides
from repo_symlink.server import create_server, main


def _projects(tmp_path: Path) -> Path:
    for name in ["alpha", "beta", "nested/gamma"]:
        repo = tmp_path / name
        (repo / ".git").mkdir(parents=True)
        (repo / "docs").mkdir()
        (repo / "docs" / "index.md").write_text(f"# {name}\n", encoding="utf-8")
        (repo / "CHANGELOG.md").write_text("changes\n", encoding="utf-8")
    workspace = tmp_path / "vault"
    workspace.mkdir()
    return workspace


def test_reconcile_links_selected_repositories(tmp_path: Path) -> None:
    workspace = _projects(tmp_path)
    server = create_server(
        workspace_root=str(workspace),
        cli_overrides=CliOverrides(base_delay_seconds=0.001, max_wait_seconds=5.0),
    )

    listed = server.handle_payload(
        {"id": "req-list", "method": "repo.list_repositories", "params": {}}
    )
    assert listed["result"]["repositories"] == [
        {"path": "alpha", "selected": False},
        {"path": "beta", "selected": False},
        {"path": "nested/gamma", "selected": False},
    ]

    server.handle_payload(
        {
            "id": "req-policy",
            "method": "policy.update",
            "params": {"changes": {"repository_include": ["alpha", "nested/gamma"]}},
        }
    )
    response = server.handle_payload({"id": "req-run", "method": "workspace.reconcile", "params": {}})

    assert response["ok"] is True
    report = response["result"]
    assert report["pass_id"] == "pass-000001"
    assert report["repository_count"] == 3
    assert report["selected_count"] == 2
    assert report["linked_directories"] == 2
    assert report["linked_files"] == 2
    assert report["gate_settled"] is True
    assert (workspace / "alpha" / "docs").is_symlink()
    assert os.path.islink(workspace / "nested" / "gamma" / "CHANGELOG.md")
    assert not (workspace / "beta").exists()

    server.handle_payload(
        {
            "id": "req-switch",
            "method": "policy.remove_entry",
            "params": {"field": "repository_include", "value": "nested/gamma"},
        }
    )
    again = server.handle_payload({"id": "req-run-2", "method": "workspace.reconcile", "params": {}})
    status = server.handle_payload({"id": "req-status", "method": "repo.status", "params": {}})
    server.close()

    assert again["result"]["gate_settled"] is True
    assert again["result"]["deleted_count"] == 7
    assert not (workspace / "nested").exists()
    assert (workspace / "alpha" / "CHANGELOG.md").is_symlink()
    assert status["result"]["last_pass"]["pass_id"] == "pass-000002"


def test_describe_path_tool(tmp_path: Path) -> None:
    workspace = _projects(tmp_path)
    server = create_server(
        workspace_root=str(workspace),
        cli_overrides=CliOverrides(base_delay_seconds=0.001, max_wait_seconds=5.0),
    )
    server.handle_payload(
        {
            "id": "req-add",
            "method": "policy.add_entry",
            "params": {"field": "repository_include", "value": "beta"},
        }
    )
    server.handle_payload({"id": "req-run", "method": "workspace.reconcile", "params": {}})

    described = server.handle_payload(
        {"id": "req-describe", "method": "workspace.describe_path", "params": {"path": "beta/docs"}}
    )
    missing = server.handle_payload(
        {"id": "req-describe-2", "method": "workspace.describe_path", "params": {}}
    )
    server.close()

    assert described["result"]["icon"] == "folder-symlink"
    assert described["result"]["is_symlink"] is True
    assert missing["error"]["code"] == "INVALID_PARAMS"


def test_cli_reconcile_mode(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    workspace = _projects(tmp_path)
    (workspace / ".repo_symlink").mkdir()
    (workspace / ".repo_symlink" / "policy.json").write_text(
        '{"is_whitelist": false, "repository_ignore": ["beta"]}\n', encoding="utf-8"
    )

    exit_code = main(
        [
            "--workspace-root",
            str(workspace),
            "--gate-base-delay-seconds",
            "0.001",
            "--gate-max-wait-seconds",
            "5",
            "--reconcile",
        ]
    )

    assert exit_code == 0
    assert '"ok": true' in capsys.readouterr().out
    assert (workspace / "alpha" / "docs").is_symlink()
    assert (workspace / "nested" / "gamma" / "docs").is_symlink()
    assert not (workspace / "beta").exists()
