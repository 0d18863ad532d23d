from __future__ import annotations

from pathlib import Path

import pytest

from repo_symlink.config import CliOverrides
from repo_symlink.server import create_server


def _workspace_with_config(tmp_path: Path, lines: list[str]) -> Path:
    workspace = tmp_path / "vault"
    workspace.mkdir()
    (workspace / "repo_symlink.toml").write_text("\n".join(lines), encoding="utf-8")
    return workspace


def test_invalid_gate_value_raises_value_error(tmp_path: Path) -> None:
    workspace = _workspace_with_config(tmp_path, ["[gate]", 'max_wait_seconds = "soon"'])

    with pytest.raises(ValueError, match="gate.max_wait_seconds"):
        create_server(workspace_root=str(workspace))


def test_gate_value_above_cap_raises_value_error(tmp_path: Path) -> None:
    workspace = _workspace_with_config(tmp_path, ["[gate]", "max_wait_seconds = 301"])

    with pytest.raises(ValueError, match="must be <= 300.0"):
        create_server(workspace_root=str(workspace))


def test_invalid_section_type_raises_value_error(tmp_path: Path) -> None:
    workspace = _workspace_with_config(tmp_path, ['gate = "fast"'])

    with pytest.raises(ValueError, match="section 'gate'"):
        create_server(workspace_root=str(workspace))


def test_extension_without_dot_raises_value_error(tmp_path: Path) -> None:
    workspace = _workspace_with_config(tmp_path, ["[link]", 'document_extensions = ["md"]'])

    with pytest.raises(ValueError, match="link.document_extensions"):
        create_server(workspace_root=str(workspace))


def test_project_root_equal_to_workspace_is_rejected(tmp_path: Path) -> None:
    workspace = tmp_path / "vault"
    workspace.mkdir()

    with pytest.raises(ValueError, match="must be different directories"):
        create_server(
            workspace_root=str(workspace),
            cli_overrides=CliOverrides(project_root=workspace),
        )
