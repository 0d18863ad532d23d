"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from repo_symlink.index import DEFAULT_DOCUMENT_EXTENSIONS, DEFAULT_MARKER

CONFIG_FILE_NAME = "repo_symlink.toml"
DATA_DIR_NAME = ".repo_symlink"
MAX_WAIT_SECONDS_CAP = 300.0
MAX_BASE_DELAY_SECONDS_CAP = 5.0


@dataclass(slots=True, frozen=True)
class GateConfig:
    """Timing of the wait between teardown and linking."""

    base_delay_seconds: float = 0.01
    max_wait_seconds: float = 10.0
    poll_interval_seconds: float = 0.05


@dataclass(slots=True, frozen=True)
class LinkConfig:
    """What counts as a repository and as a linkable document."""

    document_extensions: tuple[str, ...] = DEFAULT_DOCUMENT_EXTENSIONS
    marker: str = DEFAULT_MARKER


@dataclass(slots=True, frozen=True)
class WorkspaceConfig:
    """Fully merged runtime configuration."""

    workspace_root: Path
    project_root: Path
    data_dir: Path
    gate: GateConfig
    link: LinkConfig

    @property
    def policy_path(self) -> Path:
        return self.data_dir / "policy.json"

    @property
    def audit_path(self) -> Path:
        return self.data_dir / "audit.jsonl"

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for tool responses."""
        return {
            "workspace_root": str(self.workspace_root),
            "project_root": str(self.project_root),
            "data_dir": str(self.data_dir),
            "gate": {
                "base_delay_seconds": self.gate.base_delay_seconds,
                "max_wait_seconds": self.gate.max_wait_seconds,
                "poll_interval_seconds": self.gate.poll_interval_seconds,
            },
            "link": {
                "document_extensions": list(self.link.document_extensions),
                "marker": self.link.marker,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    project_root: Path | None = None
    data_dir: Path | None = None
    base_delay_seconds: float | None = None
    max_wait_seconds: float | None = None


def default_config(workspace_root: Path) -> WorkspaceConfig:
    """Build default config for a workspace living inside its project root."""
    resolved_root = workspace_root.resolve()
    return WorkspaceConfig(
        workspace_root=resolved_root,
        project_root=resolved_root.parent,
        data_dir=resolved_root / DATA_DIR_NAME,
        gate=GateConfig(),
        link=LinkConfig(),
    )


def load_workspace_config_file(workspace_root: Path) -> dict[str, object]:
    """Load optional repo_symlink.toml from the workspace root."""
    config_path = workspace_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def merge_config(
    base: WorkspaceConfig, file_payload: dict[str, object], overrides: CliOverrides
) -> WorkspaceConfig:
    """Merge defaults, workspace config file, then CLI/startup overrides."""
    roots_payload = _get_table(file_payload, "roots")
    gate_payload = _get_table(file_payload, "gate")
    link_payload = _get_table(file_payload, "link")

    project_root = base.project_root
    if "project_root" in roots_payload:
        raw_project_root = roots_payload["project_root"]
        if not isinstance(raw_project_root, str) or not raw_project_root:
            raise ValueError("Config field 'roots.project_root' must be a non-empty string.")
        project_root = (base.workspace_root / raw_project_root).resolve()

    data_dir = base.data_dir
    if "data_dir" in roots_payload:
        raw_data_dir = roots_payload["data_dir"]
        if not isinstance(raw_data_dir, str) or not raw_data_dir:
            raise ValueError("Config field 'roots.data_dir' must be a non-empty string.")
        data_dir = (base.workspace_root / raw_data_dir).resolve()

    gate = GateConfig(
        base_delay_seconds=_optional_positive_float_with_cap(
            gate_payload.get("base_delay_seconds"),
            "gate.base_delay_seconds",
            base.gate.base_delay_seconds,
            MAX_BASE_DELAY_SECONDS_CAP,
        ),
        max_wait_seconds=_optional_positive_float_with_cap(
            gate_payload.get("max_wait_seconds"),
            "gate.max_wait_seconds",
            base.gate.max_wait_seconds,
            MAX_WAIT_SECONDS_CAP,
        ),
        poll_interval_seconds=_optional_positive_float_with_cap(
            gate_payload.get("poll_interval_seconds"),
            "gate.poll_interval_seconds",
            base.gate.poll_interval_seconds,
            MAX_BASE_DELAY_SECONDS_CAP,
        ),
    )

    document_extensions = base.link.document_extensions
    if "document_extensions" in link_payload:
        document_extensions = _tuple_of_strings(
            link_payload["document_extensions"], "link", "document_extensions"
        )
        if any(not extension.startswith(".") for extension in document_extensions):
            raise ValueError("Config field 'link.document_extensions' entries must start with '.'.")
    marker = base.link.marker
    if "marker" in link_payload:
        raw_marker = link_payload["marker"]
        if not isinstance(raw_marker, str) or not raw_marker or "/" in raw_marker:
            raise ValueError("Config field 'link.marker' must be a plain directory name.")
        marker = raw_marker

    merged = WorkspaceConfig(
        workspace_root=base.workspace_root,
        project_root=project_root,
        data_dir=data_dir,
        gate=gate,
        link=LinkConfig(document_extensions=document_extensions, marker=marker),
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: WorkspaceConfig, overrides: CliOverrides) -> WorkspaceConfig:
    """Apply startup overrides at highest precedence."""
    gate = GateConfig(
        base_delay_seconds=_optional_positive_float_with_cap(
            overrides.base_delay_seconds,
            "overrides.base_delay_seconds",
            config.gate.base_delay_seconds,
            MAX_BASE_DELAY_SECONDS_CAP,
        ),
        max_wait_seconds=_optional_positive_float_with_cap(
            overrides.max_wait_seconds,
            "overrides.max_wait_seconds",
            config.gate.max_wait_seconds,
            MAX_WAIT_SECONDS_CAP,
        ),
        poll_interval_seconds=config.gate.poll_interval_seconds,
    )
    project_root = overrides.project_root or config.project_root
    data_dir = overrides.data_dir or config.data_dir
    resolved_project_root = project_root.resolve()
    if resolved_project_root == config.workspace_root:
        raise ValueError("Project root and workspace root must be different directories.")
    return WorkspaceConfig(
        workspace_root=config.workspace_root,
        project_root=resolved_project_root,
        data_dir=data_dir.resolve(),
        gate=gate,
        link=config.link,
    )


def load_effective_config(
    workspace_root: Path, overrides: CliOverrides | None = None
) -> WorkspaceConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    resolved_root = workspace_root.resolve()
    base = default_config(resolved_root)
    payload = load_workspace_config_file(resolved_root)
    return merge_config(base, payload, overrides or CliOverrides())


def _optional_positive_float_with_cap(
    value: object,
    name: str,
    default: float,
    cap: float | None,
) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
        raise ValueError(f"Config field '{name}' must be a positive number.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return float(value)
