"""Built-in tools exposing the symlink service."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from repo_symlink.policy import FlagField, ListField
from repo_symlink.reconcile import PassReport
from repo_symlink.service import SymlinkService
from repo_symlink.tools.registry import ToolDispatchError, ToolHandler, ToolRegistry

T = TypeVar("T")
RunFn = Callable[[Awaitable[T]], T]

MAX_AUDIT_ENTRIES = 200


def register_builtin_tools(
    registry: ToolRegistry,
    service: SymlinkService,
    run: RunFn,
    read_audit_entries: Callable[[str | None, int, str | None], list[dict[str, object]]],
) -> None:
    """Register the tool set in a fixed order."""
    registry.register(
        "repo.status", _status_handler(service), "Roots, policy and the last pass report."
    )
    registry.register(
        "repo.list_repositories",
        _list_repositories_handler(service),
        "Repositories under the project root and whether the policy selects them.",
    )
    registry.register(
        "workspace.reconcile",
        _reconcile_handler(service, run),
        "Tear down, wait for the workspace cache, then relink selected repositories.",
    )
    registry.register(
        "workspace.describe_path",
        _describe_path_handler(service),
        "Icon classification of one workspace-relative path.",
    )
    registry.register("policy.get", _policy_get_handler(service), "Current policy.")
    registry.register(
        "policy.update", _policy_update_handler(service), "Merge a partial policy change."
    )
    registry.register(
        "policy.add_entry",
        _list_entry_handler(service, "policy.add_entry", service.add_entry),
        "Add one value to a list field.",
    )
    registry.register(
        "policy.remove_entry",
        _list_entry_handler(service, "policy.remove_entry", service.remove_entry),
        "Remove one value from a list field.",
    )
    registry.register(
        "policy.set_flag", _set_flag_handler(service), "Set one boolean policy field."
    )
    registry.register(
        "repo.audit_log", _audit_log_handler(read_audit_entries), "Recent audit log entries."
    )


def _status_handler(service: SymlinkService) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        repositories = service.index_repositories()
        selected = service.selected_repositories()
        report = service.last_report
        return {
            "workspace_root": str(service.config.workspace_root),
            "project_root": str(service.config.project_root),
            "repository_count": len(repositories),
            "selected_count": len(selected),
            "policy": service.policy.to_dict(),
            "last_pass": report.to_dict() if report is not None else None,
            "effective_config": service.config.to_public_dict(),
        }

    return handler


def _list_repositories_handler(service: SymlinkService) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        repositories = service.index_repositories()
        selected = set(service.selected_repositories())
        return {
            "repositories": [
                {"path": repository, "selected": repository in selected}
                for repository in repositories
            ]
        }

    return handler


def _reconcile_handler(service: SymlinkService, run: RunFn) -> ToolHandler:
    async def run_pass() -> PassReport:
        return await service.reconcile()

    def handler(_: dict[str, object]) -> dict[str, object]:
        return run(run_pass()).to_dict()

    return handler


def _describe_path_handler(service: SymlinkService) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        path_value = arguments.get("path")
        if not isinstance(path_value, str) or not path_value:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="workspace.describe_path path must be a non-empty string.",
            )
        icon, state = service.describe(path_value)
        return {"icon": icon.value if icon is not None else None, **state}

    return handler


def _policy_get_handler(service: SymlinkService) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return {"policy": service.policy.to_dict()}

    return handler


def _policy_update_handler(service: SymlinkService) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        changes = arguments.get("changes")
        if not isinstance(changes, dict):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="policy.update changes must be an object.",
            )
        return {"policy": service.update_policy(changes).to_dict()}

    return handler


def _list_entry_handler(
    service: SymlinkService,
    tool_name: str,
    mutate: Callable[[ListField, str], object],
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        field = _enum_argument(arguments, ListField, tool_name)
        value = arguments.get("value")
        if not isinstance(value, str) or not value:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message=f"{tool_name} value must be a non-empty string.",
            )
        mutate(field, value)
        return {"policy": service.policy.to_dict()}

    return handler


def _set_flag_handler(service: SymlinkService) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        field = _enum_argument(arguments, FlagField, "policy.set_flag")
        value = arguments.get("value")
        if not isinstance(value, bool):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="policy.set_flag value must be a boolean.",
            )
        return {"policy": service.set_flag(field, value).to_dict()}

    return handler


def _audit_log_handler(
    read_audit_entries: Callable[[str | None, int, str | None], list[dict[str, object]]],
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        since_value = arguments.get("since")
        limit_value = arguments.get("limit", 50)
        kind_value = arguments.get("kind")

        since: str | None = since_value if isinstance(since_value, str) else None
        kind: str | None = kind_value if isinstance(kind_value, str) else None
        limit = limit_value if isinstance(limit_value, int) else 50
        if limit < 1:
            limit = 1
        if limit > MAX_AUDIT_ENTRIES:
            limit = MAX_AUDIT_ENTRIES

        return {"entries": read_audit_entries(since, limit, kind)}

    return handler


def _enum_argument(
    arguments: dict[str, object], enum_type: type[ListField] | type[FlagField], tool_name: str
) -> ListField | FlagField:
    raw = arguments.get("field")
    allowed = [member.value for member in enum_type]
    if not isinstance(raw, str) or raw not in allowed:
        raise ToolDispatchError(
            code="INVALID_PARAMS",
            message=f"{tool_name} field must be one of: {', '.join(allowed)}.",
        )
    return enum_type(raw)
