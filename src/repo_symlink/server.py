"""STDIO tool server entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Awaitable
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO, TypeVar

from repo_symlink.config import CliOverrides, WorkspaceConfig, load_effective_config
from repo_symlink.logging import AuditEvent, JsonlAuditLogger, sanitize_arguments, utc_timestamp
from repo_symlink.security import PathBlockedError
from repo_symlink.service import SymlinkService
from repo_symlink.tools.builtin import register_builtin_tools
from repo_symlink.tools.registry import ToolDispatchError, ToolRegistry

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class Request:
    """Normalized incoming request."""

    request_id: str
    method: str
    params: dict[str, object]


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for server startup configuration."""
    parser = argparse.ArgumentParser(prog="repo-symlink")
    parser.add_argument("--workspace-root", required=False, default=".")
    parser.add_argument("--project-root", required=False, default=None)
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--gate-base-delay-seconds", type=float, required=False, default=None)
    parser.add_argument("--gate-max-wait-seconds", type=float, required=False, default=None)
    parser.add_argument(
        "--reconcile",
        action="store_true",
        help="Run one reconciliation pass, print its report and exit.",
    )
    return parser


class StdioServer:
    """JSON-lines STDIO server routing requests to registered tools."""

    def __init__(
        self,
        config: WorkspaceConfig,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._config = config
        self._loop = loop or asyncio.new_event_loop()
        self._service = SymlinkService(config)
        self._audit_logger: JsonlAuditLogger = self._service.event_log
        self._registry = ToolRegistry()
        register_builtin_tools(
            self._registry,
            service=self._service,
            run=self.run,
            read_audit_entries=self._audit_logger.read,
        )
        self._fallback_request_counter = 0

    @property
    def service(self) -> SymlinkService:
        return self._service

    def run(self, awaitable: Awaitable[T]) -> T:
        """Drive the event loop until ``awaitable`` finishes."""
        return self._loop.run_until_complete(awaitable)

    def start(self) -> None:
        """Start cache polling and the startup pass when the policy asks for one."""
        self.run(self._service.start())

    def close(self) -> None:
        self.run(self._service.close())
        self._loop.close()

    def serve(self, in_stream: TextIO, out_stream: TextIO) -> None:
        """Process JSON-line requests and write JSON-line responses."""
        for raw_line in in_stream:
            line = raw_line.strip()
            if not line:
                continue
            response = self.handle_json_line(line)
            out_stream.write(f"{json.dumps(response, sort_keys=True)}\n")
            out_stream.flush()

    def handle_json_line(self, raw_line: str) -> dict[str, object]:
        """Handle a single JSON-line request."""
        try:
            payload = json.loads(raw_line)
        except json.JSONDecodeError:
            return self.error_response(
                request_id=self.next_request_id(),
                code="INVALID_JSON",
                message="Request must be valid JSON.",
            )
        return self.handle_payload(payload)

    def handle_payload(self, payload: object) -> dict[str, object]:
        """Validate a parsed payload, run the tool it names and log the outcome."""
        request = self.parse_request(payload)
        if isinstance(request, dict):
            return request
        if request.method == "tools/list":
            return self.success_response(
                request_id=request.request_id,
                result={"tools": self._registry.listing()},
            )
        call = self.resolve_call(request)
        if isinstance(call, dict):
            return call
        tool_name, arguments = call
        response = self.call_tool(request.request_id, tool_name, arguments)
        self.log_request(
            request_id=request.request_id,
            tool_name=tool_name,
            arguments=arguments,
            response=response,
        )
        return response

    def resolve_call(
        self, request: Request
    ) -> tuple[str, dict[str, object]] | dict[str, object]:
        """Return the tool name and arguments, unwrapping ``tools/call`` envelopes."""
        if request.method != "tools/call":
            return request.method, request.params
        name = request.params.get("name")
        arguments = request.params.get("arguments", {})
        if not isinstance(name, str) or not name:
            return self.error_response(
                request_id=request.request_id,
                code="INVALID_PARAMS",
                message="tools/call params.name must be a non-empty string.",
            )
        if not isinstance(arguments, dict):
            return self.error_response(
                request_id=request.request_id,
                code="INVALID_PARAMS",
                message="tools/call params.arguments must be an object.",
            )
        return name, arguments

    def call_tool(
        self, request_id: str, tool_name: str, arguments: dict[str, object]
    ) -> dict[str, object]:
        """Dispatch one tool and translate its failure into an envelope."""
        try:
            result = self._registry.dispatch(name=tool_name, arguments=arguments)
        except PathBlockedError as error:
            return self.blocked_response(request_id=request_id, reason=error.reason, hint=error.hint)
        except ToolDispatchError as error:
            return self.error_response(request_id=request_id, code=error.code, message=error.message)
        except ValueError as error:
            return self.error_response(
                request_id=request_id, code="INVALID_PARAMS", message=str(error)
            )
        except OSError as error:
            return self.error_response(
                request_id=request_id,
                code="FILESYSTEM_ERROR",
                message=f"{type(error).__name__}: {error.strerror or error}",
            )
        except Exception:
            return self.error_response(
                request_id=request_id,
                code="INTERNAL_ERROR",
                message="Unhandled server error while executing tool.",
            )
        return self.success_response(request_id=request_id, result=result)

    def parse_request(self, payload: object) -> Request | dict[str, object]:
        """Validate request payload and return normalized Request."""
        if not isinstance(payload, dict):
            return self.error_response(
                request_id=self.next_request_id(),
                code="INVALID_REQUEST",
                message="Request must be an object.",
            )

        request_id = self.extract_request_id(payload.get("id"))
        method = payload.get("method")
        params = payload.get("params", {})

        if not isinstance(method, str) or not method:
            return self.error_response(
                request_id=request_id,
                code="INVALID_REQUEST",
                message="Request method must be a non-empty string.",
            )
        if not isinstance(params, dict):
            return self.error_response(
                request_id=request_id,
                code="INVALID_PARAMS",
                message="Request params must be an object.",
            )

        return Request(request_id=request_id, method=method, params=params)

    def extract_request_id(self, request_id: object) -> str:
        """Extract request ID from payload or synthesize a sequential fallback."""
        if isinstance(request_id, str) and request_id:
            return request_id
        if isinstance(request_id, int):
            return str(request_id)
        return self.next_request_id()

    def next_request_id(self) -> str:
        self._fallback_request_counter += 1
        return f"req-{self._fallback_request_counter:06d}"

    @staticmethod
    def success_response(request_id: str, result: dict[str, object]) -> dict[str, object]:
        """Build success envelope."""
        return {
            "request_id": request_id,
            "ok": True,
            "result": result,
            "blocked": False,
        }

    @staticmethod
    def error_response(request_id: str, code: str, message: str) -> dict[str, object]:
        """Build explicit error envelope."""
        return {
            "request_id": request_id,
            "ok": False,
            "result": {},
            "blocked": False,
            "error": {"code": code, "message": message},
        }

    @staticmethod
    def blocked_response(request_id: str, reason: str, hint: str) -> dict[str, object]:
        """Build explicit blocked response envelope."""
        return {
            "request_id": request_id,
            "ok": False,
            "result": {"reason": reason, "hint": hint},
            "blocked": True,
            "error": {"code": "PATH_BLOCKED", "message": reason},
        }

    def log_request(
        self,
        request_id: str,
        tool_name: str,
        arguments: dict[str, object],
        response: dict[str, object],
    ) -> None:
        """Log one sanitized request event."""
        error_payload = response.get("error")
        error_code: str | None = None
        if isinstance(error_payload, dict):
            code_value = error_payload.get("code")
            if isinstance(code_value, str):
                error_code = code_value
        event = AuditEvent(
            timestamp=utc_timestamp(),
            request_id=request_id,
            tool=tool_name,
            ok=bool(response.get("ok", False)),
            blocked=bool(response.get("blocked", False)),
            error_code=error_code,
            metadata=sanitize_arguments(arguments),
        )
        self._audit_logger.append(event)


def create_server(
    workspace_root: str,
    cli_overrides: CliOverrides | None = None,
) -> StdioServer:
    """Create a configured and started STDIO server instance."""
    config = load_effective_config(Path(workspace_root), overrides=cli_overrides)
    server = StdioServer(config=config)
    server.start()
    return server


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the repo-symlink server process."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    overrides = CliOverrides(
        project_root=Path(args.project_root).resolve() if args.project_root is not None else None,
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        base_delay_seconds=args.gate_base_delay_seconds,
        max_wait_seconds=args.gate_max_wait_seconds,
    )
    server = create_server(workspace_root=args.workspace_root, cli_overrides=overrides)
    try:
        if args.reconcile:
            response = server.handle_payload(
                {"id": "cli-reconcile", "method": "workspace.reconcile", "params": {}}
            )
            sys.stdout.write(f"{json.dumps(response, sort_keys=True)}\n")
            return 0 if response["ok"] else 1
        server.serve(in_stream=sys.stdin, out_stream=sys.stdout)
    finally:
        server.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
