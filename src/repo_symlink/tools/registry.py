"""Named tool registration and dispatch."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

ToolHandler = Callable[[dict[str, object]], dict[str, object]]


@dataclass(slots=True, frozen=True)
class ToolDispatchError(Exception):
    """Represents deterministic tool dispatch failures."""

    code: str
    message: str


@dataclass(slots=True, frozen=True)
class ToolSpec:
    """A registered tool and the one-line summary shown by ``tools/list``."""

    name: str
    description: str
    handler: ToolHandler


@dataclass(slots=True)
class ToolRegistry:
    """In-memory tool registry preserving registration order."""

    _tools: dict[str, ToolSpec] = field(default_factory=dict)

    def register(self, name: str, handler: ToolHandler, description: str = "") -> None:
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        self._tools[name] = ToolSpec(name=name, description=description, handler=handler)

    def get(self, name: str) -> ToolHandler | None:
        spec = self._tools.get(name)
        return spec.handler if spec is not None else None

    def names(self) -> tuple[str, ...]:
        return tuple(self._tools.keys())

    def listing(self) -> list[dict[str, str]]:
        """Return name/description pairs in registration order."""
        return [{"name": spec.name, "description": spec.description} for spec in self._tools.values()]

    def dispatch(self, name: str, arguments: dict[str, object]) -> dict[str, object]:
        """Dispatch to a registered tool by name."""
        handler = self.get(name)
        if handler is None:
            raise ToolDispatchError(code="UNKNOWN_TOOL", message=f"Unknown tool: {name}")
        return handler(arguments)
