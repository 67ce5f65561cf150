"""Tool registry: the provider's tool descriptors, discovered once at startup."""
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from ..logger import get_logger

_log = get_logger(__name__)


@dataclass(frozen=True)
class ToolDescriptor:
    """One tool as advertised by the provider."""
    name: str
    description: str = ""
    parameter_schema: Dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolDescriptor":
        """Build from a ``tools/list`` entry (``name``/``description``/``inputSchema``)."""
        schema = data.get("inputSchema") or {"type": "object", "properties": {}}
        return cls(
            name=str(data["name"]),
            description=str(data.get("description") or ""),
            parameter_schema=dict(schema),
        )


def _schema(descriptor: ToolDescriptor) -> dict:
    """Build an OpenAI-compatible function schema."""
    parameters = dict(descriptor.parameter_schema)
    parameters.setdefault("type", "object")
    parameters.setdefault("properties", {})
    return {
        "type": "function",
        "function": {
            "name": descriptor.name,
            "description": descriptor.description,
            "parameters": parameters,
        },
    }


class ToolRegistry:
    """Read-only view of the provider's tools.

    The registry never interprets tool semantics: descriptors are forwarded
    verbatim to the model, and calls are forwarded verbatim to the channel.
    """

    def __init__(self, channel, descriptors):
        self._channel = channel
        self._tools: Tuple[ToolDescriptor, ...] = tuple(descriptors)
        self._by_name: Dict[str, ToolDescriptor] = {t.name: t for t in self._tools}

    @classmethod
    def discover(cls, channel) -> "ToolRegistry":
        """Populate the registry with a single ``list_tools`` call."""
        descriptors = channel.list_tools()
        _log.info("Discovered %d tools: %s", len(descriptors),
                  ", ".join(d.name for d in descriptors))
        return cls(channel, descriptors)

    def list(self) -> Tuple[ToolDescriptor, ...]:
        return self._tools

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(t.name for t in self._tools)

    @property
    def schemas(self) -> list:
        return [_schema(t) for t in self._tools]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def execute(self, name: str, arguments: Dict[str, Any]) -> str:
        """Invoke a tool through the channel. Unknown names come back as text."""
        if name not in self:
            return f"Unknown tool: {name}"
        return self._channel.call_tool(name, arguments)
