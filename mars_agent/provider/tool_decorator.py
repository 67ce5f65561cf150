"""@tool decorator: auto-generates the tool's input schema and dispatch from its signature.

Usage:
    class MarsPhotosTools:
        @tool("get-rover-photo", description="...", aliases={"rover_name": "roverName"})
        def get_rover_photo(self, rover_name: str, earth_date: str) -> str:
            ...

``aliases`` maps Python parameter names to the names advertised to clients.
"""

import inspect
from typing import Any, Callable, Dict, List, Optional, get_type_hints

# Global registry: name -> {func, schema, aliases}
_TOOL_REGISTRY: Dict[str, Dict[str, Any]] = {}

# Python type -> JSON Schema type
_TYPE_MAP = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
}


class ToolArgumentError(ValueError):
    """Raised when a call's arguments do not match the tool's signature."""
    pass


def tool(name: str, description: str, aliases: Optional[Dict[str, str]] = None):
    """Decorator to register a method as a client-callable tool.

    Args:
        name: Tool name advertised to clients.
        description: Tool description shown to the model.
        aliases: Python parameter name -> advertised parameter name.
    """
    def decorator(func: Callable) -> Callable:
        alias_map = dict(aliases or {})
        _TOOL_REGISTRY[name] = {
            "func": func,
            "schema": _build_schema(func, name, description, alias_map),
            "aliases": alias_map,
        }
        func._tool_name = name
        return func

    return decorator


def _build_schema(func: Callable, name: str, description: str,
                  aliases: Dict[str, str]) -> dict:
    """Build a ``tools/list`` entry from the function signature."""
    sig = inspect.signature(func)
    try:
        hints = get_type_hints(func)
    except Exception:
        hints = {}

    properties = {}
    required = []

    for param_name, param in sig.parameters.items():
        if param_name == "self":
            continue

        prop: Dict[str, Any] = {}
        hint = hints.get(param_name)

        # Resolve Optional[X] -> X
        args = getattr(hint, "__args__", None)
        if args and type(None) in args:
            hint = next((a for a in args if a is not type(None)), None)

        prop["type"] = _TYPE_MAP.get(hint, "string")

        doc_desc = _extract_param_doc(func, param_name)
        if doc_desc:
            prop["description"] = doc_desc

        public_name = aliases.get(param_name, param_name)
        if param.default is not inspect.Parameter.empty:
            if param.default is not None:
                prop["default"] = param.default
        else:
            required.append(public_name)

        properties[public_name] = prop

    return {
        "name": name,
        "description": description,
        "inputSchema": {
            "type": "object",
            "properties": properties,
            "required": required,
        },
    }


def _extract_param_doc(func: Callable, param_name: str) -> str:
    """Extract parameter description from docstring (Google style)."""
    doc = func.__doc__
    if not doc:
        return ""
    for line in doc.splitlines():
        stripped = line.strip()
        if stripped.startswith(f"{param_name}:") or stripped.startswith(f"{param_name} :"):
            _, _, desc = stripped.partition(":")
            return desc.strip()
    return ""


def get_registered_tools() -> Dict[str, Dict[str, Any]]:
    """Return the full tool registry."""
    return _TOOL_REGISTRY


def get_tool_schemas() -> List[dict]:
    return [entry["schema"] for entry in _TOOL_REGISTRY.values()]


def execute_tool(name: str, arguments: Dict[str, Any], instance: Any) -> str:
    """Dispatch a tool call by name, bound to ``instance``.

    Raises ``KeyError`` for unknown tools and ``ToolArgumentError`` for
    arguments that do not fit the signature.
    """
    entry = _TOOL_REGISTRY[name]
    reverse = {public: py for py, public in entry["aliases"].items()}
    kwargs = {reverse.get(key, key): value for key, value in (arguments or {}).items()}

    func = entry["func"]
    try:
        inspect.signature(func).bind(instance, **kwargs)
    except TypeError as e:
        raise ToolArgumentError(str(e)) from e
    return func(instance, **kwargs)
