"""Stdio tool server: answers JSON-RPC requests read line by line from stdin."""

import sys
from typing import Any, Dict, Optional, TextIO

from .. import __version__
from ..jsonrpc import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    PROTOCOL_VERSION,
    RpcMessage,
    error_payload,
)
from ..logger import get_logger
from .tool_decorator import ToolArgumentError, execute_tool, get_registered_tools, get_tool_schemas

_log = get_logger(__name__)

SERVER_NAME = "mars-photos"


class ProviderServer:
    """Serves the registered tools, bound to ``tools`` (a MarsPhotosTools)."""

    def __init__(self, tools: Any):
        self.tools = tools
        self.initialized = False
        self._handlers = {
            "initialize": self._initialize,
            "ping": lambda params: {},
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        client = (params or {}).get("clientInfo", {})
        _log.info("Client connected: %s %s", client.get("name"), client.get("version"))
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    def _list_tools(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"tools": get_tool_schemas()}

    def _call_tool(self, params: Dict[str, Any]) -> Dict[str, Any]:
        name = (params or {}).get("name")
        arguments = (params or {}).get("arguments") or {}
        if name not in get_registered_tools():
            return _text_result(f"Unknown tool: {name}", is_error=True)
        try:
            text = execute_tool(name, arguments, self.tools)
        except ToolArgumentError as e:
            return _text_result(f"Invalid arguments for {name}: {e}", is_error=True)
        return _text_result(text)

    def handle(self, message: RpcMessage) -> Optional[RpcMessage]:
        """Process one message; returns the response, or None for notifications."""
        if message.is_notification:
            if message.method == "notifications/initialized":
                self.initialized = True
            return None
        if message.method is None:
            return RpcMessage(id=message.id, error=error_payload(INVALID_REQUEST, "missing method"))

        handler = self._handlers.get(message.method)
        if handler is None:
            return RpcMessage(id=message.id,
                              error=error_payload(METHOD_NOT_FOUND, f"Method not found: {message.method}"))
        try:
            result = handler(message.params or {})
        except Exception as e:
            _log.exception("Handler for %s failed", message.method)
            return RpcMessage(id=message.id, error=error_payload(INTERNAL_ERROR, str(e)))
        return RpcMessage(id=message.id, result=result)

    def serve(self, stdin: TextIO = None, stdout: TextIO = None):
        """Run until stdin is closed."""
        stdin = stdin or sys.stdin
        stdout = stdout or sys.stdout
        for raw in stdin:
            line = raw.strip()
            if not line:
                continue
            try:
                message = RpcMessage.from_line(line)
            except ValueError as e:
                response = RpcMessage(error=error_payload(PARSE_ERROR, f"Parse error: {e}"))
            else:
                response = self.handle(message)
            if response is not None:
                stdout.write(response.to_line())
                stdout.flush()
        _log.info("stdin closed, shutting down")


def _text_result(text: str, is_error: bool = False) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": text}], "isError": is_error}
