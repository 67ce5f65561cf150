"""JSON-RPC 2.0 messages, one JSON document per line (the MCP stdio framing)."""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


@dataclass
class RpcMessage:
    """A request, notification or response."""
    jsonrpc: str = "2.0"
    id: Optional[int] = None
    method: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    result: Optional[Any] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def is_notification(self) -> bool:
        return self.method is not None and self.id is None

    @property
    def is_response(self) -> bool:
        return self.method is None

    def to_dict(self) -> Dict[str, Any]:
        msg: Dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.id is not None:
            msg["id"] = self.id
        if self.method is not None:
            msg["method"] = self.method
        if self.params is not None:
            msg["params"] = self.params
        if self.error is not None:
            msg["error"] = self.error
        elif self.method is None:
            # Responses always carry a result, even an empty one.
            msg["result"] = self.result if self.result is not None else {}
        return msg

    def to_line(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False) + "\n"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RpcMessage":
        return cls(
            jsonrpc=data.get("jsonrpc", "2.0"),
            id=data.get("id"),
            method=data.get("method"),
            params=data.get("params"),
            result=data.get("result"),
            error=data.get("error"),
        )

    @classmethod
    def from_line(cls, line: str) -> "RpcMessage":
        """Parse one line. Raises ``ValueError`` for anything but a JSON object."""
        data = json.loads(line)
        if not isinstance(data, dict):
            raise ValueError("JSON-RPC message must be an object")
        return cls.from_dict(data)


def error_payload(code: int, message: str) -> Dict[str, Any]:
    return {"code": code, "message": message}
