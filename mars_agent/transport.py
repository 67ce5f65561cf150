"""Stdio channel to the tool provider process.

The provider is launched once with a fixed argv and kept alive for the whole
session. Requests and responses are newline-delimited JSON-RPC messages on its
stdin/stdout. There is no retry logic here: a broken channel ends the session.
"""

import subprocess
from typing import Any, Dict, List, Optional, Sequence

from . import __version__
from .errors import ChannelConnectionError, ProtocolError
from .jsonrpc import PROTOCOL_VERSION, RpcMessage
from .logger import get_logger
from .tools.registry import ToolDescriptor

_log = get_logger(__name__)

CLIENT_NAME = "mars-agent"
TERMINATE_TIMEOUT = 5


class StdioChannel:
    """Duplex JSON-RPC stream to a child process."""

    def __init__(self, process: subprocess.Popen, command: Sequence[str]):
        self._process = process
        self.command = list(command)
        self._message_id = 0
        self.server_info: Dict[str, Any] = {}

    @classmethod
    def connect(cls, command: Sequence[str], env: Optional[Dict[str, str]] = None) -> "StdioChannel":
        """Spawn the provider and complete the ``initialize`` handshake."""
        if not command:
            raise ChannelConnectionError(command, "empty command")

        _log.info("Starting tool provider: %s", " ".join(command))
        try:
            process = subprocess.Popen(
                list(command),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                env=env,
                text=True,
                encoding="utf-8",
                bufsize=1,
            )
        except OSError as e:
            raise ChannelConnectionError(command, str(e)) from e

        channel = cls(process, command)
        try:
            channel._initialize()
        except (ProtocolError, OSError) as e:
            channel.close()
            raise ChannelConnectionError(command, str(e)) from e
        _log.info("Tool provider started (PID: %s)", process.pid)
        return channel

    @property
    def is_open(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def _next_id(self) -> int:
        self._message_id += 1
        return self._message_id

    def _initialize(self):
        result = self.request("initialize", {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "clientInfo": {"name": CLIENT_NAME, "version": __version__},
        })
        self.server_info = result if isinstance(result, dict) else {}
        self.notify("notifications/initialized", {})

    def _write(self, message: RpcMessage):
        if not self.is_open:
            raise ProtocolError(message.method or "write", "tool provider is not running")
        try:
            self._process.stdin.write(message.to_line())
            self._process.stdin.flush()
        except (BrokenPipeError, ValueError) as e:
            raise ProtocolError(message.method or "write", f"channel closed: {e}") from e

    def _read_response(self, method: str, request_id: int) -> RpcMessage:
        while True:
            line = self._process.stdout.readline()
            if not line:
                raise ProtocolError(method, "tool provider closed the connection")
            line = line.strip()
            if not line:
                continue
            try:
                message = RpcMessage.from_line(line)
            except ValueError as e:
                raise ProtocolError(method, f"invalid JSON from tool provider: {e}") from e

            if message.is_notification:
                _log.info("Provider notification: %s", message.method)
                continue
            if not message.is_response:
                raise ProtocolError(method, f"unexpected request {message.method!r} from tool provider")
            # Replies to requests abandoned mid-wait (e.g. Ctrl-C) arrive late.
            if isinstance(message.id, int) and message.id < request_id:
                _log.info("Discarding stale response for request %d", message.id)
                continue
            if message.id != request_id:
                raise ProtocolError(method, f"response id {message.id!r} does not match request {request_id}")
            return message

    def request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Send a request and block until its response arrives."""
        request_id = self._next_id()
        self._write(RpcMessage(id=request_id, method=method, params=params or {}))
        response = self._read_response(method, request_id)
        if response.error:
            raise ProtocolError(method, str(response.error.get("message", response.error)))
        return response.result

    def notify(self, method: str, params: Optional[Dict[str, Any]] = None):
        self._write(RpcMessage(method=method, params=params or {}))

    def list_tools(self) -> List[ToolDescriptor]:
        result = self.request("tools/list")
        if not isinstance(result, dict) or not isinstance(result.get("tools"), list):
            raise ProtocolError("tools/list", "result has no tools array")
        try:
            return [ToolDescriptor.from_dict(item) for item in result["tools"]]
        except (KeyError, TypeError, AttributeError) as e:
            raise ProtocolError("tools/list", f"malformed tool descriptor: {e}") from e

    def call_tool(self, name: str, arguments: Dict[str, Any]) -> str:
        """Invoke a tool and return its text output.

        Results flagged ``isError`` are returned as text too, so the model can
        read the failure.
        """
        result = self.request("tools/call", {"name": name, "arguments": arguments or {}})
        if not isinstance(result, dict):
            raise ProtocolError("tools/call", "result is not an object")
        content = result.get("content") or []
        texts = [item.get("text", "") for item in content
                 if isinstance(item, dict) and item.get("type") == "text"]
        if result.get("isError"):
            _log.warning("Tool %s reported an error", name)
        return "\n".join(texts)

    def close(self):
        """Stop the provider. Safe to call more than once."""
        process, self._process = self._process, None
        if process is None:
            return
        for stream in (process.stdin, process.stdout):
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    pass
        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=TERMINATE_TIMEOUT)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
        _log.info("Tool provider stopped")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
