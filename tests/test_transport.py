"""Tests for the stdio channel, run against real child processes."""

import os
import re
import signal
import sys
import textwrap
from pathlib import Path

import pytest

from mars_agent.errors import ChannelConnectionError, ProtocolError
from mars_agent.transport import StdioChannel

REPO_ROOT = Path(__file__).resolve().parent.parent
PROVIDER_COMMAND = [sys.executable, "-m", "mars_agent.provider"]


@pytest.fixture
def provider_env(tmp_path):
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(REPO_ROOT), env.get("PYTHONPATH")]))
    env["HOME"] = str(tmp_path)
    env["NASA_API_KEY"] = "DEMO_KEY"
    return env


@pytest.fixture
def channel(provider_env):
    ch = StdioChannel.connect(PROVIDER_COMMAND, env=provider_env)
    yield ch
    ch.close()


def _script(tmp_path, body):
    """Write a fake provider script and return the command that runs it."""
    path = tmp_path / "fake_provider.py"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return [sys.executable, str(path)]


HANDSHAKE = """
    import json, sys

    def reply(msg_id, result=None, error=None):
        msg = {"jsonrpc": "2.0", "id": msg_id}
        if error is not None:
            msg["error"] = error
        else:
            msg["result"] = result
        sys.stdout.write(json.dumps(msg) + "\\n")
        sys.stdout.flush()

    request = json.loads(sys.stdin.readline())
    reply(request["id"], {"protocolVersion": "2024-11-05", "serverInfo": {"name": "fake"}})
    sys.stdin.readline()  # notifications/initialized
"""


class TestAgainstProvider:

    def test_handshake(self, channel):
        assert channel.is_open
        assert channel.server_info["serverInfo"]["name"] == "mars-photos"

    def test_lists_exactly_three_tools(self, channel):
        tools = channel.list_tools()

        assert sorted(t.name for t in tools) == ["get-current-date", "get-rover-photo", "get-rovers"]
        photo = next(t for t in tools if t.name == "get-rover-photo")
        assert set(photo.parameter_schema["properties"]) == {"roverName", "earthDate"}
        assert set(photo.parameter_schema["required"]) == {"roverName", "earthDate"}

    def test_current_date_format(self, channel):
        text = channel.call_tool("get-current-date", {})
        assert re.fullmatch(r"\d{4}-[1-9]\d?-[1-9]\d?", text)

    def test_unknown_tool_is_text(self, channel):
        assert channel.call_tool("get-weather", {}) == "Unknown tool: get-weather"

    def test_ping(self, channel):
        assert channel.request("ping") == {}

    def test_unknown_method_raises_protocol_error(self, channel):
        with pytest.raises(ProtocolError) as exc_info:
            channel.request("resources/list")
        assert "Method not found" in str(exc_info.value)

    def test_close_is_idempotent(self, channel):
        channel.close()
        channel.close()

        assert not channel.is_open
        with pytest.raises(ProtocolError):
            channel.list_tools()


class TestConnectFailures:

    def test_missing_executable(self, tmp_path):
        with pytest.raises(ChannelConnectionError) as exc_info:
            StdioChannel.connect([str(tmp_path / "no-such-provider")])
        assert "no-such-provider" in str(exc_info.value)

    def test_empty_command(self):
        with pytest.raises(ChannelConnectionError):
            StdioChannel.connect([])

    def test_child_exits_immediately(self, tmp_path):
        command = _script(tmp_path, "import sys\nsys.exit(0)\n")

        with pytest.raises(ChannelConnectionError):
            StdioChannel.connect(command)

    def test_garbage_handshake(self, tmp_path):
        command = _script(tmp_path, """
            import sys
            sys.stdin.readline()
            sys.stdout.write("this is not json\\n")
            sys.stdout.flush()
        """)

        with pytest.raises(ChannelConnectionError) as exc_info:
            StdioChannel.connect(command)
        assert "invalid JSON" in str(exc_info.value)

    def test_error_handshake(self, tmp_path):
        command = _script(tmp_path, """
            import json, sys
            request = json.loads(sys.stdin.readline())
            sys.stdout.write(json.dumps({"jsonrpc": "2.0", "id": request["id"],
                                         "error": {"code": -32603, "message": "boom"}}) + "\\n")
            sys.stdout.flush()
        """)

        with pytest.raises(ChannelConnectionError) as exc_info:
            StdioChannel.connect(command)
        assert "boom" in str(exc_info.value)


class TestBrokenChannel:

    def test_provider_dies_after_handshake(self, tmp_path):
        channel = StdioChannel.connect(_script(tmp_path, HANDSHAKE))
        try:
            with pytest.raises(ProtocolError):
                channel.list_tools()
        finally:
            channel.close()

    def test_malformed_tool_list(self, tmp_path):
        channel = StdioChannel.connect(_script(tmp_path, HANDSHAKE + """
    request = json.loads(sys.stdin.readline())
    reply(request["id"], {"tools": "nope"})
    sys.stdin.readline()
"""))
        try:
            with pytest.raises(ProtocolError) as exc_info:
                channel.list_tools()
            assert "no tools array" in str(exc_info.value)
        finally:
            channel.close()

    def test_error_result_returned_as_text(self, tmp_path):
        channel = StdioChannel.connect(_script(tmp_path, HANDSHAKE + """
    request = json.loads(sys.stdin.readline())
    reply(request["id"], {"content": [{"type": "text", "text": "Error retrieving rovers: 503"}],
                          "isError": True})
    sys.stdin.readline()
"""))
        try:
            assert channel.call_tool("get-rovers", {}) == "Error retrieving rovers: 503"
        finally:
            channel.close()


SLOW_REPLIES = """
    import time
    for line in sys.stdin:
        request = json.loads(line)
        time.sleep(0.5)
        reply(request["id"], {"content": [{"type": "text", "text": "reply %d" % request["id"]}]})
"""


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt


class TestResponseMatching:

    def test_echoed_request_is_not_a_response(self, tmp_path):
        command = _script(tmp_path, """
            import sys
            for line in sys.stdin:
                sys.stdout.write(line)
                sys.stdout.flush()
        """)

        with pytest.raises(ChannelConnectionError) as exc_info:
            StdioChannel.connect(command)
        assert "unexpected request 'initialize'" in str(exc_info.value)

    @pytest.mark.skipif(not hasattr(signal, "setitimer"), reason="needs SIGALRM")
    def test_interrupted_call_leaves_channel_in_sync(self, tmp_path):
        channel = StdioChannel.connect(_script(tmp_path, HANDSHAKE + SLOW_REPLIES))
        previous = signal.signal(signal.SIGALRM, _raise_interrupt)
        try:
            signal.setitimer(signal.ITIMER_REAL, 0.1)
            with pytest.raises(KeyboardInterrupt):
                channel.call_tool("get-rovers", {})
            signal.setitimer(signal.ITIMER_REAL, 0)

            # The late reply to request 2 is skipped, not mistaken for request 3's.
            assert channel.call_tool("get-rovers", {}) == "reply 3"
            assert channel.call_tool("get-current-date", {}) == "reply 4"
            assert channel.is_open
        finally:
            signal.setitimer(signal.ITIMER_REAL, 0)
            signal.signal(signal.SIGALRM, previous)
            channel.close()
