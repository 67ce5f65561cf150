"""Shared fixtures for mars-agent tests."""

import io
import os
from unittest.mock import MagicMock

import pytest
import yaml

from mars_agent.tools import ToolDescriptor


class ScriptedConsole:
    """Console stand-in: records prints and answers ``input`` from a script.

    Running out of scripted answers raises ``EOFError``, like a closed stdin.
    """

    def __init__(self, inputs=()):
        self.inputs = list(inputs)
        self.printed = []
        self.renderables = []
        self.prompts = []
        self.file = io.StringIO()

    def print(self, *args, **kwargs):
        self.renderables.extend(args)
        self.printed.append(" ".join(str(a) for a in args))

    def input(self, prompt: str = "") -> str:
        self.prompts.append(prompt)
        if not self.inputs:
            raise EOFError
        return self.inputs.pop(0)

    @property
    def text(self) -> str:
        return "\n".join(self.printed)


class FakeLLM:
    """Backend stub. Each scripted reply is a list of fragments; an exception
    instance in the list is raised when the stream reaches it."""

    def __init__(self, replies=()):
        self.replies = list(replies)
        self.calls = []

    def stream_reply(self, messages, tools):
        self.calls.append({"messages": list(messages), "tools": tools})
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        for fragment in reply:
            if isinstance(fragment, BaseException):
                raise fragment
            yield fragment


@pytest.fixture
def tmp_dir(tmp_path):
    """Provide a temporary directory and cd into it."""
    orig = os.getcwd()
    os.chdir(tmp_path)
    yield tmp_path
    os.chdir(orig)


@pytest.fixture
def sample_config_data():
    """Minimal .mars-agent.yml data dict."""
    return {
        "model": "anthropic/claude-test",
        "max-tokens": 512,
        "temperature": 0.2,
        "api-key-env": "TEST_MODEL_KEY",
        "provider-command": "python -m mars_agent.provider",
        "max-tool-rounds": 4,
        "verbose": False,
    }


@pytest.fixture
def config_yaml_file(tmp_dir, sample_config_data):
    """Write a config YAML to tmp_dir and return its Path."""
    path = tmp_dir / ".mars-agent.yml"
    with open(path, "w") as f:
        yaml.dump(sample_config_data, f, default_flow_style=False)
    return path


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point the global config dir at an empty temp dir."""
    import mars_agent.config as config_module

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(config_module, "CONFIG_DIR", home)
    monkeypatch.setattr(config_module, "CONFIG_FILE", home / "config.yml")
    return home


@pytest.fixture
def descriptors():
    return [
        ToolDescriptor("get-rovers", "List rovers"),
        ToolDescriptor("get-current-date", "Today's date"),
        ToolDescriptor(
            "get-rover-photo",
            "Photos by rover and date",
            {"type": "object",
             "properties": {"roverName": {"type": "string"}, "earthDate": {"type": "string"}},
             "required": ["roverName", "earthDate"]},
        ),
    ]


@pytest.fixture
def fake_channel(descriptors):
    channel = MagicMock()
    channel.list_tools.return_value = list(descriptors)
    channel.call_tool.return_value = "2024-1-5"
    channel.is_open = True
    return channel
