"""Tests for the litellm adapter: streaming, the tool loop and error mapping."""

import json
from types import SimpleNamespace

import litellm
import pytest
import requests

from mars_agent.errors import RateLimitError, TransportError, UnexpectedError
from mars_agent.llm import LLMAdapter, translate_error


def _text_chunk(text):
    delta = SimpleNamespace(content=text, tool_calls=None)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)], usage=None)


def _tool_chunk(index, call_id=None, name=None, arguments=None):
    function = SimpleNamespace(name=name, arguments=arguments)
    tc = SimpleNamespace(index=index, id=call_id, function=function)
    delta = SimpleNamespace(content=None, tool_calls=[tc])
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)], usage=None)


def _usage_chunk(total):
    usage = SimpleNamespace(prompt_tokens=total - 1, completion_tokens=1, total_tokens=total)
    return SimpleNamespace(choices=[], usage=usage)


class FakeRegistry:
    schemas = [{"type": "function", "function": {"name": "get-current-date"}}]

    def __init__(self, result="2024-1-5"):
        self.result = result
        self.executed = []

    def execute(self, name, arguments):
        self.executed.append((name, arguments))
        return self.result


@pytest.fixture
def scripted_completion(monkeypatch):
    """Replace litellm.completion with a sequence of scripted chunk streams."""
    calls = []
    streams = []

    def fake_completion(**kwargs):
        calls.append(kwargs)
        stream = streams.pop(0)
        if isinstance(stream, Exception):
            raise stream
        return iter(stream)

    monkeypatch.setattr(litellm, "completion", fake_completion)
    return streams, calls


class TestChatStream:

    def test_text_and_usage(self, scripted_completion):
        streams, calls = scripted_completion
        streams.append([_text_chunk("Hello "), _text_chunk("Mars"), _usage_chunk(42)])
        adapter = LLMAdapter("anthropic/test", api_key="sk-test")

        events = list(adapter.chat_stream([{"role": "user", "content": "hi"}]))

        assert events[:2] == [("text", "Hello "), ("text", "Mars")]
        done = events[-1][1]
        assert done.content == "Hello Mars"
        assert not done.has_tool_calls()
        assert adapter.total_tokens == 42
        assert calls[0]["stream"] is True
        assert calls[0]["api_key"] == "sk-test"
        assert "tools" not in calls[0]

    def test_tool_call_deltas_are_accumulated(self, scripted_completion):
        streams, _ = scripted_completion
        streams.append([
            _tool_chunk(0, "call_1", "get-rover-photo", '{"roverName": '),
            _tool_chunk(0, None, None, '"curiosity", "earthDate": "2024-1-5"}'),
        ])
        adapter = LLMAdapter("anthropic/test")

        done = list(adapter.chat_stream([], tools=FakeRegistry.schemas))[-1][1]

        assert len(done.tool_calls) == 1
        call = done.tool_calls[0]
        assert call.id == "call_1"
        assert call.name == "get-rover-photo"
        assert call.arguments == {"roverName": "curiosity", "earthDate": "2024-1-5"}


class TestStreamReply:

    def test_plain_reply_yields_text_only(self, scripted_completion):
        streams, _ = scripted_completion
        streams.append([_text_chunk("Four rovers.")])
        adapter = LLMAdapter("anthropic/test")

        fragments = list(adapter.stream_reply([{"role": "user", "content": "q"}], FakeRegistry()))

        assert fragments == ["Four rovers."]

    def test_tool_round_executes_and_feeds_result_back(self, scripted_completion):
        streams, calls = scripted_completion
        streams.append([_tool_chunk(0, "call_1", "get-current-date", "{}")])
        streams.append([_text_chunk("Today is 2024-1-5.")])
        registry = FakeRegistry()
        adapter = LLMAdapter("anthropic/test")

        fragments = list(adapter.stream_reply([{"role": "user", "content": "date?"}], registry))

        assert fragments == ["Today is 2024-1-5."]
        assert registry.executed == [("get-current-date", {})]
        second = calls[1]["messages"]
        assert second[1]["tool_calls"][0]["function"]["name"] == "get-current-date"
        assert second[2] == {"role": "tool", "tool_call_id": "call_1", "content": "2024-1-5"}
        assert calls[0]["tools"] == FakeRegistry.schemas

    def test_tool_rounds_are_bounded(self, scripted_completion):
        streams, calls = scripted_completion
        for i in range(3):
            streams.append([_tool_chunk(0, f"call_{i}", "get-current-date", "{}")])
        registry = FakeRegistry()
        adapter = LLMAdapter("anthropic/test", max_tool_rounds=2)

        assert list(adapter.stream_reply([], registry)) == []
        assert len(calls) == 3
        assert len(registry.executed) == 2

    def test_malformed_arguments_are_passed_raw(self, scripted_completion):
        streams, _ = scripted_completion
        streams.append([_tool_chunk(0, "call_1", "get-rovers", "{not json")])
        streams.append([_text_chunk("ok")])
        registry = FakeRegistry()

        list(LLMAdapter("anthropic/test").stream_reply([], registry))

        assert registry.executed == [("get-rovers", {"_raw": "{not json"})]

    def test_failure_mid_stream_is_translated(self, scripted_completion):
        streams, _ = scripted_completion

        def broken():
            yield _text_chunk("partial")
            raise ConnectionError("connection reset by peer")

        streams.append(broken())
        adapter = LLMAdapter("anthropic/test")
        fragments = []

        with pytest.raises(TransportError):
            for fragment in adapter.stream_reply([], FakeRegistry()):
                fragments.append(fragment)

        assert fragments == ["partial"]

    def test_failure_at_request_is_translated(self, scripted_completion):
        streams, _ = scripted_completion
        streams.append(RuntimeError("Rate limit reached for requests"))

        with pytest.raises(RateLimitError):
            list(LLMAdapter("anthropic/test").stream_reply([], FakeRegistry()))


class TestTranslateError:

    def test_litellm_rate_limit_class(self, monkeypatch):
        class FakeRateLimit(Exception):
            pass

        monkeypatch.setattr(litellm.exceptions, "RateLimitError", FakeRateLimit)

        assert isinstance(translate_error(FakeRateLimit("429")), RateLimitError)

    @pytest.mark.parametrize("message", ["rate_limit_error: too many", "Rate limit exceeded"])
    def test_rate_limit_by_message(self, message):
        assert isinstance(translate_error(Exception(message)), RateLimitError)

    @pytest.mark.parametrize("error", [ConnectionError("refused"), TimeoutError("slow"),
                                       requests.ConnectionError("dns"), requests.Timeout("read")])
    def test_transport_errors(self, error):
        translated = translate_error(error)
        assert isinstance(translated, TransportError)
        assert str(error) in str(translated)

    def test_unexpected_keeps_kind(self):
        translated = translate_error(json.JSONDecodeError("bad", "doc", 0))
        assert isinstance(translated, UnexpectedError)
        assert translated.kind == "JSONDecodeError"

    def test_turn_error_passes_through(self):
        error = TransportError("x")
        assert translate_error(error) is error
