"""LLM adapter via litellm, with automatic tool invocation."""

import json
from dataclasses import dataclass
from typing import Any, Dict, Generator, Iterator, List, Optional, Tuple

import litellm
import requests
litellm.suppress_debug_info = True

from .errors import RateLimitError, TransportError, TurnError, UnexpectedError
from .logger import get_logger

_log = get_logger(__name__)

_RATE_LIMIT_MARKERS = ("rate_limit", "Rate limit")


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: Dict[str, Any]


@dataclass
class LLMResponse:
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    usage: Optional[Dict] = None

    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


def translate_error(error: BaseException) -> TurnError:
    """Map a backend failure onto the per-turn error taxonomy."""
    if isinstance(error, TurnError):
        return error
    message = str(error)
    if isinstance(error, litellm.exceptions.RateLimitError):
        return RateLimitError(message)
    if any(marker in message for marker in _RATE_LIMIT_MARKERS):
        return RateLimitError(message)
    if isinstance(error, (litellm.exceptions.APIConnectionError,
                          litellm.exceptions.Timeout,
                          requests.ConnectionError, requests.Timeout,
                          ConnectionError, TimeoutError)):
        return TransportError(message)
    return UnexpectedError(error)


def _usage_dict(usage) -> Dict[str, int]:
    return {"prompt_tokens": usage.prompt_tokens,
            "completion_tokens": usage.completion_tokens,
            "total_tokens": usage.total_tokens}


class LLMAdapter:
    """Unified LLM interface. Passes api_key/api_base directly to litellm,
    avoiding env-var pollution."""

    def __init__(self, model: str, temperature: float = 0.0,
                 max_tokens: int = 1000, api_base: Optional[str] = None,
                 api_key: Optional[str] = None, max_tool_rounds: int = 10):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_base = api_base
        self.api_key = api_key
        self.max_tool_rounds = max_tool_rounds
        self.total_tokens = 0

    def _completion_kwargs(self, messages: List[Dict[str, Any]],
                           tools: Optional[List[Dict]]) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self.model, "messages": messages,
            "temperature": self.temperature, "max_tokens": self.max_tokens,
            "stream": True,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.api_key:
            kwargs["api_key"] = self.api_key
        return kwargs

    def chat_stream(self, messages: List[Dict[str, Any]],
                    tools: Optional[List[Dict]] = None
                    ) -> Generator[Tuple[str, Any], None, None]:
        """Streaming chat. Yields (event_type, data) tuples.

        Event types:
          "text" — str: incremental text content
          "done" — LLMResponse: final complete response

        Backend failures are raised as ``TurnError`` subclasses.
        """
        try:
            response_stream = litellm.completion(**self._completion_kwargs(messages, tools))
        except Exception as e:
            raise translate_error(e) from e

        full_content = ""
        tc_data: Dict[int, Dict[str, str]] = {}
        usage = None

        try:
            for chunk in response_stream:
                # Usage-only final chunk (some providers)
                if not chunk.choices:
                    if getattr(chunk, "usage", None):
                        usage = _usage_dict(chunk.usage)
                    continue

                delta = chunk.choices[0].delta

                if getattr(delta, "content", None):
                    full_content += delta.content
                    yield ("text", delta.content)

                # Tool calls (accumulated across chunks)
                if getattr(delta, "tool_calls", None):
                    for tc_delta in delta.tool_calls:
                        idx = tc_delta.index
                        if idx not in tc_data:
                            tc_data[idx] = {"id": "", "name": "", "args": ""}
                        if tc_delta.id:
                            tc_data[idx]["id"] = tc_delta.id
                        if tc_delta.function:
                            if tc_delta.function.name:
                                tc_data[idx]["name"] = tc_delta.function.name
                            if tc_delta.function.arguments:
                                tc_data[idx]["args"] += tc_delta.function.arguments

                if getattr(chunk, "usage", None):
                    usage = _usage_dict(chunk.usage)
        except Exception as e:
            raise translate_error(e) from e

        tool_calls = None
        if tc_data:
            tool_calls = []
            for idx in sorted(tc_data.keys()):
                tc = tc_data[idx]
                try:
                    args = json.loads(tc["args"]) if tc["args"] else {}
                except json.JSONDecodeError:
                    args = {"_raw": tc["args"]}
                tool_calls.append(ToolCall(id=tc["id"], name=tc["name"], arguments=args))

        if usage:
            self.total_tokens += usage.get("total_tokens", 0)

        yield ("done", LLMResponse(
            content=full_content or None,
            tool_calls=tool_calls,
            usage=usage,
        ))

    def stream_reply(self, messages: List[Dict[str, Any]], tools) -> Iterator[str]:
        """Stream the model's text reply, running tool calls as the model asks.

        ``tools`` is the registry: its ``schemas`` are advertised to the model
        and its ``execute`` performs each call. Only text fragments are
        yielded; tool traffic stays inside this generator.
        """
        conversation = list(messages)
        schemas = tools.schemas

        for round_index in range(self.max_tool_rounds + 1):
            response = None
            for event, data in self.chat_stream(conversation, schemas):
                if event == "text":
                    yield data
                elif event == "done":
                    response = data

            if response is None or not response.has_tool_calls():
                return
            if round_index == self.max_tool_rounds:
                _log.warning("Stopped after %d tool rounds", self.max_tool_rounds)
                return

            conversation.append({
                "role": "assistant",
                "content": response.content,
                "tool_calls": [
                    {"id": tc.id, "type": "function",
                     "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)}}
                    for tc in response.tool_calls
                ],
            })
            for tc in response.tool_calls:
                _log.info("Calling tool %s(%s)", tc.name, tc.arguments)
                result = tools.execute(tc.name, tc.arguments)
                conversation.append({"role": "tool", "tool_call_id": tc.id, "content": result})
