"""Turn orchestration: assemble the outbound messages, stream the reply, commit or roll back."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from rich.console import Console

from .config import SYSTEM_PROMPT, SessionConfig
from .errors import TurnError
from .history import ConversationHistory, Message
from .llm import LLMAdapter, translate_error
from .logger import get_logger
from .stream_renderer import render_stream
from .tools import ToolRegistry
from .ui import render_turn_error

_log = get_logger(__name__)
default_console = Console()

__all__ = ["Agent", "TurnResult", "TurnState", "classify_input"]

EXIT_COMMAND = "exit"
MENU_COMMAND = "menu"


class TurnState(Enum):
    IDLE = "idle"
    AWAITING_INPUT = "awaiting_input"
    ASSEMBLING = "assembling"
    STREAMING = "streaming"
    COMMITTING = "committing"
    ROLLING_BACK = "rolling_back"


@dataclass
class TurnResult:
    reply: Optional[str] = None
    error: Optional[TurnError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def classify_input(line: str) -> str:
    """Return ``"exit"``, ``"menu"``, ``"blank"`` or ``"query"``."""
    text = (line or "").strip()
    if not text:
        return "blank"
    lowered = text.lower()
    if lowered == EXIT_COMMAND:
        return "exit"
    if lowered == MENU_COMMAND:
        return "menu"
    return "query"


class Agent:
    """Owns the session policy and history; runs one turn at a time."""

    def __init__(self, llm: LLMAdapter, tools: ToolRegistry,
                 session_config: Optional[SessionConfig] = None,
                 system_prompt: str = SYSTEM_PROMPT,
                 console: Optional[Console] = None):
        self.llm = llm
        self.tools = tools
        self.system_prompt = system_prompt
        self.console = console or default_console
        self._session_config = session_config or SessionConfig()
        self.history = ConversationHistory(enabled=self._session_config.history_enabled)
        self.state = TurnState.IDLE
        self.completed_turns = 0
        self.failed_turns = 0

    @property
    def session_config(self) -> SessionConfig:
        return self._session_config

    def apply_config(self, session_config: SessionConfig):
        """Install a new policy. Prior context is discarded."""
        self._session_config = session_config
        self.history.enabled = session_config.history_enabled
        self.history.reset()
        _log.info("Session config replaced: %s", session_config)

    def build_messages(self, query: str) -> List[Message]:
        """The outbound message set for this turn.

        With history on, the user's message must already be in the history;
        the window takes one extra entry so the new query is always included.
        """
        config = self._session_config
        messages: List[Message] = []
        if config.system_prompt_enabled:
            messages.append(Message("system", self.system_prompt))
        if config.history_enabled:
            messages.extend(self.history.window(config.max_history_items + 1))
        else:
            messages.append(Message("user", query))
        return messages

    def chat(self, query: str) -> TurnResult:
        config = self._session_config
        self.state = TurnState.ASSEMBLING
        user_appended = self.history.append("user", query)

        try:
            outbound = [m.to_dict() for m in self.build_messages(query)]
            self.state = TurnState.STREAMING
            fragments = self.llm.stream_reply(outbound, self.tools)
            reply = render_stream(self.console, fragments)
        except KeyboardInterrupt:
            self._roll_back(user_appended)
            raise
        except Exception as e:
            error = translate_error(e)
            _log.info("Turn failed (%s): %s", type(error).__name__, error)
            self._roll_back(user_appended)
            self.failed_turns += 1
            render_turn_error(self.console, error)
            return TurnResult(error=error)

        self.state = TurnState.COMMITTING
        if config.history_enabled:
            self.history.append("assistant", reply)
            dropped = self.history.truncate(config.max_history_items)
            if dropped:
                _log.info("Trimmed %d old messages", dropped)
        self.completed_turns += 1
        self.state = TurnState.IDLE
        return TurnResult(reply=reply)

    def _roll_back(self, user_appended: bool):
        self.state = TurnState.ROLLING_BACK
        if user_appended:
            self.history.remove_last()
        self.state = TurnState.IDLE
