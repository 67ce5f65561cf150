"""Conversation history with a bounded, front-trimmed window."""

from dataclasses import dataclass
from typing import Dict, List, Tuple

__all__ = ["Message", "ConversationHistory", "ROLES"]

ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class Message:
    role: str
    content: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown role: {self.role!r}")

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


class ConversationHistory:
    """Ordered message history for one session.

    When ``enabled`` is false every mutating call is a no-op, so callers do not
    need to check the session mode before appending.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._messages: List[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)

    def snapshot(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def append(self, role: str, content: str) -> bool:
        """Add a message at the end. Returns whether anything was stored."""
        if not self.enabled:
            return False
        self._messages.append(Message(role, content))
        return True

    def window(self, max_items: int) -> List[Message]:
        """The most recent ``max_items`` messages, oldest first."""
        if max_items <= 0:
            return []
        return self._messages[-max_items:]

    def truncate(self, max_items: int) -> int:
        """Keep at most ``2 * max_items`` messages. Returns how many were dropped."""
        if not self.enabled:
            return 0
        limit = 2 * max_items
        excess = len(self._messages) - limit
        if excess <= 0:
            return 0
        del self._messages[:excess]
        return excess

    def remove_last(self) -> bool:
        if not self.enabled or not self._messages:
            return False
        self._messages.pop()
        return True

    def reset(self):
        self._messages.clear()
