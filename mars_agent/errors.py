"""Structured error types for the agent system."""


class AgentError(Exception):
    """Base error for all agent operations."""
    pass


class ChannelConnectionError(AgentError, ConnectionError):
    """Raised when the tool provider process cannot be started or reached."""

    def __init__(self, command, message: str):
        self.command = list(command or [])
        super().__init__(f"Cannot connect to tool provider ({' '.join(self.command)}): {message}")


class ProtocolError(AgentError):
    """Raised when the tool provider answers with an error or malformed data."""

    def __init__(self, method: str, message: str):
        self.method = method
        super().__init__(f"{method} failed: {message}")


class MissingCredentialError(AgentError):
    """Raised at startup when a required credential is not configured."""

    def __init__(self, env_var: str):
        self.env_var = env_var
        super().__init__(f"{env_var} is not set. Export it or add it to a .env file.")


class TurnError(AgentError):
    """Base for failures that abort a single turn but not the session."""
    pass


class RateLimitError(TurnError):
    """The model backend signalled throttling."""
    pass


class TransportError(TurnError):
    """Network-level failure while reaching the model backend."""
    pass


class UnexpectedError(TurnError):
    """Any other per-turn failure. Keeps the original exception's kind name."""

    def __init__(self, original: BaseException):
        self.original = original
        self.kind = type(original).__name__
        super().__init__(str(original))
