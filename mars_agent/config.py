"""
Configuration — model settings, provider command and the per-session chat policy.

Loading priority:
  1. Project dir .mars-agent.yml
  2. Global ~/.mars-agent/config.yml
  3. Built-in defaults

Credentials are read from the environment (optionally populated from .env
files) and are never written to disk.
"""

import os
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .errors import MissingCredentialError
from .logger import get_logger

_log = get_logger(__name__)

CONFIG_DIR = Path.home() / ".mars-agent"
CONFIG_FILE = CONFIG_DIR / "config.yml"
PROJECT_CONFIG_NAME = ".mars-agent.yml"

DEFAULT_MODEL = "anthropic/claude-3-5-sonnet-20241022"
DEFAULT_MAX_TOKENS = 1000
DEFAULT_MAX_TOOL_ROUNDS = 10
DEFAULT_HISTORY_ITEMS = 10
MODEL_API_KEY_ENV = "ANTHROPIC_API_KEY"
NASA_API_KEY_ENV = "NASA_API_KEY"
DEFAULT_NASA_API_KEY = "DEMO_KEY"

SYSTEM_PROMPT = """\
You are a helpful assistant that can access Mars photos through the MCP tools. \
Maintain context from the conversation history.

IMPORTANT: If a user asks a question involving a relative date (such as "today", \
"yesterday", "last week", "next month") or a specific date, always use the \
get-current-date tool to determine the current date before answering or using \
other tools. This ensures your answers are accurate and up-to-date."""


# ── Validation helpers ──


def _validate_bool(value: Any) -> tuple[bool, bool, str]:
    """Validate boolean value."""
    if isinstance(value, bool):
        return True, value, ""
    if isinstance(value, str):
        val_lower = value.strip().lower()
        if val_lower in ("1", "true", "yes", "y", "on"):
            return True, True, ""
        if val_lower in ("0", "false", "no", "n", "off"):
            return True, False, ""
    return False, False, "Please enter 'y' or 'n'."


def _validate_positive_int(value: Any) -> tuple[bool, int, str]:
    """Validate a strictly positive integer."""
    if isinstance(value, bool):
        return False, 0, "Please enter a positive number."
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return False, 0, "Please enter a positive number."
    if parsed <= 0:
        return False, 0, "Please enter a positive number."
    return True, parsed, ""


@dataclass(frozen=True)
class SessionConfig:
    """Chat policy for one session. Replaced wholesale, never mutated."""
    history_enabled: bool = True
    system_prompt_enabled: bool = True
    max_history_items: int = DEFAULT_HISTORY_ITEMS

    def __post_init__(self):
        valid, _, error = _validate_positive_int(self.max_history_items)
        if not valid:
            raise ValueError(f"max_history_items: {error}")

    def summary(self) -> Dict[str, str]:
        rows = {
            "History": "✅ Enabled" if self.history_enabled else "❌ Disabled",
            "System Prompt": "✅ Enabled" if self.system_prompt_enabled else "❌ Disabled",
        }
        if self.history_enabled:
            rows["Max History Items"] = str(self.max_history_items)
        return rows


def default_provider_command() -> List[str]:
    return [sys.executable, "-m", "mars_agent.provider"]


@dataclass
class Config:
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = 0.0
    api_base: Optional[str] = None
    api_key_env: str = MODEL_API_KEY_ENV
    provider_command: List[str] = field(default_factory=default_provider_command)
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS
    verbose: bool = False
    _config_source: str = ""

    @classmethod
    def load(cls, project_dir: str = ".") -> "Config":
        config = cls()
        project_path = Path(project_dir).resolve()

        for env_path in [CONFIG_DIR / ".env", project_path / ".env"]:
            if env_path.exists():
                load_dotenv(env_path, override=False)

        for candidate in [project_path / PROJECT_CONFIG_NAME, CONFIG_FILE]:
            if candidate.exists():
                config._load_yaml(candidate)
                config._config_source = str(candidate)
                break

        config._apply_env()
        return config

    def _load_yaml(self, path: Path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            _log.warning("Ignoring %s: expected a mapping", path)
            return

        if data.get("model"):
            self.model = str(data["model"])
        if "max-tokens" in data:
            self.max_tokens = self._coerce_positive_int(data["max-tokens"], self.max_tokens)
        if "temperature" in data:
            try:
                self.temperature = float(data["temperature"])
            except (TypeError, ValueError):
                _log.warning("Invalid temperature in %s: %r", path, data["temperature"])
        if data.get("api-base"):
            self.api_base = str(data["api-base"])
        if data.get("api-key-env"):
            self.api_key_env = str(data["api-key-env"])
        if data.get("provider-command"):
            self.provider_command = self._parse_command(data["provider-command"])
        if "max-tool-rounds" in data:
            self.max_tool_rounds = self._coerce_positive_int(data["max-tool-rounds"], self.max_tool_rounds)
        if "verbose" in data:
            valid, flag, _ = _validate_bool(data["verbose"])
            if valid:
                self.verbose = flag

    def _apply_env(self):
        env_map = {
            "MARS_AGENT_MODEL": ("model", str),
            "MARS_AGENT_VERBOSE": ("verbose", lambda v: v.lower() in ("true", "1")),
        }
        for env_var, (attr, conv) in env_map.items():
            val = os.environ.get(env_var)
            if val:
                setattr(self, attr, conv(val))

    @staticmethod
    def _parse_command(value) -> List[str]:
        if isinstance(value, str):
            return shlex.split(value)
        return [str(part) for part in value]

    @staticmethod
    def _coerce_positive_int(value, default: int) -> int:
        valid, parsed, _ = _validate_positive_int(value)
        return parsed if valid else default

    def resolve_api_key(self) -> Optional[str]:
        return os.environ.get(self.api_key_env) or None

    def require_api_key(self) -> str:
        key = self.resolve_api_key()
        if not key:
            raise MissingCredentialError(self.api_key_env)
        return key

    @property
    def nasa_api_key(self) -> str:
        return os.environ.get(NASA_API_KEY_ENV) or DEFAULT_NASA_API_KEY

    def provider_env(self) -> Dict[str, str]:
        """Environment for the provider child: inherited, plus the data API key."""
        env = os.environ.copy()
        env[NASA_API_KEY_ENV] = self.nasa_api_key
        return env

    def get_llm_kwargs(self) -> dict:
        """Return kwargs dict for LLMAdapter constructor; no env vars involved."""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "api_base": self.api_base,
            "api_key": self.resolve_api_key(),
            "max_tool_rounds": self.max_tool_rounds,
        }

    def summary(self) -> dict:
        return {
            "Model": self.model,
            "Max output tokens": self.max_tokens,
            "API key": "✓" if self.resolve_api_key() else f"✗ {self.api_key_env} not set",
            "Tool provider": " ".join(self.provider_command),
            "Config": self._config_source or "(defaults)",
        }
