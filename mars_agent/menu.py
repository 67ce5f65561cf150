"""Configuration menu: pick the chat policy for the session.

Invalid answers re-prompt; the menu only ever returns a valid SessionConfig.
EOF on input propagates as ``EOFError`` so the caller can shut down.
"""

from typing import Dict

from rich.console import Console

from .config import DEFAULT_HISTORY_ITEMS, SessionConfig, _validate_positive_int

__all__ = ["PRESETS", "show_menu", "custom_configuration"]

RULE = "=" * 50

PRESETS: Dict[str, SessionConfig] = {
    "1": SessionConfig(history_enabled=True, system_prompt_enabled=True),
    "2": SessionConfig(history_enabled=True, system_prompt_enabled=False),
    "3": SessionConfig(history_enabled=False, system_prompt_enabled=True),
    "4": SessionConfig(history_enabled=False, system_prompt_enabled=False),
}
CUSTOM_CHOICE = "5"

MENU_LINES = (
    "1. Conversation History: Enabled  + System Prompt: Enabled",
    "2. Conversation History: Enabled  + System Prompt: Disabled",
    "3. Conversation History: Disabled + System Prompt: Enabled",
    "4. Conversation History: Disabled + System Prompt: Disabled",
    "5. Custom Configuration",
)

_YES = {"y", "yes"}
_NO = {"n", "no"}


def _ask(console: Console, prompt: str) -> str:
    return (console.input(prompt) or "").strip()


def show_menu(console: Console) -> SessionConfig:
    console.print()
    console.print(RULE, markup=False)
    console.print("MCP Client Configuration Menu", markup=False)
    console.print(RULE, markup=False)
    for line in MENU_LINES:
        console.print(line, markup=False)
    console.print(RULE, markup=False)

    while True:
        choice = _ask(console, "Select an option (1-5): ")
        if choice in PRESETS:
            return PRESETS[choice]
        if choice == CUSTOM_CHOICE:
            return custom_configuration(console)
        console.print("Invalid choice. Please enter 1-5.")


def _ask_yes_no(console: Console, prompt: str) -> bool:
    while True:
        answer = _ask(console, prompt).lower()
        if answer in _YES:
            return True
        if answer in _NO:
            return False
        console.print("Please enter 'y' or 'n'.")


def _ask_window_size(console: Console) -> int:
    while True:
        answer = _ask(console, f"Maximum history items to retain (default: {DEFAULT_HISTORY_ITEMS}): ")
        if not answer:
            return DEFAULT_HISTORY_ITEMS
        valid, value, error = _validate_positive_int(answer)
        if valid:
            return value
        console.print(error)


def custom_configuration(console: Console) -> SessionConfig:
    console.print("\nCustom Configuration:")
    history_enabled = _ask_yes_no(console, "Enable conversation history? (y/n): ")
    system_prompt_enabled = _ask_yes_no(console, "Enable system prompt (date tool instructions)? (y/n): ")

    # The window only matters when history is kept.
    max_items = _ask_window_size(console) if history_enabled else DEFAULT_HISTORY_ITEMS
    return SessionConfig(
        history_enabled=history_enabled,
        system_prompt_enabled=system_prompt_enabled,
        max_history_items=max_items,
    )
