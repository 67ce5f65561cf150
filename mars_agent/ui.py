"""Terminal UI primitives: banner, summaries, error markers and the input prompt."""

from __future__ import annotations

from typing import Sequence

from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.styles import Style
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .errors import RateLimitError, TransportError, TurnError, UnexpectedError

THEME_ACCENT = "#7FA6D9"
THEME_PROMPT = "#B7C6D8"
SUCCESS = "#57DB9C"
WARN = "#E3B341"
ERROR = "#F85149"
INFO = "#58A6FF"
DIM = "#6E7681"

PTK_STYLE = Style.from_dict({
    "prompt": f"{THEME_PROMPT}",
    "prompt.arrow": "ansicyan bold",
})

PROMPT_HINT = "Enter a command (or 'menu' to change settings, 'exit' to quit):"
COMMANDS_HINT = "Type 'menu' to change settings, 'exit' to quit."


def build_banner(version: str) -> str:
    return (
        f"[bold {THEME_ACCENT}]MCP Simple Client - Mars Photos API[/bold {THEME_ACCENT}] "
        f"[dim]v{version}[/dim]\n"
        f"[{DIM}]===================================[/{DIM}]"
    )


def make_prompt_html() -> HTML:
    return HTML("<prompt.arrow>&gt; </prompt.arrow>")


def render_tools(console: Console, tool_names: Sequence[str]) -> None:
    for name in tool_names:
        console.print(f"Connected to server with tools: [bold]{name}[/bold]")


def render_started(console: Console) -> None:
    console.print(f"[bold {SUCCESS}]MCP Client Started![/bold {SUCCESS}]")


def render_session_config(console: Console, session_config, *, updated: bool = False) -> None:
    """Show the active chat policy."""
    title = "Configuration Updated" if updated else "Selected Configuration"
    table = Table.grid(padding=(0, 2))
    table.add_column(style=f"bold {INFO}")
    table.add_column()
    for key, value in session_config.summary().items():
        table.add_row(key, value)
    console.print()
    console.print(Panel(table, title=f"[bold cyan]{title}[/bold cyan]",
                        title_align="left", border_style="cyan", padding=(0, 2)))
    console.print(f"[cyan]{COMMANDS_HINT}[/cyan]")


def render_config_summary(console: Console, config) -> None:
    """Startup settings panel, shown in verbose mode."""
    table = Table(show_header=False, padding=(0, 2), box=None)
    table.add_column("Key", style=f"bold {THEME_ACCENT}", min_width=14)
    table.add_column("Value")
    for key, value in config.summary().items():
        table.add_row(key, escape(str(value)))
    console.print(Panel(table, title=f"[bold {THEME_ACCENT}] Configuration [/bold {THEME_ACCENT}]",
                        title_align="left", border_style=DIM, padding=(0, 1)))


def render_prompt_hint(console: Console) -> None:
    console.print(PROMPT_HINT)


def render_turn_error(console: Console, error: TurnError) -> None:
    """Print a marker and a remediation hint for a failed turn."""
    if isinstance(error, RateLimitError):
        console.print(f"[{WARN}]⚠️  Rate limit exceeded: {escape(str(error))}[/{WARN}]", highlight=False)
        console.print(f"[{WARN}]💡 Try reducing your prompt length or wait a moment before trying again.[/{WARN}]")
    elif isinstance(error, TransportError):
        console.print(f"[{ERROR}]🌐 Network Error: {escape(str(error))}[/{ERROR}]", highlight=False)
        console.print(f"[{ERROR}]💡 Check your internet connection and try again.[/{ERROR}]")
    else:
        kind = error.kind if isinstance(error, UnexpectedError) else type(error).__name__
        console.print(f"[{ERROR}]💥 Unexpected Error: {escape(str(error))}[/{ERROR}]", highlight=False)
        console.print(f"[{ERROR}]Type: {kind}[/{ERROR}]")
        console.print(f"[{ERROR}]💡 Try again; set MARS_AGENT_VERBOSE=1 to log the details.[/{ERROR}]")


def render_fatal(console: Console, message: str) -> None:
    console.print(f"[{ERROR}]Error: {escape(message)}[/{ERROR}]", highlight=False)
