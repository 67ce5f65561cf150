"""
mars-agent v1.0.0 — chat with a model that can look up Mars rover photos.

Command: mars-agent
"""

import sys
from typing import Callable, Optional

import click
from rich.console import Console

from . import __version__
from .agent import Agent, TurnState, classify_input
from .config import Config
from .errors import ChannelConnectionError, MissingCredentialError, ProtocolError
from .llm import LLMAdapter
from .logger import AGENT, get_logger, setup_logger
from .menu import show_menu
from .tools import ToolRegistry
from .transport import StdioChannel
from .ui import (
    PTK_STYLE,
    build_banner,
    make_prompt_html,
    render_config_summary,
    render_fatal,
    render_prompt_hint,
    render_session_config,
    render_started,
    render_tools,
)

console = Console()
_log = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def run_repl(agent: Agent, console: Console, read_line: Callable[[], str],
             channel: Optional[StdioChannel] = None) -> int:
    """Menu first, then one turn per input line. Returns the process exit code."""
    try:
        agent.apply_config(show_menu(console))
    except (EOFError, KeyboardInterrupt):
        console.print("\n[dim]Goodbye![/dim]")
        return EXIT_OK
    render_session_config(console, agent.session_config)

    while True:
        render_prompt_hint(console)
        agent.state = TurnState.AWAITING_INPUT
        try:
            line = read_line()
        except (EOFError, KeyboardInterrupt):
            console.print("\n[dim]Goodbye![/dim]")
            return EXIT_OK
        finally:
            agent.state = TurnState.IDLE

        kind = classify_input(line)
        if kind == "exit":
            return EXIT_OK
        if kind == "blank":
            continue
        if kind == "menu":
            try:
                agent.apply_config(show_menu(console))
            except (EOFError, KeyboardInterrupt):
                console.print("\n[dim]Goodbye![/dim]")
                return EXIT_OK
            render_session_config(console, agent.session_config, updated=True)
            continue

        try:
            agent.chat(line.strip())
        except KeyboardInterrupt:
            console.print("\n[yellow]  Interrupted.[/yellow]")

        if channel is not None and not channel.is_open:
            render_fatal(console, "The tool provider exited; ending the session.")
            return EXIT_FAILURE


@click.command()
def cli():
    """Chat with a model that can look up Mars rover photos."""
    config = Config.load()
    setup_logger("mars_agent", AGENT, verbose=config.verbose)
    console.print(build_banner(__version__))
    if config.verbose:
        render_config_summary(console, config)

    try:
        config.require_api_key()
        channel = StdioChannel.connect(config.provider_command, env=config.provider_env())
    except (MissingCredentialError, ChannelConnectionError) as e:
        _log.info("Startup failed: %s", e)
        render_fatal(console, str(e))
        sys.exit(EXIT_FAILURE)

    with channel:
        try:
            registry = ToolRegistry.discover(channel)
        except ProtocolError as e:
            render_fatal(console, str(e))
            sys.exit(EXIT_FAILURE)
        render_tools(console, registry.names)

        llm = LLMAdapter(**config.get_llm_kwargs())
        agent = Agent(llm=llm, tools=registry, console=console)
        render_started(console)

        from prompt_toolkit import PromptSession

        session = PromptSession(multiline=False, style=PTK_STYLE)
        code = run_repl(agent, console, lambda: session.prompt(make_prompt_html()), channel=channel)

    sys.exit(code)


if __name__ == "__main__":
    cli()
