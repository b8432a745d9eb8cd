"""
adapters.cli.console - Rich terminal I/O for the conversation loop.

RichInputProvider reads user lines, RichReporter renders everything the
executor reports. Both satisfy the domain.ports protocols structurally.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt

from domain.exceptions import ProviderError

LOG_FORMAT = "%(name)s - %(message)s"


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Route all logging through rich. WARNING by default, DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="[%X]",
        handlers=[RichHandler(console=console or Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    # Third-party HTTP clients are chatty at DEBUG.
    for name in ("httpx", "httpcore", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


class RichInputProvider:
    """Reads one line per call from a rich prompt. None at end of input."""

    def __init__(self, console: Console, prompt: str = "\n[bold cyan]You[/bold cyan]"):
        self._console = console
        self._prompt = prompt

    def read_line(self) -> Optional[str]:
        try:
            return Prompt.ask(self._prompt, console=self._console)
        except (KeyboardInterrupt, EOFError):
            self._console.print()
            return None


class RichReporter:
    """Renders assistant replies, tool activity and provider errors."""

    def __init__(self, console: Console):
        self._console = console

    def welcome(self, provider_name: str) -> None:
        self._console.print(Panel(
            f"[bold]🥗 Welcome to Fitbit Agent![/bold]\n"
            f"Chat with {escape(provider_name)} to log your meals "
            "(use [bold]ctrl-c[/bold] to quit)\n"
            "[dim]Try saying: 'I had scrambled eggs and toast for breakfast'[/dim]",
            border_style="cyan",
        ))

    def assistant_message(self, text: str) -> None:
        self._console.print()
        self._console.print(Panel(escape(text), title="Agent", border_style="green"))

    def tool_call(self, name: str, raw_arguments: str) -> None:
        self._console.print(f"[bold magenta]tool[/bold magenta]: {escape(name)}({escape(raw_arguments)})")

    def tool_result(self, index: int, text: str, is_error: bool) -> None:
        if is_error:
            title, style = f"❌ Tool Error {index}", "red"
        else:
            title, style = f"✅ Tool Success {index}", "green"
        self._console.print(Panel(escape(text), title=title, border_style=style))

    def tool_suggested_action(self) -> None:
        self._console.print("[yellow]🔧 Tool suggested another action, processing...[/yellow]")

    def provider_error(self, provider_name: str, error: ProviderError, suggestion: str) -> None:
        self._console.print(f"\n[bold red]❌ {escape(provider_name)} API Error:[/bold red] {escape(str(error))}")
        self._console.print(f"[yellow]💡 Suggestion:[/yellow] {escape(suggestion)}")

    def acknowledge_prompt(self) -> None:
        self._console.print("\n[dim]Press Enter to continue or Ctrl+C to quit...[/dim]")
