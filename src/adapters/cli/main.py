"""
adapters.cli.main - CLI adapter for the Fitbit meal-logging agent.

Describe what you ate in natural language and the agent logs it to your
Fitbit account (or saves it locally). Uses the same ServiceFactory as the
tests, so behaviour is identical.

Commands
--------
  (none)                 Start the interactive chat session
  version                Print version information
  demo                   Show tools, provider readiness and configuration
  create-system-prompt   Write the default system prompt to a file
  logout                 Clear stored Fitbit credentials

Usage
-----
  python src/adapters/cli/main.py
  python src/adapters/cli/main.py --provider gemini
  python src/adapters/cli/main.py create-system-prompt my_prompt.txt
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# ── Ensure src/ is on the path when run as a script ──
_SRC = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_SRC))

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm

from adapters.cli.console import RichInputProvider, RichReporter, configure_logging
from agent.prompt import DEFAULT_PROMPT_PATHS, create_default_system_prompt_file
from domain.exceptions import ProviderError
from factory import ServiceFactory
from infrastructure.config import Settings
from infrastructure.llm.ollama_provider import OllamaProvider

__version__ = "1.0.0"

logger = logging.getLogger(__name__)

console = Console()
app = typer.Typer(
    help=(
        "A natural language interface for logging Fitbit meals. Describe what "
        "you ate and the agent logs it to your Fitbit account."
    ),
    add_completion=False,
    invoke_without_command=True,
)


@dataclass
class CliOptions:
    provider: Optional[str] = None
    system_prompt: Optional[str] = None
    verbose: bool = False


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _make_factory(options: CliOptions) -> ServiceFactory:
    config = Settings.from_env(provider=options.provider)
    return ServiceFactory(
        config,
        system_prompt_file=options.system_prompt,
        notify=lambda message: console.print(f"[cyan]{message}[/cyan]"),
    )


def _print_troubleshooting(provider: str) -> None:
    console.print("\n[bold]💡 Troubleshooting:[/bold]")
    if provider == "ollama":
        console.print(
            "  For Ollama:\n"
            "    1. Start Ollama: ollama serve\n"
            "    2. Pull model: ollama pull deepseek-r1:7b\n"
            "    3. Test connection: ollama list"
        )
    elif provider == "gemini":
        console.print(
            "  For Gemini:\n"
            "    1. Set API key: export GEMINI_API_KEY='your-key'\n"
            "    2. Get API key from: https://makersuite.google.com/app/apikey"
        )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"Fitbit Agent v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Chat (default command)
# ---------------------------------------------------------------------------

def _chat(options: CliOptions) -> None:
    factory = _make_factory(options)

    try:
        provider = factory.get_provider()
        if isinstance(provider, OllamaProvider):
            with console.status("[bold cyan]Checking Ollama connection…", spinner="dots"):
                provider.validate_connection()
    except (ValueError, ProviderError) as e:
        console.print(f"[bold red]❌ Cannot start agent:[/bold red] {e}")
        _print_troubleshooting(factory.config.provider)
        raise typer.Exit(code=1)

    registry = factory.get_registry()
    prompt = factory.get_system_prompt()
    if options.verbose:
        console.print(f"Using LLM provider: {provider.name}")
        console.print(f"Available tools: {len(registry.all())}")
        if prompt.is_default:
            console.print("Using default system prompt")
        else:
            console.print(f"System prompt loaded from: {prompt.source}")

    ctx = factory.create_session()
    agent = factory.create_agent(RichInputProvider(console), RichReporter(console))

    try:
        asyncio.run(agent.run(ctx))
    except ProviderError as e:
        if e.recoverable:
            console.print(f"[bold red]❌ Agent stopped due to recoverable error:[/bold red] {e}")
            console.print(
                "\n💡 The agent stopped gracefully. "
                "You can restart it when the issue is resolved."
            )
            raise typer.Exit(code=0)
        console.print(f"[bold red]❌ Agent encountered a fatal error:[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print("Goodbye! Keep up the healthy eating! 🥗")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def version() -> None:
    """Print version information."""
    console.print(f"Fitbit Agent v{__version__}")
    console.print(f"Python {sys.version.split()[0]}")


@app.command()
def demo(typer_ctx: typer.Context) -> None:
    """Show the registered tools, provider readiness and configuration."""
    options: CliOptions = typer_ctx.obj
    factory = _make_factory(options)
    config = factory.config

    console.print(Panel("[bold]🥗 Fitbit Agent - Demo[/bold]", border_style="blue"))
    console.print(f"Configuration: LLM Provider = {config.provider}")

    console.print("\n[bold]📦 Available Tools:[/bold]")
    for tool in factory.get_registry().all():
        console.print(f"  - [bold]{tool.name}[/bold]: {tool.description}")

    try:
        provider = factory.get_provider()
        status = f"{provider.name} [green](ready)[/green]"
    except ValueError as e:
        status = f"{config.provider} [yellow](not configured - {e})[/yellow]"
    console.print(f"\n🧠 LLM Provider: {status}")

    prompt = factory.get_system_prompt()
    if prompt.is_default:
        console.print("📝 System Prompt: Using default (run 'create-system-prompt' to customize)")
    else:
        console.print(f"📝 System Prompt: Loaded from {prompt.source}")

    if config.fitbit_configured:
        console.print("🔑 Fitbit credentials: [green]configured[/green]")
    else:
        console.print(
            "🔑 Fitbit credentials: [yellow]not configured[/yellow] "
            "(set FITBIT_CLIENT_ID and FITBIT_CLIENT_SECRET)"
        )
    session = factory.create_session()
    console.print(
        "🔐 Fitbit login: "
        + ("[green]authenticated[/green]" if session.is_authenticated else "[dim]not logged in[/dim]")
    )

    console.print(
        "\n💡 Run without a command to start chatting. "
        "Use --provider to switch between ollama and gemini."
    )


@app.command("create-system-prompt")
def create_system_prompt(
    path: str = typer.Argument("system_prompt.txt", help="Where to write the prompt file."),
) -> None:
    """Create a default system prompt file that you can customize."""
    try:
        written = create_default_system_prompt_file(path)
    except OSError as e:
        console.print(f"[bold red]Error creating system prompt file:[/bold red] {e}")
        raise typer.Exit(code=1)

    console.print(f"✅ Default system prompt created at: {written}")
    console.print("📝 You can now edit this file to customize the system prompt")
    console.print("🔧 The system will automatically load from:")
    console.print("   1. SYSTEM_PROMPT environment variable")
    console.print("   2. SYSTEM_PROMPT_FILE environment variable (or --system-prompt)")
    for position, candidate in enumerate(DEFAULT_PROMPT_PATHS, start=3):
        console.print(f"   {position}. {candidate}")


@app.command()
def logout(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Clear the stored Fitbit credentials."""
    store = _make_factory(CliOptions()).credential_store
    if store.load() is None:
        console.print("[dim]Not currently logged in to Fitbit.[/dim]")
        return
    if yes or Confirm.ask("Remove stored Fitbit credentials?"):
        store.clear()
        console.print("[green]Logged out of Fitbit.[/green]")


# ---------------------------------------------------------------------------
# Global options; no sub-command starts the chat
# ---------------------------------------------------------------------------

@app.callback()
def _callback(
    typer_ctx: typer.Context,
    provider: Optional[str] = typer.Option(
        None, "--provider", "-p",
        help="LLM provider (ollama, gemini).",
    ),
    system_prompt: Optional[str] = typer.Option(
        None, "--system-prompt", "-s",
        help="Path to a system prompt file.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Verbose output.",
    ),
    version: bool = typer.Option(
        False, "--version",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Fitbit Agent CLI"""
    configure_logging(verbose)
    options = CliOptions(provider=provider, system_prompt=system_prompt, verbose=verbose)
    typer_ctx.obj = options
    if typer_ctx.invoked_subcommand is None:
        logger.debug("Starting Fitbit Agent")
        _chat(options)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
