"""promptx CLI — Typer + Rich terminal interface.

Usage: ``promptx "messy prompt"``, ``promptx`` (interactive entry) or
``... | promptx`` (piped). Subcommands: refine, setup, models, reset.
Anything that is not a subcommand name is treated as prompt text.
"""

from __future__ import annotations

import asyncio
import logging
import sys

import click
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text
from typer.core import TyperGroup

from promptx import __version__
from promptx.cli_display import (
    BRAND,
    render_discovery_problem,
    render_error,
    render_help,
    render_models_table,
    render_whats_new,
)
from promptx.errors import PromptxError, RuntimeUnavailableError, SetupRequiredError
from promptx.keys import collect_credentials, load_dotenv
from promptx.orchestrator import RefinementOrchestrator
from promptx.providers.ollama import discover
from promptx.providers.registry import all_models
from promptx.schemas.discovery import DiscoveryError
from promptx.schemas.models import ModelDescriptor
from promptx.settings import ConfigStore
from promptx.wizard import SetupWizard

logger = logging.getLogger(__name__)

console = Console()

# In-prompt commands, matched case-insensitively against a lone token
RESERVED_COMMANDS = {
    "/help": "help",
    "/model": "model",
    "/whats-new": "whats-new",
    "/whatsnew": "whats-new",
    "/changelog": "whats-new",
}


class _DefaultCommandGroup(TyperGroup):
    """Routes anything that is not a subcommand invocation to ``refine``.

    A subcommand name followed by prompt words (``promptx models are slow``)
    is prompt text; other subcommands take no arguments, only options.
    """

    default_command = "refine"

    def resolve_command(
        self, ctx: click.Context, args: list[str],
    ) -> tuple[str | None, click.Command | None, list[str]]:
        if args and not self._is_subcommand_call(args):
            args = [self.default_command, *args]
        return super().resolve_command(ctx, args)

    def _is_subcommand_call(self, args: list[str]) -> bool:
        name, rest = args[0], args[1:]
        if name not in self.commands:
            return False
        return name == self.default_command or all(arg.startswith("-") for arg in rest)


# ── App ──────────────────────────────────────────────────────────

app = typer.Typer(
    name="promptx",
    help="Turn messy prompts into clear, well-structured ones.",
    cls=_DefaultCommandGroup,
    no_args_is_help=False,
    rich_markup_mode="rich",
)


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"promptx {__version__}")
        raise typer.Exit()


# ── App Callback ────────────────────────────────────────────────


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    model: str = typer.Option(
        None, "--model", "-m",
        help="Use this model for one run without changing the saved choice.",
    ),
    debug: bool = typer.Option(
        False, "--debug",
        help="Enable debug logging.",
    ),
) -> None:
    """promptx — refine prompts for Claude, ChatGPT and GitHub Copilot."""
    if debug:
        _configure_debug_logging()
    load_dotenv()

    ctx.obj = {"model": model}
    if ctx.invoked_subcommand is None:
        _refine_entry([], model)


def _configure_debug_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


# ── Helpers ──────────────────────────────────────────────────────


def _is_interactive() -> bool:
    """True when both ends of the session are a terminal."""
    return sys.stdin.isatty() and sys.stdout.isatty()


def _fail(error: PromptxError) -> None:
    """Render a classified error and exit with its status."""
    render_error(console, error)
    raise typer.Exit(error.exit_code)


def _local_models_for(model_id: str | None) -> dict[str, ModelDescriptor]:
    """Discover local models only when the selection needs them.

    A selection outside the catalog is a local model, so a missing or
    stopped runtime fails the run instead of falling back to a cloud model.
    Other discovery problems are explained before the fallback warning.
    """
    if model_id is None or model_id in all_models():
        return {}
    result = discover()
    if result.ok:
        return dict(result.models)

    logger.debug("Local discovery failed (%s): %s", result.error, result.message)
    if result.error is DiscoveryError.SERVICE_NOT_RUNNING:
        _fail(RuntimeUnavailableError(
            f"Cannot use '{model_id}': the Ollama service is not running.",
        ))
    if result.error is DiscoveryError.NOT_INSTALLED:
        _fail(RuntimeUnavailableError(
            f"Cannot use '{model_id}': Ollama is not installed.",
            remediation="Install it from https://ollama.com/download, "
            'or pick another model with "promptx /model".',
        ))
    render_discovery_problem(console, result)
    return {}


def _reserved_command(text: str) -> str | None:
    token = text.strip().lower()
    if not token or " " in token:
        return None
    return RESERVED_COMMANDS.get(token)


def _run_reserved(command: str, store: ConfigStore) -> None:
    if command == "help":
        render_help(console)
    elif command == "whats-new":
        render_whats_new(console)
    elif command == "model":
        if not _is_interactive():
            _fail(SetupRequiredError(
                "Changing the model needs an interactive terminal.",
                remediation='Run "promptx /model" in a terminal, or pass --model.',
            ))
        SetupWizard(store, console).change_model()


def _ensure_configured(store: ConfigStore, model_override: str | None) -> str | None:
    """Return the model to use, running first-time setup when needed."""
    if model_override:
        return model_override
    if store.setup_complete and store.selected_model:
        return store.selected_model
    if not _is_interactive():
        _fail(SetupRequiredError("promptx is not set up yet."))
    return SetupWizard(store, console).run().identifier


def _read_prompt() -> str:
    prompt_text = Text()
    prompt_text.append("\npromptx", style=BRAND["accent"])
    prompt_text.append(" ▸ ", style=BRAND["green"])
    console.print(f"[{BRAND['dim']}]Enter your prompt (or /help, /model, /whats-new):[/]")
    return console.input(prompt_text).strip()


def _refine_entry(words: list[str], model_override: str | None) -> None:
    store = ConfigStore()
    text = " ".join(words).strip()

    try:
        command = _reserved_command(text)
        if command is not None:
            _run_reserved(command, store)
            return

        if not text and not sys.stdin.isatty():
            text = sys.stdin.read().strip()
            if not text:
                console.print(f"[{BRAND['red']}]No prompt received on stdin.[/]")
                raise typer.Exit(1)

        model_id = _ensure_configured(store, model_override)

        if not text:
            text = _read_prompt()
            command = _reserved_command(text)
            if command is not None:
                _run_reserved(command, store)
                return
            if not text:
                console.print(f"[{BRAND['dim']}]Nothing to refine.[/]")
                return
    except (KeyboardInterrupt, EOFError):
        console.print(f"\n[{BRAND['dim']}]Cancelled.[/]")
        raise typer.Exit(0) from None

    orchestrator = RefinementOrchestrator(console, local_models=_local_models_for(model_id))
    code = asyncio.run(orchestrator.run(text, model_id, collect_credentials(store)))
    raise typer.Exit(code)


# ── promptx refine ───────────────────────────────────────────────


@app.command(context_settings={"ignore_unknown_options": True})
def refine(
    ctx: typer.Context,
    prompt: list[str] = typer.Argument(
        None, help="The prompt to refine. Read from stdin when omitted and piped.",
    ),
) -> None:
    """Refine a prompt (the default command)."""
    model_override = (ctx.obj or {}).get("model")
    _refine_entry(list(prompt or []), model_override)


# ── promptx setup ────────────────────────────────────────────────


@app.command()
def setup() -> None:
    """Choose a model and enter its API key."""
    if not _is_interactive():
        _fail(SetupRequiredError(
            "Setup needs an interactive terminal.",
            remediation="Run \"promptx setup\" in a terminal.",
        ))
    try:
        SetupWizard(ConfigStore(), console).run()
    except (KeyboardInterrupt, EOFError):
        console.print(f"\n[{BRAND['dim']}]Setup cancelled.[/]")
        raise typer.Exit(1) from None


# ── promptx models ───────────────────────────────────────────────


@app.command()
def models() -> None:
    """List available models, including local Ollama models."""
    with console.status("[bold blue]Looking for local models...", spinner="dots"):
        result = discover()

    render_models_table(console, all_models(result.models))
    if not result.ok:
        console.print()
        render_discovery_problem(console, result)


# ── promptx reset ────────────────────────────────────────────────


@app.command()
def reset() -> None:
    """Clear the saved model choice and API keys."""
    store = ConfigStore()
    if store.clear():
        console.print(f"[{BRAND['green']}]✓ Configuration reset.[/] [dim]{store.path}[/dim]")
        console.print("[dim]Run promptx again to set up a model.[/dim]")
    else:
        console.print("[dim]Nothing to reset; no configuration saved.[/dim]")
