"""Terminal display components for promptx.

Brand colors, the refined-prompt frame, error rendering with remediation,
the model menu, help text and the "what's new" changelog. All rendering
uses Rich.
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from promptx import __version__
from promptx.errors import PromptxError
from promptx.schemas.discovery import DiscoveryError, OllamaDiscoveryResult
from promptx.schemas.models import ModelDescriptor, Provider

# ── Brand Colors ──────────────────────────────────────────────────

BRAND = {
    "accent": "#5fafff",
    "green": "#00d787",
    "dim": "#808080",
    "amber": "#ffaf00",
    "red": "#ff5f5f",
}

PROVIDER_LABELS: dict[Provider, str] = {
    Provider.OPENAI: "OpenAI",
    Provider.ANTHROPIC: "Anthropic",
    Provider.XAI: "xAI",
    Provider.GOOGLE: "Google",
    Provider.LOCAL: "Ollama (local)",
}

# ── Changelog ─────────────────────────────────────────────────────

CHANGELOG: list[tuple[str, list[str]]] = [
    (
        "1.1.0",
        [
            "Streaming output: the refined prompt appears as it is written, wrapped to your terminal",
            "More providers: xAI Grok and Google Gemini join OpenAI and Anthropic",
            "Local models: use any model pulled with Ollama, no API key needed",
            "Thinking indicator for reasoning models (o3, Grok 4, Gemini 2.5 Pro)",
        ],
    ),
    (
        "1.0.0",
        [
            "Multi-model support with an interactive setup wizard",
            "/model command: switch models on the fly",
            "/whats-new command: see the latest updates",
            "promptx reset: clear the saved model and API keys",
        ],
    ),
]


# ── Refined prompt frame ──────────────────────────────────────────


def render_refined_header(console: Console, model_name: str) -> None:
    """Print the rule and title shown above the streamed answer."""
    console.print()
    console.print(Rule(style=BRAND["dim"]))
    console.print(f"[bold {BRAND['green']}]REFINED PROMPT[/] [dim]· {model_name}[/dim]")
    console.print(Rule(style=BRAND["dim"]))
    console.print()


def render_refined_footer(console: Console) -> None:
    """Close the frame after a successful stream."""
    console.print()
    console.print(Rule(style=BRAND["dim"]))
    console.print()


def render_error(console: Console, error: PromptxError) -> None:
    """Print a classified error and what the user can do about it."""
    console.print()
    console.print(f"[bold {BRAND['red']}]✗ {error.message}[/]")
    if error.remediation:
        console.print(f"  [{BRAND['dim']}]{error.remediation}[/]")


# ── Models ────────────────────────────────────────────────────────


def model_choices(models: dict[str, ModelDescriptor]) -> list[ModelDescriptor]:
    """Order models for menus: by provider, in catalog order."""
    order = list(Provider)
    return sorted(models.values(), key=lambda d: order.index(d.provider))


def render_model_menu(
    console: Console,
    choices: Sequence[ModelDescriptor],
    current: str | None = None,
) -> None:
    """Print a numbered model menu."""
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("#", justify="right", style=BRAND["accent"])
    table.add_column("Model")
    table.add_column("Provider", style="dim")
    table.add_column("", style=BRAND["amber"])

    for index, descriptor in enumerate(choices, 1):
        marker = "current" if descriptor.identifier == current else ""
        if descriptor.is_thinking:
            marker = f"{marker} thinking".strip()
        table.add_row(
            str(index),
            descriptor.display_name,
            PROVIDER_LABELS[descriptor.provider],
            marker,
        )
    console.print(table)


def render_models_table(console: Console, models: dict[str, ModelDescriptor]) -> None:
    """Print the full registry with each model's request dialect."""
    from promptx.providers.capabilities import resolve_dialect

    table = Table(title="Available Models", show_lines=False)
    table.add_column("Model ID", style="bold cyan")
    table.add_column("Display Name")
    table.add_column("Provider", style="dim")
    table.add_column("Thinking", justify="center")
    table.add_column("Token Limit", justify="right")
    table.add_column("Temperature", justify="center")

    for descriptor in model_choices(models):
        dialect = resolve_dialect(descriptor)
        table.add_row(
            descriptor.identifier,
            descriptor.display_name,
            PROVIDER_LABELS[descriptor.provider],
            "✓" if descriptor.is_thinking else "",
            f"{dialect.token_field.value}={dialect.max_tokens:,}",
            "✓" if dialect.supports_temperature else "[dim]omitted[/dim]",
        )

    console.print(table)
    console.print(f"\n[dim]{len(models)} models available[/dim]")


def render_discovery_problem(console: Console, result: OllamaDiscoveryResult) -> None:
    """Explain why no local models are usable and how to fix it."""
    if result.error is DiscoveryError.NOT_INSTALLED:
        console.print(f"[{BRAND['amber']}]Ollama is not installed.[/]")
        console.print("  Install it from [link=https://ollama.com/download]https://ollama.com/download[/link]")
    elif result.error is DiscoveryError.SERVICE_NOT_RUNNING:
        console.print(f"[{BRAND['amber']}]Ollama is installed but the service is not running.[/]")
        console.print("  Start it with: [bold]ollama serve[/bold]")
    elif result.error is DiscoveryError.NO_MODELS:
        console.print(f"[{BRAND['amber']}]Ollama is running but no models are downloaded.[/]")
        console.print("  Pull one with: [bold]ollama pull llama3.2[/bold]")
    else:
        console.print(f"[{BRAND['red']}]Could not list Ollama models.[/]")
        if result.message:
            console.print(f"  [dim]{result.message}[/dim]")


# ── Help & changelog ──────────────────────────────────────────────


def render_help(console: Console) -> None:
    """Print usage and the reserved in-prompt commands."""
    body = (
        "[bold]Usage[/bold]\n"
        "  promptx \"your messy prompt\"   refine a prompt directly\n"
        "  promptx                       enter a prompt interactively\n"
        "  echo \"...\" | promptx          refine piped input\n"
        "\n"
        "[bold]Commands[/bold] (as the only argument, or typed at the prompt)\n"
        "  /model       switch to another model\n"
        "  /whats-new   show what changed in this version\n"
        "  /help        show this help\n"
        "\n"
        "[bold]Subcommands[/bold]\n"
        "  promptx setup    run the setup wizard\n"
        "  promptx models   list available models\n"
        "  promptx reset    clear the saved model and API keys"
    )
    console.print(Panel(body, title=f"promptx v{__version__}", border_style=BRAND["accent"]))


def render_whats_new(console: Console, version: str = __version__) -> None:
    """Print changelog entries for the current major version."""
    major = version.split(".")[0]

    console.print(f"\n[bold {BRAND['accent']}]What's new in promptx v{version}[/]")
    console.print(Rule(style=BRAND["dim"]))

    for entry_version, changes in CHANGELOG:
        if entry_version.split(".")[0] != major:
            continue
        console.print(f"\n[{BRAND['green']}]v{entry_version}[/]")
        for change in changes:
            console.print(f"  • {change}")

    console.print()
    console.print(Rule(style=BRAND["dim"]))
