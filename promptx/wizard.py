"""Interactive setup wizard and model switcher.

First-time setup picks a model and collects the matching provider's API
key; ``/model`` switches models later and only asks for a key when the
new provider has none yet. Local Ollama models are discovered on the fly
and appear in the same menu.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from rich.console import Console
from rich.prompt import Prompt

from promptx.cli_display import (
    BRAND,
    PROVIDER_LABELS,
    model_choices,
    render_discovery_problem,
    render_model_menu,
)
from promptx.keys import PROVIDER_KEYS, get_credential, requires_credential, validate_key_format
from promptx.providers.ollama import discover
from promptx.providers.registry import all_models, resolve_model
from promptx.schemas.discovery import OllamaDiscoveryResult
from promptx.schemas.models import ModelDescriptor
from promptx.settings import ConfigStore

logger = logging.getLogger(__name__)

# Menu entry offered when discovery found nothing usable
_LOCAL_HELP_CHOICE = "local"


class SetupWizard:
    """Walks the user through model selection and API key entry."""

    def __init__(
        self,
        store: ConfigStore,
        console: Console | None = None,
        *,
        discover_local: Callable[[], OllamaDiscoveryResult] = discover,
    ) -> None:
        self._store = store
        self._console = console or Console()
        self._discover_local = discover_local
        self._last_discovery: OllamaDiscoveryResult | None = None

    # ── Entry points ──────────────────────────────────────────

    def run(self) -> ModelDescriptor:
        """First-time setup: choose a model, enter its key, save both."""
        self._console.print(f"\n[bold {BRAND['accent']}]Welcome to promptx![/]")
        self._console.print("[dim]Let's set up your AI model preferences.[/dim]\n")

        descriptor = self._choose_model("Which AI model would you like to use?")
        credential = self._ask_credential(descriptor, force=True)
        self._store.save_selection(
            descriptor.identifier,
            provider=descriptor.provider,
            credential=credential,
            complete_setup=True,
        )

        self._console.print(f"\n[{BRAND['green']}]✓ Setup complete![/]")
        self._console.print(f"[dim]Model: {descriptor.display_name}[/dim]")
        self._console.print("[dim]Change it anytime by typing /model[/dim]\n")
        return descriptor

    def change_model(self) -> ModelDescriptor:
        """Switch the selected model, asking for a key only when needed."""
        self._console.print(f"\n[bold {BRAND['accent']}]Change Model[/]")
        current = self._store.selected_model
        if current:
            name = resolve_model(current, self._local_models()).descriptor.display_name
            self._console.print(f"[dim]Current model: {name}[/dim]\n")

        descriptor = self._choose_model("Select a new model", current=current)
        credential = self._ask_credential(descriptor, force=False)
        self._store.save_selection(
            descriptor.identifier,
            provider=descriptor.provider,
            credential=credential,
            complete_setup=True,
        )
        self._console.print(f"\n[{BRAND['green']}]✓ Switched to {descriptor.display_name}[/]")
        return descriptor

    # ── Steps ─────────────────────────────────────────────────

    def _local_models(self) -> dict[str, ModelDescriptor]:
        result = self._discover_local()
        self._last_discovery = result
        if not result.ok:
            logger.debug("Local discovery: %s", result.error)
        return dict(result.models)

    def _choose_model(self, question: str, current: str | None = None) -> ModelDescriptor:
        local = self._local_models()
        choices = model_choices(all_models(local))
        render_model_menu(self._console, choices, current=current)

        valid = [str(i) for i in range(1, len(choices) + 1)]
        if not local:
            self._console.print(
                f"  [{BRAND['accent']}]local[/]  [dim]Use a local model with Ollama[/dim]"
            )
            valid.append(_LOCAL_HELP_CHOICE)

        default = None
        if current is not None:
            for index, descriptor in enumerate(choices, 1):
                if descriptor.identifier == current:
                    default = str(index)

        while True:
            answer = Prompt.ask(
                f"\n{question}",
                choices=valid,
                default=default,
                show_choices=False,
                console=self._console,
            )
            if answer != _LOCAL_HELP_CHOICE:
                return choices[int(answer) - 1]
            # Discovery already failed; explain how to get local models going
            render_discovery_problem(self._console, self._last_discovery)

    def _ask_credential(self, descriptor: ModelDescriptor, *, force: bool) -> str | None:
        """Prompt for the provider's key; None when none is needed.

        With ``force`` False an existing key (environment or stored) is
        kept without prompting.
        """
        provider = descriptor.provider
        if not requires_credential(provider):
            return None
        if not force and get_credential(provider, self._store):
            return None

        spec = PROVIDER_KEYS[provider]
        self._console.print(
            f"\n[{BRAND['amber']}]You'll need {_article(spec.display_name)} "
            f"{spec.display_name} API key to use {descriptor.display_name}.[/]"
        )
        self._console.print(f"[dim]Get one at: {spec.signup_url}[/dim]")

        while True:
            key = Prompt.ask(
                f"Enter your {PROVIDER_LABELS[provider]} API key",
                password=True,
                console=self._console,
            ).strip()
            problem = validate_key_format(provider, key)
            if problem is None:
                return key
            self._console.print(f"[{BRAND['red']}]{problem}[/]")


def _article(word: str) -> str:
    return "an" if word[:1].lower() in "aeiou" else "a"
