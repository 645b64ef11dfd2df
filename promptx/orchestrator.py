"""Refinement orchestrator — drives one prompt refinement end to end.

Resolves the model, validates the credential, selects the provider
adapter, pushes streamed deltas through the word-wrapper, and turns any
failure into a classified PromptxError. ``run`` is the single place that
renders the error with its remediation and decides the exit status.

Per invocation the orchestrator moves through::

    IDLE → RESOLVING → DISPATCHING → [THINKING] → STREAMING → DONE
                                                          ↘ FAILED
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from enum import StrEnum

from rich.console import Console
from rich.text import Text

from promptx.cli_display import render_error, render_refined_footer, render_refined_header
from promptx.errors import PromptxError, classify_error
from promptx.keys import require_valid_credential, requires_credential
from promptx.prompts import refine_system_prompt
from promptx.providers.base import ProviderAdapter
from promptx.providers.capabilities import resolve_dialect
from promptx.providers.litellm_provider import get_adapter
from promptx.providers.registry import resolve_model
from promptx.schemas.models import ModelDescriptor, Provider
from promptx.schemas.streaming import RefinementRequest
from promptx.wrap import LineSink, StreamWordWrapper, wrap_width

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[Provider], ProviderAdapter]


class RefinementState(StrEnum):
    """Lifecycle of a single refinement."""

    IDLE = "idle"
    RESOLVING = "resolving"
    DISPATCHING = "dispatching"
    THINKING = "thinking"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


class RefinementOrchestrator:
    """Coordinates registry, adapters, wrapper and display for one call.

    Args:
        console: Rich console for headers, spinners and errors.
        sink: Receives each wrapped output line. Defaults to printing on
            the console.
        width: Wrap width. Defaults to the console's terminal width policy.
        local_models: Latest local discovery result, merged into lookups.
        adapter_factory: Maps a provider to its adapter.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        sink: LineSink | None = None,
        width: int | None = None,
        local_models: Mapping[str, ModelDescriptor] | None = None,
        adapter_factory: AdapterFactory = get_adapter,
    ) -> None:
        self._console = console or Console()
        self._sink = sink or self._print_line
        self._width = width
        self._local_models = dict(local_models or {})
        self._adapter_factory = adapter_factory
        self.state = RefinementState.IDLE
        self.warnings: list[str] = []

    async def run(
        self,
        prompt: str,
        model_id: str | None,
        credentials: Mapping[Provider, str] | None = None,
    ) -> int:
        """Refine a prompt and report the outcome.

        Returns:
            Process exit status: 0 on success, 1 on a classified failure.
        """
        try:
            await self.refine(prompt, model_id, credentials)
        except PromptxError as e:
            render_error(self._console, e)
            return e.exit_code
        render_refined_footer(self._console)
        return 0

    async def refine(
        self,
        prompt: str,
        model_id: str | None,
        credentials: Mapping[Provider, str] | None = None,
    ) -> str:
        """Stream a refined prompt through the wrapper.

        Returns:
            The full refined text.

        Raises:
            ValueError: If the prompt is blank.
            PromptxError: Classified failure; partial output already
                printed is left as is.
        """
        prompt = prompt.strip()
        if not prompt:
            raise ValueError("Prompt cannot be empty")

        self.state = RefinementState.RESOLVING
        resolution = resolve_model(model_id, self._local_models)
        descriptor = resolution.descriptor
        if resolution.degraded:
            self.warnings.append(resolution.warning)
            self._console.print(f"[yellow]Warning:[/yellow] {resolution.warning}")

        try:
            request = self._build_request(prompt, descriptor, credentials or {})

            self.state = RefinementState.DISPATCHING
            adapter = self._adapter_factory(descriptor.provider)
            logger.debug("Selected %s for %s", type(adapter).__name__, descriptor.identifier)
            render_refined_header(self._console, descriptor.display_name)

            return await self._stream(adapter, request)
        except PromptxError:
            self.state = RefinementState.FAILED
            raise
        except Exception as e:
            self.state = RefinementState.FAILED
            raise classify_error(e, descriptor) from e

    def _build_request(
        self,
        prompt: str,
        descriptor: ModelDescriptor,
        credentials: Mapping[Provider, str],
    ) -> RefinementRequest:
        credential = None
        if requires_credential(descriptor.provider):
            credential = credentials.get(descriptor.provider)
            # Rejects malformed keys before any adapter or network call
            require_valid_credential(descriptor.provider, credential)

        return RefinementRequest(
            system=refine_system_prompt(),
            prompt=prompt,
            model=descriptor,
            dialect=resolve_dialect(descriptor),
            credential=credential,
        )

    async def _stream(self, adapter: ProviderAdapter, request: RefinementRequest) -> str:
        wrapper = StreamWordWrapper(self._sink, width=self._wrap_width())
        received: list[str] = []

        status = None
        if request.model.is_thinking:
            status = self._console.status(
                f"[bold blue]{request.model.display_name} is thinking...", spinner="dots",
            )
            status.start()
            self.state = RefinementState.THINKING
        else:
            self.state = RefinementState.STREAMING

        try:
            async for delta in adapter.stream(request):
                if not delta.text:
                    continue
                if status is not None:
                    status.stop()
                    status = None
                    self.state = RefinementState.STREAMING
                received.append(delta.text)
                wrapper.write(delta.text)
        finally:
            if status is not None:
                status.stop()

        wrapper.flush()
        self.state = RefinementState.DONE
        return "".join(received)

    def _wrap_width(self) -> int:
        if self._width is not None:
            return self._width
        columns = self._console.width if self._console.is_terminal else None
        return wrap_width(columns)

    def _print_line(self, line: str) -> None:
        # Text.from_ansi keeps model output literal: no markup, no re-wrapping
        self._console.print(Text.from_ansi(line), soft_wrap=True)
