"""LiteLLM-backed provider adapters.

Every backend call goes through ``litellm.acompletion(stream=True)``,
which owns the native wire formats (chat-completion choice deltas,
Anthropic content_block_delta events, Gemini candidate text) and
normalizes them into chat-completion chunks. The adapters here own what
differs per backend family: routing prefix, base URL, credential, the
token-limit field and temperature handling, and error classification.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from typing import Any

import litellm

# Suppress LiteLLM's "Give Feedback / Get Help" and "Provider List" banners
litellm.suppress_debug_info = True

from promptx.errors import classify_error
from promptx.providers.base import ProviderAdapter
from promptx.providers.capabilities import DEFAULT_TEMPERATURE
from promptx.schemas.models import Provider
from promptx.schemas.streaming import RefinementRequest, TextDelta

logger = logging.getLogger(__name__)

XAI_API_BASE = "https://api.x.ai/v1"
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
# Ollama ignores the key, but OpenAI-compatible clients refuse to send none
OLLAMA_PLACEHOLDER_KEY = "ollama"

DEFAULT_TIMEOUT = 120


def ollama_host() -> str:
    """Base URL of the local Ollama service (``OLLAMA_HOST`` overrides)."""
    host = os.environ.get("OLLAMA_HOST", "").strip() or DEFAULT_OLLAMA_HOST
    if not host.startswith(("http://", "https://")):
        host = f"http://{host}"
    return host.rstrip("/")


class LiteLLMAdapter(ProviderAdapter):
    """Streams a refinement through litellm.acompletion().

    Subclasses set ``route_prefix`` (LiteLLM's provider routing) and may
    set ``api_base`` for backends reached through a compatible endpoint.
    """

    route_prefix: str = ""
    api_base: str | None = None

    def __init__(self, *, timeout: int = DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout

    async def stream(self, request: RefinementRequest) -> AsyncIterator[TextDelta]:
        kwargs = self.build_completion_kwargs(request)
        logger.debug(
            "Dispatching %s via %s (%s=%d, temperature=%s)",
            request.model.identifier,
            kwargs["model"],
            request.dialect.token_field.value,
            request.dialect.max_tokens,
            "temperature" in kwargs,
        )

        try:
            response = await litellm.acompletion(**kwargs)
            async for chunk in response:
                delta = self._extract_delta(chunk)
                if delta:
                    yield TextDelta(text=delta)
        except Exception as e:
            raise classify_error(e, request.model) from e

        yield TextDelta(is_complete=True)

    def build_completion_kwargs(self, request: RefinementRequest) -> dict[str, Any]:
        """Build the kwargs dict for litellm.acompletion."""
        dialect = request.dialect
        kwargs: dict[str, Any] = {
            "model": f"{self.route_prefix}{request.model.identifier}",
            "messages": [
                {"role": "system", "content": request.system},
                {"role": "user", "content": request.prompt},
            ],
            "stream": True,
            "timeout": float(self._timeout),
            dialect.token_field.value: dialect.max_tokens,
        }

        # Reasoning models reject temperature outright, so omit the key
        if dialect.supports_temperature:
            kwargs["temperature"] = DEFAULT_TEMPERATURE

        api_key = self._api_key(request)
        if api_key:
            kwargs["api_key"] = api_key

        if self.api_base:
            kwargs["api_base"] = self.api_base

        return kwargs

    def _api_key(self, request: RefinementRequest) -> str | None:
        return request.credential

    @staticmethod
    def _extract_delta(chunk: Any) -> str:
        """Return the answer text carried by one streamed chunk.

        Thinking models may also stream ``reasoning_content``; that is
        the model's scratchpad, not part of the refined prompt.
        """
        choices = getattr(chunk, "choices", None)
        if not choices:
            return ""
        delta = getattr(choices[0], "delta", None)
        if delta is None:
            return ""
        content = getattr(delta, "content", None)
        return content if isinstance(content, str) else ""


class OpenAICompatibleAdapter(LiteLLMAdapter):
    """Chat-completions backends: OpenAI itself and xAI's compatible API."""

    route_prefix = "openai/"

    def __init__(
        self,
        provider: Provider = Provider.OPENAI,
        *,
        api_base: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(timeout=timeout)
        self.provider = provider
        self.api_base = api_base


class AnthropicAdapter(LiteLLMAdapter):
    """Anthropic Messages API."""

    provider = Provider.ANTHROPIC
    route_prefix = "anthropic/"


class GoogleAdapter(LiteLLMAdapter):
    """Google Gemini generative content API."""

    provider = Provider.GOOGLE
    route_prefix = "gemini/"


class OllamaAdapter(OpenAICompatibleAdapter):
    """Local Ollama models through Ollama's OpenAI-compatible endpoint."""

    def __init__(self, *, host: str | None = None, timeout: int = DEFAULT_TIMEOUT) -> None:
        super().__init__(
            Provider.LOCAL,
            api_base=f"{host or ollama_host()}/v1",
            timeout=timeout,
        )

    def _api_key(self, request: RefinementRequest) -> str | None:
        return OLLAMA_PLACEHOLDER_KEY


def get_adapter(provider: Provider) -> ProviderAdapter:
    """Return the adapter serving a provider.

    This is the single point where backend families are told apart.
    """
    if provider is Provider.OPENAI:
        return OpenAICompatibleAdapter(Provider.OPENAI)
    if provider is Provider.XAI:
        return OpenAICompatibleAdapter(Provider.XAI, api_base=XAI_API_BASE)
    if provider is Provider.ANTHROPIC:
        return AnthropicAdapter()
    if provider is Provider.GOOGLE:
        return GoogleAdapter()
    if provider is Provider.LOCAL:
        return OllamaAdapter()
    raise ValueError(f"No adapter for provider: {provider}")
