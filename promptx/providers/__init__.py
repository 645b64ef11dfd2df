"""promptx provider layer.

All model calls go through a ProviderAdapter selected by get_adapter().
"""

from promptx.providers.base import ProviderAdapter
from promptx.providers.capabilities import is_thinking_model, resolve_dialect
from promptx.providers.litellm_provider import (
    AnthropicAdapter,
    GoogleAdapter,
    LiteLLMAdapter,
    OllamaAdapter,
    OpenAICompatibleAdapter,
    get_adapter,
)
from promptx.providers.registry import all_models, load_models, resolve_model

__all__ = [
    "AnthropicAdapter",
    "GoogleAdapter",
    "LiteLLMAdapter",
    "OllamaAdapter",
    "OpenAICompatibleAdapter",
    "ProviderAdapter",
    "all_models",
    "get_adapter",
    "is_thinking_model",
    "load_models",
    "resolve_dialect",
    "resolve_model",
]
