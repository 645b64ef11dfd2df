"""Capability rules: which request dialect a model speaks.

Backends disagree on otherwise-equivalent parameters. OpenAI reasoning
models reject ``temperature`` and take ``max_completion_tokens``; xAI
reasoning models reject ``temperature`` and need a much larger output
budget; Anthropic caps output per model. These rules are applied to a
ModelDescriptor to produce the ModelDialect adapters build requests from.
"""

from __future__ import annotations

import re

from promptx.schemas.models import ModelDescriptor, ModelDialect, Provider, TokenField

DEFAULT_TEMPERATURE = 0.3

STANDARD_MAX_TOKENS = 2000
OPENAI_REASONING_MAX_TOKENS = 8000
XAI_REASONING_MAX_TOKENS = 16000
GOOGLE_THINKING_MAX_TOKENS = 8000
# Used for Anthropic identifiers missing from the per-model table
ANTHROPIC_FALLBACK_MAX_TOKENS = 4096

# o1, o3, o3-mini, o4-mini, gpt-5, gpt-5-mini, ...
_OPENAI_REASONING_RE = re.compile(r"^(o\d|gpt-5)")
# grok-3-mini, grok-4-fast-reasoning, ...
_XAI_REASONING_RE = re.compile(r"(reasoning|^grok-3-mini)")


def is_thinking_model(provider: Provider, identifier: str) -> bool:
    """Detect reasoning-tier models from their naming convention.

    Only OpenAI and xAI follow a convention; other providers flag thinking
    models explicitly in models.toml.
    """
    ident = identifier.lower()
    if provider is Provider.OPENAI:
        return bool(_OPENAI_REASONING_RE.match(ident))
    if provider is Provider.XAI:
        return bool(_XAI_REASONING_RE.search(ident))
    return False


def resolve_dialect(descriptor: ModelDescriptor) -> ModelDialect:
    """Return the request dialect for a model.

    Per-model hints on the descriptor (``token_field``, ``max_tokens``)
    override the provider rule.
    """
    provider = descriptor.provider
    thinking = descriptor.is_thinking or is_thinking_model(provider, descriptor.identifier)

    if provider is Provider.OPENAI and thinking:
        rule = ModelDialect(
            token_field=TokenField.MAX_COMPLETION_TOKENS,
            max_tokens=OPENAI_REASONING_MAX_TOKENS,
            supports_temperature=False,
        )
    elif provider is Provider.XAI and thinking:
        rule = ModelDialect(
            max_tokens=XAI_REASONING_MAX_TOKENS,
            supports_temperature=False,
        )
    elif provider is Provider.ANTHROPIC:
        rule = ModelDialect(max_tokens=ANTHROPIC_FALLBACK_MAX_TOKENS)
    elif provider is Provider.GOOGLE and thinking:
        rule = ModelDialect(max_tokens=GOOGLE_THINKING_MAX_TOKENS)
    else:
        # Standard OpenAI/xAI/Google models and every local model
        rule = ModelDialect(max_tokens=STANDARD_MAX_TOKENS)

    return ModelDialect(
        token_field=descriptor.token_field or rule.token_field,
        max_tokens=descriptor.max_tokens or rule.max_tokens,
        supports_temperature=rule.supports_temperature,
    )
