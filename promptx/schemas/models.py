"""Model registry schemas.

Defines the provider enumeration, the immutable ModelDescriptor records
loaded from models.toml (or discovered from a local runtime), and the
resolved request dialect for a model.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Provider(StrEnum):
    """Backend families a model can be served by."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    XAI = "xai"
    GOOGLE = "google"
    LOCAL = "local"


class TokenField(StrEnum):
    """Name of the output token-limit parameter a backend accepts."""

    MAX_TOKENS = "max_tokens"
    MAX_COMPLETION_TOKENS = "max_completion_tokens"


class ModelDescriptor(BaseModel):
    """Resolved metadata for a single model.

    Created when the registry is loaded or when local models are
    discovered. Never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(min_length=1, description="Provider-unique model identifier")
    display_name: str = Field(description="Human-friendly model name for CLI output")
    provider: Provider = Field(description="Backend family serving this model")
    is_thinking: bool = Field(
        default=False, description="Whether the model reasons before emitting output"
    )
    token_field: TokenField | None = Field(
        default=None, description="Token-limit parameter override (None = provider rule)"
    )
    max_tokens: int | None = Field(
        default=None, gt=0, description="Output token ceiling override (None = provider rule)"
    )


class ModelDialect(BaseModel):
    """Request parameters a specific model expects."""

    model_config = ConfigDict(frozen=True)

    token_field: TokenField = Field(default=TokenField.MAX_TOKENS)
    max_tokens: int = Field(gt=0)
    supports_temperature: bool = Field(default=True)


class ModelResolution(BaseModel):
    """Result of looking up a model identifier.

    ``warning`` is set when the identifier was unknown and the default
    descriptor was substituted.
    """

    model_config = ConfigDict(frozen=True)

    descriptor: ModelDescriptor
    warning: str | None = None

    @property
    def degraded(self) -> bool:
        return self.warning is not None
