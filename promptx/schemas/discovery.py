"""Local runtime discovery schemas."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from promptx.schemas.models import ModelDescriptor


class DiscoveryError(StrEnum):
    """Why local model discovery produced no usable models."""

    NOT_INSTALLED = "not_installed"
    SERVICE_NOT_RUNNING = "service_not_running"
    NO_MODELS = "no_models"
    UNKNOWN = "unknown"


class OllamaDiscoveryResult(BaseModel):
    """Either the discovered local models or a tagged failure.

    Exactly one of ``models`` (non-empty) or ``error`` is populated.
    """

    model_config = ConfigDict(frozen=True)

    models: dict[str, ModelDescriptor] = Field(default_factory=dict)
    error: DiscoveryError | None = None
    message: str = Field(default="", description="Raw failure detail for diagnostics")

    @model_validator(mode="after")
    def _one_outcome(self) -> OllamaDiscoveryResult:
        if self.error is None and not self.models:
            raise ValueError("discovery result needs models or an error")
        if self.error is not None and self.models:
            raise ValueError("discovery result cannot carry both models and an error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None
