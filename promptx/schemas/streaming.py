"""Streaming schemas for real-time token delivery.

Defines the canonical request handed to a provider adapter and the
TextDelta records an adapter yields while the response streams in.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from promptx.schemas.models import ModelDescriptor, ModelDialect


class RefinementRequest(BaseModel):
    """One prompt-refinement call, independent of the backend."""

    model_config = ConfigDict(frozen=True)

    system: str = Field(description="System instruction text")
    prompt: str = Field(min_length=1, description="The raw user prompt to refine")
    model: ModelDescriptor = Field(description="Resolved model descriptor")
    dialect: ModelDialect = Field(description="Request dialect for the model")
    credential: str | None = Field(
        default=None, description="API key (None for local models)"
    )


class TextDelta(BaseModel):
    """A single chunk of streaming output from a model."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="New text in this chunk")
    is_complete: bool = Field(
        default=False, description="True on the end-of-stream marker"
    )
