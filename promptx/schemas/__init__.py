"""Pydantic schemas shared across promptx."""

from promptx.schemas.discovery import DiscoveryError, OllamaDiscoveryResult
from promptx.schemas.models import (
    ModelDescriptor,
    ModelDialect,
    ModelResolution,
    Provider,
    TokenField,
)
from promptx.schemas.streaming import RefinementRequest, TextDelta

__all__ = [
    "DiscoveryError",
    "ModelDescriptor",
    "ModelDialect",
    "ModelResolution",
    "OllamaDiscoveryResult",
    "Provider",
    "RefinementRequest",
    "TextDelta",
    "TokenField",
]
