"""Model registry and TOML catalog loader.

Loads the static per-provider model tables from models.toml and merges
them with locally discovered models on every lookup. Discovery results
are passed in rather than patched into module state, so a lookup always
sees the latest discovery without any shared mutable registry.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

from promptx.providers.capabilities import is_thinking_model
from promptx.schemas.models import ModelDescriptor, ModelResolution, Provider

logger = logging.getLogger(__name__)

# Default config directory relative to the promptx package
_CONFIG_DIR = Path(__file__).parent.parent / "config"

DEFAULT_MODEL_ID = "gpt-4o"

# Providers with a static table in models.toml, in menu order
STATIC_PROVIDERS: tuple[Provider, ...] = (
    Provider.OPENAI,
    Provider.ANTHROPIC,
    Provider.XAI,
    Provider.GOOGLE,
)

ModelTables = Mapping[Provider, Mapping[str, ModelDescriptor]]


def load_models(config_path: Path | None = None) -> dict[Provider, dict[str, ModelDescriptor]]:
    """Load the static model tables from a TOML file.

    Args:
        config_path: Path to models.toml. Defaults to promptx/config/models.toml.

    Returns:
        Mapping of provider to {identifier: ModelDescriptor}.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML structure is invalid.
    """
    path = config_path or _CONFIG_DIR / "models.toml"
    if not path.exists():
        raise FileNotFoundError(f"Model registry not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    tables: dict[Provider, dict[str, ModelDescriptor]] = {p: {} for p in STATIC_PROVIDERS}
    for section, entries in raw.items():
        try:
            provider = Provider(section)
        except ValueError:
            raise ValueError(f"Unknown provider section [{section}] in {path}") from None
        if provider not in STATIC_PROVIDERS or not isinstance(entries, dict):
            raise ValueError(f"Invalid provider section [{section}] in {path}")

        for identifier, entry in entries.items():
            if not isinstance(entry, dict):
                continue
            tables[provider][identifier] = ModelDescriptor(
                identifier=identifier,
                display_name=entry.get("name", identifier),
                provider=provider,
                is_thinking=bool(entry.get("thinking", False))
                or is_thinking_model(provider, identifier),
                max_tokens=entry.get("max_tokens"),
            )

    if not any(tables.values()):
        raise ValueError(f"No models defined in {path}")
    return tables


@lru_cache(maxsize=1)
def _bundled_tables() -> dict[Provider, dict[str, ModelDescriptor]]:
    return load_models()


def all_models(
    local_models: Mapping[str, ModelDescriptor] | None = None,
    tables: ModelTables | None = None,
) -> dict[str, ModelDescriptor]:
    """Return the merged registry: static tables first, then local models.

    A local model never shadows a static identifier.
    """
    tables = tables if tables is not None else _bundled_tables()
    merged: dict[str, ModelDescriptor] = {}
    for provider in STATIC_PROVIDERS:
        merged.update(tables.get(provider, {}))
    for identifier, descriptor in (local_models or {}).items():
        if identifier in merged:
            logger.debug("Local model %s shadows a catalog model; keeping catalog entry", identifier)
            continue
        merged[identifier] = descriptor
    return merged


def default_descriptor(tables: ModelTables | None = None) -> ModelDescriptor:
    """The model used when a configured identifier cannot be resolved."""
    tables = tables if tables is not None else _bundled_tables()
    descriptor = tables.get(Provider.OPENAI, {}).get(DEFAULT_MODEL_ID)
    if descriptor is None:
        return ModelDescriptor(
            identifier=DEFAULT_MODEL_ID, display_name="GPT-4o", provider=Provider.OPENAI,
        )
    return descriptor


def resolve_model(
    model_id: str | None,
    local_models: Mapping[str, ModelDescriptor] | None = None,
    tables: ModelTables | None = None,
) -> ModelResolution:
    """Look up a model identifier, degrading to the default on a miss.

    Stored configuration can name a model that no longer exists (most
    often a local model that was removed), so a miss is reported as a
    warning on the resolution rather than raised.
    """
    registry = all_models(local_models, tables)
    if model_id and model_id in registry:
        return ModelResolution(descriptor=registry[model_id])

    fallback = default_descriptor(tables)
    if model_id:
        warning = (
            f"Model '{model_id}' is not available; "
            f"falling back to {fallback.display_name}."
        )
    else:
        warning = f"No model selected; using {fallback.display_name}."
    logger.debug("Unresolved model %r; using %s", model_id, fallback.identifier)
    return ModelResolution(descriptor=fallback, warning=warning)
