"""API key management for promptx.

Keys are looked up with this priority:
  1. Environment variables (highest — already set in shell)
  2. .env in the current directory (loaded without overwriting)
  3. The promptx config file (keys saved by `promptx setup`)

Every key is format-checked against its provider's prefix before it is
stored or used, so a mistyped key is rejected without a network call.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from promptx.errors import AuthenticationError
from promptx.schemas.models import Provider
from promptx.settings import ConfigStore, parse_env_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderKeySpec:
    """How a provider's API key is named, recognized and obtained."""

    provider: Provider
    env_var: str
    display_name: str
    prefix: str
    signup_url: str


PROVIDERS: tuple[ProviderKeySpec, ...] = (
    ProviderKeySpec(
        Provider.OPENAI, "OPENAI_API_KEY", "OpenAI", "sk-",
        "https://platform.openai.com/api-keys",
    ),
    ProviderKeySpec(
        Provider.ANTHROPIC, "ANTHROPIC_API_KEY", "Anthropic", "sk-ant-",
        "https://console.anthropic.com/settings/keys",
    ),
    ProviderKeySpec(
        Provider.XAI, "XAI_API_KEY", "xAI", "xai-",
        "https://console.x.ai",
    ),
    ProviderKeySpec(
        Provider.GOOGLE, "GEMINI_API_KEY", "Google", "AIza",
        "https://aistudio.google.com/apikey",
    ),
)

PROVIDER_KEYS: dict[Provider, ProviderKeySpec] = {spec.provider: spec for spec in PROVIDERS}


def load_dotenv() -> None:
    """Load provider keys from .env in the current directory.

    Existing environment variables are NOT overwritten.
    """
    env_file = Path.cwd() / ".env"
    if not env_file.is_file():
        return
    for key, value in parse_env_file(env_file).items():
        if not os.environ.get(key):
            os.environ[key] = value
            logger.debug("Loaded %s from %s", key, env_file)


def requires_credential(provider: Provider) -> bool:
    return provider in PROVIDER_KEYS


def validate_key_format(provider: Provider, key: str | None) -> str | None:
    """Check a key's shape for a provider.

    Returns:
        None when the key is acceptable, otherwise a user-facing reason.
    """
    spec = PROVIDER_KEYS.get(provider)
    if spec is None:
        return None
    if not key or not key.strip():
        return "API key cannot be empty"
    if not key.strip().startswith(spec.prefix):
        return f'Invalid API key format. {spec.display_name} API keys start with "{spec.prefix}"'
    return None


def get_credential(provider: Provider, store: ConfigStore) -> str | None:
    """Return the key for a provider, environment first, then the store."""
    spec = PROVIDER_KEYS.get(provider)
    if spec is None:
        return None
    from_env = os.environ.get(spec.env_var, "").strip()
    if from_env:
        return from_env
    return store.credential(provider)


def collect_credentials(store: ConfigStore) -> dict[Provider, str]:
    """All provider keys currently available."""
    found: dict[Provider, str] = {}
    for spec in PROVIDERS:
        key = get_credential(spec.provider, store)
        if key:
            found[spec.provider] = key
    return found


def require_valid_credential(provider: Provider, credential: str | None) -> None:
    """Raise AuthenticationError unless the credential is well-formed.

    Local models need no credential and always pass.
    """
    problem = validate_key_format(provider, credential)
    if problem is None:
        return
    spec = PROVIDER_KEYS[provider]
    if not credential:
        raise AuthenticationError(
            f"No {spec.display_name} API key configured.",
            remediation=f'Run "promptx setup" or set {spec.env_var}.',
        )
    raise AuthenticationError(
        f"{problem}.",
        remediation=f'Run "promptx reset" and enter a valid {spec.display_name} key '
        f"(get one at {spec.signup_url}).",
    )
