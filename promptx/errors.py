"""Error taxonomy for promptx.

Every failure that reaches the user is one of these classes. Each carries
a remediation hint because the fix differs per failure: re-authenticate,
wait out a rate limit, pull a model, start the local service, free memory,
or switch provider. ``classify_error`` turns LiteLLM and transport errors
into the most specific class available.
"""

from __future__ import annotations

import litellm

from promptx.schemas.models import ModelDescriptor, Provider

# Substrings Ollama and llama.cpp use when a model does not fit in memory
_OOM_HINTS = (
    "out of memory",
    "requires more system memory",
    "insufficient memory",
    "not enough memory",
    "cuda error: out of memory",
)

_CONNECTION_HINTS = (
    "connection refused",
    "connect call failed",
    "cannot connect",
    "failed to establish a new connection",
)


class PromptxError(Exception):
    """Base exception for all application-specific errors."""

    exit_code = 1
    default_remediation = ""

    def __init__(self, message: str, *, remediation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.remediation = remediation if remediation is not None else self.default_remediation


class AuthenticationError(PromptxError):
    """The backend rejected the credential, or it failed format checks."""

    default_remediation = 'Run "promptx reset" and set up a valid API key.'


class RateLimitError(PromptxError):
    """The backend is throttling requests (HTTP 429)."""

    default_remediation = "Rate limit exceeded. Wait a moment and try again."


class ModelNotFoundError(PromptxError):
    """The requested model does not exist on the backend (HTTP 404)."""

    default_remediation = 'Check the model name, or pick another one with "promptx /model".'


class RuntimeUnavailableError(PromptxError):
    """The local model runtime is not installed or not running."""

    default_remediation = 'Start Ollama with "ollama serve" and try again.'


class ResourceExhaustedError(PromptxError):
    """The local runtime ran out of memory loading or running the model."""

    default_remediation = (
        "Close other applications to free memory, or switch to a smaller model "
        'with "promptx /model".'
    )


class UnknownProviderError(PromptxError):
    """Any other backend failure. The raw message is kept for diagnostics."""

    default_remediation = 'Try again, or switch provider with "promptx /model".'


class SetupRequiredError(PromptxError):
    """Configuration is missing and there is no terminal to run setup on."""

    default_remediation = (
        'Run "promptx setup" in a terminal, or export the provider API key '
        "(e.g. OPENAI_API_KEY) before piping input."
    )


def classify_error(exc: BaseException, descriptor: ModelDescriptor) -> PromptxError:
    """Map a backend or transport exception onto the promptx taxonomy.

    Checks the LiteLLM exception type first, then the HTTP status code,
    then well-known message fragments.
    """
    if isinstance(exc, PromptxError):
        return exc

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()
    status = getattr(exc, "status_code", None)
    local = descriptor.provider is Provider.LOCAL
    name = descriptor.display_name

    if isinstance(exc, litellm.AuthenticationError) or status == 401:
        return AuthenticationError(f"Invalid API key for {name}.")

    if isinstance(exc, litellm.RateLimitError) or status == 429:
        return RateLimitError(f"Rate limit exceeded for {name}.")

    # OOM can arrive as a 500 from Ollama, so check before generic errors
    if any(hint in lowered for hint in _OOM_HINTS):
        return ResourceExhaustedError(f"Not enough memory to run {name}: {message}")

    if isinstance(exc, litellm.NotFoundError) or status == 404:
        if local:
            return ModelNotFoundError(
                f"Model '{descriptor.identifier}' is not downloaded.",
                remediation=f'Pull it with "ollama pull {descriptor.identifier}".',
            )
        return ModelNotFoundError(f"Model '{descriptor.identifier}' was not found.")

    connection_failed = (
        isinstance(exc, (litellm.APIConnectionError, ConnectionError))
        or any(hint in lowered for hint in _CONNECTION_HINTS)
    )
    if connection_failed and local:
        return RuntimeUnavailableError("Cannot connect to Ollama.")

    return UnknownProviderError(f"{name} request failed: {message}")
