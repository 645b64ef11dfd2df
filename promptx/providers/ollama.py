"""Local Ollama runtime discovery.

Detects whether Ollama is installed, running, and has models pulled, and
turns ``ollama list`` output into registry descriptors. The CLI tool and
the background service fail independently (installed but not started,
or started without the CLI on PATH), and each needs a different fix, so
a failed listing is followed by a direct liveness probe of the HTTP API.
"""

from __future__ import annotations

import logging
import subprocess
import urllib.error
import urllib.request

from promptx.providers.litellm_provider import ollama_host
from promptx.schemas.discovery import DiscoveryError, OllamaDiscoveryResult
from promptx.schemas.models import ModelDescriptor, Provider

logger = logging.getLogger(__name__)

LIST_COMMAND = ("ollama", "list")
LIST_TIMEOUT = 10.0
PROBE_TIMEOUT = 3.0

_NOT_FOUND_HINTS = ("command not found", "not recognized", "no such file")


def parse_model_list(output: str) -> dict[str, ModelDescriptor]:
    """Parse the table printed by ``ollama list``.

    The first row is a header. Each following row starts with the model
    identifier (``name:tag``); the rest of the row is ignored.
    """
    models: dict[str, ModelDescriptor] = {}
    for line in output.strip().splitlines()[1:]:
        fields = line.split()
        if not fields:
            continue
        identifier = fields[0]
        base, _, tag = identifier.partition(":")
        display = base if tag in ("", "latest") else f"{base} ({tag})"
        models[identifier] = ModelDescriptor(
            identifier=identifier,
            display_name=display,
            provider=Provider.LOCAL,
        )
    return models


def is_service_running(host: str | None = None, timeout: float = PROBE_TIMEOUT) -> bool:
    """Probe the Ollama HTTP API with a bounded GET."""
    url = f"{host or ollama_host()}/api/tags"
    try:
        with urllib.request.urlopen(url, timeout=timeout):  # noqa: S310
            return True
    except (urllib.error.URLError, OSError):
        return False


def discover() -> OllamaDiscoveryResult:
    """List locally pulled Ollama models, or say why none are usable."""
    try:
        result = subprocess.run(
            LIST_COMMAND,
            capture_output=True,
            text=True,
            check=True,
            timeout=LIST_TIMEOUT,
        )
    except FileNotFoundError as e:
        logger.debug("ollama executable not found: %s", e)
        return OllamaDiscoveryResult(error=DiscoveryError.NOT_INSTALLED, message=str(e))
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or e.stdout or str(e)).strip()
        if e.returncode == 127 or any(h in detail.lower() for h in _NOT_FOUND_HINTS):
            return OllamaDiscoveryResult(error=DiscoveryError.NOT_INSTALLED, message=detail)
        return _diagnose_failure(detail)
    except subprocess.TimeoutExpired as e:
        return _diagnose_failure(f"'{' '.join(LIST_COMMAND)}' timed out after {e.timeout}s")

    models = parse_model_list(result.stdout)
    if not models:
        return OllamaDiscoveryResult(
            error=DiscoveryError.NO_MODELS, message="No models have been pulled yet."
        )
    logger.debug("Discovered %d local models", len(models))
    return OllamaDiscoveryResult(models=models)


def _diagnose_failure(detail: str) -> OllamaDiscoveryResult:
    """Tell a stopped service apart from any other listing failure."""
    if not is_service_running():
        return OllamaDiscoveryResult(error=DiscoveryError.SERVICE_NOT_RUNNING, message=detail)
    return OllamaDiscoveryResult(error=DiscoveryError.UNKNOWN, message=detail)
