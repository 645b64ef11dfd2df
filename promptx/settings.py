"""Persistent promptx configuration.

A small key-value store kept in ``~/.promptx/config.env`` (the directory
can be moved with ``PROMPTX_HOME``). The file uses the same ``KEY=VALUE``
format as a .env file and holds the selected model, one API key per
provider and the setup-complete flag. Writes go through a temporary file
and ``os.replace`` so a crash never leaves a half-written file behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from promptx.schemas.models import Provider

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.env"

SELECTED_MODEL = "selected_model"
SETUP_COMPLETE = "setup_complete"


def promptx_home() -> Path:
    """Directory for user-level promptx configuration."""
    override = os.environ.get("PROMPTX_HOME", "").strip()
    return Path(override).expanduser() if override else Path.home() / ".promptx"


def credential_key(provider: Provider) -> str:
    """Config key holding a provider's API key (e.g. ``openai_api_key``)."""
    return f"{provider.value}_api_key"


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a simple KEY=VALUE file, skipping blanks and comments."""
    values: dict[str, str] = {}
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return values
    except OSError:
        logger.debug("Could not read %s", path)
        return values

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if key:
            values[key] = value.strip().strip("'\"")
    return values


class ConfigStore:
    """Read/write access to the promptx config file.

    Every read goes to disk, so two stores on the same path always agree.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or promptx_home() / CONFIG_FILENAME

    # ── Generic access ────────────────────────────────────────

    def load(self) -> dict[str, str]:
        return parse_env_file(self.path)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.load().get(key, default)

    def update(self, **values: str | None) -> None:
        """Set several keys at once. A value of None removes the key."""
        data = self.load()
        for key, value in values.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
        self._write(data)

    def set(self, key: str, value: str) -> None:
        self.update(**{key: value})

    def delete(self, key: str) -> None:
        self.update(**{key: None})

    def clear(self) -> bool:
        """Remove the config file.

        Returns:
            True if the file was removed, False if it didn't exist.
        """
        if self.path.is_file():
            self.path.unlink()
            return True
        return False

    # ── Typed accessors ───────────────────────────────────────

    @property
    def selected_model(self) -> str | None:
        return self.get(SELECTED_MODEL) or None

    @property
    def setup_complete(self) -> bool:
        return self.get(SETUP_COMPLETE, "").lower() == "true"

    def credential(self, provider: Provider) -> str | None:
        return self.get(credential_key(provider)) or None

    def save_selection(
        self,
        model_id: str,
        *,
        provider: Provider | None = None,
        credential: str | None = None,
        complete_setup: bool = False,
    ) -> None:
        """Persist a model choice, with its credential when one was entered."""
        values: dict[str, str | None] = {SELECTED_MODEL: model_id}
        if provider is not None and credential:
            values[credential_key(provider)] = credential
        if complete_setup:
            values[SETUP_COMPLETE] = "true"
        self.update(**values)

    # ── Internals ─────────────────────────────────────────────

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        lines = ["# promptx configuration", "# Managed by `promptx setup` and `promptx reset`", ""]
        lines.extend(f"{key}={value}" for key, value in data.items())
        payload = "\n".join(lines) + "\n"

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".config-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            # Restrict permissions on Unix (best-effort)
            try:
                os.chmod(tmp_name, 0o600)
            except OSError:
                pass
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d config keys to %s", len(data), self.path)
