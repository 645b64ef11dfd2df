"""Tests for promptx.keys — credential lookup and format checks."""

from __future__ import annotations

import os

import pytest

from promptx.errors import AuthenticationError
from promptx.keys import (
    PROVIDER_KEYS,
    collect_credentials,
    get_credential,
    load_dotenv,
    require_valid_credential,
    requires_credential,
    validate_key_format,
)
from promptx.schemas.models import Provider
from promptx.settings import ConfigStore


@pytest.fixture()
def store(tmp_path):
    return ConfigStore(tmp_path / "config.env")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for spec in PROVIDER_KEYS.values():
        monkeypatch.delenv(spec.env_var, raising=False)


# ── Format checks ─────────────────────────────────────────────


class TestValidateKeyFormat:
    @pytest.mark.parametrize(
        ("provider", "key"),
        [
            (Provider.OPENAI, "sk-proj-abc"),
            (Provider.ANTHROPIC, "sk-ant-api03-abc"),
            (Provider.XAI, "xai-abc"),
            (Provider.GOOGLE, "AIzaSyAbc"),
        ],
    )
    def test_valid_prefixes(self, provider, key):
        assert validate_key_format(provider, key) is None

    def test_empty_key(self):
        assert validate_key_format(Provider.OPENAI, "  ") == "API key cannot be empty"

    def test_wrong_prefix(self):
        problem = validate_key_format(Provider.ANTHROPIC, "sk-proj-abc")
        assert problem == 'Invalid API key format. Anthropic API keys start with "sk-ant-"'

    def test_local_needs_no_key(self):
        assert not requires_credential(Provider.LOCAL)
        assert validate_key_format(Provider.LOCAL, None) is None


class TestRequireValidCredential:
    def test_accepts_valid_key(self):
        require_valid_credential(Provider.OPENAI, "sk-abc")

    def test_missing_key(self):
        with pytest.raises(AuthenticationError, match="No OpenAI API key") as exc_info:
            require_valid_credential(Provider.OPENAI, None)
        assert "OPENAI_API_KEY" in exc_info.value.remediation

    def test_malformed_key(self):
        with pytest.raises(AuthenticationError, match="Invalid API key format") as exc_info:
            require_valid_credential(Provider.XAI, "sk-abc")
        assert "promptx reset" in exc_info.value.remediation

    def test_local_always_passes(self):
        require_valid_credential(Provider.LOCAL, None)


# ── Lookup ────────────────────────────────────────────────────


class TestGetCredential:
    def test_from_store(self, store):
        store.set("openai_api_key", "sk-stored")
        assert get_credential(Provider.OPENAI, store) == "sk-stored"

    def test_environment_wins(self, store, monkeypatch):
        store.set("openai_api_key", "sk-stored")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert get_credential(Provider.OPENAI, store) == "sk-env"

    def test_missing(self, store):
        assert get_credential(Provider.GOOGLE, store) is None

    def test_local(self, store):
        assert get_credential(Provider.LOCAL, store) is None

    def test_collect(self, store, monkeypatch):
        store.set("anthropic_api_key", "sk-ant-stored")
        monkeypatch.setenv("XAI_API_KEY", "xai-env")
        assert collect_credentials(store) == {
            Provider.ANTHROPIC: "sk-ant-stored",
            Provider.XAI: "xai-env",
        }


class TestLoadDotenv:
    def test_loads_without_overwriting(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text(
            "OPENAI_API_KEY=sk-dotenv\nXAI_API_KEY=xai-dotenv\n", encoding="utf-8",
        )
        monkeypatch.chdir(tmp_path)
        # Registered with monkeypatch so the loaded value is undone afterwards
        monkeypatch.setenv("OPENAI_API_KEY", "")
        monkeypatch.setenv("XAI_API_KEY", "xai-shell")

        load_dotenv()

        assert os.environ["OPENAI_API_KEY"] == "sk-dotenv"
        assert os.environ["XAI_API_KEY"] == "xai-shell"

    def test_no_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        load_dotenv()
        assert "OPENAI_API_KEY" not in os.environ
