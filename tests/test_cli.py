"""Tests for the promptx CLI via CliRunner."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from promptx import __version__
from promptx.cli import app
from promptx.keys import PROVIDER_KEYS
from promptx.schemas.discovery import DiscoveryError, OllamaDiscoveryResult
from promptx.schemas.models import Provider
from promptx.settings import CONFIG_FILENAME, ConfigStore

# NO_COLOR=1 keeps Rich from injecting ANSI codes into matched text;
# COLUMNS=200 prevents wrapping that could split a phrase across lines.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})

_ACOMP = "promptx.providers.litellm_provider.litellm.acompletion"
_DISCOVER = "promptx.cli.discover"


# ── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def home(tmp_path, monkeypatch):
    """Isolated config directory, working directory and credentials."""
    monkeypatch.setenv("PROMPTX_HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    for spec in PROVIDER_KEYS.values():
        monkeypatch.delenv(spec.env_var, raising=False)
    return tmp_path / "home"


@pytest.fixture()
def configured(home):
    store = ConfigStore(home / CONFIG_FILENAME)
    store.save_selection(
        "gpt-4o", provider=Provider.OPENAI, credential="sk-stored", complete_setup=True,
    )
    return store


def _stream(*texts):
    async def gen():
        for text in texts:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])
    return gen()


# ── Version & help ─────────────────────────────────────────────────


class TestVersionAndHelp:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"promptx {__version__}" in result.output

    def test_short_version(self):
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_main_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("refine", "setup", "models", "reset"):
            assert command in result.output


# ── Reserved commands ──────────────────────────────────────────────


class TestReservedCommands:
    def test_help_command(self):
        result = runner.invoke(app, ["/help"])
        assert result.exit_code == 0
        assert "Usage" in result.output
        assert "/whats-new" in result.output

    @pytest.mark.parametrize("token", ["/whats-new", "/WHATS-NEW", "/whatsnew", "/changelog"])
    def test_whats_new_aliases(self, token):
        result = runner.invoke(app, [token])
        assert result.exit_code == 0
        assert f"What's new in promptx v{__version__}" in result.output

    def test_reserved_token_with_other_words_is_a_prompt(self, configured):
        with patch(_ACOMP, new_callable=AsyncMock, return_value=_stream("ok")) as mock_acomp:
            result = runner.invoke(app, ["/help", "me", "write", "tests"])
        assert result.exit_code == 0
        user = mock_acomp.await_args.kwargs["messages"][1]["content"]
        assert user == "/help me write tests"

    def test_model_needs_terminal(self, configured):
        result = runner.invoke(app, ["/model"])
        assert result.exit_code == 1
        assert "interactive terminal" in result.output
        assert configured.selected_model == "gpt-4o"


# ── Refinement ─────────────────────────────────────────────────────


class TestRefine:
    def test_direct_prompt(self, configured):
        with patch(_ACOMP, new_callable=AsyncMock, return_value=_stream("Refined ", "text.")) as mock_acomp:
            result = runner.invoke(app, ["fix", "my", "code"])

        assert result.exit_code == 0, result.output
        assert "Refined text." in result.output
        kwargs = mock_acomp.await_args.kwargs
        assert kwargs["messages"][1]["content"] == "fix my code"
        assert kwargs["api_key"] == "sk-stored"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 2000

    def test_explicit_refine_subcommand(self, configured):
        with patch(_ACOMP, new_callable=AsyncMock, return_value=_stream("ok")) as mock_acomp:
            result = runner.invoke(app, ["refine", "hello", "there"])
        assert result.exit_code == 0
        assert mock_acomp.await_args.kwargs["messages"][1]["content"] == "hello there"

    def test_prompt_starting_with_subcommand_name(self, configured):
        with patch(_DISCOVER) as mock_discover, \
             patch(_ACOMP, new_callable=AsyncMock, return_value=_stream("ok")) as mock_acomp:
            result = runner.invoke(app, ["models", "are", "slow,", "fix", "the", "cache"])
        assert result.exit_code == 0, result.output
        user = mock_acomp.await_args.kwargs["messages"][1]["content"]
        assert user == "models are slow, fix the cache"
        mock_discover.assert_not_called()

    def test_subcommand_with_only_options_still_runs(self):
        result = runner.invoke(app, ["models", "--help"])
        assert result.exit_code == 0
        assert "List available models" in result.output

    def test_piped_stdin(self, configured):
        with patch(_ACOMP, new_callable=AsyncMock, return_value=_stream("ok")) as mock_acomp:
            result = runner.invoke(app, [], input="make this clearer\n")
        assert result.exit_code == 0
        assert mock_acomp.await_args.kwargs["messages"][1]["content"] == "make this clearer"

    def test_empty_stdin(self, configured):
        with patch(_ACOMP, new_callable=AsyncMock) as mock_acomp:
            result = runner.invoke(app, [], input="   \n")
        assert result.exit_code == 1
        assert "No prompt received" in result.output
        mock_acomp.assert_not_awaited()

    def test_environment_key_overrides_stored(self, configured, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        with patch(_ACOMP, new_callable=AsyncMock, return_value=_stream("ok")) as mock_acomp:
            result = runner.invoke(app, ["hello"])
        assert result.exit_code == 0
        assert mock_acomp.await_args.kwargs["api_key"] == "sk-from-env"

    def test_model_override(self, configured):
        with patch(_ACOMP, new_callable=AsyncMock, return_value=_stream("ok")) as mock_acomp:
            result = runner.invoke(app, ["--model", "o3", "hello"])
        assert result.exit_code == 0
        kwargs = mock_acomp.await_args.kwargs
        assert kwargs["model"] == "openai/o3"
        assert kwargs["max_completion_tokens"] == 8000
        assert "temperature" not in kwargs
        assert configured.selected_model == "gpt-4o"

    def test_model_override_without_setup(self, monkeypatch):
        monkeypatch.setenv("XAI_API_KEY", "xai-env")
        with patch(_ACOMP, new_callable=AsyncMock, return_value=_stream("ok")) as mock_acomp:
            result = runner.invoke(app, ["-m", "grok-3", "hello"])
        assert result.exit_code == 0
        assert mock_acomp.await_args.kwargs["api_base"] == "https://api.x.ai/v1"

    def test_unknown_stored_model_falls_back(self, configured):
        configured.set("selected_model", "mistral:7b")
        empty = OllamaDiscoveryResult(error=DiscoveryError.NO_MODELS)
        with patch(_DISCOVER, return_value=empty), \
             patch(_ACOMP, new_callable=AsyncMock, return_value=_stream("ok")) as mock_acomp:
            result = runner.invoke(app, ["hello"])
        assert result.exit_code == 0
        assert "no models are downloaded" in result.output
        assert "falling back to GPT-4o" in result.output
        assert mock_acomp.await_args.kwargs["model"] == "openai/gpt-4o"

    def test_stopped_ollama_service_is_not_replaced_by_cloud_model(self, configured):
        configured.set("selected_model", "llama3.2:latest")
        stopped = OllamaDiscoveryResult(error=DiscoveryError.SERVICE_NOT_RUNNING)
        with patch(_DISCOVER, return_value=stopped), \
             patch(_ACOMP, new_callable=AsyncMock) as mock_acomp:
            result = runner.invoke(app, ["fix my bug"])
        assert result.exit_code == 1
        assert "Ollama service is not running" in result.output
        assert "ollama serve" in result.output
        assert "falling back" not in result.output
        mock_acomp.assert_not_awaited()

    def test_missing_ollama_is_reported(self, configured):
        configured.set("selected_model", "llama3.2:latest")
        missing = OllamaDiscoveryResult(error=DiscoveryError.NOT_INSTALLED, message="ollama")
        with patch(_DISCOVER, return_value=missing), \
             patch(_ACOMP, new_callable=AsyncMock) as mock_acomp:
            result = runner.invoke(app, ["fix my bug"])
        assert result.exit_code == 1
        assert "Ollama is not installed" in result.output
        assert "https://ollama.com/download" in result.output
        mock_acomp.assert_not_awaited()

    def test_local_model_is_used_when_running(self, configured):
        from promptx.providers.ollama import parse_model_list

        configured.set("selected_model", "llama3.2:latest")
        local = parse_model_list("NAME ID SIZE MODIFIED\nllama3.2:latest abc 2.0GB now\n")
        with patch(_DISCOVER, return_value=OllamaDiscoveryResult(models=local)), \
             patch(_ACOMP, new_callable=AsyncMock, return_value=_stream("ok")) as mock_acomp:
            result = runner.invoke(app, ["hello"])
        assert result.exit_code == 0
        assert mock_acomp.await_args.kwargs["api_base"] == "http://localhost:11434/v1"

    def test_invalid_stored_key_exits_one(self, configured):
        configured.set("openai_api_key", "bad-key")
        with patch(_ACOMP, new_callable=AsyncMock) as mock_acomp:
            result = runner.invoke(app, ["hello"])
        assert result.exit_code == 1
        assert "Invalid API key format" in result.output
        mock_acomp.assert_not_awaited()

    def test_provider_failure_exits_one(self, configured):
        with patch(_ACOMP, new_callable=AsyncMock, side_effect=RuntimeError("upstream 502")):
            result = runner.invoke(app, ["hello"])
        assert result.exit_code == 1
        assert "upstream 502" in result.output


# ── Setup required ─────────────────────────────────────────────────


class TestSetupRequired:
    def test_unconfigured_non_interactive(self):
        with patch(_ACOMP, new_callable=AsyncMock) as mock_acomp:
            result = runner.invoke(app, ["hello"])
        assert result.exit_code == 1
        assert "not set up yet" in result.output
        assert "promptx setup" in result.output
        mock_acomp.assert_not_awaited()

    def test_setup_needs_terminal(self):
        result = runner.invoke(app, ["setup"])
        assert result.exit_code == 1
        assert "interactive terminal" in result.output


# ── Subcommands ────────────────────────────────────────────────────


class TestReset:
    def test_reset_clears_config(self, configured):
        result = runner.invoke(app, ["reset"])
        assert result.exit_code == 0
        assert "Configuration reset" in result.output
        assert not configured.path.exists()

    def test_reset_without_config(self):
        result = runner.invoke(app, ["reset"])
        assert result.exit_code == 0
        assert "Nothing to reset" in result.output


class TestModels:
    def test_lists_catalog_and_local_problem(self):
        missing = OllamaDiscoveryResult(error=DiscoveryError.NOT_INSTALLED, message="ollama")
        with patch(_DISCOVER, return_value=missing):
            result = runner.invoke(app, ["models"])
        assert result.exit_code == 0
        assert "gpt-4o" in result.output
        assert "claude-sonnet-4-20250514" in result.output
        assert "Ollama is not installed" in result.output

    def test_lists_local_models(self):
        from promptx.providers.ollama import parse_model_list

        local = parse_model_list("NAME ID SIZE MODIFIED\nllama3.2:latest abc 2.0GB now\n")
        with patch(_DISCOVER, return_value=OllamaDiscoveryResult(models=local)):
            result = runner.invoke(app, ["models"])
        assert result.exit_code == 0
        assert "llama3.2:latest" in result.output
        assert "not installed" not in result.output
