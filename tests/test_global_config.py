"""Tests for gitbahn.global_config and gitbahn.config modules."""

import stat

import pytest
import yaml

from gitbahn import config
from gitbahn.config import API_KEY_ENV_VARS, AVAILABLE_MODELS, LLMProvider
from gitbahn.global_config import (
    GlobalConfigError,
    get_active_model,
    get_active_provider,
    get_config_file_path,
    get_credential,
    get_credentials_file_path,
    get_global_config_dir,
    initialize_default_config,
    is_configured,
    load_credentials,
    load_global_config,
    save_credential,
    save_global_config,
    set_provider_and_model,
)


class TestGlobalConfigDir:
    """Tests for global config directory functions."""

    def test_paths_live_in_config_dir(self, global_config_dir):
        """Test that config and credentials sit in ~/.gitbahn."""
        assert get_global_config_dir() == global_config_dir
        assert get_config_file_path() == global_config_dir / "config.yaml"
        assert get_credentials_file_path() == global_config_dir / "credentials"


class TestGlobalConfigFile:
    """Tests for config.yaml handling."""

    def test_missing_file_is_empty(self, global_config_dir):
        """Test that a missing config yields an empty dict."""
        assert load_global_config() == {}
        assert not is_configured()

    def test_save_and_load(self, global_config_dir):
        """Test a round trip through config.yaml."""
        save_global_config({"provider": "openai", "model": "gpt-4o"})

        assert load_global_config() == {"provider": "openai", "model": "gpt-4o"}
        assert is_configured()

    def test_corrupt_file_raises(self, global_config_dir):
        """Test that unparsable YAML raises GlobalConfigError."""
        global_config_dir.mkdir(parents=True)
        (global_config_dir / "config.yaml").write_text("provider: [unclosed\n")

        with pytest.raises(GlobalConfigError):
            load_global_config()

    def test_set_provider_and_model(self, global_config_dir):
        """Test storing the active provider and model."""
        set_provider_and_model(LLMProvider.OPENROUTER, "deepseek/deepseek-chat")

        assert get_active_provider() == LLMProvider.OPENROUTER
        assert get_active_model() == "deepseek/deepseek-chat"

    def test_unknown_provider_is_none(self, global_config_dir):
        """Test that an unsupported provider name is ignored."""
        save_global_config({"provider": "carrier-pigeon"})

        assert get_active_provider() is None

    def test_initialize_default_config(self, global_config_dir):
        """Test that defaults are written once."""
        initialize_default_config()
        data = yaml.safe_load(get_config_file_path().read_text())

        assert data["provider"] == "anthropic"
        assert data["max_tokens"] == config.DEFAULT_MAX_TOKENS

        save_global_config({"provider": "openai"})
        initialize_default_config()
        assert load_global_config() == {"provider": "openai"}


class TestCredentials:
    """Tests for the credentials file."""

    def test_save_and_get(self, global_config_dir):
        """Test storing two keys."""
        save_credential("ANTHROPIC_API_KEY", "sk-ant")
        save_credential("OPENAI_API_KEY", "sk-oai")

        assert get_credential("ANTHROPIC_API_KEY") == "sk-ant"
        assert load_credentials() == {"ANTHROPIC_API_KEY": "sk-ant", "OPENAI_API_KEY": "sk-oai"}

    def test_overwrite_key(self, global_config_dir):
        """Test replacing an existing key."""
        save_credential("OPENAI_API_KEY", "old")
        save_credential("OPENAI_API_KEY", "new")

        assert get_credential("OPENAI_API_KEY") == "new"

    def test_file_is_private(self, global_config_dir):
        """Test that the credentials file is owner read/write only."""
        save_credential("OPENAI_API_KEY", "sk")

        mode = stat.S_IMODE(get_credentials_file_path().stat().st_mode)
        assert mode == 0o600

    def test_comments_ignored(self, global_config_dir):
        """Test that comments and blank lines are skipped."""
        global_config_dir.mkdir(parents=True)
        get_credentials_file_path().write_text("# keys\n\nOPENROUTER_API_KEY = sk-or\n")

        assert load_credentials() == {"OPENROUTER_API_KEY": "sk-or"}

    def test_missing_file(self, global_config_dir):
        """Test that a missing credentials file yields no keys."""
        assert get_credential("OPENAI_API_KEY") is None


class TestLoadConfig:
    """Tests for gitbahn.config.load_config."""

    @pytest.fixture(autouse=True)
    def restore_active(self, monkeypatch):
        for name in ("ACTIVE_PROVIDER", "ACTIVE_MODEL", "MAX_TOKENS", "TEMPERATURE"):
            monkeypatch.setattr(config, name, getattr(config, name))

    def test_applies_global_config(self, global_config_dir):
        """Test that config.yaml overrides the defaults."""
        save_global_config({"provider": "openai", "model": "gpt-4.1", "max_tokens": 800, "temperature": 0.1})

        config.load_config()

        assert config.ACTIVE_PROVIDER == LLMProvider.OPENAI
        assert config.ACTIVE_MODEL == "gpt-4.1"
        assert config.MAX_TOKENS == 800
        assert config.TEMPERATURE == 0.1

    def test_missing_config_keeps_defaults(self, global_config_dir):
        """Test that defaults survive a missing config.yaml."""
        config.load_config()

        assert config.ACTIVE_PROVIDER == config.DEFAULT_PROVIDER

    def test_corrupt_config_keeps_defaults(self, global_config_dir):
        """Test that a corrupt config.yaml is ignored."""
        global_config_dir.mkdir(parents=True)
        (global_config_dir / "config.yaml").write_text("provider: [unclosed\n")

        config.load_config()

        assert config.ACTIVE_MODEL == config.DEFAULT_MODEL


class TestProviderTables:
    """Tests for the provider lookup tables."""

    @pytest.mark.parametrize("provider", list(LLMProvider))
    def test_every_provider_has_models_and_key(self, provider):
        """Test that every provider is listed in both tables."""
        assert AVAILABLE_MODELS[provider]
        assert API_KEY_ENV_VARS[provider].endswith("_API_KEY")
