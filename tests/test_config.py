"""Tests for Config model resolution and credential checks."""

from unittest.mock import patch

import pytest

from pageadvisor.core.config import Config
from pageadvisor.core.exceptions import ConfigurationError


class TestGetModel:

    def test_default_mapping(self, monkeypatch):
        monkeypatch.delenv("SELECTION_MODEL", raising=False)
        assert Config.get_model("selection") == Config.SELECTION_MODEL

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SUGGESTION_MODEL", "anthropic:claude-sonnet-4-5")
        assert Config.get_model("Suggestion") == "anthropic:claude-sonnet-4-5"

    def test_unknown_component_uses_default(self, monkeypatch):
        monkeypatch.delenv("REPORTING_MODEL", raising=False)
        assert Config.get_model("reporting") == Config.DEFAULT_MODEL


class TestRequireModelCredentials:

    def test_missing_provider_key(self):
        with patch.object(Config, "OPENAI_API_KEY", ""):
            with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
                Config.require_model_credentials("openai:gpt-4o")

    def test_present_provider_key(self):
        with patch.object(Config, "GEMINI_API_KEY", "g-test"):
            Config.require_model_credentials("google-gla:gemini-2.5-flash")

    def test_bare_model_name_is_openai(self):
        with patch.object(Config, "OPENAI_API_KEY", ""):
            with pytest.raises(ConfigurationError):
                Config.require_model_credentials("gpt-4o")

    def test_unknown_provider_is_not_checked(self):
        Config.require_model_credentials("ollama:llama3")


class TestValidate:

    def test_missing_store_settings(self):
        with patch.object(Config, "SUPABASE_URL", ""), patch.object(Config, "SUPABASE_SERVICE_KEY", ""):
            with pytest.raises(ConfigurationError, match="SUPABASE_URL, SUPABASE_SERVICE_KEY"):
                Config.validate()

    def test_complete_store_settings(self):
        with patch.object(Config, "SUPABASE_URL", "https://example.supabase.co"), \
                patch.object(Config, "SUPABASE_SERVICE_KEY", "service-key"):
            assert Config.validate() is True
