"""
Configuration management for PageAdvisor
"""

import os
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load environment variables
load_dotenv()


class Config:
    """Application configuration"""

    # Supabase
    SUPABASE_URL: str = os.getenv('SUPABASE_URL', '')
    SUPABASE_SERVICE_KEY: str = os.getenv('SUPABASE_SERVICE_KEY', '')

    # Model providers
    OPENAI_API_KEY: str = os.getenv('OPENAI_API_KEY', '')
    ANTHROPIC_API_KEY: str = os.getenv('ANTHROPIC_API_KEY', '')
    GEMINI_API_KEY: str = os.getenv('GEMINI_API_KEY', '')

    # Suggestion generation
    MAX_PROMPT_TOKENS: int = int(os.getenv('MAX_PROMPT_TOKENS', '8000'))
    SUGGESTION_TEMPERATURE: float = float(os.getenv('SUGGESTION_TEMPERATURE', '0.7'))
    SUGGESTION_MAX_TOKENS: int = int(os.getenv('SUGGESTION_MAX_TOKENS', '2000'))
    RECENT_ANALYSIS_WINDOW_MINUTES: int = int(os.getenv('RECENT_ANALYSIS_WINDOW_MINUTES', '60'))

    # Impact measurement
    IMPACT_MIN_AGE_DAYS: int = int(os.getenv('IMPACT_MIN_AGE_DAYS', '7'))

    # ========================================================================
    # Model Configuration
    # ========================================================================

    DEFAULT_MODEL = "openai:gpt-4o"
    SUGGESTION_MODEL = "openai:gpt-4o"
    # Selection only ranks a handful of titles, a smaller model is enough
    SELECTION_MODEL = "openai:gpt-4o-mini"

    # pydantic-ai provider prefix -> Config attribute holding its key
    PROVIDER_KEYS = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "google-gla": "GEMINI_API_KEY",
    }

    @classmethod
    def validate(cls) -> bool:
        """Validate required store configuration"""
        required = {
            'SUPABASE_URL': cls.SUPABASE_URL,
            'SUPABASE_SERVICE_KEY': cls.SUPABASE_SERVICE_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

        return True

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get configuration value"""
        return getattr(cls, key, default)

    @classmethod
    def get_model(cls, key: str) -> str:
        """
        Get the configured LLM model for a component.

        Resolution Order:
        1. Environment Variable: {KEY}_MODEL (e.g. SUGGESTION_MODEL)
        2. Default mapping in this method
        3. Config.DEFAULT_MODEL

        Args:
            key: component name ('suggestion', 'selection'), case-insensitive

        Returns:
            pydantic-ai model string (e.g. 'openai:gpt-4o')
        """
        key_upper = key.upper()

        env_model = os.getenv(f"{key_upper}_MODEL")
        if env_model:
            return env_model

        mappings = {
            "SUGGESTION": cls.SUGGESTION_MODEL,
            "SELECTION": cls.SELECTION_MODEL,
        }

        return mappings.get(key_upper, cls.DEFAULT_MODEL)

    @classmethod
    def require_model_credentials(cls, model: str) -> None:
        """
        Ensure the API key for a model's provider is configured.

        Args:
            model: pydantic-ai model string ('openai:gpt-4o', 'anthropic:claude-...')

        Raises:
            ConfigurationError: If the provider's key is not set
        """
        provider = model.split(":", 1)[0] if ":" in model else "openai"
        key_name = cls.PROVIDER_KEYS.get(provider)
        if key_name is None:
            # Unknown providers bring their own credentials
            return
        if not getattr(cls, key_name, ''):
            raise ConfigurationError(
                f"{key_name} is not configured (required for model '{model}')"
            )
