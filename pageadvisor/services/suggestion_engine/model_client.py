"""Language model access for suggestion generation and selection.

SuggestionModelClient runs a pydantic-ai Agent per call and returns the raw
text plus token usage. Services depend on the ModelClient protocol so tests
can pass an AsyncMock.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from pydantic_ai import Agent
from pydantic_ai.settings import ModelSettings

from ...core.config import Config
from ...core.exceptions import ExternalModelError

logger = logging.getLogger(__name__)


@dataclass
class ModelReply:
    """Raw model output and what it cost."""

    text: str
    tokens_used: int = 0
    model: str = ""
    duration_ms: Optional[int] = None


class ModelClient(Protocol):
    model: str

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        operation: str = "generate",
    ) -> ModelReply:
        ...


class SuggestionModelClient:
    """pydantic-ai backed ModelClient.

    Usage:
        client = SuggestionModelClient()             # Config.get_model("suggestion")
        reply = await client.complete(system, user, operation="generate")
        reply.text, reply.tokens_used
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        """
        Args:
            model: pydantic-ai model string. Defaults to the 'suggestion' model.
            temperature: Sampling temperature.
            max_tokens: Reply token cap.

        Raises:
            ConfigurationError: If the provider API key is missing
        """
        self.model = model or Config.get_model("suggestion")
        Config.require_model_credentials(self.model)
        self.temperature = (
            temperature if temperature is not None else Config.SUGGESTION_TEMPERATURE
        )
        self.max_tokens = max_tokens or Config.SUGGESTION_MAX_TOKENS

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        operation: str = "generate",
    ) -> ModelReply:
        """Run one prompt and return the reply text.

        Raises:
            ExternalModelError: On provider errors or an empty reply
        """
        start = time.monotonic()
        try:
            agent = Agent(
                model=self.model,
                system_prompt=system_prompt,
                model_settings=ModelSettings(
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
            )
            result = await agent.run(user_prompt)
        except Exception as e:
            logger.error(f"Model call '{operation}' failed on {self.model}: {e}")
            raise ExternalModelError(f"Model call '{operation}' failed: {e}") from e

        duration_ms = int((time.monotonic() - start) * 1000)
        text = result.output if isinstance(result.output, str) else str(result.output)
        if not text or not text.strip():
            raise ExternalModelError(f"No response from model for '{operation}'")

        usage = result.usage()
        tokens_used = getattr(usage, "total_tokens", None) or 0

        logger.info(
            f"Model call '{operation}' on {self.model}: {tokens_used} tokens in {duration_ms}ms"
        )
        return ModelReply(
            text=text,
            tokens_used=tokens_used,
            model=self.model,
            duration_ms=duration_ms,
        )
