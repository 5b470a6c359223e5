"""Text-generation backend for commit summaries.

``LLMClient`` is the provider-aware collaborator used by
:class:`autogit.commit.CommitMessageGenerator`. It performs a single
bounded request per call; any failure is raised as ``LLMError`` so the
caller can fall back to its deterministic summary.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from .config import DEFAULT_MODELS, Config, get_active_config
from .exceptions import LLMError
from .providers.anthropic_driver import AnthropicDriver
from .providers.base import BaseDriver
from .providers.openai_driver import OpenAIDriver

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "\n".join(
    [
        "You write git commit messages.",
        "Output ONLY the commit subject line.",
        "No explanation, no code blocks, no quotes.",
    ]
)


class TextGenerator(Protocol):
    """Anything able to turn a prompt into text, or raise ``LLMError``."""

    def generate(self, prompt: str, request_timeout: Optional[float] = None) -> str:
        ...


class LLMClient:
    """Provider-aware client for generating commit summaries."""

    def __init__(
        self,
        config: Optional[Config] = None,
        driver: Optional[BaseDriver] = None,
    ) -> None:
        self.config = config or get_active_config()
        self.provider = self.config.provider
        self.model = self.config.model

        if driver is not None:
            self._driver = driver
            return

        if self.provider not in DEFAULT_MODELS:
            raise LLMError("No text-generation provider configured")
        if not self.config.resolve_api_key():
            raise LLMError(
                "Environment variable '"
                f"{self.config.api_key_env}"
                "' is not set or empty."
            )

        # Provider driver setup (strategy pattern)
        if self.provider == "anthropic":
            self._driver = AnthropicDriver(self.config)
        else:
            # github models and xai are OpenAI-compatible
            self._driver = OpenAIDriver(self.config)

    def generate(self, prompt: str, request_timeout: Optional[float] = None) -> str:
        """Return generated text for ``prompt`` (one request, one candidate)."""
        logger.debug(
            "llm.generate provider=%s model=%s prompt_len=%d",
            self.provider,
            self.model,
            len(prompt),
        )
        text = self._driver.invoke(SYSTEM_PROMPT, prompt, request_timeout)
        if not text or not text.strip():
            raise LLMError("Empty response from LLM")
        return text


def create_client(config: Optional[Config] = None) -> Optional[LLMClient]:
    """Return an ``LLMClient`` for ``config`` or None when none is usable."""
    cfg = config or get_active_config()
    try:
        return LLMClient(cfg)
    except LLMError as exc:
        logger.info("AI commit messages unavailable: %s", exc)
        return None
