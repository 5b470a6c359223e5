from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config import Config
from ..exceptions import LLMError
from .base import BaseDriver

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicDriver(BaseDriver):
    """Driver handling Anthropic API calls (messages endpoint)."""

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self._api_key = config.resolve_api_key()

    def invoke(
        self,
        system: str,
        prompt: str,
        request_timeout: Optional[float] = None,
    ) -> str:
        url = self.config.llm_endpoint.rstrip("/") + "/v1/messages"
        headers = {
            "x-api-key": self._api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        payload = {
            "model": self.config.model,
            "max_tokens": self.max_output_tokens,
            "system": system,
            "messages": [
                {
                    "role": "user",
                    "content": [{"type": "text", "text": prompt}],
                }
            ],
        }
        try:
            response = httpx.post(
                url,
                headers=headers,
                json=payload,
                timeout=self._timeout(request_timeout),
            )
        except httpx.HTTPError as e:
            raise LLMError(
                f"Anthropic network error during messages request: {e}"
            ) from e
        status = getattr(response, "status_code", 200)
        if status and int(status) >= 400:
            raise LLMError(
                "Anthropic error {}: {}".format(
                    status, getattr(response, "text", "<no body>")
                )
            )
        try:
            data = response.json()
        except ValueError as e:
            raise LLMError(f"Anthropic returned invalid JSON: {e}") from e
        content = (data.get("content") or []) if isinstance(data, dict) else []
        texts = []
        for chunk in content:
            if isinstance(chunk, dict) and chunk.get("type") == "text":
                texts.append(chunk.get("text", ""))
        if not texts:
            raise LLMError("Anthropic response contained no text candidate")
        logger.debug("anthropic response blocks=%d", len(texts))
        return "\n".join(filter(None, texts))
