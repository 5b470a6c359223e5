from __future__ import annotations

import logging
from typing import Any, Optional

import openai

from ..config import Config
from ..exceptions import LLMError
from .base import BaseDriver

logger = logging.getLogger(__name__)


class OpenAIDriver(BaseDriver):
    """Driver for OpenAI and OpenAI-compatible chat completions.

    GitHub Models and xAI expose the same API surface, so they share this
    driver with a different ``base_url``.
    """

    def __init__(self, config: Config, client: Any = None) -> None:
        super().__init__(config)
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            # max_retries=0: one round trip per generation request
            self._client = openai.OpenAI(
                base_url=self.config.llm_endpoint or None,
                api_key=self.config.resolve_api_key(),
                timeout=self._request_timeout,
                max_retries=0,
            )
        return self._client

    def invoke(
        self,
        system: str,
        prompt: str,
        request_timeout: Optional[float] = None,
    ) -> str:
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]
        try:
            resp = self.client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                max_tokens=self.max_output_tokens,
                n=1,
                timeout=self._timeout(request_timeout),
            )
        except openai.OpenAIError as e:
            raise LLMError(f"OpenAI client error: {e}") from e
        try:
            choice0 = resp.choices[0]
        except (AttributeError, IndexError, TypeError):
            raise LLMError("Missing choices in OpenAI response") from None

        # Content is either a string or, with newer SDKs, a list of fragments
        raw_msg = getattr(choice0, "message", None)
        content = ""
        if raw_msg is not None:
            msg_content = getattr(raw_msg, "content", "")
            if isinstance(msg_content, str):
                content = msg_content
            elif isinstance(msg_content, list):
                fragments: list[str] = []
                for part in msg_content:
                    if isinstance(part, dict):
                        txt = part.get("text") or part.get("content") or ""
                    else:
                        txt = getattr(part, "text", "") or getattr(part, "content", "")
                    if txt:
                        fragments.append(str(txt))
                content = "".join(fragments)
        logger.debug(
            "openai finish_reason=%s len=%d",
            getattr(choice0, "finish_reason", None),
            len(content),
        )
        if not content.strip():
            raise LLMError("Empty OpenAI response")
        return content
