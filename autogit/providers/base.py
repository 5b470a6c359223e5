from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..config import Config


class BaseDriver(ABC):
    """Abstract base for provider-specific text generation.

    Each driver encapsulates one provider's HTTP/client call pattern and
    parameter semantics, so :class:`autogit.llm.LLMClient` stays free of
    provider branching. Drivers make exactly one request per call and never
    retry; a failure of any kind surfaces as ``LLMError``.
    """

    max_output_tokens = 64

    def __init__(self, config: Config) -> None:
        self.config = config
        self._request_timeout = config.request_timeout

    @abstractmethod
    def invoke(
        self,
        system: str,
        prompt: str,
        request_timeout: Optional[float] = None,
    ) -> str:
        """Return the raw model text for ``prompt``.

        Raises ``LLMError`` when the provider is unreachable, rejects the
        request, or returns no candidate.
        """
        raise NotImplementedError

    def _timeout(self, request_timeout: Optional[float]) -> float:
        return request_timeout if request_timeout is not None else self._request_timeout
