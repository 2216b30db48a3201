from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import openai

from ai_utils import create_openai_client
from errors import CompletionError
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


class BaseAIClient(ABC):
    """Text-completion service: system + user prompt in, one text blob out."""

    def __init__(self) -> None:
        self.last_usage: Optional[Dict[str, Any]] = None
        self.model_name: str = "unknown"

    def reset_usage(self) -> None:
        self.last_usage = None

    @abstractmethod
    def complete(self, system: str, user: str, *, temperature: float, max_tokens: int) -> str:
        raise NotImplementedError


class MockAIClient(BaseAIClient):
    """Scripted client for tests and offline runs.

    Returns queued responses in order, then ``default``. An exception instance in the
    queue is raised instead of returned.
    """

    def __init__(self, responses: Optional[List[Any]] = None, default: str = "{}") -> None:
        super().__init__()
        self.model_name = "mock"
        self.responses = list(responses or [])
        self.default = default
        self.calls: List[Dict[str, Any]] = []

    def complete(self, system: str, user: str, *, temperature: float, max_tokens: int) -> str:
        self.calls.append(
            {"system": system, "user": user, "temperature": temperature, "max_tokens": max_tokens}
        )
        self.last_usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
        item = self.responses.pop(0) if self.responses else self.default
        if isinstance(item, BaseException):
            raise item
        return item


class OpenAIClient(BaseAIClient):
    """OpenAI (or OpenAI-compatible) chat completions client"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__()
        self.model = model or "gpt-4o-mini"
        self.model_name = self.model
        self._client = create_openai_client(api_key, base_url=base_url, timeout=timeout)
        logger.info("Using completion model %s%s", self.model, f" at {base_url}" if base_url else "")

    def _extract_usage(self, response: Any) -> Dict[str, Any]:
        usage = getattr(response, "usage", None)
        if usage is None:
            return {}
        return {
            "prompt_tokens": getattr(usage, "prompt_tokens", None),
            "completion_tokens": getattr(usage, "completion_tokens", None),
            "total_tokens": getattr(usage, "total_tokens", None),
        }

    def complete(self, system: str, user: str, *, temperature: float, max_tokens: int) -> str:
        self.reset_usage()
        logger.debug("Model: %s, prompt length: %d chars", self.model, len(system) + len(user))
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as exc:
            raise CompletionError(f"Completion timed out: {exc}") from exc
        except openai.APIError as exc:
            raise CompletionError(f"Completion failed: {exc}") from exc

        self.last_usage = self._extract_usage(response)
        choice = response.choices[0] if response.choices else None
        content = choice.message.content if choice else None
        if not content or not content.strip():
            reason = choice.finish_reason if choice else "no choices"
            raise CompletionError(f"Completion returned empty content (finish_reason: {reason})")
        return content


def get_ai_client(provider: Optional[str] = None, settings: Optional[Settings] = None) -> BaseAIClient:
    settings = settings or get_settings()
    provider = (provider or settings.ai_provider).lower()
    if provider == "openai":
        return OpenAIClient(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.openai_timeout,
        )
    if provider == "mock":
        return MockAIClient()
    raise ValueError(f"Unsupported AI provider: {provider}")
