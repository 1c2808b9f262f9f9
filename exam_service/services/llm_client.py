"""
LLM Client Service
Thin wrapper around any OpenAI compatible chat completion endpoint
"""

import json
import logging
import re
from abc import ABC, abstractmethod

from openai import OpenAI, OpenAIError

from exam_service.core.config import settings
from exam_service.core.exceptions import EvaluationParseError, LLMServiceError

logger = logging.getLogger(__name__)


class LLMClient(ABC):
    @abstractmethod
    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the raw text of the model's reply."""

    @abstractmethod
    def embedding(self, text: str) -> list[float]: ...


class ChatCompletionClient(LLMClient):
    """
    OpenAI SDK client.

    Timeouts and retries are left to the SDK's HTTP client
    (OPENAI_TIMEOUT_SECONDS / OPENAI_MAX_RETRIES); this layer never retries.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        embedding_model: str | None = None,
    ):
        api_key = api_key or settings.OPENAI_API_KEY
        if not api_key:
            raise LLMServiceError("OPENAI_API_KEY is not configured")

        self.model = model or settings.OPENAI_MODEL
        self.embedding_model = embedding_model or settings.OPENAI_EMBEDDING_MODEL
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url or settings.OPENAI_BASE_URL,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
            max_retries=settings.OPENAI_MAX_RETRIES,
        )

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=settings.OPENAI_TEMPERATURE,
            )
        except OpenAIError as e:
            logger.error(f"Chat completion failed: {e}")
            raise LLMServiceError(f"Chat completion failed: {e}") from e

        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.info(
                f"Chat completion ok: model={self.model}, "
                f"prompt_tokens={usage.prompt_tokens}, completion_tokens={usage.completion_tokens}"
            )
        return content

    def embedding(self, text: str) -> list[float]:
        try:
            response = self.client.embeddings.create(model=self.embedding_model, input=text)
        except OpenAIError as e:
            logger.error(f"Embedding request failed: {e}")
            raise LLMServiceError(f"Embedding request failed: {e}") from e
        return list(response.data[0].embedding)


# Global client cache
_client_instance: LLMClient | None = None


def reload_llm_client() -> LLMClient:
    """Build a fresh client from current settings."""
    global _client_instance
    _client_instance = ChatCompletionClient()
    logger.info(f"LLM client ready (model={settings.OPENAI_MODEL})")
    return _client_instance


def get_llm_client() -> LLMClient:
    global _client_instance
    if _client_instance is None:
        _client_instance = reload_llm_client()
    return _client_instance


_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*\})\s*```", re.DOTALL)


def parse_json_response(text: str) -> dict:
    """
    Read a JSON object out of a model reply.

    Models sometimes wrap the object in ```json fences or add a sentence before
    it, so fall back to the outermost {...} span before giving up.
    """
    if not text or not text.strip():
        raise EvaluationParseError("Empty response from model")

    candidates = [text.strip()]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise EvaluationParseError(f"Model response is not a JSON object: {text[:200]!r}")
