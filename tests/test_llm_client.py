from types import SimpleNamespace

import pytest
from openai import OpenAIError

from exam_service.core.config import settings
from exam_service.core.exceptions import LLMServiceError
from exam_service.services import llm_client
from exam_service.services.llm_client import ChatCompletionClient


class FakeOpenAI:
    def __init__(self, fail=False):
        self.fail = fail
        self.chat_calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create_chat))
        self.embeddings = SimpleNamespace(create=self._create_embedding)

    def _create_chat(self, **kwargs):
        if self.fail:
            raise OpenAIError("rate limited")
        self.chat_calls.append(kwargs)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"earnedMarks": 3}'))],
            usage=SimpleNamespace(prompt_tokens=120, completion_tokens=30),
        )

    def _create_embedding(self, **kwargs):
        if self.fail:
            raise OpenAIError("rate limited")
        return SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2, 0.3])])


def _client(fail=False) -> ChatCompletionClient:
    client = ChatCompletionClient(api_key="test-key", model="test-model")
    client.client = FakeOpenAI(fail=fail)
    return client


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)

    with pytest.raises(LLMServiceError):
        ChatCompletionClient()


def test_complete_sends_system_and_user_messages():
    client = _client()

    reply = client.complete("You are an examiner.", "Question: ...")

    assert reply == '{"earnedMarks": 3}'
    [call] = client.client.chat_calls
    assert call["model"] == "test-model"
    assert [m["role"] for m in call["messages"]] == ["system", "user"]


def test_embedding():
    assert _client().embedding("derivative") == [0.1, 0.2, 0.3]


def test_sdk_errors_become_service_errors():
    client = _client(fail=True)

    with pytest.raises(LLMServiceError):
        client.complete("system", "user")
    with pytest.raises(LLMServiceError):
        client.embedding("text")


def test_client_is_cached(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "test-key")
    monkeypatch.setattr(llm_client, "_client_instance", None)

    first = llm_client.get_llm_client()

    assert llm_client.get_llm_client() is first
    assert llm_client.reload_llm_client() is not first
