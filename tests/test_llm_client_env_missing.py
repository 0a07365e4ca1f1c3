from types import SimpleNamespace

import pytest
from openai import OpenAIError

from ai_agent import llm_client
from ai_agent.errors import ModelRequestError
from ai_agent.llm_client import API_KEY_ENV_VAR, OpenAIChatLLM, build_prompt


def test_openai_client_raises_without_api_key(monkeypatch):
    monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)
    client = OpenAIChatLLM()
    with pytest.raises(ModelRequestError):
        client.generate_plan(command="ek folder banao")


def test_prompt_names_language_and_command():
    prompt = build_prompt("src folder ko watch karo", "english")
    assert 'Parse this command in english: "src folder ko watch karo"' in prompt
    assert '"type": "file-operation"' in prompt


class FakeOpenAI:
    created = []
    fail = False

    def __init__(self, **kwargs):
        FakeOpenAI.created.append(kwargs)
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **request):
        if FakeOpenAI.fail:
            raise OpenAIError("server error")
        message = SimpleNamespace(content='  {"actions": []}\n')
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def test_model_request_is_not_retried(monkeypatch):
    FakeOpenAI.created = []
    FakeOpenAI.fail = False
    monkeypatch.setattr(llm_client, "OpenAI", FakeOpenAI)
    client = OpenAIChatLLM(api_key="k", base_url="http://localhost:9/v1")

    assert client.generate_plan(command="kuch karo") == '{"actions": []}'
    assert FakeOpenAI.created == [{"api_key": "k", "max_retries": 0, "base_url": "http://localhost:9/v1"}]

    FakeOpenAI.fail = True
    with pytest.raises(ModelRequestError):
        client.generate_plan(command="kuch karo")
