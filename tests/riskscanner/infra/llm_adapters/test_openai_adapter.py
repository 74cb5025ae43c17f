import types

import httpx
import openai
import pytest

from riskscanner.core.domain.exceptions import AIError, AIErrorKind
from riskscanner.infra.llm_adapters import AzureOpenAIChatAdapter, ChatSettings, OpenAIChatAdapter


def _status_error(cls, status):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return cls("boom", response=httpx.Response(status, request=request), body=None)


def _reply(content):
    message = types.SimpleNamespace(content=content)
    return types.SimpleNamespace(choices=[types.SimpleNamespace(message=message)])


class DummyCompletions:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class DummyOpenAI:
    instances: list["DummyOpenAI"] = []
    result = None

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.completions = DummyCompletions(type(self).result)
        self.chat = types.SimpleNamespace(completions=self.completions)
        DummyOpenAI.instances.append(self)


@pytest.fixture(autouse=True)
def mock_openai(monkeypatch):
    import riskscanner.infra.llm_adapters.openai_adapter as mod

    DummyOpenAI.instances = []
    DummyOpenAI.result = _reply("ok-openai")
    monkeypatch.setattr(mod, "OpenAI", DummyOpenAI)
    monkeypatch.setattr(mod, "AzureOpenAI", DummyOpenAI)
    yield


def test_sends_system_and_user_messages():
    adapter = OpenAIChatAdapter("gpt-4o", "sk-test", settings=ChatSettings(max_output_tokens=300))

    assert adapter.send_prompt("ping", system="be brief") == "ok-openai"

    client = DummyOpenAI.instances[0]
    assert client.kwargs["api_key"] == "sk-test"
    call = client.completions.calls[0]
    assert call["model"] == "gpt-4o"
    assert call["max_completion_tokens"] == 300
    assert call["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "ping"},
    ]


def test_max_output_tokens_override():
    adapter = OpenAIChatAdapter("gpt-4o", "sk-test")
    adapter.send_prompt("ping", max_output_tokens=42)
    assert DummyOpenAI.instances[0].completions.calls[0]["max_completion_tokens"] == 42


@pytest.mark.parametrize(
    "error, kind",
    [
        (_status_error(openai.AuthenticationError, 401), AIErrorKind.UNAUTHORIZED),
        (_status_error(openai.PermissionDeniedError, 403), AIErrorKind.UNAUTHORIZED),
        (_status_error(openai.RateLimitError, 429), AIErrorKind.RATE_LIMITED),
        (_status_error(openai.InternalServerError, 500), AIErrorKind.UNREACHABLE),
        (openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com")), AIErrorKind.UNREACHABLE),
    ],
)
def test_sdk_errors_are_translated(error, kind):
    DummyOpenAI.result = error
    adapter = OpenAIChatAdapter("gpt-4o", "sk-test")

    with pytest.raises(AIError) as exc:
        adapter.send_prompt("ping")

    assert exc.value.kind is kind
    assert exc.value.provider == "openai"


@pytest.mark.parametrize("reply", [types.SimpleNamespace(choices=[]), _reply(None)])
def test_empty_reply_is_malformed(reply):
    DummyOpenAI.result = reply
    with pytest.raises(AIError) as exc:
        OpenAIChatAdapter("gpt-4o", "sk-test").send_prompt("ping")
    assert exc.value.kind is AIErrorKind.MALFORMED_RESPONSE


def test_azure_uses_endpoint_and_deployment():
    settings = ChatSettings(azure_endpoint="https://acme.openai.azure.com", azure_api_version="2024-06-01")
    adapter = AzureOpenAIChatAdapter("my-deployment", "azure-key", settings=settings)

    assert adapter.provider == "azure-openai"
    assert adapter.send_prompt("ping") == "ok-openai"
    client = DummyOpenAI.instances[0]
    assert client.kwargs["azure_endpoint"] == "https://acme.openai.azure.com"
    assert client.kwargs["api_version"] == "2024-06-01"
    assert client.completions.calls[0]["model"] == "my-deployment"


def test_azure_requires_endpoint():
    with pytest.raises(ValueError, match="endpoint"):
        AzureOpenAIChatAdapter("my-deployment", "azure-key")


def test_azure_caps_reply_with_max_tokens():
    settings = ChatSettings(azure_endpoint="https://acme.openai.azure.com", max_output_tokens=300)
    AzureOpenAIChatAdapter("my-deployment", "azure-key", settings=settings).send_prompt("ping")

    call = DummyOpenAI.instances[0].completions.calls[0]
    assert call["max_tokens"] == 300
    assert "max_completion_tokens" not in call
    assert DummyOpenAI.instances[0].kwargs["api_version"] == "2024-10-21"
