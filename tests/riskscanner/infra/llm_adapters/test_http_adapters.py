import json

import httpx
import pytest
import respx

from riskscanner.core.domain.exceptions import AIError, AIErrorKind
from riskscanner.infra.llm_adapters import ChatSettings, GeminiChatAdapter, OllamaChatAdapter

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"
OLLAMA_URL = "http://localhost:11434/api/generate"


@pytest.fixture
def http_client():
    with httpx.Client() as client:
        yield client


@pytest.fixture
def gemini(http_client):
    return GeminiChatAdapter("gemini-1.5-flash", "g-key", http_client=http_client, settings=ChatSettings(max_output_tokens=128))


@pytest.fixture
def ollama(http_client):
    return OllamaChatAdapter("llama3.2", http_client=http_client)


def _gemini_reply(*texts):
    return {"candidates": [{"content": {"parts": [{"text": t} for t in texts]}}]}


@respx.mock
def test_gemini_request_and_reply(gemini):
    route = respx.post(GEMINI_URL).mock(return_value=httpx.Response(200, json=_gemini_reply("ok-", "gemini")))

    assert gemini.send_prompt("ping", system="be brief") == "ok-gemini"

    request = route.calls.last.request
    assert request.url.params["key"] == "g-key"
    body = json.loads(request.content)
    assert body["contents"][0]["parts"][0]["text"] == "ping"
    assert body["systemInstruction"]["parts"][0]["text"] == "be brief"
    assert body["generationConfig"]["maxOutputTokens"] == 128


@respx.mock
@pytest.mark.parametrize(
    "response, kind",
    [
        (httpx.Response(400, json={"error": {"details": [{"reason": "API_KEY_INVALID"}]}}), AIErrorKind.UNAUTHORIZED),
        (httpx.Response(403, text="forbidden"), AIErrorKind.UNAUTHORIZED),
        (httpx.Response(429, text="quota"), AIErrorKind.RATE_LIMITED),
        (httpx.Response(503, text="down"), AIErrorKind.UNREACHABLE),
        (httpx.Response(200, json={"candidates": []}), AIErrorKind.MALFORMED_RESPONSE),
        (httpx.Response(200, json=_gemini_reply("")), AIErrorKind.MALFORMED_RESPONSE),
        (httpx.Response(200, text="not json"), AIErrorKind.MALFORMED_RESPONSE),
    ],
)
def test_gemini_failures(gemini, response, kind):
    respx.post(GEMINI_URL).mock(return_value=response)
    with pytest.raises(AIError) as exc:
        gemini.send_prompt("ping")
    assert exc.value.kind is kind


@respx.mock
def test_gemini_connection_error(gemini):
    respx.post(GEMINI_URL).mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(AIError) as exc:
        gemini.send_prompt("ping")
    assert exc.value.kind is AIErrorKind.UNREACHABLE


@respx.mock
def test_ollama_request_and_reply(ollama):
    route = respx.post(OLLAMA_URL).mock(return_value=httpx.Response(200, json={"response": "ok-ollama", "done": True}))

    assert ollama.send_prompt("ping", system="be brief", max_output_tokens=64) == "ok-ollama"

    body = json.loads(route.calls.last.request.content)
    assert body["model"] == "llama3.2"
    assert body["stream"] is False
    assert body["system"] == "be brief"
    assert body["options"]["num_predict"] == 64
    assert "authorization" not in route.calls.last.request.headers


@respx.mock
def test_ollama_custom_base_url(http_client):
    respx.post("http://gpu-box:11434/api/generate").mock(return_value=httpx.Response(200, json={"response": "ok"}))
    adapter = OllamaChatAdapter("llama3.2", http_client=http_client, settings=ChatSettings(ollama_base_url="http://gpu-box:11434/"))
    assert adapter.send_prompt("ping") == "ok"


@respx.mock
@pytest.mark.parametrize(
    "response, kind",
    [
        (httpx.Response(404, text="model not found"), AIErrorKind.UNREACHABLE),
        (httpx.Response(200, json={"response": None}), AIErrorKind.MALFORMED_RESPONSE),
        (httpx.Response(200, json={"done": True}), AIErrorKind.MALFORMED_RESPONSE),
    ],
)
def test_ollama_failures(ollama, response, kind):
    respx.post(OLLAMA_URL).mock(return_value=response)
    with pytest.raises(AIError) as exc:
        ollama.send_prompt("ping")
    assert exc.value.kind is kind


@respx.mock
def test_ollama_not_running(ollama):
    respx.post(OLLAMA_URL).mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(AIError) as exc:
        ollama.send_prompt("ping")
    assert exc.value.kind is AIErrorKind.UNREACHABLE
    assert exc.value.provider == "ollama"
