import json

import httpx
import pytest
import respx

from riskscanner.core.domain.exceptions import AIError, AIErrorKind, UnsupportedProviderError
from riskscanner.core.domain.models import RiskLevel
from riskscanner.core.services import AIAdvisor, JsonExtractor
from riskscanner.infra.llm import LLM, AdvisorFactory
from riskscanner.infra.llm_adapters import ChatSettings

from fakes import coord


class DummyAdapter:
    provider = "openai"
    model = "gpt-4o"

    def __init__(self, reply="pong", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def send_prompt(self, prompt, *, system=None, max_output_tokens=None):
        self.calls.append((prompt, system, max_output_tokens))
        if self.error is not None:
            raise self.error
        return self.reply


class TestLLM:
    def test_logs_input_and_output(self, logger):
        llm = LLM(adapter=DummyAdapter(reply="hello"), logger=logger)

        assert llm.send_prompt("hi", system="sys", max_output_tokens=10) == "hello"

        assert llm.provider == "openai"
        assert llm.model == "gpt-4o"
        assert logger.messages("debug") == ["llm_input", "llm_output"]
        _, _, fields = logger.records[-1]
        assert fields["raw_text"] == "hello"
        assert fields["raw_text_len"] == 5

    def test_errors_are_logged_and_reraised(self, logger):
        error = AIError(AIErrorKind.RATE_LIMITED, "slow down", provider="openai")
        llm = LLM(adapter=DummyAdapter(error=error), logger=logger)

        with pytest.raises(AIError) as exc:
            llm.send_prompt("hi")

        assert exc.value is error
        assert logger.messages("warning") == ["llm_error"]
        assert logger.records[-1][2]["error_kind"] == "rate_limited"


@pytest.fixture
def factory(logger):
    with httpx.Client() as client:
        yield AdvisorFactory(
            http_client=client,
            settings=ChatSettings(max_output_tokens=321),
            logger=logger,
            json_extractor=JsonExtractor(),
        )


class TestAdvisorFactory:
    def test_validate(self, factory):
        assert factory.validate("Claude") == "anthropic"
        with pytest.raises(UnsupportedProviderError):
            factory.validate("nope")

    def test_requires_api_key(self, factory):
        assert factory.requires_api_key("openai") is True
        assert factory.requires_api_key("ollama") is False

    @respx.mock
    def test_creates_working_advisor_with_default_model(self, factory, logger):
        reply = {
            "riskLevel": "HIGH",
            "riskScore": 72,
            "explanation": "Known RCE.",
            "recommendations": ["Upgrade"],
        }
        route = respx.post("http://localhost:11434/api/generate").mock(
            return_value=httpx.Response(200, json={"response": json.dumps(reply)})
        )

        advisor = factory.create(provider="ollama", model="", api_key=None)
        assessment = advisor.analyze(coord("log4j-core", "2.14.1", group="org.apache.logging.log4j"), None)

        assert isinstance(advisor, AIAdvisor)
        assert advisor.provider == "ollama"
        assert advisor.model == "llama3.2"
        assert assessment.level is RiskLevel.HIGH
        assert assessment.score == 72
        body = json.loads(route.calls.last.request.content)
        assert body["options"]["num_predict"] == 321
        assert "org.apache.logging.log4j:log4j-core" in body["prompt"]
        assert "llm_output" in logger.messages("debug")
