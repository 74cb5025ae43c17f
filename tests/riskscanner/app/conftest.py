"""Shared fixtures for app-level tests."""
import json

import httpx
import pytest

from riskscanner.app.config import AIConfig, AppConfig, DirectoryConfig, ScannerConfig, VaultConfig

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"

GRADLE_BUILD = """
plugins { id 'java' }

dependencies {
    implementation 'org.apache.logging.log4j:log4j-core:2.14.1'
    implementation "com.google.guava:guava:32.1.2-jre"
    testImplementation 'junit:junit:4.13.2'
}
"""


class FakeNetwork:
    """httpx.MockTransport handler standing in for OSV, Maven Central, GitHub and OpenAI."""

    def __init__(self):
        self.vulns: dict[str, list[dict]] = {}
        self.ai_reply: dict | None = {
            "riskLevel": "MEDIUM",
            "riskScore": 40,
            "explanation": "Widely used, no recent advisories.",
            "recommendations": ["Keep it updated"],
        }
        self.ai_status = 200
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url.startswith("https://api.osv.dev/"):
            name = json.loads(request.content)["package"]["name"]
            vulns = self.vulns.get(name)
            return httpx.Response(200, json={"vulns": vulns} if vulns else {})
        if url == OPENAI_CHAT_URL:
            if self.ai_status != 200:
                return httpx.Response(self.ai_status, json={"error": {"message": "nope"}})
            content = json.dumps(self.ai_reply) if self.ai_reply is not None else "pong"
            return httpx.Response(200, json={
                "id": "chatcmpl-1",
                "object": "chat.completion",
                "created": 0,
                "model": "gpt-4o",
                "choices": [{
                    "index": 0,
                    "finish_reason": "stop",
                    "message": {"role": "assistant", "content": content},
                }],
            })
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, prefix: str) -> int:
        return sum(1 for r in self.requests if str(r.url).startswith(prefix))


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def test_config(tmp_path):
    """Create test configuration with explicit values."""
    return AppConfig(
        directories=DirectoryConfig(home=tmp_path / "home"),
        ai=AIConfig(provider="openai", model="gpt-4o"),
        scanner=ScannerConfig(local_repository=None, transitive=False),
        vault=VaultConfig(secret="test-secret", iterations=1000),
    )


@pytest.fixture
def gradle_project(tmp_path):
    project = tmp_path / "project"
    project.mkdir()
    (project / "build.gradle").write_text(GRADLE_BUILD, encoding="utf-8")
    return project
