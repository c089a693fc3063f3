import copy
import json
from typing import Any

import httpx
import pytest

from voxforge.config import Settings, get_settings
from voxforge.services import Services, build_services, install_services

TEST_ENV = {
    "APP_ENV": "test",
    "LOG_LEVEL": "INFO",
    "PUBLIC_SERVER_URL": "",
    "VOICE_API_BASE_URL": "https://voice.test",
    "VOICE_API_KEY": "voice-key",
    "VOICE_ASSISTANT_ID": "asst-1",
    "VOICE_PHONE_NUMBER_ID": "phone-1",
    "WHAPI_BASE_URL": "https://whapi.test",
    "WHAPI_TOKEN": "whapi-token",
    "OPERATOR_CONTACT": "+971500000001",
    "AUTOMATION_API_URL": "",
    "AUTOMATION_API_KEY": "",
    "AUTOMATION_WEBHOOK_URL": "",
    "PRIMARY_PROVIDER": "anthropic",
    "ANTHROPIC_BASE_URL": "https://llm.test/v1",
    "ANTHROPIC_API_KEY": "llm-key",
    "OPENAI_API_KEY": "",
    "CALLBACK_SETTLE_SECONDS": "0",
    "RATE_LIMIT_WEBHOOKS_PER_MINUTE": "10000",
}

AUTOMATION_ENV = {
    "AUTOMATION_API_URL": "https://automation.test/api/v1",
    "AUTOMATION_API_KEY": "n8n-key",
}

LIVE_ASSISTANT: dict[str, Any] = {
    "id": "asst-1",
    "name": "Ruya dispatcher",
    "firstMessage": "Hello, this is Ruya Logistics.",
    "model": {
        "provider": "openai",
        "model": "gpt-4o",
        "messages": [{"role": "system", "content": "You are a logistics assistant."}],
        "maxTokens": 250,
        "toolIds": ["tool-seed"],
    },
    "voice": {"provider": "11labs", "voiceId": "voice-7", "speed": 1.0},
    "messagePlan": {"idleMessages": ["Are you still there?"], "idleTimeoutSeconds": 10},
    "silenceTimeoutSeconds": 10,
    "maxDurationSeconds": 600,
    "metadata": {"team": "ops"},
}


class FakeBackend:
    """In-memory stand-in for every external HTTP service, served over MockTransport."""

    def __init__(self) -> None:
        self.assistant: dict[str, Any] = copy.deepcopy(LIVE_ASSISTANT)
        self.calls: dict[str, dict[str, Any]] = {}
        self.llm_replies: list[str] = []
        self.llm_bodies: list[dict[str, Any]] = []
        self.sent: list[dict[str, Any]] = []
        self.patches: list[dict[str, Any]] = []
        self.outbound_calls: list[dict[str, Any]] = []
        self.tools: list[dict[str, Any]] = []
        self.workflows: list[dict[str, Any]] = []
        self.activated: list[str] = []
        self.hooks: list[tuple[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.fail: set[str] = set()
        self.transport = httpx.MockTransport(self.handle)

    def reply_with(self, *replies: Any) -> None:
        for reply in replies:
            self.llm_replies.append(reply if isinstance(reply, str) else json.dumps(reply))

    def operator_messages(self) -> list[str]:
        return [item["body"] for item in self.sent if item["to"] == "971500000001@s.whatsapp.net"]

    @staticmethod
    def _body(request: httpx.Request) -> Any:
        if not request.content:
            return None
        return json.loads(request.content.decode("utf-8"))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host == "voice.test":
            return self._voice(request)
        if host == "whapi.test":
            body = self._body(request)
            self.sent.append(body)
            return httpx.Response(200, json={"sent": True, "message": {"id": f"msg-{len(self.sent)}"}})
        if host == "llm.test":
            return self._llm(request)
        if host == "automation.test":
            return self._automation(request)
        if host == "hooks.test":
            self.hooks.append((request.url.path, self._body(request)))
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(404, json={"error": "unknown host"})

    def _voice(self, request: httpx.Request) -> httpx.Response:
        path, method = request.url.path, request.method
        if path == f"/assistant/{self.assistant['id']}":
            if method == "GET":
                if "get_assistant" in self.fail:
                    return httpx.Response(503, json={"error": "unavailable"})
                return httpx.Response(200, json=self.assistant)
            if method == "PATCH":
                if "patch" in self.fail:
                    return httpx.Response(500, json={"error": "write failed"})
                patch = self._body(request)
                self.patches.append(patch)
                self.assistant.update(copy.deepcopy(patch))
                return httpx.Response(200, json=self.assistant)
        if path == "/call" and method == "GET":
            if "list_calls" in self.fail:
                return httpx.Response(503, json={"error": "unavailable"})
            assistant_id = request.url.params.get("assistantId")
            limit = int(request.url.params.get("limit", "5"))
            matching = [
                call
                for call in self.calls.values()
                if call.get("assistantId", self.assistant["id"]) == assistant_id
            ]
            return httpx.Response(200, json=matching[:limit])
        if path.startswith("/call/") and method == "GET":
            call = self.calls.get(path.rsplit("/", 1)[-1])
            if call is None:
                return httpx.Response(404, json={"error": "call not found"})
            return httpx.Response(200, json=call)
        if path == "/call/phone" and method == "POST":
            if "outbound" in self.fail:
                return httpx.Response(400, json={"error": "number not allowed"})
            self.outbound_calls.append(self._body(request))
            return httpx.Response(201, json={"id": f"call-out-{len(self.outbound_calls)}"})
        if path == "/tool" and method == "POST":
            self.tools.append(self._body(request))
            return httpx.Response(201, json={"id": f"tool-{len(self.tools)}"})
        return httpx.Response(404, json={"error": "not found"})

    def _llm(self, request: httpx.Request) -> httpx.Response:
        self.llm_bodies.append(self._body(request))
        if "llm" in self.fail or not self.llm_replies:
            return httpx.Response(500, json={"error": "overloaded"})
        text = self.llm_replies.pop(0)
        return httpx.Response(
            200,
            json={
                "content": [{"type": "text", "text": text}],
                "model": "claude-test",
                "stop_reason": "end_turn",
            },
        )

    def _automation(self, request: httpx.Request) -> httpx.Response:
        path, method = request.url.path, request.method
        if path.startswith("/webhook/"):
            self.hooks.append((path, self._body(request)))
            return httpx.Response(200, json={"sent": True})
        if "automation" in self.fail:
            return httpx.Response(502, json={"message": "bad gateway"})
        if path == "/api/v1/workflows" and method == "POST":
            workflow = {**self._body(request), "id": f"wf-{len(self.workflows) + 1}"}
            self.workflows.append(workflow)
            return httpx.Response(200, json=workflow)
        if path == "/api/v1/workflows" and method == "GET":
            return httpx.Response(200, json={"data": self.workflows})
        if path.endswith("/activate") and method == "POST":
            workflow_id = path.split("/")[-2]
            self.activated.append(workflow_id)
            for workflow in self.workflows:
                if workflow["id"] == workflow_id:
                    workflow["active"] = True
            return httpx.Response(200, json={"id": workflow_id, "active": True})
        if path.startswith("/api/v1/workflows/") and method == "GET":
            workflow_id = path.rsplit("/", 1)[-1]
            for workflow in self.workflows:
                if workflow["id"] == workflow_id:
                    return httpx.Response(200, json=workflow)
        return httpx.Response(404, json={"message": "not found"})


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch):
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    install_services(None)
    yield
    install_services(None)
    get_settings.cache_clear()


@pytest.fixture
def automation_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in AUTOMATION_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def services(backend: FakeBackend, settings: Settings) -> Services:
    built = build_services(settings, transport=backend.transport)
    install_services(built)
    return built
