# scripts/testing/conftest.py
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from rhythmiq.lib.gateway import AIGatewayClient
from rhythmiq.main import app, get_gateway
from rhythmiq.models import ModelOpinion

GATEWAY_URL = "http://gateway.test/v1/chat/completions"

PERSONA_MARKERS = {
    "cnn": "CNN-based",
    "bilstm": "BiLSTM-based",
    "transformer": "Transformer-based",
}


def make_opinion(heart_rate=72, pr=160, qrs=90, qt=400, st="Isoelectric", status="normal",
                 condition="Normal", details="Sinus rhythm.", confidence=90):
    diagnosis = {"status": status, "details": details}
    if condition is not None:
        diagnosis["condition"] = condition
    if confidence is not None:
        diagnosis["confidence"] = confidence
    return ModelOpinion.model_validate({
        "heartRate": heart_rate,
        "prInterval": pr,
        "qrsDuration": qrs,
        "qtInterval": qt,
        "stSegment": st,
        "diagnosis": diagnosis,
    })


def completion(content: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"choices": [{"message": {"content": content}}]})


def persona_of(request: httpx.Request) -> str:
    """Which persona a captured gateway request was made for (or 'chat')."""
    system_prompt = json.loads(request.content)["messages"][0]["content"]
    for persona, marker in PERSONA_MARKERS.items():
        if marker in system_prompt:
            return persona
    return "chat"


class FakeGateway:
    """Records outbound gateway requests and answers from a handler."""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]

    def client(self) -> AIGatewayClient:
        return AIGatewayClient(
            api_key="test-key",
            url=GATEWAY_URL,
            timeout=5.0,
            transport=httpx.MockTransport(self),
        )


def opinion_json(**kwargs) -> str:
    return json.dumps(make_opinion(**kwargs).model_dump(by_alias=True, exclude_none=True))


@pytest.fixture
def opinion():
    return make_opinion


@pytest.fixture
def fake_gateway():
    """Install a FakeGateway behind the app; call it with a handler."""
    installed = []

    def install(handler):
        gateway = FakeGateway(handler)
        app.dependency_overrides[get_gateway] = gateway.client
        installed.append(gateway)
        return gateway

    yield install
    app.dependency_overrides.pop(get_gateway, None)


@pytest.fixture
def api():
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sample_analysis():
    return {
        "heartRate": 104,
        "prInterval": 150,
        "qrsDuration": 88,
        "qtInterval": 340,
        "stSegment": "No significant elevation",
        "diagnosis": {
            "status": "abnormal",
            "condition": "Sinus tachycardia",
            "details": "Regular rhythm with a rate above 100 BPM.",
            "confidence": 82,
            "ensembleAgreement": "3 models analyzed - 2 detected abnormalities",
        },
        "waveformData": [0.5, 0.7, 0.4],
    }
