"""
Shared pytest fixtures for gateway and client tests
"""
import json
import sys
from pathlib import Path

import httpx
import pytest

# Repository root holds the flat application modules (main, config, clients, ...)
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

from clients.gemini_client import GeminiImageClient  # noqa: E402
from services.image_generation import ImageGenerationGateway  # noqa: E402


def gemini_image_reply(mime_type="image/png", data="BBBB", text=None):
    """A generateContent reply carrying one inline image part."""
    parts = []
    if text:
        parts.append({"text": text})
    parts.append({"inlineData": {"mimeType": mime_type, "data": data}})
    return {"candidates": [{"content": {"parts": parts}, "finishReason": "STOP"}]}


class FakeUpstream:
    """Stub HTTP peer: records requests and replays queued (status, body) pairs.

    A queued httpx.RequestError subclass is raised instead. The last entry repeats.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, type) and issubclass(response, httpx.RequestError):
            raise response("stubbed transport failure", request=request)
        status, body = response
        return httpx.Response(status, json=body)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def sent_json(self, index=0) -> dict:
        return json.loads(self.requests[index].content)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def upstream():
    return FakeUpstream((200, gemini_image_reply()))


@pytest.fixture
def gemini_client(upstream):
    return GeminiImageClient(
        api_key="test-api-key",
        model="gemini-test-image",
        timeout_seconds=5,
        transport=upstream.transport(),
    )


@pytest.fixture
def gateway(gemini_client):
    return ImageGenerationGateway(client=gemini_client)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
