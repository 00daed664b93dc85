"""
API tests for the application shell: root, liveness, chat route,
request middleware headers and the error envelope.
"""

from __future__ import annotations

from backend.app.api import deps
from backend.app.chat.assistant import ChatReply
from backend.app.main import app


class FakeAssistant:
    def __init__(self):
        self.calls = []

    async def reply(self, message, context=None):
        self.calls.append((message, context))
        return ChatReply(success=True, response="Stay safe.")


class TestRoot:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["service"] == "DisasterSense"
        assert "responder-locator" in body["modules"]

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_request_id_echoed(self, client):
        resp = client.get("/health/live", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"
        assert resp.headers["X-Process-Time"].endswith("ms")

    def test_unknown_route(self, client):
        resp = client.get("/api/v1/nope")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"


class TestChatRoute:
    def test_chat(self, client):
        fake = FakeAssistant()
        app.dependency_overrides[deps.get_chat_assistant] = lambda: fake
        resp = client.post("/api/v1/ai/chat", json={"message": "Any floods?", "context": {"city": "Pune"}})
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "response": "Stay safe."}
        assert fake.calls == [("Any floods?", {"city": "Pune"})]

    def test_message_required(self, client):
        app.dependency_overrides[deps.get_chat_assistant] = lambda: FakeAssistant()
        assert client.post("/api/v1/ai/chat", json={"message": ""}).status_code == 422
        assert client.post("/api/v1/ai/chat", json={}).status_code == 422
