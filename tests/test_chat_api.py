"""Tests for the /chat endpoints over HTTP."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.config import Settings
from app.main import create_app
from app.services.sync_service import SyncService

SEND = "/api/v1/chat/send"
SYNC = "/api/v1/chat/sync"
RESET = "/api/v1/chat/debug/reset"


def first_message(client, text="hi"):
    response = client.post(SEND, json={
        "senderId": "u1",
        "text": text,
        "listingId": "listing-1",
        "recipientId": "u2"
    })
    assert response.status_code == 200
    return response.json()


class TestSend:
    """Tests for POST /chat/send."""

    def test_first_message_then_sync(self, client):
        sent = first_message(client)

        assert sent["success"] is True
        assert sent["conversationId"]
        assert sent["messageId"]

        response = client.post(SYNC, json={"userId": "u1"})
        assert response.status_code == 200
        [conversation] = response.json()["conversations"]
        assert conversation["id"] == sent["conversationId"]
        assert set(conversation["participants"]) == {"u1", "u2"}
        [message] = conversation["messages"]
        assert message == {
            "id": sent["messageId"],
            "senderId": "u1",
            "text": "hi",
            "timestamp": message["timestamp"]
        }

    def test_follow_up_with_conversation_id(self, client):
        sent = first_message(client)

        response = client.post(SEND, json={
            "conversationId": sent["conversationId"],
            "senderId": "u1",
            "text": "are you there?"
        })
        assert response.status_code == 200
        assert response.json()["conversationId"] == sent["conversationId"]

        conversations = client.post(SYNC, json={"userId": "u1"}).json()["conversations"]
        assert len(conversations) == 1
        assert [m["text"] for m in conversations[0]["messages"]] == ["hi", "are you there?"]

    def test_draft_marker_is_resolved(self, client):
        sent = first_message(client)

        response = client.post(SEND, json={
            "conversationId": "NEW_DRAFT",
            "senderId": "u2",
            "text": "yes, still available",
            "listingId": "listing-1",
            "recipientId": "u1"
        })
        assert response.json()["conversationId"] == sent["conversationId"]

    @pytest.mark.parametrize("body", [
        {"text": "hi", "listingId": "listing-1", "recipientId": "u2"},
        {"senderId": "u1", "listingId": "listing-1", "recipientId": "u2"},
        {"senderId": "u1", "text": "", "listingId": "listing-1", "recipientId": "u2"},
        {"senderId": "u1", "text": "hi"},
        {"senderId": "u1", "text": "hi", "listingId": "listing-1"},
    ])
    def test_missing_fields(self, client, body):
        response = client.post(SEND, json=body)

        assert response.status_code == 400
        assert "error" in response.json()

    def test_malformed_body(self, client):
        response = client.post(SEND, content="not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_wrong_method(self, client):
        response = client.get(SEND)

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}

    def test_unknown_conversation_id_is_500(self, client):
        response = client.post(SEND, json={
            "conversationId": "does-not-exist",
            "senderId": "u1",
            "text": "hello"
        })

        assert response.status_code == 500
        assert response.json() == {"error": "Storage operation failed"}
        assert client.post(SYNC, json={"userId": "u1"}).json() == {"conversations": []}

    def test_no_cache_headers(self, client):
        response = client.post(SEND, json={
            "senderId": "u1", "text": "hi", "listingId": "listing-1", "recipientId": "u2"
        })

        assert "no-store" in response.headers["Cache-Control"]
        assert response.headers["Pragma"] == "no-cache"


class TestSync:
    """Tests for POST /chat/sync."""

    def test_missing_user(self, client):
        response = client.post(SYNC, json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing userId"}

    def test_wrong_method(self, client):
        assert client.get(SYNC).status_code == 405

    def test_storage_error_is_500(self, client, monkeypatch):
        def broken(self, user_id):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(SyncService, "sync", broken)

        response = client.post(SYNC, json={"userId": "u1"})
        assert response.status_code == 500
        assert "error" in response.json()

    def test_no_cache_headers(self, client):
        response = client.post(SYNC, json={"userId": "u1"})

        assert response.headers["Cache-Control"] == "no-store, no-cache, must-revalidate, proxy-revalidate"
        assert response.headers["Expires"] == "0"


class TestErrorHeaders:
    """Error bodies are never cached either."""

    @pytest.mark.parametrize("method,path,body", [
        ("post", SEND, {"senderId": "u1"}),
        ("get", SYNC, None),
        ("post", RESET, None),
    ])
    def test_error_responses_are_not_cacheable(self, client, method, path, body):
        response = client.request(method.upper(), path, json=body)

        assert response.status_code >= 400
        assert response.headers["Cache-Control"] == "no-store, no-cache, must-revalidate, proxy-revalidate"
        assert response.headers["Pragma"] == "no-cache"
        assert response.headers["Expires"] == "0"

    def test_storage_error_is_not_cacheable(self, client, monkeypatch):
        def broken(self, user_id):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(SyncService, "sync", broken)

        response = client.post(SYNC, json={"userId": "u1"})

        assert response.status_code == 500
        assert "no-store" in response.headers["Cache-Control"]


class TestColdStore:
    """The API works against a store without chat tables."""

    def test_send_then_sync(self, cold_client):
        sent = first_message(cold_client)

        conversations = cold_client.post(SYNC, json={"userId": "u2"}).json()["conversations"]
        assert [c["id"] for c in conversations] == [sent["conversationId"]]

    def test_unrepairable_store_is_500(self, settings):
        # No marketplace tables either: provisioning the chat tables cannot fix discovery
        client = TestClient(create_app(settings.model_copy(update={"DATABASE_URL": "sqlite://"})))

        response = client.post(SYNC, json={"userId": "u1"})

        assert response.status_code == 500
        assert response.json() == {"error": "Chat storage is unavailable"}


class TestDebugReset:

    def test_disabled_by_default(self, client):
        assert client.post(RESET).status_code == 404

    def test_wipes_chats(self, engine):
        client = TestClient(create_app(Settings(DATABASE_URL="sqlite://", DEBUG_ENDPOINTS_ENABLED=True), engine))
        first_message(client)

        response = client.post(RESET)

        assert response.status_code == 200
        assert client.post(SYNC, json={"userId": "u1"}).json() == {"conversations": []}


def test_health_check(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "online"
