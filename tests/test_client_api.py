import pytest
import requests

from client.api import APIError, ChatAPI
from tests.helpers import FakeResponse, FakeSession


def make_api(**kwargs):
    session = FakeSession(**kwargs)
    return ChatAPI("http://chat.test/api/v1/", timeout=2.0, session=session), session


class TestSend:

    def test_first_message_payload(self):
        api, session = make_api(response=FakeResponse(200, {
            "success": True, "conversationId": "c1", "messageId": "m1"
        }))

        result = api.send("u1", "hi", listing_id="listing-1", recipient_id="u2")

        assert result["conversationId"] == "c1"
        [post] = session.posts
        assert post["url"] == "http://chat.test/api/v1/chat/send"
        assert post["json"] == {"senderId": "u1", "text": "hi", "listingId": "listing-1", "recipientId": "u2"}
        assert post["timeout"] == 2.0

    def test_follow_up_payload(self):
        api, session = make_api(response=FakeResponse(200, {
            "success": True, "conversationId": "c1", "messageId": "m2"
        }))

        api.send("u1", "again", conversation_id="c1")

        assert session.posts[0]["json"] == {"senderId": "u1", "text": "again", "conversationId": "c1"}

    def test_error_body(self):
        api, _ = make_api(response=FakeResponse(400, {"error": "Missing required fields (senderId, text)"}))

        with pytest.raises(APIError) as excinfo:
            api.send("u1", "")

        assert excinfo.value.status_code == 400
        assert excinfo.value.detail == "Missing required fields (senderId, text)"

    def test_connection_failure(self):
        api, _ = make_api(error=requests.ConnectionError("refused"))

        with pytest.raises(APIError) as excinfo:
            api.send("u1", "hi", conversation_id="c1")

        assert excinfo.value.status_code == 0


class TestSync:

    def test_returns_conversations(self):
        api, session = make_api(response=FakeResponse(200, {"conversations": [{"id": "c1"}]}))

        assert api.sync("u1") == [{"id": "c1"}]
        assert session.posts[0]["json"] == {"userId": "u1"}

    def test_non_json_error(self):
        api, _ = make_api(response=FakeResponse(502, text="Bad Gateway"))

        with pytest.raises(APIError) as excinfo:
            api.sync("u1")

        assert excinfo.value.status_code == 502
        assert excinfo.value.detail == "Bad Gateway"

    @pytest.mark.parametrize("response", [
        FakeResponse(200, text="<html>maintenance</html>"),
        FakeResponse(200, {"message": "ok"}),
        FakeResponse(200, {"conversations": None}),
    ])
    def test_body_without_conversations_is_an_error(self, response):
        api, _ = make_api(response=response)

        with pytest.raises(APIError):
            api.sync("u1")
