import pytest
import requests

from app.config import Settings
from app.exceptions import UpstreamProviderError
from app.services import notification_service as notification_module
from app.services.message_service import MessageService
from app.services.notification_service import EmailClient, NotificationService, render_message_notification


class FakeEmailClient:

    def __init__(self, fail_for=()):
        self.enabled = True
        self.fail_for = set(fail_for)
        self.sent = []

    def send(self, to, subject, html_content):
        if to in self.fail_for:
            raise UpstreamProviderError("sendgrid", "HTTP 500")
        self.sent.append({"to": to, "subject": subject, "html": html_content})


@pytest.fixture
def settings():
    return Settings(SENDGRID_API_KEY="", APP_URL="https://market.test")


@pytest.fixture
def conversation_id(db, add_user, add_listing):
    add_user("u1", name="Ana", email="ana@example.com")
    add_user("u2", name="Ben", email="ben@example.com")
    add_user("u3", name="Cy")
    add_listing("listing-1", owner_id="u2", title="Paddle board")
    result = MessageService(db).send("u1", "Is it free this weekend?", None, "listing-1", "u2")
    return result.conversation_id


class TestNotifyNewMessage:

    def test_emails_other_participants_with_an_address(self, db, settings, conversation_id):
        email_client = FakeEmailClient()
        service = NotificationService(db, settings, email_client=email_client)

        sent = service.notify_new_message(conversation_id, "u1", "Is it free this weekend?", ["u1", "u2", "u3"])

        assert sent == 1
        [email] = email_client.sent
        assert email["to"] == "ben@example.com"
        assert email["subject"] == "New Message from Ana 💬"
        assert "Paddle board" in email["html"]
        assert "https://market.test" in email["html"]

    def test_provider_failure_is_swallowed(self, db, settings, conversation_id):
        email_client = FakeEmailClient(fail_for={"ben@example.com"})
        service = NotificationService(db, settings, email_client=email_client)

        assert service.notify_new_message(conversation_id, "u1", "hi", ["u1", "u2"]) == 0

    def test_disabled_without_api_key(self, db, settings, conversation_id):
        service = NotificationService(db, settings)

        assert not service.email_client.enabled
        assert service.notify_new_message(conversation_id, "u1", "hi", ["u2"]) == 0


class TestRender:

    def test_escapes_user_text(self):
        email = render_message_notification("Ana", "Kayak", "<script>alert(1)</script>", "https://market.test")

        assert "<script>" not in email["html"]
        assert "&lt;script&gt;" in email["html"]


class TestEmailClient:

    def make_client(self):
        return EmailClient("key", "https://sendgrid.test/v3/mail/send", "noreply@market.test", "Market")

    def test_posts_sendgrid_payload(self, monkeypatch):
        calls = []

        class Accepted:
            status_code = 202
            text = ""

        def fake_post(url, json=None, headers=None, timeout=None):
            calls.append({"url": url, "json": json, "headers": headers})
            return Accepted()

        monkeypatch.setattr(notification_module.requests, "post", fake_post)

        self.make_client().send("ben@example.com", "Hello", "<p>Hi</p>")

        [call] = calls
        assert call["headers"]["Authorization"] == "Bearer key"
        assert call["json"]["personalizations"] == [{"to": [{"email": "ben@example.com"}]}]
        assert call["json"]["from"] == {"email": "noreply@market.test", "name": "Market"}

    def test_rejected_request_raises(self, monkeypatch):
        class Rejected:
            status_code = 401
            text = "unauthorized"

        monkeypatch.setattr(notification_module.requests, "post", lambda *args, **kwargs: Rejected())

        with pytest.raises(UpstreamProviderError):
            self.make_client().send("ben@example.com", "Hello", "<p>Hi</p>")

    def test_network_error_raises(self, monkeypatch):
        def broken(*args, **kwargs):
            raise requests.Timeout("timed out")

        monkeypatch.setattr(notification_module.requests, "post", broken)

        with pytest.raises(UpstreamProviderError):
            self.make_client().send("ben@example.com", "Hello", "<p>Hi</p>")
