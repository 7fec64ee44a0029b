# app/services/notification_service.py
import html
import logging
import requests
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.exceptions import UpstreamProviderError
from app.models.conversation import Conversation
from app.models.listing import Listing
from app.models.user import User

logger = logging.getLogger(__name__)

MESSAGE_PREVIEW_LENGTH = 140


def render_message_notification(sender_name: str, listing_title: str, message_preview: str, app_url: str) -> Dict[str, str]:
    """Build subject and HTML body for a new-message email"""
    sender = html.escape(sender_name)
    listing = html.escape(listing_title)
    preview = html.escape(message_preview)
    link = html.escape(app_url, quote=True)
    return {
        "subject": f"New Message from {sender_name} 💬",
        "html": (
            '<div style="font-family: sans-serif; color: #333;">'
            "<h2>You have a new message</h2>"
            f"<p><strong>{sender}</strong> sent you a message regarding <em>{listing}</em></p>"
            '<blockquote style="border-left: 4px solid #0b6bd4; padding-left: 10px; color: #555; margin: 20px 0;">'
            f'"{preview}"'
            "</blockquote><br/>"
            f'<a href="{link}" style="background-color: #007bff; color: white; padding: 10px 20px; '
            'text-decoration: none; border-radius: 5px;">View Message</a>'
            "</div>"
        )
    }


class EmailClient:
    """Thin client for the SendGrid v3 mail/send endpoint"""

    def __init__(self, api_key: str, api_url: str, from_email: str, from_name: str, timeout: float = 5.0):
        self.api_key = api_key
        self.api_url = api_url
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(self, to: str, subject: str, html_content: str) -> None:
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}]
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        try:
            response = requests.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamProviderError("sendgrid", str(e)) from e

        if response.status_code >= 300:
            raise UpstreamProviderError("sendgrid", f"HTTP {response.status_code}: {response.text[:200]}")


class NotificationService:
    """
    Best-effort notifications about chat activity.
    Nothing here may fail the request that triggered it.
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None, email_client: Optional[EmailClient] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.email_client = email_client or EmailClient(
            api_key=self.settings.SENDGRID_API_KEY,
            api_url=self.settings.SENDGRID_API_URL,
            from_email=self.settings.EMAIL_FROM,
            from_name=self.settings.EMAIL_FROM_NAME,
            timeout=self.settings.NOTIFICATION_TIMEOUT_SECONDS
        )

    def notify_new_message(self, conversation_id: str, sender_id: str, text: str, recipient_ids: List[str]) -> int:
        """
        Email every recipient with an address about a new message.

        Returns:
            Number of emails accepted by the provider.
        """
        if not self.email_client.enabled:
            logger.debug("Email notifications disabled; SENDGRID_API_KEY not set")
            return 0

        try:
            context = self._message_context(conversation_id, sender_id, text)
            recipients = self.db.query(User).filter(
                User.id.in_([r for r in recipient_ids if r != sender_id]),
                User.email.isnot(None)
            ).all()
        except Exception as e:
            logger.error(f"Failed to load notification recipients for conversation {conversation_id}: {str(e)}")
            return 0

        email = render_message_notification(app_url=self.settings.APP_URL, **context)
        sent = 0
        for recipient in recipients:
            try:
                self.email_client.send(recipient.email, email["subject"], email["html"])
                sent += 1
            except UpstreamProviderError as e:
                logger.error(f"Message notification to {recipient.id} failed: {e.detail}")
        return sent

    def _message_context(self, conversation_id: str, sender_id: str, text: str) -> Dict[str, Any]:
        sender = self.db.query(User).filter(User.id == sender_id).first()
        conversation = self.db.query(Conversation).filter(Conversation.id == conversation_id).first()
        listing = None
        if conversation and conversation.listing_id:
            listing = self.db.query(Listing).filter(Listing.id == conversation.listing_id).first()

        preview = text if len(text) <= MESSAGE_PREVIEW_LENGTH else text[:MESSAGE_PREVIEW_LENGTH - 1] + "…"
        return {
            "sender_name": sender.display_name if sender else f"User {sender_id[:4]}",
            "listing_title": listing.title if listing else "your listing",
            "message_preview": preview
        }
