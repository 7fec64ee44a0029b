# app/services/message_service.py
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional

from app.exceptions import InvalidRequest
from app.models.message import Message
from app.models.conversation import Conversation
from app.models.mixins import generate_uuid, utcnow
from app.services.conversation_service import ConversationService
from app.services.schema_guard import SchemaGuard

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    conversation_id: str
    message_id: str


class MessageService:
    """Service for sending and reading chat messages."""

    def __init__(self, db: Session):
        self.db = db
        self.guard = SchemaGuard(db)
        self.conversation_service = ConversationService(db)

    def send(
        self,
        sender_id: str,
        text: str,
        candidate_conversation_id: Optional[str] = None,
        listing_id: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> SendResult:
        """
        Send a message, creating the conversation if needed.

        Each step commits on its own: a failure part way can leave a
        conversation without a message, or a message whose conversation was
        not bumped. Sync rebuilds from whatever is stored, so the only effect
        is inbox order.

        Args:
            sender_id: ID of the user sending the message.
            text: The message content.
            candidate_conversation_id: Conversation the client believes it is in,
                or None / the draft marker for a first message.
            listing_id: Listing the conversation is about (first message only).
            recipient_id: The other party (first message, or to repair linking).

        Returns:
            SendResult with the final conversation id and the new message id.
        """
        if not sender_id or not text or not text.strip():
            raise InvalidRequest("Missing required fields (senderId, text)")

        conversation_id = self.guard.run(
            self.conversation_service.resolve,
            sender_id,
            candidate_conversation_id,
            listing_id,
            recipient_id
        )

        self.guard.run(self.conversation_service.link_participant, conversation_id, sender_id)
        if recipient_id:
            self.guard.run(self.conversation_service.link_participant, conversation_id, recipient_id)

        message = self.guard.run(self.create_message, conversation_id, sender_id, text)
        self.guard.run(self.touch_conversation, conversation_id)

        return SendResult(conversation_id=conversation_id, message_id=message.id)

    def create_message(self, conversation_id: str, sender_id: str, content: str) -> Message:
        """
        Append a message to a conversation.

        created_at is kept strictly after the newest existing message so a new
        message can only ever land at the end of the thread.
        """
        message = Message(
            id=generate_uuid(),
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            is_read=False,
            created_at=self._next_timestamp(conversation_id)
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def _next_timestamp(self, conversation_id: str) -> datetime:
        now = utcnow()
        latest = self.db.query(func.max(Message.created_at)).filter(
            Message.conversation_id == conversation_id
        ).scalar()
        if latest is not None and latest >= now:
            return latest + timedelta(microseconds=1)
        return now

    def touch_conversation(self, conversation_id: str) -> None:
        """Update conversation's updated_at timestamp so it floats to the top of the inbox."""
        updated = self.db.query(Conversation).filter(
            Conversation.id == conversation_id
        ).update({Conversation.updated_at: utcnow()}, synchronize_session=False)
        self.db.commit()
        if not updated:
            logger.warning(f"Conversation {conversation_id} not found while bumping updated_at")

    def get_conversation_messages(self, conversation_ids: List[str]) -> List[Message]:
        """Get messages for a set of conversations, oldest first."""
        if not conversation_ids:
            return []
        return self.db.query(Message).filter(
            Message.conversation_id.in_(conversation_ids)
        ).order_by(Message.created_at, Message.id).all()

    def count_messages(self, conversation_id: str) -> int:
        """Return the number of messages in a conversation."""
        return self.db.query(func.count(Message.id)).filter(
            Message.conversation_id == conversation_id
        ).scalar() or 0
