# app/services/conversation_service.py
import logging
from sqlalchemy.orm import Session, aliased
from sqlalchemy.dialects import postgresql, sqlite
from typing import List, Optional

from app.exceptions import InvalidRequest
from app.models.conversation import Conversation, ConversationParticipant
from app.models.message import Message
from app.models.mixins import generate_uuid

logger = logging.getLogger(__name__)

# Conversation id the client uses before the first message creates the thread
DRAFT_CONVERSATION_ID = "NEW_DRAFT"


def is_draft(conversation_id: Optional[str]) -> bool:
    return not conversation_id or conversation_id == DRAFT_CONVERSATION_ID


class ConversationService:
    """Service for resolving conversations and managing their participants"""

    def __init__(self, db: Session):
        self.db = db

    def resolve(
        self,
        sender_id: str,
        candidate_conversation_id: Optional[str] = None,
        listing_id: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> str:
        """
        Determine which conversation a message belongs to.

        A real candidate id is trusted as-is. Without one, the conversation on
        ``listing_id`` shared by sender and recipient is reused, or a new one is
        created. Participants are not linked here.

        Returns:
            The conversation id.
        """
        if not is_draft(candidate_conversation_id):
            return candidate_conversation_id

        if not listing_id or not recipient_id:
            raise InvalidRequest("New chats require listingId and recipientId")

        existing = self.find_conversation(listing_id, sender_id, recipient_id)
        if existing:
            return existing

        conversation = self.create_conversation(listing_id)
        logger.info(f"Created conversation {conversation.id} for listing {listing_id}")
        return conversation.id

    def find_conversation(self, listing_id: str, user_a: str, user_b: str) -> Optional[str]:
        """
        Find a conversation about a listing that links both users.

        Nothing in the store makes the triple unique, so the oldest match wins.
        """
        first = aliased(ConversationParticipant)
        second = aliased(ConversationParticipant)
        row = self.db.query(Conversation.id).join(
            first, first.conversation_id == Conversation.id
        ).join(
            second, second.conversation_id == Conversation.id
        ).filter(
            Conversation.listing_id == listing_id,
            first.user_id == user_a,
            second.user_id == user_b
        ).order_by(Conversation.created_at, Conversation.id).first()
        return row[0] if row else None

    def create_conversation(self, listing_id: Optional[str] = None) -> Conversation:
        """Create a new conversation"""
        conversation = Conversation(id=generate_uuid(), listing_id=listing_id)
        self.db.add(conversation)
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Get a conversation by ID"""
        return self.db.query(Conversation).filter(Conversation.id == conversation_id).first()

    def link_participant(self, conversation_id: str, user_id: str) -> None:
        """
        Add a user to a conversation if not already there.
        Re-linking an existing pair is a no-op, also under concurrent callers.
        """
        dialect = self.db.get_bind().dialect.name
        values = {"conversation_id": conversation_id, "user_id": user_id}

        if dialect == "postgresql":
            stmt = postgresql.insert(ConversationParticipant).values(**values).on_conflict_do_nothing(
                index_elements=["conversation_id", "user_id"]
            )
        elif dialect == "sqlite":
            stmt = sqlite.insert(ConversationParticipant).values(**values).on_conflict_do_nothing(
                index_elements=["conversation_id", "user_id"]
            )
        else:
            # No portable upsert; check first and accept the race
            if self.is_participant(conversation_id, user_id):
                return
            self.db.add(ConversationParticipant(**values))
            self.db.commit()
            return

        self.db.execute(stmt)
        self.db.commit()

    def is_participant(self, conversation_id: str, user_id: str) -> bool:
        return self.db.query(ConversationParticipant).filter(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id == user_id
        ).first() is not None

    def get_participant_ids(self, conversation_id: str) -> List[str]:
        """Get the user ids linked to a conversation"""
        rows = self.db.query(ConversationParticipant.user_id).filter(
            ConversationParticipant.conversation_id == conversation_id
        ).order_by(ConversationParticipant.user_id).all()
        return [row[0] for row in rows]

    def delete_listing_conversations(self, listing_id: str) -> int:
        """
        Delete every conversation about a listing, with its messages and participants.
        Called when the listing itself is deleted.

        Returns:
            Number of conversations deleted.
        """
        ids = [
            row[0] for row in
            self.db.query(Conversation.id).filter(Conversation.listing_id == listing_id).all()
        ]
        if not ids:
            return 0

        self.db.query(Message).filter(
            Message.conversation_id.in_(ids)
        ).delete(synchronize_session=False)
        self.db.query(ConversationParticipant).filter(
            ConversationParticipant.conversation_id.in_(ids)
        ).delete(synchronize_session=False)
        self.db.query(Conversation).filter(
            Conversation.id.in_(ids)
        ).delete(synchronize_session=False)
        self.db.commit()

        logger.info(f"Deleted {len(ids)} conversation(s) for listing {listing_id}")
        return len(ids)

    def reset_chats(self) -> None:
        """Wipe all chat data, children before parents"""
        self.db.query(Message).delete(synchronize_session=False)
        self.db.query(ConversationParticipant).delete(synchronize_session=False)
        self.db.query(Conversation).delete(synchronize_session=False)
        self.db.commit()
        logger.warning("All chat data has been wiped")
