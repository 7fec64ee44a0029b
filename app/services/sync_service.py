# app/services/sync_service.py
import logging
from collections import defaultdict
from datetime import timezone
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Any, Dict, List, Optional

from app.config import Settings, get_settings
from app.exceptions import InvalidRequest
from app.models.conversation import Conversation, ConversationParticipant
from app.models.listing import Listing
from app.models.message import Message
from app.models.user import User
from app.services.conversation_service import ConversationService
from app.services.message_service import MessageService
from app.services.schema_guard import SchemaGuard

logger = logging.getLogger(__name__)


class SyncService:
    """Builds a user's inbox snapshot and repairs missing participant links on the way"""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.guard = SchemaGuard(db)
        self.conversation_service = ConversationService(db)
        self.message_service = MessageService(db)
        self.settings = settings or get_settings()

    def sync(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Get every conversation the user should see, with messages,
        participants and listing summary, newest activity first.
        """
        if not user_id:
            raise InvalidRequest("Missing userId")
        return self.guard.run(self._sync, user_id)

    def _sync(self, user_id: str) -> List[Dict[str, Any]]:
        conversation_ids = self.discover(user_id)
        if not conversation_ids:
            return []

        self.repair(user_id, conversation_ids)
        return self.assemble(conversation_ids)

    def discover(self, user_id: str) -> List[str]:
        """
        Find conversations for a user's inbox.

        A user belongs to a conversation if linked as a participant, if they
        own the listing it is about, or if they have written in it. The last
        two catch conversations whose participant rows were never written.
        """
        rows = self.db.query(Conversation.id).outerjoin(
            ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id
        ).outerjoin(
            Listing, Listing.id == Conversation.listing_id
        ).outerjoin(
            Message, Message.conversation_id == Conversation.id
        ).filter(
            or_(
                ConversationParticipant.user_id == user_id,
                Listing.owner_id == user_id,
                Message.sender_id == user_id
            )
        ).distinct().all()
        return [row[0] for row in rows]

    def repair(self, user_id: str, conversation_ids: List[str]) -> None:
        """Link the user to every discovered conversation they are missing from"""
        linked = {
            row[0] for row in self.db.query(ConversationParticipant.conversation_id).filter(
                ConversationParticipant.user_id == user_id,
                ConversationParticipant.conversation_id.in_(conversation_ids)
            ).all()
        }
        for conversation_id in conversation_ids:
            if conversation_id in linked:
                continue
            self.conversation_service.link_participant(conversation_id, user_id)
            logger.info(f"Linked user {user_id} to conversation {conversation_id} during sync")

    def assemble(self, conversation_ids: List[str]) -> List[Dict[str, Any]]:
        conversations = self.db.query(Conversation).filter(
            Conversation.id.in_(conversation_ids)
        ).order_by(Conversation.updated_at.desc(), Conversation.id).all()

        messages_by_conversation = defaultdict(list)
        for message in self.message_service.get_conversation_messages(conversation_ids):
            messages_by_conversation[message.conversation_id].append({
                "id": message.id,
                "senderId": message.sender_id,
                "text": message.content,
                "timestamp": message.created_at.replace(tzinfo=timezone.utc)
            })

        participants_by_conversation = defaultdict(dict)
        participant_rows = self.db.query(
            ConversationParticipant.conversation_id,
            ConversationParticipant.user_id,
            User.name,
            User.avatar_url
        ).outerjoin(
            User, User.id == ConversationParticipant.user_id
        ).filter(
            ConversationParticipant.conversation_id.in_(conversation_ids)
        ).order_by(ConversationParticipant.created_at, ConversationParticipant.user_id).all()
        for conversation_id, participant_id, name, avatar_url in participant_rows:
            participants_by_conversation[conversation_id][participant_id] = self.participant_info(
                participant_id, name, avatar_url
            )

        listings = self.get_listing_summaries({c.listing_id for c in conversations if c.listing_id})

        return [
            {
                "id": conversation.id,
                "listing": listings.get(conversation.listing_id),
                "participants": participants_by_conversation[conversation.id],
                "messages": messages_by_conversation[conversation.id]
            }
            for conversation in conversations
        ]

    def participant_info(self, user_id: str, name: Optional[str], avatar_url: Optional[str]) -> Dict[str, Any]:
        """Display data for a participant, with placeholders for users without a profile"""
        return {
            "id": user_id,
            "name": name or f"User {user_id[:4]}",
            "avatarUrl": avatar_url or self.settings.DEFAULT_AVATAR_URL.format(user_id=user_id)
        }

    def get_listing_summaries(self, listing_ids) -> Dict[str, Dict[str, Any]]:
        if not listing_ids:
            return {}
        listings = self.db.query(Listing).filter(Listing.id.in_(list(listing_ids))).all()
        return {
            listing.id: {
                "id": listing.id,
                "title": listing.title,
                "images": listing.images or []
            }
            for listing in listings
        }
