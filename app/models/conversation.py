# app/models/conversation.py
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.mixins import CreatedAtMixin, TimestampMixin, generate_uuid


class Conversation(Base, TimestampMixin):
    """
    A chat thread about at most one listing.
    updated_at is bumped on every new message and only drives inbox order.
    """
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=generate_uuid, index=True)
    # listings live outside the chat schema, so no foreign key here
    listing_id = Column(String(255), nullable=True, index=True)

    messages = relationship("Message", back_populates="conversation", cascade="all, delete-orphan")
    participants = relationship("ConversationParticipant", back_populates="conversation", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Conversation {self.id} - Listing: {self.listing_id}>"


class ConversationParticipant(Base, CreatedAtMixin):
    """Membership of a user in a conversation; the pair is the whole identity"""
    __tablename__ = "conversation_participants"

    conversation_id = Column(String(36), ForeignKey("conversations.id"), primary_key=True)
    user_id = Column(String(255), primary_key=True, index=True)

    conversation = relationship("Conversation", back_populates="participants")

    def __repr__(self):
        return f"<ConversationParticipant {self.user_id} - Conversation: {self.conversation_id}>"
