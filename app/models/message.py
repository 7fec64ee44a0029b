# app/models/message.py
from sqlalchemy import Boolean, Column, String, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.mixins import CreatedAtMixin, generate_uuid


class Message(Base, CreatedAtMixin):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    conversation_id = Column(String(36), ForeignKey("conversations.id"), nullable=False, index=True)
    sender_id = Column(String(255), nullable=False, index=True)
    content = Column(Text, nullable=False)
    # Carried for clients; nothing marks messages read yet
    is_read = Column(Boolean, default=False, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        Index('ix_messages_conversation_created', "conversation_id", "created_at"),
    )

    def __repr__(self):
        return f"<Message {self.id} in Conversation {self.conversation_id}>"
