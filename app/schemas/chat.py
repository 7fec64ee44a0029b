# app/schemas/chat.py
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime


class ChatModel(BaseModel):
    """Base for chat payloads: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendMessageRequest(ChatModel):
    # Presence and emptiness are checked by the service so every
    # missing-field case gets the same 400 body.
    conversation_id: Optional[str] = None
    sender_id: Optional[str] = None
    text: Optional[str] = None
    listing_id: Optional[str] = None
    recipient_id: Optional[str] = None


class SendMessageResponse(ChatModel):
    success: bool = True
    conversation_id: str
    message_id: str


class SyncRequest(ChatModel):
    user_id: Optional[str] = None


class ListingSummary(ChatModel):
    id: str
    title: str
    images: List[str] = Field(default_factory=list)


class ParticipantInfo(ChatModel):
    id: str
    name: str
    avatar_url: str


class MessageItem(ChatModel):
    id: str
    sender_id: str
    text: str
    timestamp: datetime


class ConversationSnapshot(ChatModel):
    id: str
    listing: Optional[ListingSummary] = None
    participants: Dict[str, ParticipantInfo] = Field(default_factory=dict)
    messages: List[MessageItem] = Field(default_factory=list)


class SyncResponse(ChatModel):
    conversations: List[ConversationSnapshot]

