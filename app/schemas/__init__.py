"""
Schema definitions for the application.
This module exports all schemas for easy importing throughout the app.
"""

# Import from chat
from app.schemas.chat import (
    SendMessageRequest, SendMessageResponse, SyncRequest, SyncResponse,
    ConversationSnapshot, ListingSummary, ParticipantInfo, MessageItem
)
