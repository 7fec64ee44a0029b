# app/models/__init__.py
from app.models.conversation import Conversation, ConversationParticipant
from app.models.message import Message
from app.models.user import User
from app.models.listing import Listing

# Tables the chat core owns and provisions on a cold store, in dependency order
CHAT_TABLES = [
    Conversation.__table__,
    ConversationParticipant.__table__,
    Message.__table__,
]
