# Optimistic outbox for messages sent but not yet seen in a sync snapshot
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set

# Matches the server's draft marker for a conversation that does not exist yet
DRAFT_CONVERSATION_ID = "NEW_DRAFT"

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a server timestamp; naive values are taken as UTC"""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

@dataclass
class OutboxEntry:
    """A locally sent message the server has not shown back to us yet"""
    temp_id: str
    conversation_id: str
    sender_id: str
    text: str
    created_at: datetime
    listing_id: Optional[str] = None
    recipient_id: Optional[str] = None
    server_message_id: Optional[str] = None
    server_conversation_id: Optional[str] = None
    failed: bool = False
    # Server message ids already known when this entry was queued; never matched by content
    seen_before: FrozenSet[str] = field(default_factory=frozenset, repr=False)

    @property
    def acknowledged(self) -> bool:
        return self.server_message_id is not None

    @property
    def target_conversation_id(self) -> str:
        return self.server_conversation_id or self.conversation_id

    def as_message(self) -> Dict[str, Any]:
        """Render in the same shape as a synced message"""
        return {
            "id": self.temp_id,
            "senderId": self.sender_id,
            "text": self.text,
            "timestamp": self.created_at.isoformat(),
            "pending": True,
            "failed": self.failed
        }

class Outbox:
    """
    Client-held list of sent messages awaiting confirmation.

    Entries leave the outbox when a snapshot contains them: by the message id
    the server acknowledged, or, for entries whose acknowledgement never
    arrived, by same sender and text within ``match_window_seconds``.
    """

    def __init__(self, match_window_seconds: float = 10.0):
        self.match_window_seconds = match_window_seconds
        self._entries: List[OutboxEntry] = []
        self._seen_ids: Set[str] = set()
        # Server ids that already confirmed an entry; each confirms at most one
        self._confirmed_ids: Set[str] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def entries(self) -> List[OutboxEntry]:
        with self._lock:
            return list(self._entries)

    def add(
        self,
        sender_id: str,
        text: str,
        conversation_id: Optional[str] = None,
        listing_id: Optional[str] = None,
        recipient_id: Optional[str] = None,
        created_at: Optional[datetime] = None
    ) -> OutboxEntry:
        """Queue a message before it is sent"""
        with self._lock:
            entry = OutboxEntry(
                temp_id=f"temp-{uuid.uuid4()}",
                conversation_id=conversation_id or DRAFT_CONVERSATION_ID,
                sender_id=sender_id,
                text=text,
                created_at=created_at or utcnow(),
                listing_id=listing_id,
                recipient_id=recipient_id,
                seen_before=frozenset(self._seen_ids)
            )
            self._entries.append(entry)
            return entry

    def acknowledge(self, temp_id: str, message_id: str, conversation_id: str) -> Optional[OutboxEntry]:
        """Record the ids the server assigned to a sent message"""
        with self._lock:
            entry = self._find(temp_id)
            if entry:
                entry.server_message_id = message_id
                entry.server_conversation_id = conversation_id
                entry.failed = False
            return entry

    def mark_failed(self, temp_id: str) -> Optional[OutboxEntry]:
        with self._lock:
            entry = self._find(temp_id)
            if entry:
                entry.failed = True
            return entry

    def discard(self, temp_id: str) -> bool:
        with self._lock:
            entry = self._find(temp_id)
            if entry:
                self._entries.remove(entry)
            return entry is not None

    def pending_for(self, conversation_id: str) -> List[OutboxEntry]:
        """Entries that belong in a conversation's message list, oldest first"""
        with self._lock:
            return [e for e in self._entries if e.target_conversation_id == conversation_id]

    def reconcile(self, conversations: Iterable[Dict[str, Any]]) -> List[OutboxEntry]:
        """
        Drop entries that a sync snapshot already contains.

        Acknowledged entries match only on their server id. Unacknowledged
        entries fall back to sender + text within the time window, and each
        server message confirms at most one entry.

        Returns:
            The removed entries.
        """
        messages = []
        for conversation in conversations:
            for message in conversation.get("messages", []):
                messages.append((conversation.get("id"), message))

        with self._lock:
            server_ids = {m.get("id") for _, m in messages}
            claimed = {e.server_message_id for e in self._entries if e.acknowledged} | self._confirmed_ids
            removed = []

            for entry in list(self._entries):
                if entry.acknowledged:
                    if entry.server_message_id in server_ids:
                        removed.append(entry)
                        self._confirmed_ids.add(entry.server_message_id)
                    continue

                match = self._match_by_content(entry, messages, claimed)
                if match is not None:
                    claimed.add(match)
                    self._confirmed_ids.add(match)
                    removed.append(entry)

            for entry in removed:
                self._entries.remove(entry)
            self._seen_ids.update(server_ids)
            return removed

    def _match_by_content(self, entry: OutboxEntry, messages, claimed: Set[str]) -> Optional[str]:
        for conversation_id, message in messages:
            message_id = message.get("id")
            if message_id in claimed or message_id in entry.seen_before:
                continue
            if entry.conversation_id != DRAFT_CONVERSATION_ID and conversation_id != entry.conversation_id:
                continue
            if message.get("senderId") != entry.sender_id or message.get("text") != entry.text:
                continue
            timestamp = parse_timestamp(message.get("timestamp"))
            if timestamp is None:
                continue
            if abs((timestamp - entry.created_at).total_seconds()) <= self.match_window_seconds:
                return message_id
        return None

    def _find(self, temp_id: str) -> Optional[OutboxEntry]:
        for entry in self._entries:
            if entry.temp_id == temp_id:
                return entry
        return None
