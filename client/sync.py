# Polling sync for the chat client
import copy
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from client.api import APIError, ChatAPI
from client.outbox import DRAFT_CONVERSATION_ID, Outbox, OutboxEntry

logger = logging.getLogger(__name__)

class SyncReconciler:
    """
    Keeps a local view of a user's inbox by polling /chat/sync.

    Polls run on a fixed interval, on demand (window focus) and shortly after
    each successful send. Only one poll runs at a time: a poll requested while
    another is outstanding is skipped, not queued. A failed poll keeps the
    last good snapshot.
    """

    def __init__(
        self,
        api: ChatAPI,
        user_id: str,
        outbox: Optional[Outbox] = None,
        poll_interval: float = 3.0,
        resend_poll_delay: float = 0.4,
        on_update: Optional[Callable[["SyncReconciler"], None]] = None
    ):
        self.api = api
        self.user_id = user_id
        self.outbox = outbox or Outbox()
        self.poll_interval = poll_interval
        self.resend_poll_delay = resend_poll_delay
        self.on_update = on_update
        self.last_error: Optional[APIError] = None

        self._conversations: List[Dict[str, Any]] = []
        self._in_flight = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._timers: List[threading.Timer] = []

    # --- Polling ---

    def poll(self) -> bool:
        """
        Fetch a snapshot and reconcile the outbox against it.

        Returns:
            True if a fresh snapshot was applied, False if the poll was skipped
            because another one is in flight, or failed.
        """
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Sync already in flight; skipping")
            return False

        try:
            try:
                conversations = self.api.sync(self.user_id)
            except APIError as e:
                self.last_error = e
                logger.warning(f"Chat sync failed: {e.detail}")
                return False

            # Outbox and snapshot change together under the state lock
            with self._state_lock:
                removed = self.outbox.reconcile(conversations)
                self._conversations = conversations
            self.last_error = None

            if removed:
                logger.debug(f"Confirmed {len(removed)} outbox message(s)")
        finally:
            self._in_flight.release()

        if self.on_update:
            self.on_update(self)
        return True

    def on_focus(self) -> bool:
        """Poll immediately, as when the chat window regains focus"""
        return self.poll()

    def refresh_soon(self, delay: Optional[float] = None) -> threading.Timer:
        """Schedule a one-off poll shortly, independent of the regular interval"""
        timer = threading.Timer(self.resend_poll_delay if delay is None else delay, self.poll)
        timer.daemon = True
        with self._state_lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()
        return timer

    def start(self) -> None:
        """Start polling in a background thread"""
        if self._thread and self._thread.is_alive():
            return

        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="chat-sync", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop polling and cancel pending refreshes"""
        self._stop.set()
        with self._state_lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()

        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        self.poll()
        while not self._stop.wait(self.poll_interval):
            self.poll()

    # --- Sending ---

    def send(
        self,
        text: str,
        conversation_id: Optional[str] = None,
        listing_id: Optional[str] = None,
        recipient_id: Optional[str] = None
    ) -> OutboxEntry:
        """
        Send a message optimistically.

        The message shows up in messages() right away. On acknowledgement
        the entry learns its server ids and a refresh is scheduled; on failure
        the entry stays, flagged as failed.
        """
        entry = self.outbox.add(
            sender_id=self.user_id,
            text=text,
            conversation_id=conversation_id,
            listing_id=listing_id,
            recipient_id=recipient_id
        )

        try:
            result = self.api.send(
                sender_id=self.user_id,
                text=text,
                conversation_id=conversation_id,
                listing_id=listing_id,
                recipient_id=recipient_id
            )
        except APIError as e:
            self.outbox.mark_failed(entry.temp_id)
            logger.warning(f"Sending message failed: {e.detail}")
            return entry

        self.outbox.acknowledge(entry.temp_id, result["messageId"], result["conversationId"])
        self.refresh_soon()
        return entry

    # --- Views ---

    def inbox(self) -> List[Dict[str, Any]]:
        """Conversations in server order (most recent activity first)"""
        with self._state_lock:
            return copy.deepcopy(self._conversations)

    def conversation(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        with self._state_lock:
            conversation = self._find(conversation_id)
            return copy.deepcopy(conversation) if conversation else None

    def messages(self, conversation_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Message list for a conversation: synced messages, then outbox entries
        targeting it that the snapshot does not contain yet.
        """
        conversation_id = conversation_id or DRAFT_CONVERSATION_ID
        with self._state_lock:
            conversation = self._find(conversation_id)
            synced = copy.deepcopy(conversation.get("messages", [])) if conversation else []
            entries = self.outbox.pending_for(conversation_id)

        synced_ids = {m.get("id") for m in synced}
        pending = [
            entry.as_message()
            for entry in entries
            if entry.server_message_id not in synced_ids
        ]
        return synced + pending

    def _find(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        # Caller holds _state_lock
        for conversation in self._conversations:
            if conversation.get("id") == conversation_id:
                return conversation
        return None
