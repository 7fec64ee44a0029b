#!/usr/bin/env python
# Main entry point for the marketplace chat client

import sys
import signal
import logging
from typing import List, Optional

from client import ui
from client.api import ChatAPI
from client.config import Config
from client.outbox import Outbox
from client.sync import SyncReconciler

HELP = (
    "Available commands:\n"
    "/inbox - List conversations\n"
    "/open <n> - Open conversation n from the inbox\n"
    "/new <listing_id> <recipient_id> - Start a conversation about a listing\n"
    "/refresh - Sync now\n"
    "/help - Show this help\n"
    "/exit - Exit"
)

class ChatSession:
    """Interactive loop: the open conversation plus the background sync"""
    
    def __init__(self, reconciler: SyncReconciler):
        self.reconciler = reconciler
        self.conversation_id: Optional[str] = None
        self.listing_id: Optional[str] = None
        self.recipient_id: Optional[str] = None
    
    @property
    def user_id(self) -> str:
        return self.reconciler.user_id
    
    def show_current(self) -> None:
        if not self.conversation_id and not self.recipient_id:
            ui.show_system_message("No conversation open. Use /inbox and /open <n>, or /new.")
            return
        
        conversation = self.reconciler.conversation(self.conversation_id) if self.conversation_id else None
        participants = conversation.get("participants", {}) if conversation else {}
        ui.show_messages(self.reconciler.messages(self.conversation_id), participants, self.user_id)
    
    def open(self, index: str) -> None:
        conversations = self.reconciler.inbox()
        try:
            conversation = conversations[int(index) - 1]
        except (ValueError, IndexError):
            ui.show_error("No such conversation")
            return
        
        self.conversation_id = conversation["id"]
        self.listing_id = None
        self.recipient_id = None
        other = ui.other_participant(conversation, self.user_id)
        ui.show_title(f"Chat with {other.get('name')}")
        self.show_current()
    
    def start_new(self, listing_id: str, recipient_id: str) -> None:
        self.conversation_id = None
        self.listing_id = listing_id
        self.recipient_id = recipient_id
        ui.show_title(f"New chat with {recipient_id}", f"About listing {listing_id}")
    
    def send(self, text: str) -> None:
        if not self.conversation_id and not self.recipient_id:
            ui.show_error("Open a conversation first")
            return
        
        entry = self.reconciler.send(
            text,
            conversation_id=self.conversation_id,
            listing_id=self.listing_id,
            recipient_id=self.recipient_id
        )
        if entry.failed:
            ui.show_error("Message not sent")
        elif entry.server_conversation_id:
            # A draft becomes a real conversation with the first message
            self.conversation_id = entry.server_conversation_id
    
    def process_command(self, command: str) -> bool:
        """Process chat commands; returns False to exit"""
        parts = command.split()
        cmd = parts[0].lower()
        
        if cmd == '/exit':
            return False
        elif cmd == '/help':
            ui.show_system_message(HELP)
        elif cmd == '/inbox':
            ui.show_inbox(self.reconciler.inbox(), self.user_id)
        elif cmd == '/open' and len(parts) == 2:
            self.open(parts[1])
        elif cmd == '/new' and len(parts) == 3:
            self.start_new(parts[1], parts[2])
        elif cmd == '/refresh':
            self.reconciler.on_focus()
            self.show_current()
        else:
            ui.show_error("Unknown command. Type /help for commands.")
        return True
    
    def run(self) -> None:
        ui.show_title("Marketplace Chat", f"Signed in as {self.user_id}")
        ui.show_system_message(HELP)
        
        while True:
            try:
                line = ui.get_input().strip()
            except EOFError:
                break
            
            if not line:
                self.show_current()
                continue
            
            if line.startswith('/'):
                if not self.process_command(line):
                    break
            else:
                self.send(line)

# Handle graceful shutdown
def setup_signal_handlers(reconciler: SyncReconciler):
    """Set up signal handlers for graceful shutdown"""
    def handle_exit(signum, frame):
        print("\nExiting Marketplace Chat...")
        reconciler.stop(timeout=1.0)
        sys.exit(0)
        
    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

def main(argv: Optional[List[str]] = None) -> int:
    config = Config()
    args = config.parse_args(argv)
    
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    
    if not config.user_id:
        ui.show_error("No user configured. Pass --user-id.")
        return 1
    
    api = ChatAPI(config.api_url, timeout=config.request_timeout)
    reconciler = SyncReconciler(
        api,
        config.user_id,
        outbox=Outbox(match_window_seconds=config.match_window_seconds),
        poll_interval=config.poll_interval,
        resend_poll_delay=config.resend_poll_delay
    )
    setup_signal_handlers(reconciler)
    
    reconciler.start()
    try:
        ChatSession(reconciler).run()
    finally:
        reconciler.stop(timeout=1.0)
        api.close()
    return 0

if __name__ == "__main__":
    sys.exit(main())
