#!/usr/bin/env python
# Console UI for the marketplace chat client
from typing import Any, Dict, List, Optional
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from client.outbox import parse_timestamp

# Initialize Rich console
console = Console()


def show_title(title: str, subtitle: Optional[str] = None, style="bold cyan"):
    """Display a title panel"""
    console.print(Panel(Text(title, style=style), expand=False))

    if subtitle:
        console.print(f"\n{subtitle}\n")


def show_error(message: str):
    """Display an error message"""
    console.print(f"[bold red]Error:[/bold red] {message}")


def show_system_message(message: str):
    """Display a system message in chat"""
    console.print(f"[magenta]System:[/magenta] {message}")


def other_participant(conversation: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """The participant shown as the conversation's title"""
    participants = conversation.get("participants") or {}
    others = [p for pid, p in participants.items() if pid != user_id]
    if others:
        return others[0]
    if participants:
        return next(iter(participants.values()))
    return {"id": "unknown", "name": "Unknown User"}


def show_inbox(conversations: List[Dict[str, Any]], user_id: str):
    """List conversations, most recent activity first"""
    if not conversations:
        console.print("[yellow]No conversations yet.[/yellow]")
        return

    table = Table(title="Inbox")
    table.add_column("#", style="cyan")
    table.add_column("With", style="bold")
    table.add_column("Listing", style="green")
    table.add_column("Last message", style="dim")

    for i, conversation in enumerate(conversations, 1):
        other = other_participant(conversation, user_id)
        listing = conversation.get("listing") or {}
        messages = conversation.get("messages") or []
        last = messages[-1]["text"] if messages else "New conversation started"
        if len(last) > 50:
            last = last[:47] + "..."
        table.add_row(str(i), other.get("name", ""), listing.get("title", ""), last)

    console.print(table)


def show_chat_message(message: Dict[str, Any], sender_name: str, is_self: bool = False):
    """Display a chat message"""
    timestamp = parse_timestamp(message.get("timestamp"))
    stamp = timestamp.astimezone().strftime("%H:%M:%S") if timestamp else "--:--:--"

    status = ""
    if message.get("failed"):
        status = " [red](not sent)[/red]"
    elif message.get("pending"):
        status = " [dim](sending)[/dim]"

    color = "cyan" if is_self else "green"
    console.print(f"[dim]{stamp}[/dim] [{color}]{sender_name}[/{color}]: ", end="")
    console.print(Text(message.get("text", "")), end="")
    console.print(status)


def show_messages(messages: List[Dict[str, Any]], participants: Dict[str, Any], user_id: str):
    for message in messages:
        sender_id = message.get("senderId")
        is_self = sender_id == user_id
        sender = "You" if is_self else (participants.get(sender_id) or {}).get("name", "Unknown")
        show_chat_message(message, sender, is_self)


def get_input() -> str:
    """Get user input for chat"""
    return Prompt.ask("[dim]>[/dim]", default="", show_default=False)
