# app/api/v1/chat.py
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import sessionmaker

from app.api.dependencies import get_app_settings, get_service, get_session_factory, no_cache
from app.config import Settings
from app.exceptions import NotFound
from app.schemas import SendMessageRequest, SendMessageResponse, SyncRequest, SyncResponse
from app.services.conversation_service import ConversationService
from app.services.message_service import MessageService
from app.services.notification_service import NotificationService
from app.services.sync_service import SyncService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(no_cache)])


def notify_participants(
    session_factory: sessionmaker,
    settings: Settings,
    conversation_id: str,
    sender_id: str,
    text: str
) -> None:
    """Background task: email the other participants about a new message."""
    db = session_factory()
    try:
        recipient_ids = ConversationService(db).get_participant_ids(conversation_id)
        NotificationService(db, settings).notify_new_message(conversation_id, sender_id, text, recipient_ids)
    except Exception as e:
        logger.error(f"Message notification for conversation {conversation_id} failed: {str(e)}")
    finally:
        db.close()


@router.post(
    "/send",
    response_model=SendMessageResponse,
    status_code=status.HTTP_200_OK
)
async def send_message(
    payload: SendMessageRequest,
    background_tasks: BackgroundTasks,
    message_service: MessageService = Depends(get_service(MessageService)),
    session_factory: sessionmaker = Depends(get_session_factory),
    settings: Settings = Depends(get_app_settings)
):
    """
    Send a chat message.

    Without a conversation id (or with the draft marker) the conversation is
    found by listing and recipient, or created. The response carries the final
    conversation id so the client can replace its draft.
    """
    result = message_service.send(
        sender_id=payload.sender_id,
        text=payload.text,
        candidate_conversation_id=payload.conversation_id,
        listing_id=payload.listing_id,
        recipient_id=payload.recipient_id
    )

    background_tasks.add_task(
        notify_participants,
        session_factory,
        settings,
        result.conversation_id,
        payload.sender_id,
        payload.text
    )

    return SendMessageResponse(
        success=True,
        conversation_id=result.conversation_id,
        message_id=result.message_id
    )


@router.post(
    "/sync",
    response_model=SyncResponse
)
async def sync_conversations(
    payload: SyncRequest,
    sync_service: SyncService = Depends(get_service(SyncService, with_settings=True))
):
    """
    Get the user's inbox: every conversation they take part in, own the
    listing of, or have written in, with all messages oldest first.
    """
    return {"conversations": sync_service.sync(payload.user_id)}


@router.post("/debug/reset")
async def reset_chats(
    request: Request,
    conversation_service: ConversationService = Depends(get_service(ConversationService))
):
    """Wipe all conversations, participants and messages. Disabled unless DEBUG_ENDPOINTS_ENABLED."""
    if not request.app.state.settings.DEBUG_ENDPOINTS_ENABLED:
        raise NotFound("Not found")

    conversation_service.reset_chats()
    return {"message": "All chats have been wiped successfully. You can now start fresh."}
