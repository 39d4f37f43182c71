from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.chat.schemas import (
    ChatMessageCreate, ChatMessageResponse, MarkReadResponse, UnreadCountResponse
)
from app.modules.chat.service import ChatService
from app.modules.realtime.hub import manager
from app.modules.realtime.schemas import ChangeEvent
from app.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(tags=["chat"])


def get_chat_service(supabase: Client = Depends(get_supabase)) -> ChatService:
    return ChatService(supabase)


@router.get("/sos/{sos_id}/messages", response_model=List[ChatMessageResponse])
async def list_messages(
    sos_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service)
):
    """Conversation on an SOS, oldest first"""
    return service.list_messages(sos_id, user_data["id"])


@router.post("/sos/{sos_id}/messages", response_model=ChatMessageResponse, status_code=201)
async def send_message(
    sos_id: str,
    message: ChatMessageCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service)
):
    sent = service.send_message(sos_id, user_data["id"], message)
    await manager.publish(ChangeEvent(
        table="chat_messages", event="INSERT", new=sent.model_dump(mode="json")
    ))
    return sent


@router.post("/sos/{sos_id}/messages/read", response_model=MarkReadResponse)
async def mark_messages_read(
    sos_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service)
):
    return MarkReadResponse(marked=service.mark_read(sos_id, user_data["id"]))


@router.get("/messages/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user_data: Dict = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service)
):
    return UnreadCountResponse(unread_count=service.unread_count(user_data["id"]))
