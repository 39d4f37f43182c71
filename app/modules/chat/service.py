from supabase import Client
from app.modules.chat.schemas import ChatMessageCreate, ChatMessageResponse
from app.modules.sos.service import SOSService
from app.core.dependencies import is_sos_participant
from typing import List, Dict, Any
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.sos_service = SOSService(supabase)

    def _is_thread_member(self, sos: Dict[str, Any], user_id: str) -> bool:
        """Requester, helper, or a volunteer with an offer on the SOS"""
        if is_sos_participant(sos, user_id):
            return True
        offers = self.supabase.table("help_offers")\
            .select("id")\
            .eq("sos_request_id", sos["id"])\
            .eq("volunteer_id", user_id)\
            .limit(1)\
            .execute()
        return bool(offers.data)

    def _thread_sos(self, sos_id: str, user_id: str) -> Dict[str, Any]:
        sos = self.sos_service.get_sos_row(sos_id)
        if not self._is_thread_member(sos, user_id):
            raise HTTPException(status_code=403, detail="You are not part of this conversation")
        return sos

    def list_messages(self, sos_id: str, user_id: str) -> List[ChatMessageResponse]:
        """Caller's side of the thread, oldest first; received messages are marked read afterwards"""
        self._thread_sos(sos_id, user_id)
        try:
            result = self.supabase.table("chat_messages")\
                .select("*")\
                .eq("sos_request_id", sos_id)\
                .or_(f"sender_id.eq.{user_id},receiver_id.eq.{user_id}")\
                .order("created_at")\
                .execute()
            messages = [ChatMessageResponse(**row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Error fetching messages for SOS {sos_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        try:
            self._mark_read(sos_id, user_id)
        except Exception as e:
            logger.warning("Could not mark messages read for %s on SOS %s: %s", user_id, sos_id, e)
        return messages

    def send_message(self, sos_id: str, sender_id: str, message: ChatMessageCreate) -> ChatMessageResponse:
        sos = self._thread_sos(sos_id, sender_id)
        if message.receiver_id == sender_id:
            raise HTTPException(status_code=400, detail="You cannot message yourself")
        if sos.get("user_id") not in (sender_id, message.receiver_id):
            raise HTTPException(status_code=400, detail="Messages must involve the requester of this SOS")
        if not self._is_thread_member(sos, message.receiver_id):
            raise HTTPException(status_code=400, detail="The receiver is not part of this conversation")

        try:
            result = self.supabase.table("chat_messages").insert({
                "sos_request_id": sos_id,
                "sender_id": sender_id,
                "receiver_id": message.receiver_id,
                "content": message.content,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to send message")

            return ChatMessageResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error sending message on SOS {sos_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def _mark_read(self, sos_id: str, user_id: str) -> int:
        result = self.supabase.table("chat_messages")\
            .update({"is_read": True})\
            .eq("sos_request_id", sos_id)\
            .eq("receiver_id", user_id)\
            .eq("is_read", False)\
            .execute()
        return len(result.data or [])

    def mark_read(self, sos_id: str, user_id: str) -> int:
        self._thread_sos(sos_id, user_id)
        try:
            return self._mark_read(sos_id, user_id)
        except Exception as e:
            logger.error(f"Error marking messages read on SOS {sos_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def unread_count(self, user_id: str) -> int:
        try:
            result = self.supabase.table("chat_messages")\
                .select("id")\
                .eq("receiver_id", user_id)\
                .eq("is_read", False)\
                .execute()
            return len(result.data or [])
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
