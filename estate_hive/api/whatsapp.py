"""
WhatsApp API Endpoints
Outbound WATI messages and message history
"""
from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.responses import JSONResponse
import logging

from estate_hive.auth.dependencies import get_current_user
from estate_hive.models.user import User
from estate_hive.models.webhook import SendWhatsAppMessageRequest
from estate_hive.services.exceptions import ConversationNotFoundError, ProviderError
from estate_hive.services.message_service import get_message_service
from estate_hive.services.supabase_client import get_supabase_client
from estate_hive.services.telegram_service import get_telegram_service, TelegramBotService
from estate_hive.services.whatsapp_service import get_whatsapp_service, WatiService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/whatsapp", tags=["whatsapp"])


@router.post(
    "/send",
    summary="Send WhatsApp message",
    description="Send a text message through WATI to a phone number or the client of a conversation"
)
async def send_whatsapp_message(
    payload: SendWhatsAppMessageRequest,
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client),
    telegram: TelegramBotService = Depends(get_telegram_service),
    whatsapp: WatiService = Depends(get_whatsapp_service)
):
    has_target = bool(payload.phone and payload.phone.strip()) or payload.conversation_id is not None
    if not has_target or not payload.message or not payload.message.strip():
        return JSONResponse({"error": "phone and message are required"}, status_code=status.HTTP_400_BAD_REQUEST)

    try:
        service = get_message_service(supabase, telegram, whatsapp)
        result = await service.send_whatsapp_message(
            user_id=current_user.user_id,
            text=payload.message,
            conversation_id=payload.conversation_id,
            phone=payload.phone,
        )
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=status.HTTP_400_BAD_REQUEST)
    except ConversationNotFoundError as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(e))
    except Exception as e:
        logger.error(f"WhatsApp send error: {e}")
        return JSONResponse({"error": str(e)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JSONResponse(
        result.to_response(),
        status_code=status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST
    )


@router.get(
    "/messages",
    summary="WATI message history",
    description="Recent messages from WATI, reshaped to {messages: {items: [...]}}"
)
async def get_whatsapp_messages(
    current_user: User = Depends(get_current_user),
    whatsapp: WatiService = Depends(get_whatsapp_service)
):
    try:
        return await whatsapp.get_messages(page_size=100)
    except ProviderError as e:
        logger.error(f"Failed to fetch WATI messages: {e}")
        return JSONResponse({"error": str(e)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
