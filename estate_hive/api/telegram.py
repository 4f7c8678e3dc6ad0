"""
Telegram API Router
Outbound send, voice-file proxy and bot webhook setup
"""
from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.responses import JSONResponse, Response
import logging

from estate_hive.auth.dependencies import get_current_user
from estate_hive.models.user import User
from estate_hive.models.webhook import FileProxyRequest, SendTelegramMessageRequest, WebhookSetupRequest
from estate_hive.services.exceptions import ConversationNotFoundError, ProviderError
from estate_hive.services.message_service import get_message_service
from estate_hive.services.supabase_client import get_supabase_client
from estate_hive.services.telegram_service import get_telegram_service, TelegramBotService
from estate_hive.services.whatsapp_service import get_whatsapp_service, WatiService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/telegram", tags=["telegram"])

OPEN_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


# --- Send message ---
@router.post(
    "/send",
    summary="Send Telegram message",
    description="Send a message to a Telegram chat by chatId or conversationId and record it on success"
)
async def send_telegram_message(
    payload: SendTelegramMessageRequest,
    current_user: User = Depends(get_current_user),
    supabase=Depends(get_supabase_client),
    telegram: TelegramBotService = Depends(get_telegram_service),
    whatsapp: WatiService = Depends(get_whatsapp_service)
):
    """
    Returns {success, messageId, chatId}, or {success: false, error} with
    400 when Telegram rejects the message.
    """
    if not payload.message:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Message is required")

    try:
        service = get_message_service(supabase, telegram, whatsapp)
        result = await service.send_telegram_message(
            user_id=current_user.user_id,
            text=payload.message,
            conversation_id=payload.conversation_id,
            chat_id=payload.chat_id,
            parse_mode=payload.parse_mode,
        )
    except ValueError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except ConversationNotFoundError as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(e))
    except Exception as e:
        logger.error(f"Send message error: {e}")
        return JSONResponse(
            {"success": False, "error": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return JSONResponse(
        result.to_response(),
        status_code=status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST
    )


# --- File proxy ---
@router.post(
    "/download",
    summary="Download Telegram file",
    description="Proxy a voice file from the Telegram file API, with a content type guessed from the extension"
)
async def download_telegram_file(
    payload: FileProxyRequest,
    telegram: TelegramBotService = Depends(get_telegram_service)
):
    """
    Buffers the whole file in memory; no caching and no size limit.

    A voice message only carries a file_id; it is resolved to a file_path
    with getFile before downloading.
    """
    if not payload.bot_token or not (payload.file_path or payload.file_id):
        return JSONResponse(
            {"error": "Missing required parameters"},
            status_code=status.HTTP_400_BAD_REQUEST,
            headers=OPEN_CORS_HEADERS
        )

    try:
        file_path = payload.file_path
        if not file_path:
            file_path = (await telegram.get_file(payload.file_id)).get("file_path")
            if not file_path:
                raise ProviderError(f"Telegram returned no file_path for {payload.file_id}")
        content, content_type = await telegram.download_file(payload.bot_token, file_path)
    except Exception as e:
        logger.error(f"Telegram proxy error: {e}")
        return JSONResponse(
            {"error": "Failed to download file from Telegram", "message": str(e)},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            headers=OPEN_CORS_HEADERS
        )

    return Response(
        content=content,
        media_type=content_type,
        headers={**OPEN_CORS_HEADERS, "Content-Length": str(len(content))}
    )


# --- Bot webhook setup ---
@router.post("/webhook/setup", summary="Register the bot webhook URL with Telegram")
async def setup_telegram_webhook(
    payload: WebhookSetupRequest,
    current_user: User = Depends(get_current_user),
    telegram: TelegramBotService = Depends(get_telegram_service)
):
    try:
        return await telegram.set_webhook(payload.url)
    except ProviderError as e:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, str(e))


@router.get("/webhook/info", summary="Show the bot's current webhook configuration")
async def get_telegram_webhook_info(
    current_user: User = Depends(get_current_user),
    telegram: TelegramBotService = Depends(get_telegram_service)
):
    try:
        return await telegram.get_webhook_info()
    except ProviderError as e:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, str(e))
