"""
Webhook API Endpoints
Receive incoming messages from Telegram and WATI (WhatsApp)
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
import json
import logging

from estate_hive.middleware.webhook_auth import require_wati_signature
from estate_hive.services.message_router_service import get_message_router_service
from estate_hive.services.supabase_client import get_supabase_client
from estate_hive.services.telegram_service import get_telegram_service, TelegramBotService
from estate_hive.utils.normalizers import (
    normalize_telegram_update,
    normalize_wati_event,
    normalize_wati_signed_message,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


# ============================================
# TELEGRAM
# ============================================

@router.post(
    "/telegram",
    response_class=PlainTextResponse,
    summary="Telegram Bot API webhook",
    description="Receives Telegram Update objects. Always answers 200 OK unless processing crashes."
)
async def telegram_webhook(
    request: Request,
    supabase=Depends(get_supabase_client),
    telegram: TelegramBotService = Depends(get_telegram_service)
):
    """
    Telegram webhook.

    Skipped updates (no text, edited messages, callback queries) still get
    200 so Telegram does not redeliver them.
    """
    try:
        logger.info("📨 Telegram Webhook received")
        update = await request.json()

        inbound = normalize_telegram_update(update)
        if inbound:
            result = await get_message_router_service(supabase).route_inbound(inbound)

            # Typing indicator only for private chats, not groups
            if result and inbound.chat_type == "private":
                await telegram.send_chat_action(inbound.external_chat_id, "typing")

        return PlainTextResponse("OK", status_code=status.HTTP_200_OK)

    except Exception:
        logger.exception("Telegram webhook processing error")
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


# ============================================
# WATI (WHATSAPP)
# ============================================

@router.post(
    "/wati",
    response_class=PlainTextResponse,
    summary="WATI webhook",
    description="Receives WATI events; only eventType 'message' is stored. No authentication."
)
async def wati_webhook(
    request: Request,
    supabase=Depends(get_supabase_client)
):
    """WATI webhook (unsigned)"""
    try:
        logger.info("📨 WATI Webhook received")
        payload = await request.json()

        if request.headers.get("x-wati-signature"):
            logger.debug("Unsigned WATI endpoint received a signature header; use /webhook/wati/signed to verify it")

        inbound = normalize_wati_event(payload)
        if inbound:
            await get_message_router_service(supabase).route_inbound(inbound)

        return PlainTextResponse("Webhook processed successfully", status_code=status.HTTP_200_OK)

    except Exception:
        logger.exception("WATI webhook processing error")
        return PlainTextResponse("Internal server error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.post(
    "/wati/signed",
    summary="WATI webhook (signature verified)",
    description="Verifies x-wati-signature (HMAC-SHA256 of the raw body) before any processing."
)
async def wati_signed_webhook(
    raw_body: bytes = Depends(require_wati_signature),
    supabase=Depends(get_supabase_client)
):
    """WATI webhook with signature verification"""
    try:
        payload = json.loads(raw_body)
    except ValueError:
        return JSONResponse({"error": "Invalid JSON payload"}, status_code=status.HTTP_400_BAD_REQUEST)

    try:
        inbound = normalize_wati_signed_message(payload)
        if not inbound:
            return JSONResponse({"error": "Missing message fields"}, status_code=status.HTTP_400_BAD_REQUEST)

        result = await get_message_router_service(supabase).route_inbound(inbound)
        if not result:
            return JSONResponse({"error": "Failed to save message"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return JSONResponse({"success": True})

    except Exception:
        logger.exception("Signed WATI webhook processing error")
        return JSONResponse({"error": "Internal server error"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
