"""
Inbound payload normalizers

Telegram and WATI deliver differently shaped payloads and WATI is not
consistent about field names. Each normalizer reduces one payload to an
InboundMessage, or returns None when the payload has nothing to ingest.
"""
import logging
from typing import Any, Dict, Optional

from estate_hive.models.conversation import Platform
from estate_hive.models.webhook import InboundMessage
from estate_hive.utils.text_processing import (
    digits_only,
    epoch_to_iso,
    to_iso_timestamp,
    utc_now_iso,
)

logger = logging.getLogger(__name__)


def _first_present(source: Dict[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among the fallback field names"""
    for key in keys:
        value = source.get(key)
        if value not in (None, ""):
            return value
    return None


# ============================================
# TELEGRAM
# ============================================

def normalize_telegram_update(update: Dict[str, Any]) -> Optional[InboundMessage]:
    """
    Normalize a Telegram Bot API Update.

    Only `message` updates are ingested; edited messages and callback
    queries are skipped, as are messages without text or caption.
    """
    if not isinstance(update, dict):
        logger.warning("Telegram update is not a JSON object, skipping")
        return None

    message = update.get("message")
    if message and not isinstance(message, dict):
        logger.warning("Telegram message is not a JSON object, skipping")
        return None
    if not message:
        if update.get("edited_message"):
            logger.info("Edited message received, skipping")
        elif update.get("callback_query"):
            logger.info("Callback query received, skipping")
        else:
            logger.info(f"Unhandled Telegram update (keys={list(update.keys())}), skipping")
        return None

    chat = message.get("chat")
    if not isinstance(chat, dict):
        chat = {}
    chat_id = chat.get("id")
    if isinstance(chat_id, bool) or not isinstance(chat_id, (int, str)) or not str(chat_id).lstrip("-").isdigit():
        logger.warning("Telegram message without a numeric chat.id, skipping")
        return None

    text = message.get("text") or message.get("caption") or ""
    if not isinstance(text, str) or not text:
        logger.info(f"No text content in Telegram message from chat {chat_id}, skipping")
        return None

    sender = message.get("from")
    if not isinstance(sender, dict):
        sender = {}
    username = sender.get("username") or sender.get("first_name") or "Unknown"
    full_name = f"{sender.get('first_name') or ''} {sender.get('last_name') or ''}".strip()

    date = message.get("date")
    timestamp = epoch_to_iso(date) if isinstance(date, (int, float)) else utc_now_iso()

    return InboundMessage(
        platform=Platform.TELEGRAM,
        external_chat_id=str(chat_id),
        sender_display_name=full_name or username,
        username=username,
        text=text,
        timestamp=timestamp,
        chat_type=chat.get("type"),
    )


# ============================================
# WATI (WHATSAPP)
# ============================================

def normalize_wati_event(payload: Dict[str, Any]) -> Optional[InboundMessage]:
    """
    Normalize a WATI webhook event.

    Expected shape:
        {"eventType": "message", "data": {"whatsappNumber": "...", "text": "...", ...}}

    Field fallbacks: whatsappNumber/phoneNumber, text/message,
    sender.name/name, created/timestamp.
    """
    if not isinstance(payload, dict):
        logger.warning("WATI payload is not a JSON object, skipping")
        return None

    event_type = payload.get("eventType")
    data = payload.get("data")
    if event_type != "message" or not isinstance(data, dict):
        logger.info(f"Unhandled webhook event: {event_type}")
        return None

    phone = _first_present(data, "whatsappNumber", "phoneNumber")
    text = _first_present(data, "text", "message")

    if not phone or not text or not isinstance(text, str):
        logger.warning("Invalid message data: missing phone number or text")
        return None

    external_id = digits_only(phone)
    if not external_id:
        logger.warning(f"Invalid message data: phone number '{phone}' has no digits")
        return None

    sender = data.get("sender") if isinstance(data.get("sender"), dict) else {}
    sender_name = sender.get("name") or data.get("name") or f"WhatsApp +{external_id}"

    timestamp = to_iso_timestamp(_first_present(data, "created", "timestamp")) or utc_now_iso()

    return InboundMessage(
        platform=Platform.WHATSAPP,
        external_chat_id=external_id,
        sender_display_name=sender_name,
        text=text,
        timestamp=timestamp,
    )


def _extract_signed_text(message: Dict[str, Any], payload: Dict[str, Any]) -> Optional[str]:
    text = message.get("text")
    if isinstance(text, dict):
        return text.get("body") or None
    if isinstance(text, str) and text:
        return text
    for candidate in (message.get("body"), message.get("message"), payload.get("text")):
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


def normalize_wati_signed_message(payload: Dict[str, Any]) -> Optional[InboundMessage]:
    """
    Normalize the payload of the signed WATI endpoint.

    The message is taken from `message`, else `messages[0]`, else the payload
    itself. Sender falls back through sender/from/waId, text through
    text.body/text/body/message/payload.text. An explicit conversation id
    (conversation_id/conversationId/conversation.id) is kept when present.
    """
    if not isinstance(payload, dict):
        return None

    message = payload.get("message")
    if not isinstance(message, dict):
        messages = payload.get("messages")
        if isinstance(messages, list) and messages and isinstance(messages[0], dict):
            message = messages[0]
        else:
            message = payload

    sender = _first_present(message, "sender", "from", "waId")
    text = _extract_signed_text(message, payload)
    if not sender or not text:
        logger.warning("Signed WATI payload missing sender or text")
        return None

    external_id = digits_only(sender) if not isinstance(sender, dict) else digits_only(sender.get("number"))
    if not external_id:
        logger.warning("Signed WATI payload sender has no digits")
        return None

    conversation = message.get("conversation") if isinstance(message.get("conversation"), dict) else {}
    raw_conversation_id = _first_present(message, "conversation_id", "conversationId") or conversation.get("id")
    conversation_id = None
    if raw_conversation_id is not None:
        try:
            conversation_id = int(raw_conversation_id)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric conversation id '{raw_conversation_id}'")

    raw_timestamp = message.get("timestamp")
    if raw_timestamp is None:
        raw_timestamp = payload.get("timestamp")
    timestamp = to_iso_timestamp(raw_timestamp) or utc_now_iso()

    return InboundMessage(
        platform=Platform.WHATSAPP,
        external_chat_id=external_id,
        sender_display_name=f"WhatsApp +{external_id}",
        text=text,
        timestamp=timestamp,
        conversation_id=conversation_id,
    )
