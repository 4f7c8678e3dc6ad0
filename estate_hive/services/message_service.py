"""
Message Service
Sends agent replies through Telegram or WhatsApp and records them on success.

Provider failures come back as SendResult(success=False, error=...) and are
never raised; nothing is written when the provider rejects the message.
"""
import logging
from typing import Optional, Union

from estate_hive.models.conversation import Platform
from estate_hive.models.webhook import SendResult
from estate_hive.services.conversation_service import ConversationService
from estate_hive.services.exceptions import (
    ConversationNotFoundError,
    ConversationStoreError,
    ProviderError,
)
from estate_hive.services.telegram_service import TelegramBotService
from estate_hive.services.whatsapp_service import WatiService
from estate_hive.utils.text_processing import digits_only, utc_now_iso

logger = logging.getLogger(__name__)


class MessageService:
    """Service for sending messages via the messaging providers"""

    def __init__(
        self,
        supabase,
        telegram_service: TelegramBotService,
        whatsapp_service: WatiService,
    ):
        """
        Initialize Message Service

        Args:
            supabase: Supabase client instance
            telegram_service: Telegram Bot API client
            whatsapp_service: WATI client
        """
        self.supabase = supabase
        self.conversations = ConversationService(supabase)
        self.telegram = telegram_service
        self.whatsapp = whatsapp_service

    async def _resolve_platform_target(self, conversation_id: int, platform: Platform) -> Union[int, str]:
        """
        Read the provider-side target (Telegram chat id / phone) of a conversation.

        Raises:
            ConversationNotFoundError: if missing or not a conversation of this platform
        """
        conversation = await self.conversations.get_conversation_row(conversation_id)

        if platform == Platform.TELEGRAM:
            target = conversation.get("telegram_chat_id")
        else:
            target = conversation.get("client_phone")
            if not target and conversation.get("platform") == Platform.WHATSAPP.value:
                target = conversation.get("platform_conversation_id")

        if not target:
            raise ConversationNotFoundError(
                f"Conversation not found or not a {platform.value.capitalize()} conversation"
            )
        # Telegram chat ids keep their stored integer type
        return target

    async def _record_sent_message(self, conversation_id: int, content: str, user_id: str) -> None:
        """Persist an agent message after a successful send; errors are logged only"""
        sent_at = utc_now_iso()
        try:
            await self.conversations.insert_message({
                "conversation_id": conversation_id,
                "sender_id": user_id,
                "content": content,
                "sent_at": sent_at,
                # Agent messages are automatically read
                "is_read": True,
            })
        except ConversationStoreError as e:
            logger.error(f"Error saving message to database: {e}")

        try:
            await self.conversations.touch_last_message(conversation_id, content, sent_at)
        except (ConversationStoreError, ConversationNotFoundError) as e:
            logger.error(f"Error updating conversation: {e}")

    async def send_telegram_message(
        self,
        user_id: str,
        text: str,
        conversation_id: Optional[int] = None,
        chat_id: Optional[Union[int, str]] = None,
        parse_mode: Optional[str] = "HTML",
    ) -> SendResult:
        """
        Send a Telegram message to a chat id, or to the chat of a conversation.

        Raises:
            ValueError: if neither chat_id nor conversation_id is given
            ConversationNotFoundError: if conversation_id does not resolve to a Telegram chat
        """
        telegram_chat_id = chat_id
        if telegram_chat_id in (None, "") and conversation_id is not None:
            telegram_chat_id = await self._resolve_platform_target(conversation_id, Platform.TELEGRAM)

        if telegram_chat_id in (None, ""):
            raise ValueError("Chat ID or Conversation ID is required")

        try:
            result = await self.telegram.send_message(telegram_chat_id, text, parse_mode=parse_mode)
        except ProviderError as e:
            logger.error(f"❌ Telegram send to {telegram_chat_id} failed: {e}")
            return SendResult(success=False, chat_id=telegram_chat_id, error=str(e))

        if conversation_id is not None:
            await self._record_sent_message(conversation_id, text, user_id)

        logger.info(f"✅ Telegram message sent to chat {telegram_chat_id}")
        return SendResult(success=True, message_id=result.get("message_id"), chat_id=telegram_chat_id)

    async def send_whatsapp_message(
        self,
        user_id: str,
        text: str,
        conversation_id: Optional[int] = None,
        phone: Optional[str] = None,
    ) -> SendResult:
        """
        Send a WhatsApp message through WATI to a phone, or to the client of a conversation.

        Raises:
            ValueError: if neither phone nor conversation_id is given
            ConversationNotFoundError: if conversation_id does not resolve to a phone
        """
        recipient = digits_only(phone) if phone else ""
        if not recipient and conversation_id is not None:
            recipient = digits_only(await self._resolve_platform_target(conversation_id, Platform.WHATSAPP))

        if not recipient:
            raise ValueError("phone and message are required")

        try:
            result = await self.whatsapp.send_message(recipient, text)
        except ProviderError as e:
            logger.error(f"❌ WhatsApp send to {recipient} failed: {e}")
            return SendResult(success=False, chat_id=recipient, error=str(e))

        if conversation_id is not None:
            await self._record_sent_message(conversation_id, text, user_id)

        message_id = None
        if isinstance(result, dict):
            message_id = result.get("id") or result.get("messageId")
        return SendResult(success=True, message_id=message_id, chat_id=recipient)


def get_message_service(
    supabase,
    telegram_service: TelegramBotService,
    whatsapp_service: WatiService,
) -> MessageService:
    """
    Create a MessageService from its collaborators.

    Args:
        supabase: Supabase client instance
    """
    return MessageService(supabase, telegram_service, whatsapp_service)
