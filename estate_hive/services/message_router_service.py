"""
Message Router Service
Stores inbound Telegram/WhatsApp messages: conversation upsert + message insert.

The upsert is a read-then-write against Supabase with no transaction:
concurrent deliveries for a new external id can create duplicate
conversations, and concurrent deliveries for an existing one can lose
unread increments.
"""
import logging
from typing import Optional, Dict, Any, Tuple

from estate_hive.config import settings
from estate_hive.models.conversation import Platform
from estate_hive.models.webhook import InboundMessage, IngestResult
from estate_hive.services.conversation_service import ConversationService
from estate_hive.services.exceptions import ConversationNotFoundError, ConversationStoreError

logger = logging.getLogger(__name__)


class MessageRouterService:
    """Service for routing incoming messages to the right conversation"""

    def __init__(self, supabase):
        """
        Initialize Message Router Service

        Args:
            supabase: Supabase client instance
        """
        self.supabase = supabase
        self.conversations = ConversationService(supabase)

    def resolve_owner_user_id(self) -> Optional[str]:
        """
        User that owns conversations created by webhooks.

        DEFAULT_OWNER_USER_ID when configured, otherwise the first user in the
        Supabase user store.
        """
        if settings.DEFAULT_OWNER_USER_ID:
            return settings.DEFAULT_OWNER_USER_ID

        try:
            result = self.supabase.auth.admin.list_users()
        except Exception as e:
            logger.error(f"❌ Failed to list users: {e}")
            return None

        users = getattr(result, "users", result) or []
        if not users:
            logger.error("No users found in system")
            return None

        first = users[0]
        return str(first["id"] if isinstance(first, dict) else first.id)

    def _new_conversation_row(self, inbound: InboundMessage, owner_id: str) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "user_id": owner_id,
            "platform": inbound.platform.value,
            "platform_conversation_id": inbound.external_chat_id,
            "client_name": inbound.sender_display_name,
            "last_message": inbound.text,
            "last_message_at": inbound.timestamp,
            "unread_count": 1,
        }
        if inbound.platform == Platform.TELEGRAM:
            row["telegram_chat_id"] = int(inbound.external_chat_id)
            row["telegram_username"] = inbound.username
        else:
            row["client_phone"] = inbound.external_chat_id
        return row

    async def _bump_conversation(self, conversation: Dict[str, Any], inbound: InboundMessage) -> Dict[str, Any]:
        updates: Dict[str, Any] = {
            "last_message": inbound.text,
            "last_message_at": inbound.timestamp,
            # Read-modify-write on the value seen at lookup time
            "unread_count": (conversation.get("unread_count") or 0) + 1,
        }
        if inbound.platform == Platform.TELEGRAM and inbound.username:
            # Username may have changed since the conversation was created
            updates["telegram_username"] = inbound.username
        if not conversation.get("platform_conversation_id") and conversation.get("platform") == inbound.platform.value:
            # Legacy row matched on telegram_chat_id/client_phone
            updates["platform_conversation_id"] = inbound.external_chat_id

        try:
            return await self.conversations.update_conversation_row(conversation["id"], updates)
        except (ConversationStoreError, ConversationNotFoundError) as e:
            # The message is still stored; only the snapshot is stale
            logger.error(f"❌ Error updating conversation {conversation['id']}: {e}")
            return conversation

    async def upsert_conversation(self, inbound: InboundMessage) -> Optional[Tuple[Dict[str, Any], bool]]:
        """
        Find the conversation for (platform, external id) or create it.

        Returns:
            (conversation row, created) or None when no owner could be resolved

        Raises:
            ConversationStoreError: if the lookup or insert fails
        """
        if inbound.conversation_id is not None:
            try:
                existing = await self.conversations.get_conversation_row(inbound.conversation_id)
                return await self._bump_conversation(existing, inbound), False
            except ConversationNotFoundError:
                logger.warning(
                    f"Conversation {inbound.conversation_id} from payload not found, "
                    f"matching on {inbound.platform.value} id {inbound.external_chat_id}"
                )

        existing = await self.conversations.find_by_external_id(inbound.platform, inbound.external_chat_id)
        if existing:
            return await self._bump_conversation(existing, inbound), False

        owner_id = self.resolve_owner_user_id()
        if not owner_id:
            return None

        created = await self.conversations.insert_conversation(self._new_conversation_row(inbound, owner_id))
        logger.info(
            f"✅ Conversation created: {created['id']} "
            f"({inbound.platform.value} {inbound.external_chat_id})"
        )
        return created, True

    async def route_inbound(self, inbound: InboundMessage) -> Optional[IngestResult]:
        """
        Store one inbound event: conversation upsert, then message insert.

        Database failures are logged and the event is dropped (returns None);
        nothing is retried.
        """
        try:
            upserted = await self.upsert_conversation(inbound)
            if upserted is None:
                return None
            conversation, created = upserted

            message = await self.conversations.insert_message({
                "conversation_id": conversation["id"],
                "sender_id": None,
                "content": inbound.text,
                "sent_at": inbound.timestamp,
                "is_read": False,
            })
        except ConversationStoreError as e:
            logger.error(f"❌ Dropping {inbound.platform.value} message from {inbound.external_chat_id}: {e}")
            return None

        logger.info(
            f"✅ {inbound.platform.value} message saved from {inbound.sender_display_name}: "
            f"conversation={conversation['id']}, new={created}"
        )
        return IngestResult(
            conversation_id=conversation["id"],
            message_id=message.get("id"),
            is_new_conversation=created,
        )


def get_message_router_service(supabase) -> MessageRouterService:
    """
    Create a MessageRouterService bound to the given client.

    Args:
        supabase: Supabase client instance
    """
    return MessageRouterService(supabase)
