"""
Conversation Service
CRUD, search and read-state operations on the shared conversations/messages tables
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List

from estate_hive.models.conversation import (
    Conversation,
    ConversationCreate,
    ConversationStats,
    ConversationUpdate,
    Message,
    Platform,
)
from estate_hive.services.exceptions import ConversationNotFoundError, ConversationStoreError
from estate_hive.utils.text_processing import utc_now_iso

logger = logging.getLogger(__name__)

CONVERSATIONS_TABLE = "conversations"
MESSAGES_TABLE = "messages"


def _escape_search_term(term: str) -> str:
    # Commas and parentheses are separators in PostgREST or() filters
    return re.sub(r"[,()]", " ", term).strip()


class ConversationService:
    """Service for conversations and messages stored in Supabase"""

    def __init__(self, supabase):
        """
        Initialize Conversation Service

        Args:
            supabase: Supabase client instance
        """
        self.supabase = supabase

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"❌ Failed to {action}: {e}")
            raise ConversationStoreError(f"Failed to {action}: {e}") from e

    # =================================================================
    # CONVERSATIONS
    # =================================================================

    async def list_conversations(self, platform: Optional[Platform] = None) -> List[Conversation]:
        """All conversations, most recent activity first"""
        query = self.supabase.table(CONVERSATIONS_TABLE).select("*")
        if platform:
            query = query.eq("platform", Platform(platform).value)
        query = query.order("last_message_at", desc=True)

        response = self._execute(query, "list conversations")
        return [Conversation(**row) for row in response.data or []]

    async def get_conversation_row(self, conversation_id: int) -> Dict[str, Any]:
        response = self._execute(
            self.supabase.table(CONVERSATIONS_TABLE).select("*").eq("id", conversation_id).limit(1),
            f"fetch conversation {conversation_id}"
        )
        if not response.data:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return response.data[0]

    async def get_conversation(self, conversation_id: int) -> Conversation:
        return Conversation(**await self.get_conversation_row(conversation_id))

    async def find_by_external_id(self, platform: Platform, external_id: str) -> Optional[Dict[str, Any]]:
        """
        Lookup by the (platform, external chat id) key.

        Rows written before platform_conversation_id existed only carry the
        platform column: telegram_chat_id for Telegram, client_phone for
        WhatsApp. Those are matched as a fallback.

        Returns the raw row so callers can read unread_count as stored.
        """
        platform = Platform(platform)
        external_id = str(external_id)
        action = f"look up {platform.value} conversation {external_id}"

        response = self._execute(
            self.supabase.table(CONVERSATIONS_TABLE)
                .select("*")
                .eq("platform", platform.value)
                .eq("platform_conversation_id", external_id)
                .limit(1),
            action
        )
        if response.data:
            return response.data[0]

        if platform == Platform.TELEGRAM:
            try:
                column, value = "telegram_chat_id", int(external_id)
            except ValueError:
                return None
        else:
            column, value = "client_phone", external_id

        response = self._execute(
            self.supabase.table(CONVERSATIONS_TABLE)
                .select("*")
                .eq("platform", platform.value)
                .eq(column, value)
                .limit(1),
            action
        )
        return response.data[0] if response.data else None

    async def insert_conversation(self, row: Dict[str, Any]) -> Dict[str, Any]:
        response = self._execute(
            self.supabase.table(CONVERSATIONS_TABLE).insert(row),
            "create conversation"
        )
        if not response.data:
            raise ConversationStoreError("Failed to create conversation: no row returned")
        return response.data[0]

    async def create_conversation(self, data: ConversationCreate, user_id: str) -> Conversation:
        row = data.model_dump(mode="json", exclude_none=True)
        if data.platform == Platform.TELEGRAM and data.telegram_chat_id is not None:
            row.setdefault("platform_conversation_id", str(data.telegram_chat_id))
        elif data.platform == Platform.WHATSAPP and data.client_phone:
            row.setdefault("platform_conversation_id", data.client_phone)

        row["user_id"] = user_id
        row.setdefault("unread_count", 0)

        created = await self.insert_conversation(row)
        logger.info(f"✅ Conversation created: {created['id']} ({data.platform.value})")
        return Conversation(**created)

    async def update_conversation_row(self, conversation_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        response = self._execute(
            self.supabase.table(CONVERSATIONS_TABLE).update(updates).eq("id", conversation_id),
            f"update conversation {conversation_id}"
        )
        if not response.data:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return response.data[0]

    async def update_conversation(self, conversation_id: int, updates: ConversationUpdate) -> Conversation:
        fields = updates.model_dump(mode="json", exclude_none=True)
        if not fields:
            return await self.get_conversation(conversation_id)
        return Conversation(**await self.update_conversation_row(conversation_id, fields))

    async def delete_conversation(self, conversation_id: int) -> None:
        response = self._execute(
            self.supabase.table(CONVERSATIONS_TABLE).delete().eq("id", conversation_id),
            f"delete conversation {conversation_id}"
        )
        if not response.data:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        logger.info(f"🗑️ Conversation deleted: {conversation_id}")

    async def touch_last_message(self, conversation_id: int, content: str, sent_at: str) -> Dict[str, Any]:
        """Update the last-message snapshot without touching unread_count"""
        return await self.update_conversation_row(conversation_id, {
            "last_message": content,
            "last_message_at": sent_at,
        })

    # =================================================================
    # MESSAGES
    # =================================================================

    async def get_messages(self, conversation_id: int) -> List[Message]:
        """Messages of a conversation, oldest first"""
        response = self._execute(
            self.supabase.table(MESSAGES_TABLE)
                .select("*")
                .eq("conversation_id", conversation_id)
                .order("sent_at", desc=False),
            f"fetch messages of conversation {conversation_id}"
        )
        return [Message(**row) for row in response.data or []]

    async def insert_message(self, row: Dict[str, Any]) -> Dict[str, Any]:
        response = self._execute(
            self.supabase.table(MESSAGES_TABLE).insert(row),
            f"save message for conversation {row.get('conversation_id')}"
        )
        if not response.data:
            raise ConversationStoreError("Failed to save message: no row returned")
        return response.data[0]

    async def create_message(self, conversation_id: int, content: str, user_id: str) -> Message:
        """
        Store an agent-authored message and refresh the conversation snapshot.

        Agent messages are written as already read.
        """
        await self.get_conversation_row(conversation_id)

        sent_at = utc_now_iso()
        created = await self.insert_message({
            "conversation_id": conversation_id,
            "sender_id": user_id,
            "content": content,
            "sent_at": sent_at,
            "is_read": True,
        })
        await self.touch_last_message(conversation_id, content, sent_at)
        return Message(**created)

    async def mark_messages_as_read(self, conversation_id: int) -> Conversation:
        """Flip is_read on client messages only and reset the unread counter"""
        await self.get_conversation_row(conversation_id)

        self._execute(
            self.supabase.table(MESSAGES_TABLE)
                .update({"is_read": True})
                .eq("conversation_id", conversation_id)
                .is_("sender_id", "null"),
            f"mark messages read in conversation {conversation_id}"
        )
        return Conversation(**await self.update_conversation_row(conversation_id, {"unread_count": 0}))

    # =================================================================
    # SEARCH & STATS
    # =================================================================

    async def search_conversations(self, term: str) -> List[Conversation]:
        """Case-insensitive match on client name or Telegram username"""
        term = _escape_search_term(term)
        if not term:
            return await self.list_conversations()

        response = self._execute(
            self.supabase.table(CONVERSATIONS_TABLE)
                .select("*")
                .or_(f"client_name.ilike.%{term}%,telegram_username.ilike.%{term}%")
                .order("last_message_at", desc=True),
            "search conversations"
        )
        return [Conversation(**row) for row in response.data or []]

    async def search_messages(self, term: str, conversation_id: Optional[int] = None) -> List[Message]:
        """Case-insensitive content match, newest first"""
        query = self.supabase.table(MESSAGES_TABLE).select("*").ilike("content", f"%{term}%")
        if conversation_id is not None:
            query = query.eq("conversation_id", conversation_id)

        response = self._execute(query.order("sent_at", desc=True), "search messages")
        return [Message(**row) for row in response.data or []]

    async def get_conversation_stats(self) -> ConversationStats:
        conversations = self._execute(
            self.supabase.table(CONVERSATIONS_TABLE).select("id, platform, unread_count"),
            "fetch conversation stats"
        ).data or []

        since = (datetime.now(timezone.utc) - timedelta(hours=24)).isoformat()
        recent_messages = self._execute(
            self.supabase.table(MESSAGES_TABLE).select("id, sent_at").gte("sent_at", since),
            "fetch message stats"
        ).data or []

        return ConversationStats(
            total_conversations=len(conversations),
            whatsapp_conversations=sum(1 for c in conversations if c.get("platform") == Platform.WHATSAPP.value),
            telegram_conversations=sum(1 for c in conversations if c.get("platform") == Platform.TELEGRAM.value),
            total_unread=sum(c.get("unread_count") or 0 for c in conversations),
            messages_last_24h=len(recent_messages),
        )


def get_conversation_service(supabase) -> ConversationService:
    """
    Create a ConversationService bound to the given client.

    Args:
        supabase: Supabase client instance
    """
    return ConversationService(supabase)
