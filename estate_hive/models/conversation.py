"""
Conversation Models
Pydantic models for conversations and messages shared by Telegram and WhatsApp
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum


class Platform(str, Enum):
    """Messaging platform a conversation belongs to"""
    TELEGRAM = "telegram"
    WHATSAPP = "whatsapp"


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    BLOCKED = "blocked"
    SPAM = "spam"
    RESOLVED = "resolved"
    PENDING = "pending"


# ============================================
# CONVERSATION MODELS
# ============================================

class ConversationBase(BaseModel):
    platform: Platform = Field(..., description="Messaging platform")
    platform_conversation_id: Optional[str] = Field(None, description="External chat/contact identifier")
    telegram_chat_id: Optional[int] = Field(None, description="Telegram chat ID (telegram only)")
    telegram_username: Optional[str] = Field(None, description="Telegram username or first name")
    client_phone: Optional[str] = Field(None, description="Client phone number, digits only (whatsapp only)")
    client_name: Optional[str] = Field(None, description="Display name of the client")


class ConversationCreate(ConversationBase):
    """Request model for creating a conversation from the UI"""

    class Config:
        json_schema_extra = {
            "example": {
                "platform": "whatsapp",
                "platform_conversation_id": "917259778145",
                "client_phone": "917259778145",
                "client_name": "John Doe"
            }
        }


class ConversationUpdate(BaseModel):
    """Partial update; only provided fields are written"""
    client_name: Optional[str] = None
    telegram_username: Optional[str] = None
    client_phone: Optional[str] = None
    status: Optional[ConversationStatus] = None
    last_message: Optional[str] = None
    last_message_at: Optional[str] = None
    unread_count: Optional[int] = Field(None, ge=0)


class Conversation(ConversationBase):
    id: int
    # Rows may carry platforms this service does not ingest
    platform: str = Field(..., description="Messaging platform as stored")
    user_id: Optional[str] = Field(None, description="Owning user")
    status: Optional[str] = Field(None, description="Conversation status")
    last_message: Optional[str] = None
    last_message_at: Optional[str] = None
    unread_count: int = Field(0, description="Client messages not yet read by an agent")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True


# ============================================
# MESSAGE MODELS
# ============================================

class MessageCreate(BaseModel):
    """Request model for an agent message written from the UI"""
    content: str = Field(..., min_length=1, description="Message text")


class Message(BaseModel):
    id: int
    conversation_id: int
    sender_id: Optional[str] = Field(None, description="None for client messages, user id for agent messages")
    content: str
    sent_at: Optional[str] = None
    is_read: bool = False
    created_at: Optional[str] = None


class ConversationStats(BaseModel):
    total_conversations: int = 0
    whatsapp_conversations: int = 0
    telegram_conversations: int = 0
    total_unread: int = 0
    messages_last_24h: int = 0


class ConversationListResponse(BaseModel):
    conversations: List[Conversation]
    total: int


class MessageListResponse(BaseModel):
    messages: List[Message]
    total: int
