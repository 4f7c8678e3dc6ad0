"""
Webhook Models
Pydantic models for normalized inbound messages and the outbound/proxy endpoints
"""
from pydantic import BaseModel, Field
from typing import Optional, Union

from estate_hive.models.conversation import Platform


# ============================================
# NORMALIZED INBOUND MESSAGE
# ============================================

class InboundMessage(BaseModel):
    """Provider-independent shape every webhook payload is reduced to"""
    platform: Platform = Field(..., description="Platform the event came from")
    external_chat_id: str = Field(..., description="Telegram chat id or WhatsApp phone (digits only)")
    sender_display_name: str = Field(..., description="Best available display name of the sender")
    username: Optional[str] = Field(None, description="Telegram username (or first name fallback)")
    text: str = Field(..., description="Message text")
    timestamp: str = Field(..., description="Message timestamp (ISO 8601, UTC)")
    conversation_id: Optional[int] = Field(None, description="Explicit conversation id, when the provider sends one")
    chat_type: Optional[str] = Field(None, description="Telegram chat type (private, group, ...)")

    class Config:
        json_schema_extra = {
            "example": {
                "platform": "telegram",
                "external_chat_id": "12345678",
                "sender_display_name": "John Doe",
                "username": "johndoe",
                "text": "Hello, I'm interested in properties",
                "timestamp": "2022-01-20T12:10:00+00:00",
                "chat_type": "private"
            }
        }


class IngestResult(BaseModel):
    """Outcome of storing one inbound event"""
    conversation_id: int
    message_id: Optional[int] = None
    is_new_conversation: bool = False


# ============================================
# OUTBOUND SEND
# ============================================

class SendTelegramMessageRequest(BaseModel):
    """Body of POST /telegram/send; either conversationId or chatId is required"""
    conversation_id: Optional[int] = Field(None, alias="conversationId")
    chat_id: Optional[Union[int, str]] = Field(None, alias="chatId")
    message: Optional[str] = Field(None, description="Message text")
    parse_mode: str = Field(default="HTML", alias="parseMode")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "conversationId": 123,
                "message": "Hello from Estate Hive CRM!"
            }
        }


class SendWhatsAppMessageRequest(BaseModel):
    """Body of POST /whatsapp/send"""
    phone: Optional[str] = Field(None, description="Recipient phone number")
    message: Optional[str] = Field(None, description="Message text")
    conversation_id: Optional[int] = Field(None, alias="conversationId")

    class Config:
        populate_by_name = True


class SendResult(BaseModel):
    """Structured outcome of an outbound send; failures are never raised"""
    success: bool
    message_id: Optional[Union[int, str]] = Field(None, description="Provider message id")
    chat_id: Optional[Union[int, str]] = Field(None, description="Provider chat id")
    error: Optional[str] = None

    def to_response(self) -> dict:
        if self.success:
            return {"success": True, "messageId": self.message_id, "chatId": self.chat_id}
        return {"success": False, "error": self.error or "Failed to send message"}


# ============================================
# FILE PROXY / BOT SETUP
# ============================================

class FileProxyRequest(BaseModel):
    bot_token: Optional[str] = Field(None, description="Telegram bot token")
    file_path: Optional[str] = Field(None, description="File path returned by getFile")
    file_id: Optional[str] = Field(None, description="Telegram file_id, resolved with getFile when file_path is absent")


class WebhookSetupRequest(BaseModel):
    url: str = Field(..., description="Public URL Telegram should deliver updates to")
