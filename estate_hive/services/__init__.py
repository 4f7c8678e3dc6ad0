"""Business logic services"""
from .conversation_service import ConversationService, get_conversation_service
from .message_router_service import MessageRouterService, get_message_router_service
from .message_service import MessageService, get_message_service
from .telegram_service import TelegramBotService, get_telegram_service
from .whatsapp_service import WatiService, get_whatsapp_service

__all__ = [
    "ConversationService",
    "get_conversation_service",
    "MessageRouterService",
    "get_message_router_service",
    "MessageService",
    "get_message_service",
    "TelegramBotService",
    "get_telegram_service",
    "WatiService",
    "get_whatsapp_service",
]
