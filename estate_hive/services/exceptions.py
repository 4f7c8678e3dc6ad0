"""
Service exceptions
Raised by the conversation store and provider clients, mapped to HTTP in the routers
"""
from typing import Optional


class ConversationStoreError(Exception):
    """A Supabase read or write failed"""
    pass


class ConversationNotFoundError(Exception):
    """No conversation with the given id (or not one for the requested platform)"""
    pass


class ProviderError(Exception):
    """A messaging provider (Telegram, WATI) call failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
