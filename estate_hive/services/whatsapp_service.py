"""
WhatsApp Service
Handles integration with the WATI WhatsApp API
"""
import logging
import httpx
from typing import Optional, Dict, Any

from estate_hive.config import settings
from estate_hive.services.exceptions import ProviderError

logger = logging.getLogger(__name__)


def normalize_messages_response(data: Any) -> Dict[str, Any]:
    """
    Reshape a getMessages response into {"messages": {"items": [...]}}.

    WATI has returned the list at the top level, under `messages`, `data`,
    `result`, or some other list-valued key depending on account and version.
    """
    if isinstance(data, list):
        return {"messages": {"items": data}}

    if not isinstance(data, dict):
        return {"messages": {"items": []}}

    if "messages" in data:
        return data

    for key in ("data", "result"):
        if isinstance(data.get(key), list):
            return {"messages": {"items": data[key]}}

    for key, value in data.items():
        if isinstance(value, list):
            return {"messages": {"items": value}}

    logger.warning("Could not find messages array in response, returning empty list")
    return {"messages": {"items": []}}


class WatiService:
    """Service for WATI messaging"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize WATI Service

        Args:
            base_url: WATI API base URL (default: settings.WATI_BASE_URL)
            api_key: WATI API key, sent as the Authorization header (default: settings.WATI_API_KEY)
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = (base_url or settings.WATI_BASE_URL or "").rstrip("/")
        self.api_key = api_key or settings.WATI_API_KEY
        self.timeout = settings.HTTP_TIMEOUT_SECONDS
        self.transport = transport

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": self.api_key or "",
        }

    def _ensure_configured(self) -> None:
        if not self.base_url or not self.api_key:
            raise ProviderError(
                "Missing WATI environment variables: WATI_BASE_URL and WATI_API_KEY are required"
            )

    async def send_message(self, recipient: str, text: str) -> Dict[str, Any]:
        """
        Send a WhatsApp text message.

        Args:
            recipient: Phone number (digits)
            text: Message text

        Returns:
            Parsed WATI response

        Raises:
            ProviderError: if WATI is not configured, unreachable or answers non-2xx
        """
        self._ensure_configured()
        url = f"{self.base_url}/messages"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    url,
                    json={"recipient": recipient, "text": text},
                    headers=self._get_headers()
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_msg = f"WATI API request failed: {e.response.status_code} {e.response.reason_phrase}: {e.response.text}"
            logger.error(error_msg)
            raise ProviderError(error_msg, status_code=e.response.status_code)
        except httpx.HTTPError as e:
            logger.error(f"WATI API unreachable: {e}")
            raise ProviderError(f"WATI API unreachable: {e}")

        logger.info(f"✅ WhatsApp message sent to {recipient}")
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    async def get_messages(self, page_size: int = 100) -> Dict[str, Any]:
        """
        Fetch recent message history from WATI.

        Returns:
            {"messages": {"items": [...]}}
        """
        self._ensure_configured()
        url = f"{self.base_url}/api/v1/getMessages"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, params={"pageSize": page_size}, headers=self._get_headers())
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Wati API Error: {e.response.status_code} {e.response.text}")
            raise ProviderError(
                f"Failed to fetch messages from Wati. Status: {e.response.status_code}",
                status_code=e.response.status_code
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"WATI API unreachable: {e}")

        return normalize_messages_response(response.json())


# Singleton instance
_wati_service: Optional[WatiService] = None


def get_whatsapp_service() -> WatiService:
    global _wati_service
    if _wati_service is None:
        _wati_service = WatiService()
    return _wati_service
