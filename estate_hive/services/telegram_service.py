"""
Telegram Service
Thin client over the Telegram Bot API (sendMessage, chat actions, files, webhook setup)
"""
import logging
import httpx
from typing import Optional, Dict, Any, Tuple, Union

from estate_hive.config import settings
from estate_hive.services.exceptions import ProviderError
from estate_hive.utils.text_processing import guess_audio_content_type

logger = logging.getLogger(__name__)

ChatId = Union[int, str]


class TelegramBotService:
    def __init__(
        self,
        bot_token: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bot_token = bot_token or settings.TELEGRAM_BOT_TOKEN
        self.base_url = (base_url or settings.TELEGRAM_API_BASE_URL).rstrip("/")
        self.timeout = settings.HTTP_TIMEOUT_SECONDS
        # Injected in tests; None means a real network transport
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _method_url(self, method: str) -> str:
        return f"{self.base_url}/bot{self.bot_token}/{method}"

    def file_url(self, bot_token: str, file_path: str) -> str:
        return f"{self.base_url}/file/bot{bot_token}/{file_path.lstrip('/')}"

    async def _call(self, method: str, payload: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
        """
        POST a Bot API method.

        Returns (status_code, parsed body). The body is returned even on
        non-2xx because Telegram puts the error `description` there.

        Raises:
            ProviderError: on transport errors or a non-JSON body
        """
        try:
            async with self._client() as client:
                response = await client.post(self._method_url(method), json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Telegram {method} request failed: {e}")
            raise ProviderError(f"Telegram API unreachable: {e}")

        try:
            body = response.json()
        except ValueError:
            raise ProviderError(
                f"Telegram API returned non-JSON response ({response.status_code})",
                status_code=response.status_code
            )

        return response.status_code, body

    # =================================================================
    # MESSAGES
    # =================================================================

    async def send_message(self, chat_id: ChatId, text: str, parse_mode: Optional[str] = "HTML") -> Dict[str, Any]:
        """
        Send a text message.

        Returns:
            The Bot API result object (contains message_id)

        Raises:
            ProviderError: on non-2xx or `ok: false`, carrying Telegram's description
        """
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode

        status_code, body = await self._call("sendMessage", payload)

        if status_code >= 400 or not body.get("ok"):
            description = body.get("description") or "Failed to send message"
            logger.error(f"Telegram API error ({status_code}): {body}")
            raise ProviderError(description, status_code=status_code)

        return body.get("result") or {}

    async def send_chat_action(self, chat_id: ChatId, action: str = "typing") -> bool:
        """Best-effort chat action; failures are logged and reported as False"""
        try:
            status_code, body = await self._call("sendChatAction", {"chat_id": chat_id, "action": action})
        except ProviderError as e:
            logger.error(f"Error sending {action} action: {e}")
            return False

        if status_code >= 400 or not body.get("ok"):
            logger.error(f"Failed to send {action} action: {body}")
            return False
        return True

    # =================================================================
    # FILES
    # =================================================================

    async def get_file(self, file_id: str) -> Dict[str, Any]:
        """Resolve a file_id to its File object (file_path, file_size)"""
        status_code, body = await self._call("getFile", {"file_id": file_id})
        if status_code >= 400 or not body.get("ok"):
            raise ProviderError("Failed to get file info", status_code=status_code)
        return body.get("result") or {}

    async def download_file(self, bot_token: str, file_path: str) -> Tuple[bytes, str]:
        """
        Download a file from the Bot API file endpoint into memory.

        Returns:
            (content, content_type) with content type guessed from the extension

        Raises:
            ProviderError: on transport errors or non-2xx
        """
        url = self.file_url(bot_token, file_path)

        try:
            async with self._client() as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise ProviderError(f"Telegram file download failed: {e}")

        if response.status_code >= 400:
            raise ProviderError(f"Telegram API error: {response.status_code}", status_code=response.status_code)

        return response.content, guess_audio_content_type(file_path)

    # =================================================================
    # WEBHOOK SETUP
    # =================================================================

    async def set_webhook(self, url: str) -> Dict[str, Any]:
        status_code, body = await self._call("setWebhook", {"url": url})
        if status_code >= 400 or not body.get("ok"):
            raise ProviderError(body.get("description") or "Failed to set webhook", status_code=status_code)
        logger.info(f"✅ Telegram webhook set to {url}")
        return body

    async def get_webhook_info(self) -> Dict[str, Any]:
        status_code, body = await self._call("getWebhookInfo", {})
        if status_code >= 400 or not body.get("ok"):
            raise ProviderError(body.get("description") or "Failed to get webhook info", status_code=status_code)
        return body.get("result") or {}


# Singleton
_service: Optional[TelegramBotService] = None


def get_telegram_service() -> TelegramBotService:
    global _service
    if _service is None:
        _service = TelegramBotService()
    return _service
