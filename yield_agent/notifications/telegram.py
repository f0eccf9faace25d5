"""Telegram notification service."""
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"
# sendMessage rejects longer texts outright.
MAX_MESSAGE_LENGTH = 4096


def truncate(text: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


class TelegramNotifier:
    """Two bots in one chat: alerts ring, logs stay muted.

    Emergencies go through the alert bot. Executed batches go through the log
    bot, which falls back to the alert bot when no separate token is set.
    """

    def __init__(self, config: TelegramConfig) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token or config.alert_bot_token
        self.chat_id = config.chat_id

    async def _post(self, bot_token: str, text: str, silent: bool) -> bool:
        if not bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        async with aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(ssl=ssl_context)
        ) as session:
            async with session.post(
                f"{TELEGRAM_API}/bot{bot_token}/sendMessage",
                json={
                    "chat_id": self.chat_id,
                    "text": truncate(text),
                    "disable_notification": silent,
                },
            ) as response:
                if response.status != 200:
                    logger.error("Telegram sendMessage returned HTTP %s", response.status)
                    return False
        return True

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Unmuted alert; ``subject`` becomes the first line."""
        text = f"{subject}\n\n{message}" if subject else message
        return await self._post(self.alert_bot_token, text, silent=False)

    async def send_log(self, message: str, silent: bool = True) -> bool:
        return await self._post(self.log_bot_token, message, silent=silent)
