"""
Operator notifications.

Sync results are reported as short text messages. By default they go to the
log; with a Telegram bot token and chat id configured they are also sent to
that chat.
"""
import logging
from typing import Optional

from telegram import Bot
from telegram.error import TelegramError

logger = logging.getLogger(__name__)


class Notifier:
    """Logs messages. Subclasses deliver them elsewhere as well."""

    async def notify(self, message: str) -> None:
        logger.info("%s", message)


class LogNotifier(Notifier):
    pass


class TelegramNotifier(Notifier):
    """Sends each message to one Telegram chat."""

    def __init__(self, token: str, chat_id: int, bot: Optional[Bot] = None):
        self.chat_id = chat_id
        self.bot = bot or Bot(token=token)

    async def notify(self, message: str) -> None:
        await super().notify(message)
        try:
            await self.bot.send_message(chat_id=self.chat_id, text=message)
        except TelegramError as exc:
            # Delivery is best effort; the sync result is already decided.
            logger.warning("Telegram notification failed: %s", exc)


def build_notifier(settings) -> Notifier:
    if settings.telegram_bot_token and settings.telegram_chat_id:
        return TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id)
    return LogNotifier()
