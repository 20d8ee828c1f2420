"""
Notification service for visit reminders.
Pushes a Telegram message to the owner chat and falls back to an in-app
toast (shown with the next bot reply) when that is not possible.
"""

import html
import logging
from collections import deque
from datetime import datetime
from typing import Callable, Deque, List, Optional, Tuple

from telegram import Bot
from telegram.error import Forbidden, TelegramError

logger = logging.getLogger(__name__)

MAX_TOASTS = 20


class ToastBoard:
    """Transient in-app messages waiting for the next interaction"""

    def __init__(self, maxlen: int = MAX_TOASTS):
        self._messages: Deque[Tuple[datetime, str]] = deque(maxlen=maxlen)

    def push(self, message: str) -> None:
        self._messages.append((datetime.now(), message))
        logger.info(f"Toast queued: {message}")

    def drain(self) -> List[str]:
        """Return and clear all pending messages, oldest first"""
        messages = [message for _, message in self._messages]
        self._messages.clear()
        return messages

    def __len__(self) -> int:
        return len(self._messages)


class Notifier:
    """Deliver alerts to the owner, fire-and-forget"""

    def __init__(
        self,
        bot: Optional[Bot],
        chat_id_provider: Callable[[], Optional[int]],
        toasts: ToastBoard,
    ):
        self.bot = bot
        self.chat_id_provider = chat_id_provider
        self.toasts = toasts

    async def notify(self, title: str, body: str) -> bool:
        """
        Send an alert.

        Returns:
            True if the Telegram push was delivered, False if the toast
            fallback was used
        """
        chat_id = self.chat_id_provider()
        if self.bot is None or chat_id is None:
            logger.info("No owner chat registered, using in-app message")
            self.toasts.push(f"{title}: {body}")
            return False

        text = f"🔔 <b>{html.escape(title)}</b>\n\n{html.escape(body)}"
        try:
            await self.bot.send_message(chat_id=chat_id, text=text, parse_mode="HTML")
            logger.info(f"Sent notification to chat {chat_id}: {title}")
            return True
        except Forbidden as e:
            logger.warning(f"Bot is not allowed to message chat {chat_id}: {e}")
        except TelegramError as e:
            logger.error(f"Failed to send notification to chat {chat_id}: {e}")

        self.toasts.push(f"{title}: {body}")
        return False
