"""
Application state controller.
Owns settings, the appointment store, the geocoding provider and the
reminder scheduler, and loads/persists them explicitly.
"""

import html
import logging
from datetime import date, datetime
from typing import Optional

from telegram import Bot
from telegram.ext import ContextTypes

from meowwalker.config import BotConfig
from meowwalker.errors import PersistenceFailure
from meowwalker.geocoding.base import GeocodingProvider
from meowwalker.models import AppSettings
from meowwalker.repositories import OWNER_CHAT_KEY, SETTINGS_KEY, KeyValueStore
from meowwalker.services.appointment_store import AppointmentStore
from meowwalker.services.notification_service import Notifier, ToastBoard
from meowwalker.services.reminder_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)

STATE_KEY = "app_state"


class AppState:
    def __init__(
        self,
        config: BotConfig,
        kv_store: KeyValueStore,
        provider: GeocodingProvider,
        bot: Optional[Bot] = None,
    ):
        self.config = config
        self.kv_store = kv_store
        self.provider = provider
        self.settings = AppSettings()
        self.store = AppointmentStore(kv_store)
        self.toasts = ToastBoard()
        self._registered_chat_id: Optional[int] = None
        self.notifier = Notifier(bot, lambda: self.owner_chat_id, self.toasts)
        self.scheduler = ReminderScheduler(
            self.store,
            self.notifier,
            interval_seconds=config.reminder_check_interval,
            tz=config.tzinfo,
        )

    @property
    def owner_chat_id(self) -> Optional[int]:
        """Configured owner chat, else the chat registered with /start"""
        if self.config.owner_chat_id is not None:
            return self.config.owner_chat_id
        return self._registered_chat_id

    def attach_bot(self, bot: Bot) -> None:
        self.notifier.bot = bot

    def load(self) -> None:
        """Read settings, appointments and the owner chat from storage"""
        try:
            data = self.kv_store.load(SETTINGS_KEY)
            if data is None:
                logger.info("No saved settings, using defaults")
                self.save_settings(self.settings)
            else:
                self.settings = AppSettings.from_dict(data)
        except (PersistenceFailure, KeyError, TypeError) as e:
            logger.error(f"Could not load settings, using defaults: {e}")

        try:
            self.store.load()
        except PersistenceFailure as e:
            logger.error(f"Could not load appointments, starting empty: {e}")

        try:
            self._registered_chat_id = self.kv_store.load(OWNER_CHAT_KEY)
        except PersistenceFailure as e:
            logger.error(f"Could not load owner chat: {e}")

    def save_settings(self, settings: AppSettings) -> bool:
        """
        Replace the settings and persist them.

        Returns:
            False if the write failed (the new settings still apply)
        """
        self.settings = settings
        try:
            self.kv_store.save(SETTINGS_KEY, settings.to_dict())
        except PersistenceFailure as e:
            logger.error(f"Settings kept in memory only: {e}")
            return False
        logger.info("Settings saved")
        return True

    def register_owner_chat(self, chat_id: int) -> bool:
        """Remember the chat that receives reminders"""
        if self._registered_chat_id == chat_id:
            return False
        self._registered_chat_id = chat_id
        try:
            self.kv_store.save(OWNER_CHAT_KEY, chat_id)
        except PersistenceFailure as e:
            logger.error(f"Owner chat kept in memory only: {e}")
        logger.info(f"Registered owner chat {chat_id}")
        return True

    def now(self) -> datetime:
        return datetime.now(self.config.tzinfo)

    def today(self) -> date:
        return self.now().date()

    def with_toasts(self, text: str) -> str:
        """Prefix a reply with any pending in-app messages"""
        toasts = self.toasts.drain()
        if not toasts:
            return text
        banner = "\n".join(f"🔔 {html.escape(toast)}" for toast in toasts)
        return f"{banner}\n\n{text}"

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        await self.provider.close()


def get_app_state(context: ContextTypes.DEFAULT_TYPE) -> AppState:
    return context.application.bot_data[STATE_KEY]
