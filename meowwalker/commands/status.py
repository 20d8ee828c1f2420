"""
/status command - Show reminder loop health and schedule counts
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from telegram import Update, InlineKeyboardMarkup
from telegram.ext import ContextTypes

from meowwalker.app_state import AppState, get_app_state
from meowwalker.commands.menu import back_to_menu_markup
from meowwalker.services.schedule_views import active_appointments

logger = logging.getLogger(__name__)


def describe_elapsed(last: Optional[datetime], now: datetime) -> str:
    if not last:
        return "Never"
    seconds = (now - last).total_seconds()
    if seconds < 60:
        return f"{int(seconds)} seconds ago"
    if seconds < 3600:
        return f"{int(seconds / 60)} minutes ago"
    return f"{int(seconds / 3600)} hours ago"


def render_status(state: AppState) -> Tuple[str, InlineKeyboardMarkup]:
    now = state.now()
    stats = state.scheduler.stats
    appointments = state.store.list()
    upcoming = active_appointments(appointments)
    today = [apt for apt in upcoming if apt.date == now.date()]

    owner = state.owner_chat_id
    delivery = (
        f"Telegram chat <code>{owner}</code>" if owner is not None else "in-app messages only"
    )
    running = "🟢 running" if state.scheduler.is_running else "🔴 stopped"

    message = (
        "📊 <b>Status</b>\n\n"
        f"📅 Upcoming visits: <b>{len(upcoming)}</b> ({len(today)} today)\n"
        f"🗂 Completed visits: {len(appointments) - len(upcoming)}\n\n"
        f"⏰ Reminder loop: {running}\n"
        f"🔍 Last check: {describe_elapsed(stats.get('last_tick_time'), now)}\n"
        f"⚙️ Check interval: {state.scheduler.interval_seconds} seconds\n"
        f"🔔 Reminders sent: {stats['reminders_sent']}\n"
        f"📨 Delivery: {delivery}"
    )
    return message, back_to_menu_markup()


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show bot status"""
    state = get_app_state(context)
    message, markup = render_status(state)
    await update.message.reply_text(
        state.with_toasts(message), reply_markup=markup, parse_mode="HTML"
    )
