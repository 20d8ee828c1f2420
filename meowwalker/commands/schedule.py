"""
/schedule and /history commands - Upcoming visits with actions and
completed visits with income
"""

import html
import logging
from datetime import date
from typing import List, Tuple

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes

from meowwalker.app_state import AppState, get_app_state
from meowwalker.models import Appointment, format_price, format_time
from meowwalker.services.schedule_views import (
    active_appointments,
    day_label,
    group_by_date,
    history_appointments,
    total_income,
)

logger = logging.getLogger(__name__)

# Inline keyboards get unwieldy beyond this
MAX_LISTED = 10


def format_appointment(apt: Appointment, today: date, currency: str) -> str:
    """Multi-line card for one appointment"""
    holiday = " 🎉" if apt.is_holiday else ""
    return (
        f"<b>{day_label(apt.date, today)} {apt.date:%m-%d} {format_time(apt.time)}</b>{holiday}\n"
        f"👤 {html.escape(apt.client_name)} · 🐱 {apt.cat_count}\n"
        f"📍 {html.escape(apt.address)}\n"
        f"🔑 {html.escape(apt.lock_code)}\n"
        f"📝 {html.escape(apt.notes)}\n"
        f"💰 {currency}{format_price(apt.total_price)}"
    )


def render_schedule(state: AppState) -> Tuple[str, InlineKeyboardMarkup]:
    """Upcoming visits with complete/delete/export buttons"""
    appointments = active_appointments(state.store.list())
    today = state.today()
    currency = state.config.currency_symbol

    keyboard: List[List[InlineKeyboardButton]] = []
    if not appointments:
        text = "📅 <b>Schedule</b>\n\nNo upcoming feeding visits."
        keyboard.append([InlineKeyboardButton("🐾 New Quote", callback_data="new_quote")])
    else:
        cards = []
        for apt in appointments[:MAX_LISTED]:
            cards.append(format_appointment(apt, today, currency))
            label = f"{apt.date:%m-%d} {format_time(apt.time)} {apt.client_name}"
            keyboard.append(
                [
                    InlineKeyboardButton(f"✅ {label}", callback_data=f"apt_done:{apt.id}"),
                    InlineKeyboardButton("📅", callback_data=f"apt_ics:{apt.id}"),
                    InlineKeyboardButton("🗑", callback_data=f"apt_del:{apt.id}"),
                ]
            )
        text = f"📅 <b>Schedule</b> ({len(appointments)} upcoming)\n\n" + "\n\n".join(cards)
        if len(appointments) > MAX_LISTED:
            text += f"\n\n... and {len(appointments) - MAX_LISTED} more"

    keyboard.append([InlineKeyboardButton("🏠 Main Menu", callback_data="main_menu")])
    return text, InlineKeyboardMarkup(keyboard)


def render_history(state: AppState) -> Tuple[str, InlineKeyboardMarkup]:
    """Completed visits grouped by date, newest first"""
    all_appointments = state.store.list()
    completed = history_appointments(all_appointments)
    currency = state.config.currency_symbol

    lines = [
        "🗂 <b>History</b>",
        f"💰 Total income: <b>{currency}{format_price(total_income(all_appointments))}</b>",
        "",
    ]
    if not completed:
        lines.append("No completed visits yet.")
    for day, group in group_by_date(completed):
        lines.append(f"<b>{day.isoformat()}</b>")
        for apt in group:
            lines.append(
                f"  ✅ {format_time(apt.time)} {html.escape(apt.client_name)} "
                f"· {currency}{format_price(apt.total_price)}"
            )

    keyboard = [[InlineKeyboardButton("🏠 Main Menu", callback_data="main_menu")]]
    return "\n".join(lines), InlineKeyboardMarkup(keyboard)


async def schedule_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show upcoming visits"""
    state = get_app_state(context)
    text, markup = render_schedule(state)
    await update.message.reply_text(
        state.with_toasts(text), reply_markup=markup, parse_mode="HTML"
    )


async def history_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show completed visits"""
    state = get_app_state(context)
    text, markup = render_history(state)
    await update.message.reply_text(
        state.with_toasts(text), reply_markup=markup, parse_mode="HTML"
    )
