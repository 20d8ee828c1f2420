"""
/menu command - Show main menu with action buttons
"""

import logging
from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes

from meowwalker.app_state import get_app_state

logger = logging.getLogger(__name__)

MENU_TEXT = "🏠 <b>Main Menu</b>\n\nChoose an action:"


def main_menu_markup() -> InlineKeyboardMarkup:
    keyboard = [
        [InlineKeyboardButton("🐾 New Quote", callback_data="new_quote")],
        [InlineKeyboardButton("👥 Previous Clients", callback_data="clients")],
        [InlineKeyboardButton("📅 Schedule", callback_data="schedule")],
        [InlineKeyboardButton("🗂 History", callback_data="history")],
        [InlineKeyboardButton("⚙️ Settings", callback_data="settings")],
        [InlineKeyboardButton("ℹ️ Status", callback_data="status")],
    ]
    return InlineKeyboardMarkup(keyboard)


def back_to_menu_markup() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("🏠 Main Menu", callback_data="main_menu")]]
    )


async def menu_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show main menu with action buttons"""
    state = get_app_state(context)
    await update.message.reply_text(
        state.with_toasts(MENU_TEXT), reply_markup=main_menu_markup(), parse_mode="HTML"
    )
