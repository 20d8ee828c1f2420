"""
/clients command - Previously served clients, tap one to quote again
"""

import html
import logging
from typing import Tuple

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes

from meowwalker.app_state import AppState, get_app_state
from meowwalker.services.client_history import client_key, unique_clients

logger = logging.getLogger(__name__)

MAX_CLIENT_BUTTONS = 20


def render_clients(state: AppState) -> Tuple[str, InlineKeyboardMarkup]:
    clients = unique_clients(state.store.list())

    keyboard = []
    if not clients:
        text = "👥 <b>Previous Clients</b>\n\nNo previous clients yet."
    else:
        lines = ["👥 <b>Previous Clients</b>", "Tap a client to start a new quote:", ""]
        for client in clients[:MAX_CLIENT_BUTTONS]:
            lines.append(
                f"• <b>{html.escape(client.name)}</b> - {html.escape(client.address)} "
                f"({client.last_date.isoformat()})"
            )
            keyboard.append(
                [
                    InlineKeyboardButton(
                        f"👤 {client.name}", callback_data=f"client_{client_key(client)}"
                    )
                ]
            )
        text = "\n".join(lines)

    keyboard.append([InlineKeyboardButton("🏠 Main Menu", callback_data="main_menu")])
    return text, InlineKeyboardMarkup(keyboard)


async def clients_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show previous clients"""
    state = get_app_state(context)
    text, markup = render_clients(state)
    await update.message.reply_text(
        state.with_toasts(text), reply_markup=markup, parse_mode="HTML"
    )
