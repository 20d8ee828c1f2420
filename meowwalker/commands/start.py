"""
/start command - Register the owner chat and show welcome message
"""

import logging
from telegram import Update
from telegram.ext import ContextTypes

from meowwalker.app_state import get_app_state
from meowwalker.commands.menu import main_menu_markup

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "👋 <b>Welcome to MeowWalker!</b>\n\n"
    "🎯 <b>What I do:</b>\n"
    "I quote cat feeding visits from the cycling distance to your client, "
    "keep your visit schedule and remind you before each visit.\n\n"
    "🚀 <b>How it works:</b>\n"
    "1️⃣ <b>Set your base address</b> - /setbase or share your location\n"
    "2️⃣ <b>Quote</b> a visit - /quote\n"
    "3️⃣ <b>Save</b> it to the schedule - one visit per date\n"
    "4️⃣ <b>Get reminded</b> 30 minutes ahead and at visit time\n\n"
    "⚡ <b>Commands:</b>\n"
    "• New quote: /quote\n"
    "• Previous clients: /clients\n"
    "• Upcoming visits: /schedule\n"
    "• Completed visits: /history\n"
    "• Pricing and base address: /settings"
)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle the /start command"""
    state = get_app_state(context)
    chat_id = update.effective_chat.id

    state.register_owner_chat(chat_id)

    if state.config.owner_chat_id is not None and state.config.owner_chat_id != chat_id:
        logger.warning(
            f"Chat {chat_id} used /start but reminders go to configured chat "
            f"{state.config.owner_chat_id}"
        )

    await update.message.reply_text(
        state.with_toasts(WELCOME_MESSAGE),
        reply_markup=main_menu_markup(),
        parse_mode="HTML",
    )
