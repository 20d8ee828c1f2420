"""
MeowWalker Bot - Main Entry Point
Wires the quote conversation, schedule commands and reminder loop together.
"""
import logging
from telegram import BotCommand
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from meowwalker.app_state import STATE_KEY, AppState
from meowwalker.config import get_config
from meowwalker.database import close_database, init_database
from meowwalker.geocoding.amap_client import AMapProvider
from meowwalker.repositories import KeyValueStore

# Import commands
from meowwalker.commands.start import start_command
from meowwalker.commands.menu import menu_command
from meowwalker.commands.quote import quote_conversation
from meowwalker.commands.clients import clients_command
from meowwalker.commands.schedule import history_command, schedule_command
from meowwalker.commands.settings import (
    location_received,
    setbase_command,
    setsurcharge_command,
    settiers_command,
    settings_command,
)
from meowwalker.commands.status import status_command

# Import handlers
from meowwalker.handlers.buttons import button_callback

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


async def post_init(application: Application) -> None:
    """Post-initialization callback - set bot commands, load data, start reminders"""
    commands = [
        BotCommand("start", "Start the bot and receive reminders here"),
        BotCommand("menu", "Show main menu"),
        BotCommand("quote", "Quote a new feeding visit"),
        BotCommand("clients", "Quote again for a previous client"),
        BotCommand("schedule", "Show upcoming visits"),
        BotCommand("history", "Show completed visits and income"),
        BotCommand("settings", "Base address and pricing"),
        BotCommand("status", "Show reminder status"),
        BotCommand("cancel", "Cancel the current quote"),
    ]
    await application.bot.set_my_commands(commands)
    logger.info("Bot commands set")

    state: AppState = application.bot_data[STATE_KEY]
    state.attach_bot(application.bot)
    state.load()

    state.scheduler.start()
    logger.info("Background reminder scheduler started")


async def post_shutdown(application: Application) -> None:
    """Stop the reminder loop and release connections"""
    state: AppState = application.bot_data[STATE_KEY]
    await state.shutdown()
    close_database()
    logger.info("Shutdown complete")


def main() -> None:
    """Start the bot"""
    config = get_config()

    # Initialize database
    logger.info("Initializing database...")
    sessions = init_database(config.db_file)

    if not config.amap_api_key:
        logger.warning("AMAP_API_KEY is not set, distance lookups will fail")

    # Create application
    application = (
        Application.builder()
        .token(config.telegram_bot_token)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    application.bot_data[STATE_KEY] = AppState(
        config, KeyValueStore(sessions), AMapProvider(config=config)
    )

    # Quote conversation goes first so its callbacks win over the generic button handler
    application.add_handler(quote_conversation)

    # Register command handlers
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("menu", menu_command))
    application.add_handler(CommandHandler("clients", clients_command))
    application.add_handler(CommandHandler("schedule", schedule_command))
    application.add_handler(CommandHandler("history", history_command))
    application.add_handler(CommandHandler("settings", settings_command))
    application.add_handler(CommandHandler("setbase", setbase_command))
    application.add_handler(CommandHandler("settiers", settiers_command))
    application.add_handler(CommandHandler("setsurcharge", setsurcharge_command))
    application.add_handler(CommandHandler("status", status_command))
    application.add_handler(MessageHandler(filters.LOCATION, location_received))

    # Register button callback handler
    application.add_handler(CallbackQueryHandler(button_callback))

    # Start bot
    logger.info("Starting bot...")
    application.run_polling(allowed_updates=["message", "callback_query"])


if __name__ == '__main__':
    main()
