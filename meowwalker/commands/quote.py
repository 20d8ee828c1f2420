"""
Quote conversation - collect address, cats, dates and time, show the
priced quote, then save it as appointments or share it as text
"""

import html
import logging
from datetime import time
from typing import Any, Dict, List, Optional

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import (
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)

from meowwalker.app_state import AppState, get_app_state
from meowwalker.commands.menu import main_menu_markup
from meowwalker.errors import GeocodingFailure, MeowWalkerError
from meowwalker.models import Quote, format_price, format_time, parse_time
from meowwalker.services.client_history import find_client
from meowwalker.services.quote_builder import (
    build_quote,
    confirm_quote,
    format_quote_text,
    parse_dates,
)
from meowwalker.services.schedule_views import day_label

logger = logging.getLogger(__name__)

# Conversation states
(
    ASKING_ADDRESS,
    ASKING_CATS,
    ASKING_DATES,
    ASKING_TIME,
    QUOTED,
    ASKING_CLIENT_NAME,
    ASKING_LOCK_CODE,
    ASKING_NOTES,
) = range(8)

DRAFT_KEY = "quote_draft"
DEFAULT_VISIT_TIME = "12:00"
MAX_SUGGESTIONS = 5
MIN_QUERY_LENGTH = 2
MAX_CATS = 20

CANCEL_BUTTON = [InlineKeyboardButton("❌ Cancel", callback_data="quote_cancel")]


def get_draft(context: ContextTypes.DEFAULT_TYPE) -> Dict[str, Any]:
    return context.user_data.setdefault(DRAFT_KEY, {})


def clear_draft(context: ContextTypes.DEFAULT_TYPE) -> None:
    context.user_data.pop(DRAFT_KEY, None)


def cats_markup() -> InlineKeyboardMarkup:
    keyboard = [
        [InlineKeyboardButton(f"🐱 {n}", callback_data=f"cats_{n}") for n in range(1, 4)],
        [InlineKeyboardButton(f"🐱 {n}", callback_data=f"cats_{n}") for n in range(4, 7)],
        CANCEL_BUTTON,
    ]
    return InlineKeyboardMarkup(keyboard)


def render_quote(quote: Quote, state: AppState) -> str:
    """HTML summary of a quote with one line per visit date"""
    currency = state.config.currency_symbol
    today = state.today()

    lines = [
        "🧾 <b>Quote</b>",
        f"📍 {html.escape(quote.destination)}",
        f"🚲 {quote.distance_km:.1f} km · about {quote.duration_min} min by bike",
        f"🐱 {quote.cat_count} cat(s) · 🎉 {quote.holiday_count} holiday(s)",
        "",
    ]
    for item in quote.per_date:
        holiday = " 🎉" if item.is_holiday else ""
        lines.append(
            f"  {item.date.isoformat()} ({day_label(item.date, today)}){holiday}: "
            f"{currency}{format_price(item.price)}"
        )
    lines.append("")
    lines.extend(html.escape(line) for line in quote.breakdown)
    lines.append("")
    lines.append(f"💰 <b>Total: {currency}{format_price(quote.total_price)}</b>")
    return "\n".join(lines)


def quoted_markup() -> InlineKeyboardMarkup:
    keyboard = [
        [InlineKeyboardButton("💾 Save to Schedule", callback_data="quote_save")],
        [InlineKeyboardButton("📤 Share Quote Text", callback_data="quote_share")],
        CANCEL_BUTTON,
    ]
    return InlineKeyboardMarkup(keyboard)


async def _ask_address(update: Update) -> int:
    await update.effective_message.reply_text(
        "📍 <b>New Quote</b>\n\nSend the client's address:",
        reply_markup=InlineKeyboardMarkup([CANCEL_BUTTON]),
        parse_mode="HTML",
    )
    return ASKING_ADDRESS


async def _ask_cats(update: Update, address: str) -> int:
    await update.effective_message.reply_text(
        f"✅ Address: <b>{html.escape(address)}</b>\n\nHow many cats?",
        reply_markup=cats_markup(),
        parse_mode="HTML",
    )
    return ASKING_CATS


async def _ask_dates(update: Update, cat_count: int) -> int:
    await update.effective_message.reply_text(
        f"✅ Cats: <b>{cat_count}</b>\n\n"
        "📅 Send the visit dates, separated by commas or spaces.\n"
        "Formats: <code>2025-02-01</code>, <code>02-01</code>, "
        "<code>today</code>, <code>tomorrow</code>",
        reply_markup=InlineKeyboardMarkup([CANCEL_BUTTON]),
        parse_mode="HTML",
    )
    return ASKING_DATES


async def start_quote(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Start a new quote from /quote or the menu button"""
    if update.callback_query:
        await update.callback_query.answer()
    clear_draft(context)
    get_draft(context)
    return await _ask_address(update)


async def start_quote_for_client(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> int:
    """Start a quote pre-filled with a previous client's name and address"""
    query = update.callback_query
    await query.answer()
    state = get_app_state(context)

    client = find_client(state.store.list(), query.data.split("_", 1)[1])
    clear_draft(context)
    draft = get_draft(context)

    if client is None:
        await query.edit_message_text("❌ That client is no longer in your history.")
        return await _ask_address(update)

    draft["client_name"] = client.name
    draft["address"] = client.address
    logger.info(f"Quote started for previous client {client.name}")
    return await _ask_cats(update, client.address)


async def address_received(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Typed address - offer suggestions or accept it as is"""
    state = get_app_state(context)
    draft = get_draft(context)
    address = update.message.text.strip()

    if len(address) < MIN_QUERY_LENGTH:
        await update.message.reply_text("❌ Address is too short. Please try again:")
        return ASKING_ADDRESS

    suggestions = await state.provider.search_addresses(address)
    if not suggestions:
        draft["address"] = address
        return await _ask_cats(update, address)

    candidates = [address] + [s.address or s.name for s in suggestions[:MAX_SUGGESTIONS]]
    draft["candidates"] = candidates

    keyboard = [[InlineKeyboardButton(f"✏️ Use \"{address}\"", callback_data="addr_0")]]
    for index, suggestion in enumerate(suggestions[:MAX_SUGGESTIONS], start=1):
        keyboard.append(
            [
                InlineKeyboardButton(
                    f"📍 {suggestion.name} · {suggestion.address}",
                    callback_data=f"addr_{index}",
                )
            ]
        )
    keyboard.append(CANCEL_BUTTON)

    await update.message.reply_text(
        "🔎 Did you mean one of these?",
        reply_markup=InlineKeyboardMarkup(keyboard),
    )
    return ASKING_ADDRESS


async def address_selected(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()
    draft = get_draft(context)

    candidates: List[str] = draft.get("candidates", [])
    index = int(query.data.split("_")[1])
    if index >= len(candidates):
        await query.edit_message_text("❌ Suggestion expired. Send the address again:")
        return ASKING_ADDRESS

    draft["address"] = candidates[index]
    draft.pop("candidates", None)
    await query.edit_message_reply_markup(reply_markup=None)
    return await _ask_cats(update, draft["address"])


async def cats_selected(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()
    draft = get_draft(context)
    draft["cat_count"] = int(query.data.split("_")[1])
    await query.edit_message_reply_markup(reply_markup=None)
    return await _ask_dates(update, draft["cat_count"])


async def cats_received(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    draft = get_draft(context)
    text = update.message.text.strip()
    if not text.isdigit() or not 1 <= int(text) <= MAX_CATS:
        await update.message.reply_text(
            f"❌ Please send a number of cats between 1 and {MAX_CATS}:",
            reply_markup=cats_markup(),
        )
        return ASKING_CATS

    draft["cat_count"] = int(text)
    return await _ask_dates(update, draft["cat_count"])


async def dates_received(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    state = get_app_state(context)
    draft = get_draft(context)

    try:
        dates = parse_dates(update.message.text, state.today())
    except ValueError as e:
        await update.message.reply_text(
            f"❌ {html.escape(str(e))}\n\nPlease send dates like "
            "<code>02-01, 02-02</code>:",
            parse_mode="HTML",
        )
        return ASKING_DATES

    if not dates:
        await update.message.reply_text("❌ At least one visit date is required:")
        return ASKING_DATES

    draft["dates"] = dates
    keyboard = [
        [InlineKeyboardButton(f"🕛 {DEFAULT_VISIT_TIME}", callback_data="time_default")],
        CANCEL_BUTTON,
    ]
    await update.message.reply_text(
        f"✅ Dates: <b>{', '.join(d.isoformat() for d in dates)}</b>\n\n"
        "🕐 What time is the visit? Send <code>HH:MM</code>:",
        reply_markup=InlineKeyboardMarkup(keyboard),
        parse_mode="HTML",
    )
    return ASKING_TIME


async def _quote_for_time(
    update: Update, context: ContextTypes.DEFAULT_TYPE, visit_time: time
) -> int:
    """Price the draft and show the quote"""
    state = get_app_state(context)
    draft = get_draft(context)
    draft["time"] = visit_time

    message = update.effective_message
    progress = await message.reply_text("🚲 Calculating cycling route...")

    try:
        quote = await build_quote(
            state.settings.base_address,
            draft.get("address", ""),
            draft.get("dates", []),
            draft.get("cat_count", 1),
            state.settings,
            state.provider,
        )
    except GeocodingFailure as e:
        if e.address == state.settings.base_address.strip():
            logger.warning(f"Base address cannot be located: {e.address}")
            clear_draft(context)
            await progress.edit_text(
                f"❌ Your base address could not be located: \"{html.escape(e.address)}\"\n\n"
                "Fix it with /setbase &lt;address&gt; and start the quote again.",
                parse_mode="HTML",
            )
            return ConversationHandler.END
        logger.info(f"Could not locate {e.address}")
        await progress.edit_text(f"❌ {e.user_message}\n\nSend the address again:")
        return ASKING_ADDRESS
    except MeowWalkerError as e:
        logger.warning(f"Quote failed: {e.user_message}")
        await progress.edit_text(
            f"❌ {e.user_message}\n\nSend the time again to retry, or /cancel."
        )
        return ASKING_TIME

    draft["quote"] = quote
    logger.info(
        f"Quote built: {len(quote.per_date)} day(s), {quote.cat_count} cat(s), "
        f"{quote.distance_km} km, total {quote.total_price}"
    )
    await progress.edit_text(
        state.with_toasts(render_quote(quote, state)),
        reply_markup=quoted_markup(),
        parse_mode="HTML",
    )
    return QUOTED


async def time_received(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    try:
        visit_time = parse_time(update.message.text)
    except ValueError:
        await update.message.reply_text(
            "❌ Please send the time as <code>HH:MM</code>, e.g. <code>18:30</code>:",
            parse_mode="HTML",
        )
        return ASKING_TIME
    return await _quote_for_time(update, context, visit_time)


async def default_time_selected(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> int:
    query = update.callback_query
    await query.answer()
    await query.edit_message_reply_markup(reply_markup=None)
    return await _quote_for_time(update, context, parse_time(DEFAULT_VISIT_TIME))


async def share_quote(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Send the quote as plain text that can be forwarded to the client"""
    query = update.callback_query
    await query.answer()
    state = get_app_state(context)
    draft = get_draft(context)

    text = format_quote_text(
        draft["quote"],
        draft.get("client_name"),
        draft["time"],
        currency_symbol=state.config.currency_symbol,
    )
    await query.message.reply_text(text)
    await query.message.reply_text(
        "👆 Forward the message above to your client.", reply_markup=quoted_markup()
    )
    return QUOTED


async def _ask_lock_code(update: Update) -> int:
    await update.effective_message.reply_text(
        "🔑 Door lock code? Send it, or /skip:",
        reply_markup=InlineKeyboardMarkup([CANCEL_BUTTON]),
    )
    return ASKING_LOCK_CODE


async def save_quote(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()
    draft = get_draft(context)
    await query.edit_message_reply_markup(reply_markup=None)

    if draft.get("client_name"):
        return await _ask_lock_code(update)

    await query.message.reply_text(
        "👤 Client name?", reply_markup=InlineKeyboardMarkup([CANCEL_BUTTON])
    )
    return ASKING_CLIENT_NAME


async def client_name_received(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> int:
    name = update.message.text.strip()
    if not name:
        await update.message.reply_text("❌ Please enter the client's name:")
        return ASKING_CLIENT_NAME
    get_draft(context)["client_name"] = name
    return await _ask_lock_code(update)


async def lock_code_received(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    draft = get_draft(context)
    draft["lock_code"] = "" if update.message.text.startswith("/skip") else update.message.text
    await update.message.reply_text(
        "📝 Any notes (feeding, litter, medicine)? Send them, or /skip:",
        reply_markup=InlineKeyboardMarkup([CANCEL_BUTTON]),
    )
    return ASKING_NOTES


async def notes_received(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Last step - create the appointments and add them to the schedule"""
    state = get_app_state(context)
    draft = get_draft(context)
    notes = "" if update.message.text.startswith("/skip") else update.message.text
    quote: Optional[Quote] = draft.get("quote")

    if quote is None:
        await update.message.reply_text("❌ Quote expired. Start again with /quote.")
        clear_draft(context)
        return ConversationHandler.END

    try:
        appointments = confirm_quote(
            quote,
            draft.get("client_name", ""),
            draft["time"],
            lock_code=draft.get("lock_code", ""),
            notes=notes,
        )
    except MeowWalkerError as e:
        await update.message.reply_text(f"❌ {e.user_message}")
        return ASKING_CLIENT_NAME

    state.store.add(appointments)
    logger.info(
        f"Saved {len(appointments)} appointment(s) for {appointments[0].client_name}"
    )
    saved_note = ""
    if state.store.last_error is not None:
        saved_note = f"\n\n⚠️ {html.escape(state.store.last_error.user_message)}"

    clear_draft(context)
    await update.message.reply_text(
        state.with_toasts(
            f"✅ Added <b>{len(appointments)}</b> visit(s) for "
            f"<b>{html.escape(appointments[0].client_name)}</b> at "
            f"{format_time(appointments[0].time)}.{saved_note}"
        ),
        reply_markup=main_menu_markup(),
        parse_mode="HTML",
    )
    return ConversationHandler.END


async def cancel_quote_button(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle the cancel button in any state"""
    query = update.callback_query
    await query.answer()
    clear_draft(context)
    await query.edit_message_text("❌ Quote cancelled.", reply_markup=main_menu_markup())
    return ConversationHandler.END


async def cancel_quote_conversation(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> int:
    """Cancel the quote conversation on /cancel or any other command"""
    clear_draft(context)
    await update.message.reply_text("❌ Quote cancelled.", reply_markup=main_menu_markup())
    return ConversationHandler.END


skip_filter = filters.Regex(r"^/skip$")
text_only = filters.TEXT & ~filters.COMMAND
cancel_button = CallbackQueryHandler(cancel_quote_button, pattern=r"^quote_cancel$")

quote_conversation = ConversationHandler(
    entry_points=[
        CommandHandler("quote", start_quote),
        CallbackQueryHandler(start_quote, pattern=r"^new_quote$"),
        CallbackQueryHandler(start_quote_for_client, pattern=r"^client_[0-9a-f]+$"),
    ],
    states={
        ASKING_ADDRESS: [
            cancel_button,
            CallbackQueryHandler(address_selected, pattern=r"^addr_\d+$"),
            MessageHandler(text_only, address_received),
        ],
        ASKING_CATS: [
            cancel_button,
            CallbackQueryHandler(cats_selected, pattern=r"^cats_\d+$"),
            MessageHandler(text_only, cats_received),
        ],
        ASKING_DATES: [
            cancel_button,
            MessageHandler(text_only, dates_received),
        ],
        ASKING_TIME: [
            cancel_button,
            CallbackQueryHandler(default_time_selected, pattern=r"^time_default$"),
            MessageHandler(text_only, time_received),
        ],
        QUOTED: [
            cancel_button,
            CallbackQueryHandler(save_quote, pattern=r"^quote_save$"),
            CallbackQueryHandler(share_quote, pattern=r"^quote_share$"),
        ],
        ASKING_CLIENT_NAME: [
            cancel_button,
            MessageHandler(text_only, client_name_received),
        ],
        ASKING_LOCK_CODE: [
            cancel_button,
            MessageHandler(text_only | skip_filter, lock_code_received),
        ],
        ASKING_NOTES: [
            cancel_button,
            MessageHandler(text_only | skip_filter, notes_received),
        ],
    },
    fallbacks=[MessageHandler(filters.COMMAND, cancel_quote_conversation)],
)
