"""
Settings commands - base address, pricing tiers and surcharges
"""

import html
import logging
import math
from dataclasses import replace
from typing import List, Sequence, Tuple

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes

from meowwalker.app_state import AppState, get_app_state
from meowwalker.errors import MeowWalkerError
from meowwalker.models import Number, PricingTier, format_price

logger = logging.getLogger(__name__)

SURCHARGE_FIELDS = {
    "holiday": "holiday_surcharge",
    "cat": "extra_cat_surcharge",
}


def parse_number(value: str) -> Number:
    """Parse a non-negative amount, keeping whole numbers as int"""
    number = float(value)
    if not math.isfinite(number) or number < 0:
        raise ValueError(f"Invalid amount: {value}")
    return int(number) if number.is_integer() else number


def parse_tiers(tokens: Sequence[str]) -> List[PricingTier]:
    """
    Parse "km:price" pairs into tiers sorted by distance.

    Raises:
        ValueError: On an empty list or malformed pair
    """
    tiers = []
    for token in tokens:
        distance, sep, price = token.replace("=", ":").partition(":")
        if not sep:
            raise ValueError(f"Invalid tier: {token}")
        tiers.append(PricingTier(parse_number(distance), parse_number(price)))
    if not tiers:
        raise ValueError("At least one tier is required")
    return sorted(tiers, key=lambda tier: tier.max_distance_km)


def render_settings(state: AppState) -> Tuple[str, InlineKeyboardMarkup]:
    settings = state.settings
    currency = state.config.currency_symbol

    tier_lines = [
        f"  ≤ {format_price(tier.max_distance_km)} km: {currency}{format_price(tier.price)}"
        for tier in settings.pricing_tiers
    ] or ["  (none)"]

    text = (
        "⚙️ <b>Settings</b>\n\n"
        f"🏠 Base address: <b>{html.escape(settings.base_address or 'not set')}</b>\n\n"
        "💰 <b>Pricing tiers</b> (cycling distance)\n"
        + "\n".join(tier_lines)
        + "\n\n"
        f"🎉 Holiday surcharge: {currency}{format_price(settings.holiday_surcharge)}\n"
        f"🐱 Extra cat surcharge: {currency}{format_price(settings.extra_cat_surcharge)}\n\n"
        "<b>Change:</b>\n"
        "<code>/setbase ADDRESS</code> or share your location\n"
        "<code>/settiers 1:20 2:25 3:30 5:40</code>\n"
        "<code>/setsurcharge holiday 10</code>\n"
        "<code>/setsurcharge cat 5</code>"
    )
    keyboard = [[InlineKeyboardButton("🏠 Main Menu", callback_data="main_menu")]]
    return text, InlineKeyboardMarkup(keyboard)


async def _reply_saved(update: Update, state: AppState, saved: bool) -> None:
    text, markup = render_settings(state)
    status = "✅ Settings saved!" if saved else "⚠️ Settings applied but could not be saved."
    await update.message.reply_text(
        state.with_toasts(f"{status}\n\n{text}"), reply_markup=markup, parse_mode="HTML"
    )


async def settings_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show current settings"""
    state = get_app_state(context)
    text, markup = render_settings(state)
    await update.message.reply_text(
        state.with_toasts(text), reply_markup=markup, parse_mode="HTML"
    )


async def setbase_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Set the base address the distance is measured from"""
    state = get_app_state(context)
    address = " ".join(context.args).strip()
    if not address:
        await update.message.reply_text(
            "❌ Usage: <code>/setbase ADDRESS</code>\n\n"
            "Or share your location to use where you are now.",
            parse_mode="HTML",
        )
        return

    saved = state.save_settings(replace(state.settings, base_address=address))
    logger.info(f"Base address set to {address}")
    await _reply_saved(update, state, saved)


async def settiers_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Replace the pricing tier table"""
    state = get_app_state(context)
    try:
        tiers = parse_tiers(context.args)
    except ValueError as e:
        await update.message.reply_text(
            f"❌ {html.escape(str(e))}\n\n"
            "Usage: <code>/settiers KM:PRICE KM:PRICE ...</code>\n"
            "Example: <code>/settiers 1:20 2:25 3:30 5:40</code>",
            parse_mode="HTML",
        )
        return

    saved = state.save_settings(replace(state.settings, pricing_tiers=tiers))
    await _reply_saved(update, state, saved)


async def setsurcharge_command(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Set the holiday or extra-cat surcharge"""
    state = get_app_state(context)
    args = context.args
    field = SURCHARGE_FIELDS.get(args[0].lower()) if len(args) == 2 else None

    amount = None
    if field:
        try:
            amount = parse_number(args[1])
        except ValueError:
            amount = None

    if field is None or amount is None:
        await update.message.reply_text(
            "❌ Usage: <code>/setsurcharge holiday|cat AMOUNT</code>\n\n"
            "Example: <code>/setsurcharge holiday 10</code>",
            parse_mode="HTML",
        )
        return

    saved = state.save_settings(replace(state.settings, **{field: amount}))
    await _reply_saved(update, state, saved)


async def location_received(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Use a shared location as the base address"""
    state = get_app_state(context)
    location = update.message.location

    try:
        address = await state.provider.address_for_location(
            location.latitude, location.longitude
        )
    except MeowWalkerError as e:
        await update.message.reply_text(f"❌ {e.user_message}")
        return

    saved = state.save_settings(replace(state.settings, base_address=address))
    logger.info(f"Base address set from location: {address}")
    await _reply_saved(update, state, saved)
