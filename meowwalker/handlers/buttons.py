"""
Button callback handlers for Telegram inline keyboards.
Handles menu navigation and the per-appointment complete, delete and
calendar export actions.
"""

import html
import logging

from telegram import InputFile, Update
from telegram.ext import ContextTypes

from meowwalker.app_state import AppState, get_app_state
from meowwalker.commands.clients import render_clients
from meowwalker.commands.menu import MENU_TEXT, main_menu_markup
from meowwalker.commands.schedule import render_history, render_schedule
from meowwalker.commands.settings import render_settings
from meowwalker.commands.status import render_status
from meowwalker.models import format_time
from meowwalker.services.calendar_export import build_ics, ics_filename

logger = logging.getLogger(__name__)

VIEWS = {
    "schedule": render_schedule,
    "history": render_history,
    "clients": render_clients,
    "settings": render_settings,
    "status": render_status,
}


async def show_view(query, state: AppState, name: str, notice: str = "") -> None:
    """Replace the message with one of the inline views"""
    text, markup = VIEWS[name](state)
    if notice:
        text = f"{notice}\n\n{text}"
    await query.edit_message_text(
        state.with_toasts(text), reply_markup=markup, parse_mode="HTML"
    )


def _persist_notice(state: AppState) -> str:
    if state.store.last_error is None:
        return ""
    return f"⚠️ {html.escape(state.store.last_error.user_message)}"


async def complete_appointment(query, state: AppState, appointment_id: str) -> None:
    appointment = state.store.get(appointment_id)
    if appointment is None:
        await show_view(query, state, "schedule", "❌ That visit no longer exists.")
        return

    state.store.complete(appointment_id)
    logger.info(f"Completed visit {appointment_id}")
    notice = "\n".join(
        part
        for part in (
            f"✅ Marked {html.escape(appointment.client_name)} "
            f"({appointment.date.isoformat()}) as done.",
            _persist_notice(state),
        )
        if part
    )
    await show_view(query, state, "schedule", notice)


async def delete_appointment(query, state: AppState, appointment_id: str) -> None:
    appointment = state.store.get(appointment_id)
    removed = state.store.remove(appointment_id)
    if removed:
        logger.info(f"Deleted visit {appointment_id}")
        notice = (
            f"🗑 Deleted visit for {html.escape(appointment.client_name)} "
            f"on {appointment.date.isoformat()}."
        )
    else:
        notice = "❌ That visit no longer exists."
    persist = _persist_notice(state)
    await show_view(query, state, "schedule", f"{notice}\n{persist}" if persist else notice)


async def export_appointment(query, state: AppState, appointment_id: str) -> None:
    """Send the appointment as an .ics calendar file"""
    appointment = state.store.get(appointment_id)
    if appointment is None:
        await show_view(query, state, "schedule", "❌ That visit no longer exists.")
        return

    document = build_ics(
        appointment, state.config.tzinfo, currency_symbol=state.config.currency_symbol
    )
    await query.message.reply_document(
        document=InputFile(document.encode("utf-8"), filename=ics_filename(appointment)),
        caption=(
            f"📅 {appointment.client_name} · {appointment.date.isoformat()} "
            f"{format_time(appointment.time)}\nOpen the file to add it to your calendar."
        ),
    )
    logger.info(f"Exported visit {appointment_id} to calendar")


async def button_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle button callbacks"""
    query = update.callback_query
    await query.answer()

    state = get_app_state(context)
    data = query.data

    if data == "main_menu":
        await query.edit_message_text(
            state.with_toasts(MENU_TEXT), reply_markup=main_menu_markup(), parse_mode="HTML"
        )

    elif data in VIEWS:
        await show_view(query, state, data)

    elif data.startswith("apt_done:"):
        await complete_appointment(query, state, data[len("apt_done:"):])

    elif data.startswith("apt_del:"):
        await delete_appointment(query, state, data[len("apt_del:"):])

    elif data.startswith("apt_ics:"):
        await export_appointment(query, state, data[len("apt_ics:"):])

    else:
        logger.warning(f"Unhandled button: {data}")
