"""
iCalendar (RFC 5545) export of a single appointment, with a reminder alarm
30 minutes before the visit.
"""

from datetime import datetime, timedelta, timezone, tzinfo
from typing import List, Optional

from meowwalker.models import Appointment, format_price

VISIT_DURATION = timedelta(minutes=30)
ALARM_TRIGGER = "-PT30M"
PRODID = "-//MeowWalker//Feeding Schedule//EN"
CRLF = "\r\n"
MAX_LINE_OCTETS = 75


def escape_text(value: str) -> str:
    """Escape a TEXT property value"""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def fold_line(line: str) -> str:
    """Fold a content line into 75-octet chunks without splitting characters"""
    chunks: List[str] = []
    current = ""
    current_octets = 0
    limit = MAX_LINE_OCTETS
    for char in line:
        size = len(char.encode("utf-8"))
        if current_octets + size > limit:
            chunks.append(current)
            current = ""
            current_octets = 0
            limit = MAX_LINE_OCTETS - 1  # continuation lines start with a space
        current += char
        current_octets += size
    chunks.append(current)
    return (CRLF + " ").join(chunks)


def format_utc(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def ics_filename(appointment: Appointment) -> str:
    return f"meow_walker_{appointment.date.isoformat()}.ics"


def build_ics(
    appointment: Appointment,
    tz: tzinfo,
    currency_symbol: str = "¥",
    now: Optional[datetime] = None,
) -> str:
    """
    Render an appointment as a VCALENDAR document.

    Args:
        appointment: Appointment to export
        tz: Zone the appointment's wall-clock time belongs to
        currency_symbol: Prefix for the price in the description
        now: Timestamp for DTSTAMP (defaults to the current time)

    Returns:
        The document with CRLF line endings
    """
    start = appointment.starts_at.replace(tzinfo=tz)
    end = start + VISIT_DURATION
    stamp = now or datetime.now(timezone.utc)

    description = "\n".join(
        [
            f"Client: {appointment.client_name}",
            f"Cats: {appointment.cat_count}",
            f"Lock code: {appointment.lock_code}",
            f"Notes: {appointment.notes or 'None'}",
            f"Price: {currency_symbol}{format_price(appointment.total_price)}",
        ]
    )

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "BEGIN:VEVENT",
        f"UID:{appointment.id}@meowwalker",
        f"DTSTAMP:{format_utc(stamp)}",
        f"DTSTART:{format_utc(start)}",
        f"DTEND:{format_utc(end)}",
        f"SUMMARY:{escape_text(f'Feeding visit - {appointment.client_name}')}",
        f"DESCRIPTION:{escape_text(description)}",
        f"LOCATION:{escape_text(appointment.address)}",
        "BEGIN:VALARM",
        f"TRIGGER:{ALARM_TRIGGER}",
        "ACTION:DISPLAY",
        "DESCRIPTION:Reminder",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return CRLF.join(fold_line(line) for line in lines) + CRLF
