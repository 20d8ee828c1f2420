"""
Read-only views over the schedule: upcoming and history lists, income,
grouping and day labels.
"""

from collections import OrderedDict
from datetime import date, timedelta
from typing import Iterable, List, Tuple

from meowwalker.models import Appointment, Number

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _chronological(appointments: Iterable[Appointment]) -> List[Appointment]:
    return sorted(appointments, key=lambda apt: apt.starts_at)


def active_appointments(appointments: Iterable[Appointment]) -> List[Appointment]:
    """Pending appointments, earliest first"""
    return _chronological(apt for apt in appointments if not apt.is_completed)


def history_appointments(appointments: Iterable[Appointment]) -> List[Appointment]:
    """Completed appointments, earliest first"""
    return _chronological(apt for apt in appointments if apt.is_completed)


def total_income(appointments: Iterable[Appointment]) -> Number:
    """Sum of prices of completed appointments"""
    return sum(apt.total_price for apt in appointments if apt.is_completed)


def group_by_date(
    appointments: Iterable[Appointment],
) -> List[Tuple[date, List[Appointment]]]:
    """Group appointments by visit date, newest date first"""
    groups: "OrderedDict[date, List[Appointment]]" = OrderedDict()
    for apt in appointments:
        groups.setdefault(apt.date, []).append(apt)
    return sorted(groups.items(), key=lambda item: item[0], reverse=True)


def day_label(day: date, today: date) -> str:
    if day == today:
        return "Today"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    return WEEKDAY_LABELS[day.weekday()]
