"""
Quote builder - turns an address, a set of dates and a cat count into a
priced multi-day quote, and confirms quotes into appointments.
"""

import logging
import re
import uuid
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from meowwalker.errors import (
    InvalidConfiguration,
    MissingAddress,
    MissingClientName,
    MissingOrigin,
    NoDatesSelected,
)
from meowwalker.geocoding.base import GeocodingProvider
from meowwalker.models import (
    DATE_FORMAT,
    AppSettings,
    Appointment,
    AppointmentStatus,
    DateQuote,
    Quote,
    format_price,
    format_time,
)
from meowwalker.services.pricing import calculate_price, check_is_holiday

logger = logging.getLogger(__name__)

DEFAULT_LOCK_CODE = "Not provided"
DEFAULT_NOTES = "None"


def new_appointment_id() -> str:
    return uuid.uuid4().hex


async def build_quote(
    origin: str,
    destination: str,
    dates: Iterable[date],
    cat_count: int,
    settings: AppSettings,
    provider: GeocodingProvider,
) -> Quote:
    """
    Price a visit to `destination` on each of `dates`.

    The travel distance is looked up once and shared by every date; each date
    is classified and priced on its own.

    Raises:
        MissingAddress, MissingOrigin, NoDatesSelected: Input is incomplete
        InvalidConfiguration: No pricing tiers configured
        GeocodingFailure, RoutingFailure, NetworkTimeout,
        GeocodingTransportError: The distance lookup failed
    """
    dates = list(dates)
    destination = (destination or "").strip()
    origin = (origin or "").strip()

    if not destination:
        raise MissingAddress()
    if not settings.base_address or not origin:
        raise MissingOrigin()
    if not dates:
        raise NoDatesSelected()
    if not settings.pricing_tiers:
        raise InvalidConfiguration()

    distance = await provider.resolve_distance(origin, destination)

    total = 0
    per_date: List[DateQuote] = []
    for day in dates:
        is_holiday = await check_is_holiday(day)
        price = calculate_price(
            distance.distance_km,
            cat_count,
            is_holiday,
            settings.pricing_tiers,
            settings.holiday_surcharge,
            settings.extra_cat_surcharge,
        )
        total += price
        per_date.append(DateQuote(date=day, is_holiday=is_holiday, price=price))

    breakdown = [
        f"Cycling distance: {distance.distance_km:.1f}km ({origin} → {destination})",
        f"Visit days: {len(dates)}",
    ]
    holiday_count = sum(1 for item in per_date if item.is_holiday)
    if holiday_count > 0:
        breakdown.append(f"Holidays included: {holiday_count}")
    if cat_count > 1:
        breakdown.append(f"Extra cats: {cat_count - 1}")

    logger.info(
        f"Quote for {destination}: {len(dates)} day(s), {distance.distance_km}km, total {total}"
    )

    return Quote(
        origin=origin,
        destination=destination,
        cat_count=cat_count,
        distance_km=distance.distance_km,
        duration_min=distance.duration_min,
        total_price=total,
        per_date=per_date,
        breakdown=breakdown,
    )


def confirm_quote(
    quote: Quote,
    client_name: str,
    visit_time: time,
    lock_code: str = "",
    notes: str = "",
) -> List[Appointment]:
    """Create one pending appointment per quoted date, each at its own price"""
    client_name = (client_name or "").strip()
    if not client_name:
        raise MissingClientName()

    return [
        Appointment(
            id=new_appointment_id(),
            client_name=client_name,
            address=quote.destination,
            date=item.date,
            time=visit_time,
            cat_count=quote.cat_count,
            distance_km=quote.distance_km,
            duration_min=quote.duration_min,
            total_price=item.price,
            lock_code=lock_code.strip() or DEFAULT_LOCK_CODE,
            notes=notes.strip() or DEFAULT_NOTES,
            is_holiday=item.is_holiday,
            status=AppointmentStatus.PENDING,
        )
        for item in quote.per_date
    ]


def format_quote_text(
    quote: Quote,
    client_name: Optional[str],
    visit_time: time,
    currency_symbol: str = "¥",
) -> str:
    """Plain-text quote ready to forward to the client"""
    lines = [
        "🐱 Cat feeding quote",
        f"Client: {client_name or 'Not provided'}",
        f"Address: {quote.destination}",
        f"Dates: {', '.join(d.strftime('%m-%d') for d in quote.dates)}",
        f"Time: {format_time(visit_time)}",
        f"Cats: {quote.cat_count}",
        "----------------",
        f"Cycling distance: {quote.distance_km:.1f}km",
        *[line for line in quote.breakdown if not line.startswith("Cycling distance")],
        "----------------",
        f"💰 Total: {currency_symbol}{format_price(quote.total_price)}",
    ]
    return "\n".join(lines)


_DATE_SEPARATORS = re.compile(r"[,\s]+")


def parse_dates(text: str, today: date) -> List[date]:
    """
    Parse user-entered visit dates.

    Accepts YYYY-MM-DD, MM-DD (current year), "today" and "tomorrow",
    separated by commas or whitespace. Duplicates are dropped and the result
    is sorted ascending.

    Raises:
        ValueError: If a token is not a valid date
    """
    found = set()
    for token in _DATE_SEPARATORS.split(text.strip().lower()):
        if not token:
            continue
        if token == "today":
            found.add(today)
        elif token == "tomorrow":
            found.add(today + timedelta(days=1))
        elif re.fullmatch(r"\d{4}-\d{1,2}-\d{1,2}", token):
            found.add(datetime.strptime(token, DATE_FORMAT).date())
        elif re.fullmatch(r"\d{1,2}-\d{1,2}", token):
            month, day = (int(part) for part in token.split("-"))
            found.add(date(today.year, month, day))
        else:
            raise ValueError(f"Invalid date: {token}")
    return sorted(found)
