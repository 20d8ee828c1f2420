"""
Type-safe data models for the bot
Uses dataclasses and enums for better type safety and IDE support
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Union

Number = Union[int, float]

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def parse_time(value: str) -> time:
    """Parse an HH:MM clock time"""
    return datetime.strptime(value.strip(), TIME_FORMAT).time()


def format_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)


def format_price(value: Number) -> str:
    """Render whole prices without decimals and fractional ones with two"""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class PricingTier:
    """A distance bracket and its base price"""
    max_distance_km: Number
    price: Number

    def to_dict(self) -> Dict[str, Any]:
        return {"maxDistance": self.max_distance_km, "price": self.price}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricingTier":
        return cls(max_distance_km=data["maxDistance"], price=data["price"])


def default_pricing_tiers() -> List[PricingTier]:
    return [
        PricingTier(1, 20),
        PricingTier(2, 25),
        PricingTier(3, 30),
        PricingTier(5, 40),
    ]


@dataclass
class AppSettings:
    """Owner settings used for every quote"""
    base_address: str = "上海市静安寺"
    pricing_tiers: List[PricingTier] = field(default_factory=default_pricing_tiers)
    holiday_surcharge: Number = 10
    extra_cat_surcharge: Number = 5

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseAddress": self.base_address,
            "pricingTiers": [tier.to_dict() for tier in self.pricing_tiers],
            "holidaySurcharge": self.holiday_surcharge,
            "extraCatSurcharge": self.extra_cat_surcharge,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppSettings":
        defaults = cls()
        tiers = data.get("pricingTiers")
        return cls(
            base_address=data.get("baseAddress", defaults.base_address),
            pricing_tiers=(
                [PricingTier.from_dict(t) for t in tiers]
                if tiers is not None
                else defaults.pricing_tiers
            ),
            holiday_surcharge=data.get("holidaySurcharge", defaults.holiday_surcharge),
            extra_cat_surcharge=data.get(
                "extraCatSurcharge", defaults.extra_cat_surcharge
            ),
        )


@dataclass
class Appointment:
    """A committed single-date feeding visit"""
    id: str
    client_name: str
    address: str
    date: date
    time: time
    cat_count: int
    distance_km: float
    duration_min: int
    total_price: Number
    lock_code: str
    notes: str
    is_holiday: bool
    status: AppointmentStatus = AppointmentStatus.PENDING

    @property
    def starts_at(self) -> datetime:
        """Naive local start of the visit"""
        return datetime.combine(self.date, self.time)

    @property
    def minute_of_day(self) -> int:
        return self.time.hour * 60 + self.time.minute

    @property
    def is_completed(self) -> bool:
        return self.status == AppointmentStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted record (camelCase keys)"""
        return {
            "id": self.id,
            "clientName": self.client_name,
            "address": self.address,
            "date": self.date.strftime(DATE_FORMAT),
            "time": format_time(self.time),
            "catCount": self.cat_count,
            "distanceKm": self.distance_km,
            "durationMin": self.duration_min,
            "totalPrice": self.total_price,
            "lockCode": self.lock_code,
            "notes": self.notes,
            "isHoliday": self.is_holiday,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Appointment":
        """Create Appointment from a persisted record"""
        return cls(
            id=str(data["id"]),
            client_name=data["clientName"],
            address=data["address"],
            date=datetime.strptime(data["date"][:10], DATE_FORMAT).date(),
            time=parse_time(data["time"]),
            cat_count=int(data.get("catCount", 1)),
            distance_km=data.get("distanceKm", 0),
            duration_min=data.get("durationMin", 0),
            total_price=data.get("totalPrice", 0),
            lock_code=data.get("lockCode", ""),
            notes=data.get("notes", ""),
            is_holiday=bool(data.get("isHoliday", False)),
            status=AppointmentStatus(data["status"]),
        )


@dataclass
class DistanceResult:
    distance_km: float
    duration_min: int


@dataclass
class DateQuote:
    date: date
    is_holiday: bool
    price: Number


@dataclass
class Quote:
    """Ephemeral price estimate for one or more visit dates"""
    origin: str
    destination: str
    cat_count: int
    distance_km: float
    duration_min: int
    total_price: Number
    per_date: List[DateQuote]
    breakdown: List[str]

    @property
    def dates(self) -> List[date]:
        return [item.date for item in self.per_date]

    @property
    def holiday_count(self) -> int:
        return sum(1 for item in self.per_date if item.is_holiday)


@dataclass
class ClientRecord:
    """A previously served client"""
    name: str
    address: str
    last_date: date


@dataclass
class PlaceSuggestion:
    name: str
    address: str
