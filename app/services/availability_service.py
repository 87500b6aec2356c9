from typing import Dict, Any, List, Optional, Union
from calendar import monthrange
from datetime import date, datetime, timedelta
import copy
import logging

from app.core.config import settings
from app.schemas.availability import AvailabilityConfig, DAY_NAMES, PERIODS

logger = logging.getLogger(__name__)

DEFAULT_MAX_ADVANCE_BOOKING_DAYS = 30

def _weekday_schedule() -> Dict[str, Any]:
    return {
        "isAvailable": True,
        "morning": {"enabled": True, "startTime": "09:00", "endTime": "12:00"},
        "afternoon": {"enabled": True, "startTime": "14:00", "endTime": "17:00"},
        "evening": {"enabled": False},
    }

DEFAULT_WEEKLY_SCHEDULE: Dict[str, Dict[str, Any]] = {
    "sunday": {"isAvailable": False},
    "monday": _weekday_schedule(),
    "tuesday": _weekday_schedule(),
    "wednesday": _weekday_schedule(),
    "thursday": _weekday_schedule(),
    "friday": _weekday_schedule(),
    "saturday": {"isAvailable": False},
}

DEFAULT_AVAILABILITY: Dict[str, Any] = {
    "weeklySchedule": DEFAULT_WEEKLY_SCHEDULE,
    "specialDates": [],
    "slotDurationMinutes": 30,
    "maxAdvanceBookingDays": DEFAULT_MAX_ADVANCE_BOOKING_DAYS,
}

ConfigLike = Union[AvailabilityConfig, Dict[str, Any], None]


def build_default_config(company_id: str, department_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Document inserted the first time a tenant scope reads its configuration
    """
    now = datetime.utcnow()
    config = {
        "companyId": company_id,
        "weeklySchedule": copy.deepcopy(DEFAULT_WEEKLY_SCHEDULE),
        "specialDates": [],
        "slotDurationMinutes": settings.DEFAULT_SLOT_DURATION_MINUTES,
        "maxAdvanceBookingDays": settings.DEFAULT_MAX_ADVANCE_BOOKING_DAYS,
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    }
    if department_id:
        config["departmentId"] = department_id
    return config


def _as_dict(config: ConfigLike) -> Optional[Dict[str, Any]]:
    if config is None:
        return None
    if isinstance(config, AvailabilityConfig):
        return config.dict()
    if isinstance(config, dict):
        return config
    # Unrecognised input is read as a config with nothing open
    return {}


def to_calendar_date(value: Any) -> Optional[date]:
    """Calendar date of a stored special date; None when it cannot be read"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _max_advance_days(config: Optional[Dict[str, Any]]) -> int:
    if not config:
        return DEFAULT_MAX_ADVANCE_BOOKING_DAYS
    try:
        days = int(config.get("maxAdvanceBookingDays") or 0)
    except (TypeError, ValueError, OverflowError):
        days = 0
    return days or DEFAULT_MAX_ADVANCE_BOOKING_DAYS


def _max_booking_date(today: date, config: Optional[Dict[str, Any]]) -> date:
    try:
        return today + timedelta(days=_max_advance_days(config))
    except OverflowError:
        return date.max


def find_special_date(config: Optional[Dict[str, Any]], day: date) -> Optional[Dict[str, Any]]:
    """
    Override for a calendar date. Duplicates are not rejected on write, so the
    first match in list order wins.
    """
    if not config:
        return None
    for special_date in config.get("specialDates") or []:
        if isinstance(special_date, dict) and to_calendar_date(special_date.get("date")) == day:
            return special_date
    return None


def resolve_day_schedule(config: ConfigLike, day: date) -> Optional[Dict[str, Any]]:
    """
    Schedule that applies to ``day``, or None if the day is closed.

    A special date replaces the weekly template entirely for its date.
    Without a config the implicit weekday default applies.
    """
    config = _as_dict(config)
    day_name = DAY_NAMES[(day.weekday() + 1) % 7]

    special_date = find_special_date(config, day)
    if special_date is not None:
        return special_date if special_date.get("isAvailable") else None

    if config is None:
        day_schedule = copy.deepcopy(DEFAULT_WEEKLY_SCHEDULE[day_name])
    else:
        weekly_schedule = config.get("weeklySchedule")
        if not isinstance(weekly_schedule, dict):
            return None
        day_schedule = weekly_schedule.get(day_name)

    if not isinstance(day_schedule, dict) or not day_schedule.get("isAvailable"):
        return None
    return day_schedule


def generate_slots(day_schedule: Optional[Dict[str, Any]]) -> List[str]:
    """One "start-end" slot per enabled period, morning to evening"""
    if not day_schedule or not day_schedule.get("isAvailable"):
        return []

    slots = []
    for period in PERIODS:
        window = day_schedule.get(period)
        if not isinstance(window, dict) or not window.get("enabled"):
            continue
        start, end = window.get("startTime"), window.get("endTime")
        if not start or not end:
            continue
        slots.append(f"{start}-{end}")
    return slots


def compute_available_dates(
    config: ConfigLike,
    year: int,
    month: int,
    today: date
) -> List[Dict[str, Any]]:
    """
    Bookable dates of a month with their open time windows.

    ``month`` is 0-based (0 = January). Dates before ``today`` or more than
    ``maxAdvanceBookingDays`` after it are left out, as are dates that end up
    with no slots. Output is ascending by date.

    Never raises on a malformed config: unreadable entries count as closed.
    """
    config = _as_dict(config)
    calendar_month = month + 1
    _, num_days = monthrange(year, calendar_month)
    max_date = _max_booking_date(today, config)

    available_dates = []
    for day_of_month in range(1, num_days + 1):
        day = date(year, calendar_month, day_of_month)

        if day < today or day > max_date:
            continue

        slots = generate_slots(resolve_day_schedule(config, day))
        if slots:
            available_dates.append({
                "date": day.isoformat(),
                "slots": slots
            })

    return available_dates


async def get_available_dates_for_tenant(
    company_id: str,
    department_id: Optional[str],
    year: int,
    month: int,
    today: date
) -> List[Dict[str, Any]]:
    """
    Read path for the chatbot: load the active config for the scope and
    resolve the month. An inactive or missing config falls back to defaults.
    """
    from app.db.availability import get_availability

    availability = await get_availability(company_id, department_id, active_only=True)
    if availability is None:
        logger.info(f"No active availability for company {company_id}, using defaults")

    return compute_available_dates(availability, year, month, today)
