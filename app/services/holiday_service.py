from typing import Dict, Any, List
from datetime import date

from app.schemas.availability import HolidayType

# (month, day, name, type). Religious holidays that move with the lunar
# calendar keep their last known dates; they are not recalculated per year.
HOLIDAY_CATALOG = [
    (1, 26, "Republic Day", HolidayType.NATIONAL),
    (3, 8, "Maha Shivaratri", HolidayType.RELIGIOUS),
    (3, 25, "Holi", HolidayType.RELIGIOUS),
    (4, 14, "Ambedkar Jayanti", HolidayType.NATIONAL),
    (4, 17, "Ram Navami", HolidayType.RELIGIOUS),
    (4, 21, "Mahavir Jayanti", HolidayType.RELIGIOUS),
    (5, 1, "May Day", HolidayType.NATIONAL),
    (5, 23, "Buddha Purnima", HolidayType.RELIGIOUS),
    (6, 17, "Eid ul-Fitr", HolidayType.RELIGIOUS),
    (7, 17, "Muharram", HolidayType.RELIGIOUS),
    (8, 15, "Independence Day", HolidayType.NATIONAL),
    (8, 26, "Janmashtami", HolidayType.RELIGIOUS),
    (9, 16, "Milad un-Nabi", HolidayType.RELIGIOUS),
    (10, 2, "Gandhi Jayanti", HolidayType.NATIONAL),
    (10, 12, "Dussehra", HolidayType.RELIGIOUS),
    (10, 31, "Diwali", HolidayType.RELIGIOUS),
    (11, 1, "Diwali Holiday", HolidayType.RELIGIOUS),
    (11, 15, "Guru Nanak Jayanti", HolidayType.RELIGIOUS),
    (12, 25, "Christmas", HolidayType.RELIGIOUS),
]


def get_holidays(year: int) -> List[Dict[str, Any]]:
    """
    National and regional holidays for a year
    """
    return [
        {
            "date": f"{year:04d}-{month:02d}-{day:02d}",
            "name": name,
            "type": holiday_type.value
        }
        for month, day, name, holiday_type in HOLIDAY_CATALOG
    ]


def holidays_as_special_dates(year: int) -> List[Dict[str, Any]]:
    """Catalog holidays as closed special dates, ready to append to a config"""
    return [
        {
            "date": date(year, month, day),
            "isAvailable": False,
            "reason": name
        }
        for month, day, name, _ in HOLIDAY_CATALOG
    ]
