from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, List, Optional
from datetime import date, datetime
from enum import Enum

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"  # 24-hour "HH:MM"

DAY_NAMES = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
PERIODS = ["morning", "afternoon", "evening"]


def coerce_calendar_date(value: Any) -> Any:
    """Accept "2025-01-26", "2025-01-26T00:00:00.000Z" or a datetime for a date field."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[10] in ("T", " "):
        return value[:10]
    return value


class TimeWindow(BaseModel):
    enabled: bool = False
    startTime: Optional[str] = Field(None, pattern=TIME_PATTERN)  # e.g. "09:00"
    endTime: Optional[str] = Field(None, pattern=TIME_PATTERN)  # e.g. "12:00"

    @model_validator(mode="after")
    def check_enabled_window(self):
        if self.enabled:
            if not self.startTime or not self.endTime:
                raise ValueError("startTime and endTime are required for an enabled window")
            if self.startTime >= self.endTime:
                raise ValueError("startTime must be before endTime")
        return self


class DaySchedule(BaseModel):
    isAvailable: bool = False
    morning: Optional[TimeWindow] = None
    afternoon: Optional[TimeWindow] = None
    evening: Optional[TimeWindow] = None


class WeeklySchedule(BaseModel):
    sunday: DaySchedule = Field(default_factory=DaySchedule)
    monday: DaySchedule = Field(default_factory=DaySchedule)
    tuesday: DaySchedule = Field(default_factory=DaySchedule)
    wednesday: DaySchedule = Field(default_factory=DaySchedule)
    thursday: DaySchedule = Field(default_factory=DaySchedule)
    friday: DaySchedule = Field(default_factory=DaySchedule)
    saturday: DaySchedule = Field(default_factory=DaySchedule)


class SpecialDate(DaySchedule):
    """A holiday (isAvailable=False) or one-off custom hours for a single date"""
    date: date
    reason: Optional[str] = None  # e.g. "Republic Day"

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value):
        return coerce_calendar_date(value)


class AvailabilityConfig(BaseModel):
    id: Optional[str] = None
    companyId: str
    departmentId: Optional[str] = None
    weeklySchedule: WeeklySchedule = Field(default_factory=WeeklySchedule)
    specialDates: List[SpecialDate] = []
    slotDurationMinutes: int = 30
    maxAdvanceBookingDays: int = 30
    isActive: bool = True
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        populate_by_name = True
        json_encoders = {
            datetime: lambda dt: dt.isoformat()
        }


class AvailabilityUpdate(BaseModel):
    departmentId: Optional[str] = None
    weeklySchedule: Optional[WeeklySchedule] = None
    specialDates: Optional[List[SpecialDate]] = None
    slotDurationMinutes: Optional[int] = Field(None, ge=5, le=480)
    maxAdvanceBookingDays: Optional[int] = Field(None, ge=1, le=365)
    isActive: Optional[bool] = None


class SpecialDateCreate(BaseModel):
    departmentId: Optional[str] = None
    specialDate: SpecialDate


class SpecialDateRemove(BaseModel):
    departmentId: Optional[str] = None
    date: date

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value):
        return coerce_calendar_date(value)


class AvailableDate(BaseModel):
    date: str  # Format: "2025-01-15"
    slots: List[str] = []  # Format: ["09:00-12:00", "14:00-17:00"]


class AvailableDatesResponse(BaseModel):
    availableDates: List[AvailableDate]


class HolidayType(str, Enum):
    NATIONAL = "national"
    RELIGIOUS = "religious"


class Holiday(BaseModel):
    date: str  # Format: "2025-01-26"
    name: str
    type: HolidayType


class HolidaysResponse(BaseModel):
    holidays: List[Holiday]
    year: int
