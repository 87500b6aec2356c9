from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from typing import Dict, Any, Optional
from datetime import date, datetime
from zoneinfo import ZoneInfo
import copy
import logging

from app.core.config import settings
from app.core.tenant import TenantScope, get_tenant_scope
from app.schemas.availability import (
    AvailabilityUpdate, SpecialDateCreate, SpecialDateRemove,
    AvailableDatesResponse, HolidaysResponse
)
from app.services.availability_service import DEFAULT_AVAILABILITY, get_available_dates_for_tenant
from app.services.holiday_service import get_holidays
from app.db.availability import (
    get_availability,
    get_or_create_availability,
    update_availability,
    add_special_date,
    remove_special_date,
    import_holidays,
    serialize_availability
)

router = APIRouter()
logger = logging.getLogger(__name__)

def get_today() -> date:
    """Reference date for booking windows, in the portal's timezone"""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()

@router.get("/", response_model=Dict[str, Any])
async def get_my_availability(scope: TenantScope = Depends(get_tenant_scope)):
    """
    Get the availability settings for the caller's company or department.
    A default configuration is created on first read.
    """
    try:
        availability = await get_or_create_availability(scope.company_id, scope.department_id)
        return {"availability": serialize_availability(availability)}
    except Exception as e:
        logger.error(f"Error fetching availability: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while retrieving availability"
        )

@router.put("/", response_model=Dict[str, Any])
async def update_my_availability(
    availability_data: AvailabilityUpdate,
    scope: TenantScope = Depends(get_tenant_scope)
):
    """
    Update weekly schedule, booking limits or active flag
    """
    scope = scope.for_department(availability_data.departmentId)
    update_data = availability_data.dict(exclude_unset=True, exclude_none=True, exclude={"departmentId"})
    # A supplied schedule replaces the stored one as a whole
    if availability_data.weeklySchedule is not None:
        update_data["weeklySchedule"] = availability_data.weeklySchedule.dict(exclude_none=True)
    if availability_data.specialDates is not None:
        update_data["specialDates"] = [
            special_date.dict(exclude_none=True) for special_date in availability_data.specialDates
        ]
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No availability fields supplied"
        )

    try:
        availability = await update_availability(scope.company_id, scope.department_id, update_data)
        return {"availability": serialize_availability(availability)}
    except Exception as e:
        logger.error(f"Error updating availability: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while updating availability"
        )

@router.post("/special-date", response_model=Dict[str, Any])
async def add_my_special_date(
    special_date_in: SpecialDateCreate,
    scope: TenantScope = Depends(get_tenant_scope)
):
    """
    Add a holiday (isAvailable=false) or custom hours for a single date
    """
    scope = scope.for_department(special_date_in.departmentId)
    try:
        availability = await add_special_date(
            scope.company_id,
            scope.department_id,
            special_date_in.specialDate.dict(exclude_none=True)
        )
        return {"availability": serialize_availability(availability)}
    except Exception as e:
        logger.error(f"Error adding special date: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while adding special date"
        )

@router.delete("/special-date", response_model=Dict[str, Any])
async def remove_my_special_date(
    special_date_in: SpecialDateRemove,
    scope: TenantScope = Depends(get_tenant_scope)
):
    """
    Remove the special date(s) on a calendar date
    """
    scope = scope.for_department(special_date_in.departmentId)
    try:
        availability = await remove_special_date(
            scope.company_id, scope.department_id, special_date_in.date
        )
        if availability is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Availability settings not found"
            )
        return {"availability": serialize_availability(availability)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error removing special date: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while removing special date"
        )

@router.post("/holidays/{year}/import", response_model=Dict[str, Any])
async def import_my_holidays(
    year: int = Path(..., ge=1900, le=2100, description="Year to import holidays for"),
    scope: TenantScope = Depends(get_tenant_scope)
):
    """
    Mark the year's catalog holidays as closed, keeping existing overrides
    """
    try:
        availability, added = await import_holidays(scope.company_id, scope.department_id, year)
        return {"availability": serialize_availability(availability), "added": added}
    except Exception as e:
        logger.error(f"Error importing holidays: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while importing holidays"
        )

@router.get("/public/{company_id}", response_model=Dict[str, Any])
async def get_public_availability(
    company_id: str,
    departmentId: Optional[str] = Query(None, description="Department scope; omit for company-wide")
):
    """
    Get active availability settings for the chatbot.
    Falls back to the default schedule when none is configured.
    """
    try:
        availability = await get_availability(company_id, departmentId, active_only=True)
        if availability is None:
            return {"success": True, "data": {"availability": copy.deepcopy(DEFAULT_AVAILABILITY)}}
        return {"success": True, "data": {"availability": serialize_availability(availability)}}
    except Exception as e:
        logger.error(f"Error fetching public availability: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while retrieving availability"
        )

@router.get("/available-dates/{company_id}", response_model=AvailableDatesResponse)
async def get_available_dates(
    company_id: str,
    departmentId: Optional[str] = Query(None, description="Department scope; omit for company-wide"),
    month: Optional[int] = Query(None, description="Month to list (0-11, 0 = January); defaults to the current month"),
    year: Optional[int] = Query(None, description="Year to list; defaults to the current year"),
    today: date = Depends(get_today)
):
    """
    Get bookable dates and their time slots for a month
    """
    target_month = month if month is not None else today.month - 1
    target_year = year if year is not None else today.year

    # Validate month input
    if target_month < 0 or target_month > 11:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Month must be between 0 and 11"
        )
    if target_year < 1 or target_year > 9999:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid year"
        )

    try:
        available_dates = await get_available_dates_for_tenant(
            company_id, departmentId, target_year, target_month, today
        )
        return {"availableDates": available_dates}
    except Exception as e:
        logger.error(f"Error fetching available dates: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error occurred while retrieving available dates"
        )

@router.get("/holidays/{year}", response_model=HolidaysResponse)
async def get_holiday_list(year: int = Path(..., ge=1, le=9999, description="Year to list holidays for")):
    """
    Get the national and regional holidays for a year
    """
    return {"holidays": get_holidays(year), "year": year}
