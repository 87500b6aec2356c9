from typing import List, Dict, Any, Optional, Tuple
from datetime import date, datetime, timedelta
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
import logging

from app.db.mongodb import db, AVAILABILITY_COLLECTION
from app.services.availability_service import build_default_config, to_calendar_date
from app.services.holiday_service import holidays_as_special_dates

logger = logging.getLogger(__name__)

SCOPE_FIELDS = ("companyId", "departmentId")

def _collection():
    return db.db[AVAILABILITY_COLLECTION]

def scope_query(company_id: str, department_id: Optional[str] = None) -> Dict[str, Any]:
    """Query matching exactly one tenant scope; no department means company-wide"""
    query: Dict[str, Any] = {"companyId": company_id}
    if department_id:
        query["departmentId"] = department_id
    else:
        query["departmentId"] = {"$exists": False}
    return query

def _start_of_day(value: date) -> datetime:
    # BSON has no date type, special dates are stored at midnight
    return datetime(value.year, value.month, value.day)

def _prepare_special_date(special_date: Dict[str, Any]) -> Dict[str, Any]:
    prepared = {key: value for key, value in special_date.items() if value is not None}
    day = to_calendar_date(prepared.get("date"))
    if day is not None:
        prepared["date"] = _start_of_day(day)
    return prepared

def _insert_defaults(company_id: str, department_id: Optional[str], exclude: Tuple[str, ...] = ()) -> Dict[str, Any]:
    """Default fields for an upsert, minus anything the update itself sets"""
    defaults = build_default_config(company_id, department_id)
    return {
        key: value for key, value in defaults.items()
        if key not in SCOPE_FIELDS and key not in exclude and key != "updatedAt"
    }

async def _upsert(query: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return await _collection().find_one_and_update(
            query, update, upsert=True, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        # A concurrent upsert created the scope first, the retry updates that document
        logger.info(f"Retrying upsert after concurrent insert: {query}")
        return await _collection().find_one_and_update(
            query, update, upsert=True, return_document=ReturnDocument.AFTER
        )

def serialize_availability(availability: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Make a stored config JSON friendly: string id, "YYYY-MM-DD" special dates"""
    if availability is None:
        return None
    result = dict(availability)
    if "_id" in result:
        result["id"] = str(result.pop("_id"))
    special_dates = []
    for special_date in result.get("specialDates") or []:
        item = dict(special_date)
        day = to_calendar_date(item.get("date"))
        if day is not None:
            item["date"] = day.isoformat()
        special_dates.append(item)
    result["specialDates"] = special_dates
    return result

async def get_availability(
    company_id: str,
    department_id: Optional[str] = None,
    active_only: bool = False
) -> Optional[Dict[str, Any]]:
    """Get the availability config of a tenant scope"""
    query = scope_query(company_id, department_id)
    if active_only:
        query["isActive"] = True
    return await _collection().find_one(query)

async def get_or_create_availability(company_id: str, department_id: Optional[str] = None) -> Dict[str, Any]:
    """Get the availability config of a tenant scope, creating the default one on first read"""
    availability = await get_availability(company_id, department_id)
    if availability:
        return availability

    now = datetime.utcnow()
    try:
        availability = await _collection().find_one_and_update(
            scope_query(company_id, department_id),
            {
                "$setOnInsert": _insert_defaults(company_id, department_id),
                "$set": {"updatedAt": now}
            },
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        logger.info(f"Availability for company {company_id} was created concurrently, reading it back")
        return await get_availability(company_id, department_id)
    logger.info(f"Default availability created for company {company_id} (department {department_id})")
    return availability

async def update_availability(
    company_id: str,
    department_id: Optional[str],
    update_data: Dict[str, Any]
) -> Dict[str, Any]:
    """Set the given fields on a tenant scope's config, creating it if needed"""
    update_data = {key: value for key, value in update_data.items() if key not in SCOPE_FIELDS}
    if "specialDates" in update_data:
        update_data["specialDates"] = [
            _prepare_special_date(special_date) for special_date in update_data["specialDates"]
        ]
    update_data["updatedAt"] = datetime.utcnow()

    availability = await _upsert(
        scope_query(company_id, department_id),
        {
            "$set": update_data,
            "$setOnInsert": _insert_defaults(company_id, department_id, exclude=tuple(update_data))
        }
    )
    logger.info(f"Availability settings updated for company {company_id}")
    return availability

async def add_special_date(
    company_id: str,
    department_id: Optional[str],
    special_date: Dict[str, Any]
) -> Dict[str, Any]:
    """Append a holiday or custom-hours override"""
    prepared = _prepare_special_date(special_date)
    availability = await _upsert(
        scope_query(company_id, department_id),
        {
            "$push": {"specialDates": prepared},
            "$set": {"updatedAt": datetime.utcnow()},
            "$setOnInsert": _insert_defaults(company_id, department_id, exclude=("specialDates",))
        }
    )
    logger.info(f"Special date added for company {company_id}: {prepared.get('date')}")
    return availability

async def remove_special_date(
    company_id: str,
    department_id: Optional[str],
    target: date
) -> Optional[Dict[str, Any]]:
    """
    Remove every override stored anywhere within the target calendar day.
    Returns None when the scope has no config.
    """
    start = _start_of_day(target)
    availability = await _collection().find_one_and_update(
        scope_query(company_id, department_id),
        {
            "$pull": {"specialDates": {"date": {"$gte": start, "$lt": start + timedelta(days=1)}}},
            "$set": {"updatedAt": datetime.utcnow()}
        },
        return_document=ReturnDocument.AFTER
    )
    if availability is not None:
        logger.info(f"Special date removed for company {company_id}: {target.isoformat()}")
    return availability

async def import_holidays(
    company_id: str,
    department_id: Optional[str],
    year: int
) -> Tuple[Dict[str, Any], int]:
    """
    Add the year's catalog holidays as closed special dates, skipping dates
    that already have an override
    """
    availability = await get_or_create_availability(company_id, department_id)
    existing = {
        to_calendar_date(special_date.get("date"))
        for special_date in availability.get("specialDates") or []
        if isinstance(special_date, dict)
    }
    new_dates: List[Dict[str, Any]] = [
        _prepare_special_date(holiday)
        for holiday in holidays_as_special_dates(year)
        if holiday["date"] not in existing
    ]
    if not new_dates:
        return availability, 0

    availability = await _collection().find_one_and_update(
        {"_id": availability["_id"]},
        {
            "$push": {"specialDates": {"$each": new_dates}},
            "$set": {"updatedAt": datetime.utcnow()}
        },
        return_document=ReturnDocument.AFTER
    )
    logger.info(f"Imported {len(new_dates)} holidays for company {company_id}, year {year}")
    return availability, len(new_dates)
