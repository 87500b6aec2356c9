import pytest
from datetime import date, datetime
from pymongo.errors import DuplicateKeyError

from app.db.availability import (
    add_special_date,
    get_availability,
    get_or_create_availability,
    import_holidays,
    remove_special_date,
    scope_query,
    serialize_availability,
    update_availability,
)
from app.db.mongodb import AVAILABILITY_COLLECTION, create_indexes
from app.services.availability_service import get_available_dates_for_tenant


def test_scope_query_distinguishes_company_wide_from_department():
    assert scope_query("c1") == {"companyId": "c1", "departmentId": {"$exists": False}}
    assert scope_query("c1", "d1") == {"companyId": "c1", "departmentId": "d1"}


@pytest.mark.asyncio
async def test_create_indexes(fake_db):
    await create_indexes()


@pytest.mark.asyncio
async def test_get_or_create_inserts_default_once(fake_db):
    first = await get_or_create_availability("c1")
    second = await get_or_create_availability("c1")

    assert first["_id"] == second["_id"]
    assert len(fake_db[AVAILABILITY_COLLECTION].documents) == 1
    assert first["companyId"] == "c1"
    assert "departmentId" not in first
    assert first["weeklySchedule"]["monday"]["isAvailable"] is True
    assert first["maxAdvanceBookingDays"] == 30
    assert first["isActive"] is True


def race_on_first_upsert(monkeypatch, collection, company_id):
    """Make the next upsert lose to a concurrent insert of the same scope"""
    original = collection.find_one_and_update
    state = {"raced": False}

    async def find_one_and_update(query, update, upsert=False, **kwargs):
        if upsert and not state["raced"]:
            state["raced"] = True
            await collection.insert_one({"companyId": company_id, "maxAdvanceBookingDays": 45, "specialDates": []})
            raise DuplicateKeyError("E11000 duplicate key error collection: appointment_availability")
        return await original(query, update, upsert=upsert, **kwargs)

    monkeypatch.setattr(collection, "find_one_and_update", find_one_and_update)
    return state


@pytest.mark.asyncio
async def test_get_or_create_reads_back_a_concurrently_created_config(fake_db, monkeypatch):
    collection = fake_db[AVAILABILITY_COLLECTION]
    state = race_on_first_upsert(monkeypatch, collection, "c1")

    availability = await get_or_create_availability("c1")

    assert state["raced"] is True
    assert len(collection.documents) == 1
    assert availability["_id"] == collection.documents[0]["_id"]
    assert availability["maxAdvanceBookingDays"] == 45


@pytest.mark.asyncio
async def test_update_retries_after_losing_the_insert_race(fake_db, monkeypatch):
    collection = fake_db[AVAILABILITY_COLLECTION]
    race_on_first_upsert(monkeypatch, collection, "c1")

    updated = await update_availability("c1", None, {"slotDurationMinutes": 15})

    assert len(collection.documents) == 1
    assert updated["slotDurationMinutes"] == 15
    assert updated["maxAdvanceBookingDays"] == 45


@pytest.mark.asyncio
async def test_add_special_date_retries_after_losing_the_insert_race(fake_db, monkeypatch):
    collection = fake_db[AVAILABILITY_COLLECTION]
    race_on_first_upsert(monkeypatch, collection, "c1")

    added = await add_special_date("c1", None, {"date": date(2025, 3, 14), "isAvailable": False})

    assert len(collection.documents) == 1
    assert added["maxAdvanceBookingDays"] == 45
    assert added["specialDates"] == [{"date": datetime(2025, 3, 14), "isAvailable": False}]


@pytest.mark.asyncio
async def test_department_config_is_separate_from_company_wide(fake_db):
    company_wide = await get_or_create_availability("c1")
    department = await get_or_create_availability("c1", "d1")

    assert company_wide["_id"] != department["_id"]
    assert department["departmentId"] == "d1"
    assert (await get_availability("c1"))["_id"] == company_wide["_id"]
    assert await get_availability("c2") is None


@pytest.mark.asyncio
async def test_update_upserts_with_defaults(fake_db):
    availability = await update_availability("c1", None, {"maxAdvanceBookingDays": 14})

    assert availability["maxAdvanceBookingDays"] == 14
    assert availability["slotDurationMinutes"] == 30
    assert availability["weeklySchedule"]["friday"]["isAvailable"] is True
    assert "createdAt" in availability and "updatedAt" in availability


@pytest.mark.asyncio
async def test_update_ignores_scope_fields(fake_db):
    await get_or_create_availability("c1")

    availability = await update_availability("c1", None, {"companyId": "c2", "isActive": False})

    assert availability["companyId"] == "c1"
    assert availability["isActive"] is False


@pytest.mark.asyncio
async def test_inactive_config_is_hidden_from_public_reads(fake_db):
    await update_availability("c1", None, {"isActive": False, "weeklySchedule": {}})

    assert await get_availability("c1", active_only=True) is None
    # falls back to the weekday default rather than the empty stored schedule
    dates = await get_available_dates_for_tenant("c1", None, 2025, 0, date(2025, 1, 1))
    assert dates[0] == {"date": "2025-01-01", "slots": ["09:00-12:00", "14:00-17:00"]}


@pytest.mark.asyncio
async def test_add_special_date_stores_midnight_datetime(fake_db):
    availability = await add_special_date(
        "c1", None, {"date": date(2025, 1, 26), "isAvailable": False, "reason": "Republic Day"}
    )

    assert availability["specialDates"] == [
        {"date": datetime(2025, 1, 26), "isAvailable": False, "reason": "Republic Day"}
    ]
    # upsert also filled in the weekly template
    assert availability["weeklySchedule"]["monday"]["isAvailable"] is True

    dates = await get_available_dates_for_tenant("c1", None, 2025, 0, date(2025, 1, 20))
    assert "2025-01-27" in [item["date"] for item in dates]


@pytest.mark.asyncio
async def test_add_special_date_keeps_duplicates(fake_db):
    await add_special_date("c1", None, {"date": date(2025, 1, 10), "isAvailable": False})
    availability = await add_special_date("c1", None, {"date": date(2025, 1, 10), "isAvailable": True})

    assert len(availability["specialDates"]) == 2


@pytest.mark.asyncio
async def test_remove_special_date_matches_whole_calendar_day(fake_db):
    await get_or_create_availability("c1")
    collection = fake_db[AVAILABILITY_COLLECTION]
    collection.documents[0]["specialDates"] = [
        {"date": datetime(2025, 1, 26, 10, 30), "isAvailable": False},
        {"date": datetime(2025, 1, 26, 23, 59, 59), "isAvailable": False},
        {"date": datetime(2025, 1, 27), "isAvailable": False},
    ]

    availability = await remove_special_date("c1", None, date(2025, 1, 26))

    assert availability["specialDates"] == [{"date": datetime(2025, 1, 27), "isAvailable": False}]


@pytest.mark.asyncio
async def test_remove_special_date_without_config_returns_none(fake_db):
    assert await remove_special_date("c1", None, date(2025, 1, 26)) is None
    assert fake_db[AVAILABILITY_COLLECTION].documents == []


@pytest.mark.asyncio
async def test_import_holidays_skips_existing_overrides(fake_db):
    await add_special_date("c1", None, {"date": date(2025, 1, 26), "isAvailable": True})

    availability, added = await import_holidays("c1", None, 2025)

    assert added == 18
    republic_day = [sd for sd in availability["specialDates"] if sd["date"] == datetime(2025, 1, 26)]
    assert len(republic_day) == 1 and republic_day[0]["isAvailable"] is True

    _, added_again = await import_holidays("c1", None, 2025)
    assert added_again == 0


def test_serialize_availability():
    stored = {
        "_id": "64b000000000000000000001",
        "companyId": "c1",
        "specialDates": [{"date": datetime(2025, 1, 26), "isAvailable": False}],
    }

    result = serialize_availability(stored)

    assert result["id"] == "64b000000000000000000001"
    assert "_id" not in result
    assert result["specialDates"][0]["date"] == "2025-01-26"
    assert stored["specialDates"][0]["date"] == datetime(2025, 1, 26)
    assert serialize_availability(None) is None
