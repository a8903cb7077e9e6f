"""
Tests for direct booking endpoints including concurrency scenarios.
"""

import asyncio

import pytest
from httpx import AsyncClient

from conftest import auth


def _booking_payload(charger, start_time, duration_hours=1.0) -> dict:
    return {
        "charger_id": charger.id,
        "start_time": start_time.isoformat(),
        "duration_hours": duration_hours,
    }


@pytest.mark.asyncio
async def test_book_slot(client: AsyncClient, driver, charger, start_time):
    """Successful booking decrements available slots and awards points."""
    response = await client.post(
        "/api/v1/bookings/",
        json=_booking_payload(charger, start_time, 1.5),
        headers=auth(driver),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Booking created successfully"
    assert data["green_points_earned"] == 10
    assert data["booking"]["charger_id"] == charger.id
    assert data["booking"]["status"] == "active"
    assert data["booking"]["duration_hours"] == 1.5

    charger_response = await client.get(f"/api/v1/chargers/{charger.id}")
    assert charger_response.json()["available_slots"] == 3

    impact = await client.get("/api/v1/accounts/me/impact", headers=auth(driver))
    assert impact.json()["green_score"] == 60
    assert impact.json()["total_sessions"] == 1


@pytest.mark.asyncio
async def test_book_slot_unauthenticated(client: AsyncClient, charger, start_time):
    """Booking without a caller identity returns 401."""
    response = await client.post("/api/v1/bookings/", json=_booking_payload(charger, start_time))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_slot_unknown_caller(client: AsyncClient, charger, start_time):
    response = await client.post(
        "/api/v1/bookings/",
        json=_booking_payload(charger, start_time),
        headers={"X-User-Id": "4040"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_owner_cannot_book(client: AsyncClient, owner, charger, start_time):
    response = await client.post(
        "/api/v1/bookings/",
        json=_booking_payload(charger, start_time),
        headers=auth(owner),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_book_full_charger(client: AsyncClient, driver, full_charger, start_time):
    """Booking a charger with no free slots returns a retryable 409."""
    response = await client.post(
        "/api/v1/bookings/",
        json=_booking_payload(full_charger, start_time),
        headers=auth(driver),
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "no_capacity"
    assert body["retryable"] is True


@pytest.mark.asyncio
async def test_book_unknown_charger(client: AsyncClient, driver, start_time):
    response = await client.post(
        "/api/v1/bookings/",
        json={"charger_id": 9999, "start_time": start_time.isoformat(), "duration_hours": 1.0},
        headers=auth(driver),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_book_duration_out_of_range(client: AsyncClient, driver, charger, start_time):
    """A 2 hour booking is rejected and nothing changes."""
    response = await client.post(
        "/api/v1/bookings/",
        json=_booking_payload(charger, start_time, 2.0),
        headers=auth(driver),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    assert response.json()["retryable"] is False

    charger_response = await client.get(f"/api/v1/chargers/{charger.id}")
    assert charger_response.json()["available_slots"] == 4
    listing = await client.get("/api/v1/bookings/", headers=auth(driver))
    assert listing.json() == []
    profile = await client.get("/api/v1/accounts/me", headers=auth(driver))
    assert profile.json()["green_score"] == 50


@pytest.mark.asyncio
async def test_book_missing_fields(client: AsyncClient, driver, charger):
    response = await client.post(
        "/api/v1/bookings/",
        json={"charger_id": charger.id},
        headers=auth(driver),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_complete_booking(client: AsyncClient, driver, charger, start_time):
    created = await client.post(
        "/api/v1/bookings/", json=_booking_payload(charger, start_time), headers=auth(driver),
    )
    booking_id = created.json()["booking"]["id"]

    response = await client.put(f"/api/v1/bookings/{booking_id}/complete", headers=auth(driver))
    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "completed"

    charger_response = await client.get(f"/api/v1/chargers/{charger.id}")
    assert charger_response.json()["available_slots"] == 4


@pytest.mark.asyncio
async def test_cancel_booking(client: AsyncClient, driver, charger, start_time):
    """Cancelling restores the slot and takes back the points."""
    created = await client.post(
        "/api/v1/bookings/", json=_booking_payload(charger, start_time), headers=auth(driver),
    )
    booking_id = created.json()["booking"]["id"]

    response = await client.put(f"/api/v1/bookings/{booking_id}/cancel", headers=auth(driver))
    assert response.status_code == 200
    assert response.json()["message"] == "Booking cancelled successfully"
    assert response.json()["booking"]["status"] == "cancelled"

    charger_response = await client.get(f"/api/v1/chargers/{charger.id}")
    assert charger_response.json()["available_slots"] == 4
    profile = await client.get("/api/v1/accounts/me", headers=auth(driver))
    assert profile.json()["green_score"] == 50


@pytest.mark.asyncio
async def test_double_cancel(client: AsyncClient, driver, charger, start_time):
    """Cancelling twice returns 409 and releases the slot only once."""
    created = await client.post(
        "/api/v1/bookings/", json=_booking_payload(charger, start_time), headers=auth(driver),
    )
    booking_id = created.json()["booking"]["id"]

    first = await client.put(f"/api/v1/bookings/{booking_id}/cancel", headers=auth(driver))
    assert first.status_code == 200

    second = await client.put(f"/api/v1/bookings/{booking_id}/cancel", headers=auth(driver))
    assert second.status_code == 409
    assert second.json()["error"] == "invalid_state"
    assert second.json()["current_status"] == "cancelled"

    charger_response = await client.get(f"/api/v1/chargers/{charger.id}")
    assert charger_response.json()["available_slots"] == 4


@pytest.mark.asyncio
async def test_cancel_other_drivers_booking(client: AsyncClient, driver, second_driver, charger, start_time):
    created = await client.post(
        "/api/v1/bookings/", json=_booking_payload(charger, start_time), headers=auth(driver),
    )
    booking_id = created.json()["booking"]["id"]

    response = await client.put(f"/api/v1/bookings/{booking_id}/cancel", headers=auth(second_driver))
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


@pytest.mark.asyncio
async def test_cancel_unknown_booking(client: AsyncClient, driver):
    response = await client.put("/api/v1/bookings/424242/cancel", headers=auth(driver))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_my_bookings(client: AsyncClient, driver, second_driver, charger, start_time):
    for _ in range(2):
        await client.post(
            "/api/v1/bookings/", json=_booking_payload(charger, start_time), headers=auth(driver),
        )
    await client.post(
        "/api/v1/bookings/", json=_booking_payload(charger, start_time), headers=auth(second_driver),
    )

    response = await client.get("/api/v1/bookings/", headers=auth(driver))
    assert response.status_code == 200
    bookings = response.json()
    assert len(bookings) == 2
    assert all(b["user_id"] == driver.id for b in bookings)


@pytest.mark.asyncio
async def test_concurrent_bookings_last_slot(client: AsyncClient, driver, second_driver, single_slot_charger, start_time):
    """Two drivers race for the last slot: one 201, one 409."""
    responses = await asyncio.gather(*(
        client.post(
            "/api/v1/bookings/",
            json=_booking_payload(single_slot_charger, start_time),
            headers=auth(account),
        )
        for account in (driver, second_driver)
    ))

    codes = sorted(r.status_code for r in responses)
    assert codes == [201, 409]

    charger_response = await client.get(f"/api/v1/chargers/{single_slot_charger.id}")
    assert charger_response.json()["available_slots"] == 0
