"""
Tests for charger endpoints: registration, listing, owner updates and deletion.
"""

import pytest
from httpx import AsyncClient

from conftest import auth

NEW_CHARGER = {
    "name": "Garage Wallbox",
    "description": "Behind the blue gate",
    "address": "12 Elm Street",
    "latitude": 51.5,
    "longitude": -0.12,
    "charger_type": "Level 2",
    "price_per_hour": 3.5,
}


@pytest.mark.asyncio
async def test_create_charger(client: AsyncClient, owner):
    """New chargers start with every slot available."""
    response = await client.post("/api/v1/chargers/", json={**NEW_CHARGER, "total_slots": 3}, headers=auth(owner))
    assert response.status_code == 201
    data = response.json()
    assert data["owner_id"] == owner.id
    assert data["total_slots"] == 3
    assert data["available_slots"] == 3


@pytest.mark.asyncio
async def test_create_charger_default_slots(client: AsyncClient, owner):
    response = await client.post("/api/v1/chargers/", json=NEW_CHARGER, headers=auth(owner))
    assert response.status_code == 201
    assert response.json()["total_slots"] == 4
    assert response.json()["available_slots"] == 4


@pytest.mark.asyncio
async def test_driver_cannot_create_charger(client: AsyncClient, driver):
    response = await client.post("/api/v1/chargers/", json=NEW_CHARGER, headers=auth(driver))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_charger_invalid_type(client: AsyncClient, owner):
    response = await client.post(
        "/api/v1/chargers/", json={**NEW_CHARGER, "charger_type": "Tesla Only"}, headers=auth(owner),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_chargers(client: AsyncClient, charger, single_slot_charger):
    """Listing is public and paginated."""
    response = await client.get("/api/v1/chargers/?page=1&page_size=1")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["page_size"] == 1
    assert len(data["chargers"]) == 1
    assert data["cached"] is False


@pytest.mark.asyncio
async def test_get_charger(client: AsyncClient, charger):
    response = await client.get(f"/api/v1/chargers/{charger.id}")
    assert response.status_code == 200
    assert response.json()["name"] == "Depot Fast Charge"


@pytest.mark.asyncio
async def test_get_charger_not_found(client: AsyncClient):
    response = await client.get("/api/v1/chargers/99999")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_list_my_chargers(client: AsyncClient, owner, other_owner, charger, single_slot_charger):
    mine = await client.get("/api/v1/chargers/mine", headers=auth(owner))
    assert {c["id"] for c in mine.json()} == {charger.id, single_slot_charger.id}

    theirs = await client.get("/api/v1/chargers/mine", headers=auth(other_owner))
    assert theirs.json() == []


@pytest.mark.asyncio
async def test_update_charger(client: AsyncClient, owner, charger):
    response = await client.patch(
        f"/api/v1/chargers/{charger.id}",
        json={"name": "Depot Ultra", "price_per_hour": 6.0},
        headers=auth(owner),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Depot Ultra"
    assert data["price_per_hour"] == 6.0
    assert data["address"] == "99 Harbour Rd"


@pytest.mark.asyncio
async def test_update_charger_cannot_touch_slots(client: AsyncClient, owner, charger):
    """Slot counters are not part of the update command."""
    response = await client.patch(
        f"/api/v1/chargers/{charger.id}",
        json={"available_slots": 50},
        headers=auth(owner),
    )
    assert response.status_code == 422

    current = await client.get(f"/api/v1/chargers/{charger.id}")
    assert current.json()["available_slots"] == 4


@pytest.mark.asyncio
async def test_update_charger_other_owner(client: AsyncClient, other_owner, charger):
    response = await client.patch(
        f"/api/v1/chargers/{charger.id}", json={"name": "Mine now"}, headers=auth(other_owner),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_delete_charger(client: AsyncClient, owner, charger):
    response = await client.delete(f"/api/v1/chargers/{charger.id}", headers=auth(owner))
    assert response.status_code == 204

    missing = await client.get(f"/api/v1/chargers/{charger.id}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_charger_with_active_booking(client: AsyncClient, owner, driver, charger, start_time):
    """A charger with an occupied slot cannot be removed."""
    await client.post(
        "/api/v1/bookings/",
        json={"charger_id": charger.id, "start_time": start_time.isoformat(), "duration_hours": 1.0},
        headers=auth(driver),
    )

    response = await client.delete(f"/api/v1/chargers/{charger.id}", headers=auth(owner))
    assert response.status_code == 409
    assert response.json()["current_status"] == "occupied"

    still_there = await client.get(f"/api/v1/chargers/{charger.id}")
    assert still_there.status_code == 200


@pytest.mark.asyncio
async def test_delete_charger_after_history(client: AsyncClient, owner, driver, charger, start_time):
    """Finished bookings and open requests do not block deletion."""
    created = await client.post(
        "/api/v1/bookings/",
        json={"charger_id": charger.id, "start_time": start_time.isoformat(), "duration_hours": 1.0},
        headers=auth(driver),
    )
    await client.put(f"/api/v1/bookings/{created.json()['booking']['id']}/complete", headers=auth(driver))
    await client.post(
        "/api/v1/booking-requests/",
        json={"charger_id": charger.id, "start_time": start_time.isoformat(), "duration_hours": 1.0},
        headers=auth(driver),
    )

    response = await client.delete(f"/api/v1/chargers/{charger.id}", headers=auth(owner))
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_charger_bookings_owner_only(client: AsyncClient, owner, other_owner, driver, charger, start_time):
    await client.post(
        "/api/v1/bookings/",
        json={"charger_id": charger.id, "start_time": start_time.isoformat(), "duration_hours": 0.5},
        headers=auth(driver),
    )

    response = await client.get(f"/api/v1/chargers/{charger.id}/bookings", headers=auth(owner))
    assert response.status_code == 200
    assert len(response.json()) == 1
    assert response.json()[0]["user_id"] == driver.id

    denied = await client.get(f"/api/v1/chargers/{charger.id}/bookings", headers=auth(other_owner))
    assert denied.status_code == 403
