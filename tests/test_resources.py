"""
Tests for resource lifecycle endpoints.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from booking_engine.core.clock import utc_now
from booking_engine.models.enums import ResourceStatus


def _payload(**overrides):
    start = utc_now() + timedelta(days=14)
    payload = {
        "title": "Spring Jazz Night",
        "description": "Three sets, one stage",
        "category": "concert",
        "venue": "Blue Room",
        "city": "Lyon",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=3)).isoformat(),
        "capacity": 50,
        "unit_price": "25.00",
    }
    payload.update(overrides)
    return payload


async def _create(client: AsyncClient, headers, **overrides):
    return await client.post("/api/v1/resources/", json=_payload(**overrides), headers=headers)


@pytest.mark.asyncio
async def test_create_resource(client: AsyncClient, organizer_headers):
    """Organizers create resources in draft."""
    response = await _create(client, organizer_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "draft"
    assert data["capacity"] == 50
    assert data["owner_id"] == 1


@pytest.mark.asyncio
async def test_client_cannot_create_resource(client: AsyncClient, customer_headers):
    response = await _create(client, customer_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_resource_in_the_past(client: AsyncClient, organizer_headers):
    start = utc_now() - timedelta(days=1)
    response = await _create(
        client, organizer_headers,
        start_time=start.isoformat(),
        end_time=(start + timedelta(hours=2)).isoformat(),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_resource_ending_before_start(client: AsyncClient, organizer_headers):
    start = utc_now() + timedelta(days=3)
    response = await _create(
        client, organizer_headers,
        start_time=start.isoformat(),
        end_time=(start - timedelta(hours=1)).isoformat(),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_resource_invalid_capacity(client: AsyncClient, organizer_headers):
    response = await _create(client, organizer_headers, capacity=0)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_publish_resource(client: AsyncClient, organizer_headers, customer_headers):
    """Draft -> published makes it bookable; publishing twice is refused."""
    resource = (await _create(client, organizer_headers)).json()

    response = await client.post(f"/api/v1/resources/{resource['id']}/publish", headers=customer_headers)
    assert response.status_code == 403

    response = await client.post(f"/api/v1/resources/{resource['id']}/publish", headers=organizer_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "published"

    response = await client.post(f"/api/v1/resources/{resource['id']}/publish", headers=organizer_headers)
    assert response.status_code == 409

    booking = await client.post(
        "/api/v1/bookings/", json={"resource_id": resource["id"], "units": 2}, headers=customer_headers,
    )
    assert booking.status_code == 201
    assert float(booking.json()["amount"]) == 50.0


@pytest.mark.asyncio
async def test_publish_with_missing_fields(client: AsyncClient, organizer_headers):
    resource = (await _create(client, organizer_headers, venue=None, unit_price=None)).json()

    response = await client.post(f"/api/v1/resources/{resource['id']}/publish", headers=organizer_headers)
    assert response.status_code == 400
    assert set(response.json()["missing_fields"]) == {"venue", "unit_price"}


@pytest.mark.asyncio
async def test_update_resource(client: AsyncClient, organizer_headers, other_customer_headers, test_resource):
    payload = _payload(title="Renamed Concert", capacity=120)

    response = await client.put(f"/api/v1/resources/{test_resource.id}", json=payload, headers=other_customer_headers)
    assert response.status_code == 403

    response = await client.put(f"/api/v1/resources/{test_resource.id}", json=payload, headers=organizer_headers)
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed Concert"

    availability = await client.get(f"/api/v1/resources/{test_resource.id}/availability")
    assert availability.json() == {"resource_id": test_resource.id, "capacity": 120, "available_units": 120}


@pytest.mark.asyncio
async def test_capacity_cannot_drop_below_booked(client: AsyncClient, organizer_headers, customer_headers, make_resource):
    resource = await make_resource(capacity=10)
    for _ in range(2):
        await client.post("/api/v1/bookings/", json={"resource_id": resource.id, "units": 3}, headers=customer_headers)

    response = await client.put(
        f"/api/v1/resources/{resource.id}", json=_payload(capacity=5), headers=organizer_headers,
    )
    assert response.status_code == 409
    assert response.json()["allocated_units"] == 6

    response = await client.put(
        f"/api/v1/resources/{resource.id}", json=_payload(capacity=6), headers=organizer_headers,
    )
    assert response.status_code == 200
    availability = await client.get(f"/api/v1/resources/{resource.id}/availability")
    assert availability.json()["available_units"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [ResourceStatus.FINISHED, ResourceStatus.CANCELLED])
async def test_terminal_resource_cannot_be_updated(client: AsyncClient, organizer_headers, make_resource, status):
    resource = await make_resource(status=status)
    response = await client.put(f"/api/v1/resources/{resource.id}", json=_payload(), headers=organizer_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_cancel_resource(client: AsyncClient, organizer_headers, customer_headers, test_resource):
    """A cancelled resource is unbookable; cancelling again is refused."""
    booking = (await client.post(
        "/api/v1/bookings/", json={"resource_id": test_resource.id, "units": 1}, headers=customer_headers,
    )).json()

    response = await client.post(f"/api/v1/resources/{test_resource.id}/cancel", headers=organizer_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = await client.post(
        "/api/v1/bookings/", json={"resource_id": test_resource.id, "units": 1}, headers=customer_headers,
    )
    assert response.status_code == 409

    response = await client.post(f"/api/v1/resources/{test_resource.id}/cancel", headers=organizer_headers)
    assert response.status_code == 409

    # Existing bookings are left alone unless cascading is enabled
    response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=customer_headers)
    assert response.json()["status"] == "pending"


@pytest.mark.asyncio
async def test_cancel_resource_cascades(client: AsyncClient, organizer_headers, customer_headers, test_resource,
                                        settings, monkeypatch):
    monkeypatch.setattr(settings, "CASCADE_RESOURCE_CANCELLATION", True)
    booking = (await client.post(
        "/api/v1/bookings/", json={"resource_id": test_resource.id, "units": 4}, headers=customer_headers,
    )).json()

    response = await client.post(f"/api/v1/resources/{test_resource.id}/cancel", headers=organizer_headers)
    assert response.status_code == 200

    response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=customer_headers)
    assert response.json()["status"] == "cancelled"

    availability = await client.get(f"/api/v1/resources/{test_resource.id}/availability")
    assert availability.json()["available_units"] == 100


@pytest.mark.asyncio
async def test_delete_resource(client: AsyncClient, organizer_headers, customer_headers, make_resource):
    """Only never-booked resources can be deleted."""
    booked = await make_resource()
    await client.post("/api/v1/bookings/", json={"resource_id": booked.id, "units": 1}, headers=customer_headers)
    response = await client.delete(f"/api/v1/resources/{booked.id}", headers=organizer_headers)
    assert response.status_code == 409

    empty = await make_resource()
    response = await client.delete(f"/api/v1/resources/{empty.id}", headers=organizer_headers)
    assert response.status_code == 204
    assert (await client.get(f"/api/v1/resources/{empty.id}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_resource_with_only_cancelled_bookings(client: AsyncClient, organizer_headers, customer_headers,
                                                           make_resource):
    """Cancelled bookings are still history and block deletion."""
    resource = await make_resource()
    booking = (await client.post(
        "/api/v1/bookings/", json={"resource_id": resource.id, "units": 2}, headers=customer_headers,
    )).json()
    response = await client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=customer_headers)
    assert response.status_code == 200

    response = await client.delete(f"/api/v1/resources/{resource.id}", headers=organizer_headers)
    assert response.status_code == 409
    assert (await client.get(f"/api/v1/resources/{resource.id}")).status_code == 200


@pytest.mark.asyncio
async def test_list_published_resources(client: AsyncClient, make_resource):
    """Only published resources are listed, soonest first."""
    later = await make_resource(starts_in=timedelta(days=20), title="Later Show")
    sooner = await make_resource(starts_in=timedelta(days=5), title="Sooner Show")
    await make_resource(status=ResourceStatus.DRAFT, title="Draft Show")

    response = await client.get("/api/v1/resources/")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [r["id"] for r in data["resources"]] == [sooner.id, later.id]
    assert data["cached"] is False


@pytest.mark.asyncio
async def test_list_my_resources(client: AsyncClient, organizer_headers, make_resource):
    mine = await make_resource()
    await make_resource(owner_id=7)

    response = await client.get("/api/v1/resources/mine", headers=organizer_headers)
    assert [r["id"] for r in response.json()] == [mine.id]


@pytest.mark.asyncio
async def test_list_resource_bookings(client: AsyncClient, organizer_headers, customer_headers, test_resource):
    await client.post("/api/v1/bookings/", json={"resource_id": test_resource.id, "units": 2}, headers=customer_headers)

    response = await client.get(f"/api/v1/resources/{test_resource.id}/bookings", headers=organizer_headers)
    assert response.status_code == 200
    assert [b["units"] for b in response.json()] == [2]

    response = await client.get(f"/api/v1/resources/{test_resource.id}/bookings", headers=customer_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_unknown_resource(client: AsyncClient):
    response = await client.get("/api/v1/resources/999999")
    assert response.status_code == 404


def test_lifecycle_module_compiles_without_warnings():
    """The state diagram docstring must not contain invalid escape sequences."""
    import inspect
    import warnings

    from booking_engine.services import resource_service

    source = inspect.getsource(resource_service)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, resource_service.__file__, "exec")
