"""
Tests for read-side statistics.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import AsyncClient

from booking_engine.models.booking import Booking
from booking_engine.models.enums import BookingStatus, ResourceStatus
from booking_engine.models.resource import Resource
from booking_engine.services.statistics_service import (
    occupancy_ratio,
    organizer_statistics,
    rank_popular_resources,
    requester_statistics,
    summarize_bookings,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _resource(id, capacity=10, days=10, status=ResourceStatus.PUBLISHED, owner_id=1):
    start = NOW + timedelta(days=days)
    return Resource(
        id=id, title=f"Resource {id}", capacity=capacity, start_time=start,
        end_time=start + timedelta(hours=2), status=status, owner_id=owner_id,
    )


def _booking(resource_id, units, amount, status=BookingStatus.CONFIRMED, requester_id=2):
    return Booking(
        resource_id=resource_id, units=units, amount=Decimal(amount), status=status,
        requester_id=requester_id, code=f"EVT-{10000 + units}",
    )


def test_summarize_ignores_cancelled():
    totals = summarize_bookings([
        _booking(1, 2, "40"),
        _booking(1, 3, "60", status=BookingStatus.PENDING),
        _booking(1, 5, "100", status=BookingStatus.CANCELLED),
    ])
    assert totals.bookings == 2
    assert totals.units == 5
    assert totals.revenue == Decimal("100")


def test_occupancy_ratio():
    assert occupancy_ratio(5, 10) == 0.5
    assert occupancy_ratio(0, 0) == 0.0


def test_rank_popular_resources():
    early, late, quiet = _resource(1, days=5), _resource(2, days=20), _resource(3)
    bookings = [
        _booking(1, 4, "40"),
        _booking(2, 4, "40"),
        _booking(3, 9, "90", status=BookingStatus.CANCELLED),
    ]
    ranked = rank_popular_resources([quiet, late, early], bookings)
    assert [u.resource.id for u in ranked] == [1, 2, 3]
    assert ranked[0].occupancy == 0.4
    assert ranked[2].allocated_units == 0

    assert len(rank_popular_resources([quiet, late, early], bookings, limit=1)) == 1


def test_organizer_statistics():
    resources = [_resource(1), _resource(2, status=ResourceStatus.DRAFT)]
    stats = organizer_statistics(resources, [
        _booking(1, 4, "80"),
        _booking(1, 2, "40", status=BookingStatus.CANCELLED),
        _booking(9, 5, "500"),
    ])
    assert stats.total_resources == 2
    assert stats.published_resources == 1
    assert stats.total_revenue == Decimal("80")
    assert stats.average_attendance == 2.0


def test_organizer_statistics_without_resources():
    stats = organizer_statistics([], [])
    assert stats.total_revenue == Decimal("0")
    assert stats.average_attendance == 0.0


def test_requester_statistics():
    bookings = [
        _booking(1, 1, "10"),
        _booking(2, 2, "20", status=BookingStatus.PENDING),
        _booking(3, 3, "30", status=BookingStatus.CANCELLED),
    ]
    start_times = {1: NOW + timedelta(days=1), 2: NOW - timedelta(days=1), 3: NOW + timedelta(days=2)}
    stats = requester_statistics(bookings, start_times, now=NOW)
    assert stats.total_bookings == 3
    assert stats.total_spent == Decimal("10")
    assert stats.upcoming_bookings == 1


@pytest.mark.asyncio
async def test_statistics_endpoints(client: AsyncClient, organizer_headers, customer_headers, make_resource):
    popular = await make_resource(capacity=10, title="Popular Show")
    await make_resource(capacity=10, title="Quiet Show")
    booking = (await client.post(
        "/api/v1/bookings/", json={"resource_id": popular.id, "units": 3}, headers=customer_headers,
    )).json()
    await client.post(f"/api/v1/bookings/{booking['id']}/confirm", headers=organizer_headers)

    response = await client.get("/api/v1/statistics/popular?limit=1")
    assert response.status_code == 200
    top = response.json()
    assert [r["resource_id"] for r in top] == [popular.id]
    assert top[0]["occupancy"] == pytest.approx(0.3)

    response = await client.get("/api/v1/statistics/organizer", headers=organizer_headers)
    data = response.json()
    assert data["total_resources"] == 2
    assert Decimal(str(data["total_revenue"])) == Decimal("300")
    assert data["average_attendance"] == 1.5

    response = await client.get("/api/v1/statistics/me", headers=customer_headers)
    data = response.json()
    assert data["total_bookings"] == 1
    assert data["upcoming_bookings"] == 1
    assert Decimal(str(data["total_spent"])) == Decimal("300")
