"""
Listing workflow: validation, ownership scoping, browse filters, geo radius
search and express interest
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from database_models import PropertyInterest
from services.property_service import (
    METERS_PER_DEGREE_LAT,
    haversine_m,
    km_to_meters,
)


def listing_payload(**overrides):
    payload = {
        "title": "Sunny two bedroom",
        "description": "Ten minutes from the university",
        "houseNumber": "14",
        "address": {"street": "Ring Road", "city": "Accra", "region": "Greater Accra"},
        "location": {"type": "Point", "coordinates": [-0.187, 5.6037]},
        "rentPrice": 950,
        "propertyType": "apartment",
        "bedrooms": 2,
        "bathrooms": 1,
        "amenities": ["wifi"],
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_landlord_creates_listing(async_client, create_user, auth_headers):
    landlord = await create_user(role="landlord")

    response = await async_client.post(
        "/api/properties", json=listing_payload(), headers=auth_headers(landlord)
    )

    assert response.status_code == 201
    prop = response.json()["property"]
    assert prop["owner"]["id"] == landlord.id
    assert prop["owner"]["email"] == landlord.email
    assert prop["location"]["coordinates"] == [-0.187, 5.6037]
    assert prop["availability"] == "available"
    assert prop["address"]["city"] == "Accra"
    assert "interestedUsers" not in prop


@pytest.mark.asyncio
async def test_create_reports_every_invalid_field(async_client, create_user, auth_headers):
    landlord = await create_user(role="landlord")
    payload = listing_payload(
        title="",
        rentPrice="cheap",
        propertyType="castle",
        location={"type": "Point", "coordinates": [1.0]},
    )
    del payload["houseNumber"]
    payload["address"] = {"street": "Ring Road", "city": "", "region": "Greater Accra"}

    response = await async_client.post("/api/properties", json=payload, headers=auth_headers(landlord))

    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert fields == {
        "title",
        "houseNumber",
        "address.city",
        "location.coordinates",
        "rentPrice",
        "propertyType",
    }


@pytest.mark.asyncio
async def test_only_landlords_create(async_client, create_user, auth_headers):
    student = await create_user(role="student")
    response = await async_client.post("/api/properties", json=listing_payload(), headers=auth_headers(student))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_single_listing(async_client, create_user, create_property, auth_headers):
    landlord = await create_user(role="landlord")
    renter = await create_user(role="student")
    prop = await create_property(landlord)

    response = await async_client.get(f"/api/properties/{prop.id}", headers=auth_headers(renter))
    assert response.status_code == 200
    assert response.json()["owner"]["phone"] == landlord.phone

    missing = await async_client.get("/api/properties/9999", headers=auth_headers(renter))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_non_owner_gets_same_error_as_missing(async_client, create_user, create_property, auth_headers):
    owner = await create_user(role="landlord")
    intruder = await create_user(role="landlord")
    prop = await create_property(owner)
    headers = auth_headers(intruder)

    foreign_put = await async_client.put(f"/api/properties/{prop.id}", json={"rentPrice": 1}, headers=headers)
    missing_put = await async_client.put("/api/properties/9999", json={"rentPrice": 1}, headers=headers)
    foreign_delete = await async_client.delete(f"/api/properties/{prop.id}", headers=headers)
    missing_delete = await async_client.delete("/api/properties/9999", headers=headers)

    for response in (foreign_put, missing_put, foreign_delete, missing_delete):
        assert response.status_code == 404
        assert response.json() == {"detail": "Property not found"}

    still_there = await async_client.get(f"/api/properties/{prop.id}", headers=auth_headers(owner))
    assert still_there.json()["rentPrice"] == 1200.0


@pytest.mark.asyncio
async def test_owner_updates_and_deletes(async_client, create_user, create_property, auth_headers):
    owner = await create_user(role="landlord")
    prop = await create_property(owner)
    headers = auth_headers(owner)

    updated = await async_client.put(
        f"/api/properties/{prop.id}",
        json={"rentPrice": 1350, "availability": "maintenance"},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["property"]["rentPrice"] == 1350
    assert updated.json()["property"]["availability"] == "maintenance"
    assert updated.json()["property"]["title"] == "Two bedroom flat"

    null_title = await async_client.put(f"/api/properties/{prop.id}", json={"title": None}, headers=headers)
    assert null_title.status_code == 400

    deleted = await async_client.delete(f"/api/properties/{prop.id}", headers=headers)
    assert deleted.status_code == 200
    gone = await async_client.get(f"/api/properties/{prop.id}", headers=headers)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_price_range_filter_and_availability(async_client, create_user, create_property, auth_headers):
    landlord = await create_user(role="landlord")
    renter = await create_user(role="family")
    for price in (500, 1200, 2000):
        await create_property(landlord, rent_price=float(price), title=f"Listing {price}")
    await create_property(landlord, rent_price=1200.0, title="Rented 1200", availability="rented")

    response = await async_client.get(
        "/api/properties",
        params={"minPrice": 1000, "maxPrice": 1500},
        headers=auth_headers(renter),
    )

    assert response.status_code == 200
    titles = [p["title"] for p in response.json()]
    assert titles == ["Listing 1200"]


@pytest.mark.asyncio
async def test_price_bounds_are_inclusive(async_client, create_user, create_property, auth_headers):
    landlord = await create_user(role="landlord")
    await create_property(landlord, rent_price=1000.0)
    await create_property(landlord, rent_price=1500.0)

    response = await async_client.get(
        "/api/properties",
        params={"minPrice": 1000, "maxPrice": 1500},
        headers=auth_headers(landlord),
    )
    assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_type_and_bedroom_filters_combine(async_client, create_user, create_property, auth_headers):
    landlord = await create_user(role="landlord")
    await create_property(landlord, property_type="house", bedrooms=3, title="House 3")
    await create_property(landlord, property_type="house", bedrooms=2, title="House 2")
    await create_property(landlord, property_type="studio", bedrooms=3, title="Studio 3")

    response = await async_client.get(
        "/api/properties",
        params={"propertyType": "house", "bedrooms": 3},
        headers=auth_headers(landlord),
    )
    assert [p["title"] for p in response.json()] == ["House 3"]


@pytest.mark.asyncio
async def test_browse_is_capped_at_fifty(async_client, create_user, create_property, auth_headers):
    landlord = await create_user(role="landlord")
    for i in range(55):
        await create_property(landlord, title=f"Listing {i}")

    response = await async_client.get("/api/properties", headers=auth_headers(landlord))
    assert len(response.json()) == 50


def test_radius_conversion_is_exact():
    assert km_to_meters(10) == 10000
    assert km_to_meters(2.5) == 2500


def test_haversine_along_meridian():
    one_degree = haversine_m(0.0, 10.0, 1.0, 10.0)
    assert one_degree == pytest.approx(METERS_PER_DEGREE_LAT)


@pytest.mark.asyncio
async def test_geo_radius_search(async_client, create_user, create_property, auth_headers):
    landlord = await create_user(role="landlord")
    center_lat, center_lng = 5.6037, -0.1870

    def north_of_center(meters):
        return center_lat + meters / METERS_PER_DEGREE_LAT

    await create_property(landlord, title="9.9 km", latitude=north_of_center(9900), longitude=center_lng)
    await create_property(landlord, title="2 km", latitude=north_of_center(2000), longitude=center_lng)
    await create_property(landlord, title="10.1 km", latitude=north_of_center(10100), longitude=center_lng)
    await create_property(landlord, title="Kumasi", latitude=6.6885, longitude=-1.6244)

    response = await async_client.get(
        "/api/properties",
        params={"lat": center_lat, "lng": center_lng, "radius": 10},
        headers=auth_headers(landlord),
    )

    assert response.status_code == 200
    results = response.json()
    assert [p["title"] for p in results] == ["2 km", "9.9 km"]
    assert results[0]["distanceKm"] == pytest.approx(2.0, abs=0.01)


@pytest.mark.asyncio
async def test_express_interest_once(async_client, create_user, create_property, auth_headers, session_factory):
    landlord = await create_user(role="landlord")
    renter = await create_user(role="student", id_proof_document="/uploads/documents/document-abc.pdf")
    prop = await create_property(landlord)
    headers = auth_headers(renter)

    first = await async_client.post(f"/api/properties/{prop.id}/interest", headers=headers)
    assert first.status_code == 200
    assert first.json() == {"message": "Interest expressed successfully"}

    second = await async_client.post(f"/api/properties/{prop.id}/interest", headers=headers)
    assert second.status_code == 400
    assert "already expressed interest" in second.json()["detail"]

    async with session_factory() as session:
        rows = (await session.execute(
            select(PropertyInterest).where(
                PropertyInterest.property_id == prop.id,
                PropertyInterest.user_id == renter.id,
            )
        )).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_interest_requires_id_document(async_client, create_user, create_property, auth_headers):
    landlord = await create_user(role="landlord")
    renter = await create_user(role="government_worker")
    prop = await create_property(landlord)

    response = await async_client.post(f"/api/properties/{prop.id}/interest", headers=auth_headers(renter))
    assert response.status_code == 400
    assert "ID proof" in response.json()["detail"]


@pytest.mark.asyncio
async def test_landlord_cannot_express_interest(async_client, create_user, create_property, auth_headers):
    owner = await create_user(role="landlord")
    other = await create_user(role="landlord", id_proof_document="/uploads/documents/x.pdf")
    prop = await create_property(owner)

    response = await async_client.post(f"/api/properties/{prop.id}/interest", headers=auth_headers(other))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_interest_on_missing_listing(async_client, create_user, auth_headers):
    renter = await create_user(role="family", id_proof_document="/uploads/documents/x.pdf")
    response = await async_client.post("/api/properties/424242/interest", headers=auth_headers(renter))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_my_properties_lists_interest_newest_first(async_client, create_user, create_property, auth_headers):
    landlord = await create_user(role="landlord")
    other_landlord = await create_user(role="landlord")
    renter = await create_user(role="student", id_proof_document="/uploads/documents/id.pdf")
    older = await create_property(landlord, title="Older", created_at=datetime.utcnow() - timedelta(days=2))
    await create_property(landlord, title="Newer")
    await create_property(other_landlord, title="Not mine")

    await async_client.post(f"/api/properties/{older.id}/interest", headers=auth_headers(renter))

    response = await async_client.get("/api/properties/my/properties", headers=auth_headers(landlord))

    assert response.status_code == 200
    listings = response.json()
    assert [p["title"] for p in listings] == ["Newer", "Older"]
    assert listings[0]["interestedUsers"] == []
    interest = listings[1]["interestedUsers"][0]
    assert interest["user"]["id"] == renter.id
    assert interest["user"]["idProofDocument"] == "/uploads/documents/id.pdf"
    assert "appliedAt" in interest
