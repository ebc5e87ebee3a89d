"""
Property Service - listing CRUD, browse filters, geo radius search and
the express-interest workflow
"""

import logging
import math
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crud.property import PropertyRepository
from database_models import Property, User
from models.enums import Availability
from models.property import PropertyCreate, PropertyFilters, PropertyOut, PropertyUpdate

logger = logging.getLogger(__name__)

BROWSE_LIMIT = 50

# Sphere radius used for distance checks, matching the WGS84 equatorial radius
EARTH_RADIUS_M = 6378100.0
METERS_PER_DEGREE_LAT = math.pi * EARTH_RADIUS_M / 180.0


def km_to_meters(radius_km: float) -> float:
    return radius_km * 1000


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two lat/lng points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(lat: float, lng: float, radius_m: float) -> tuple[float, float, float, float]:
    """
    (min_lat, max_lat, min_lng, max_lng) enclosing the search circle.

    Longitude bounds open to the full range near the poles or when the
    circle crosses the antimeridian.
    """
    d_lat = radius_m / METERS_PER_DEGREE_LAT
    min_lat, max_lat = max(-90.0, lat - d_lat), min(90.0, lat + d_lat)
    cos_lat = math.cos(math.radians(max(abs(min_lat), abs(max_lat))))
    if cos_lat <= 1e-9:
        return min_lat, max_lat, -180.0, 180.0
    d_lng = radius_m / (METERS_PER_DEGREE_LAT * cos_lat)
    if lng - d_lng < -180.0 or lng + d_lng > 180.0:
        return min_lat, max_lat, -180.0, 180.0
    return min_lat, max_lat, lng - d_lng, lng + d_lng


def build_filters(filters: PropertyFilters) -> list:
    """SQL clauses for the attribute filters, always restricted to available listings."""
    clauses = [Property.availability == Availability.AVAILABLE.value]
    if filters.property_type is not None:
        clauses.append(Property.property_type == filters.property_type.value)
    if filters.min_price is not None:
        clauses.append(Property.rent_price >= filters.min_price)
    if filters.max_price is not None:
        clauses.append(Property.rent_price <= filters.max_price)
    if filters.bedrooms is not None:
        clauses.append(Property.bedrooms == filters.bedrooms)
    return clauses


class PropertyService:
    """Service class for listing operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = PropertyRepository(db)

    async def browse(self, filters: PropertyFilters) -> list[dict]:
        """
        Available listings matching every given filter, at most 50.

        With lat/lng the results are limited to the radius and ordered
        nearest first.
        """
        clauses = build_filters(filters)

        if not filters.is_geo:
            rows = await self.repo.search(clauses, limit=BROWSE_LIMIT)
            return [PropertyOut.from_row(p).to_json() for p in rows]

        max_distance_m = km_to_meters(filters.radius)
        min_lat, max_lat, min_lng, max_lng = bounding_box(filters.lat, filters.lng, max_distance_m)
        clauses.extend([
            Property.latitude >= min_lat,
            Property.latitude <= max_lat,
            Property.longitude >= min_lng,
            Property.longitude <= max_lng,
        ])
        rows = await self.repo.search(clauses)

        nearby = []
        for prop in rows:
            distance = haversine_m(filters.lat, filters.lng, prop.latitude, prop.longitude)
            if distance <= max_distance_m:
                nearby.append((distance, prop))
        nearby.sort(key=lambda pair: pair[0])

        return [
            PropertyOut.from_row(p, distance_km=round(d / 1000, 3)).to_json()
            for d, p in nearby[:BROWSE_LIMIT]
        ]

    async def get(self, property_id: int) -> dict:
        prop = await self.repo.get_by_id(property_id)
        if not prop:
            raise HTTPException(status_code=404, detail="Property not found")
        return PropertyOut.from_row(prop).to_json()

    async def create(self, owner: User, payload: PropertyCreate) -> dict:
        data = payload.to_columns()
        data["owner_id"] = owner.id
        prop = await self.repo.create(data)
        logger.info(f"Landlord {owner.id} created property {prop.id}")
        return PropertyOut.from_row(prop).to_json()

    async def _get_owned_or_404(self, property_id: int, owner: User) -> Property:
        # Missing and not-owned listings get the same answer
        prop = await self.repo.get_owned(property_id, owner.id)
        if not prop:
            raise HTTPException(status_code=404, detail="Property not found")
        return prop

    async def update(self, owner: User, property_id: int, payload: PropertyUpdate) -> dict:
        prop = await self._get_owned_or_404(property_id, owner)
        prop = await self.repo.update(prop, payload.to_columns())
        logger.info(f"Landlord {owner.id} updated property {prop.id}")
        return PropertyOut.from_row(prop).to_json()

    async def delete(self, owner: User, property_id: int) -> None:
        prop = await self._get_owned_or_404(property_id, owner)
        await self.repo.delete(prop)
        logger.info(f"Landlord {owner.id} deleted property {property_id}")

    async def list_owned(self, owner: User) -> list[dict]:
        rows = await self.repo.list_for_owner(owner.id)
        return [PropertyOut.from_row(p, with_interests=True).to_json() for p in rows]

    async def express_interest(self, user: User, property_id: int) -> None:
        """
        Record that a renter is interested in a listing.

        Raises:
            HTTPException: 404 for a missing listing, 400 for a repeat
                request or a missing identity document
        """
        prop = await self.repo.get_by_id(property_id)
        if not prop:
            raise HTTPException(status_code=404, detail="Property not found")

        if await self.repo.get_interest(prop.id, user.id):
            raise HTTPException(status_code=400, detail="You have already expressed interest in this property")

        if not user.id_proof_document:
            raise HTTPException(
                status_code=400,
                detail="Please upload your ID proof document before expressing interest",
            )

        try:
            await self.repo.add_interest(prop.id, user.id)
        except IntegrityError as e:
            # A concurrent request from the same user inserted first
            raise HTTPException(
                status_code=400,
                detail="You have already expressed interest in this property",
            ) from e

        logger.info(f"User {user.id} expressed interest in property {prop.id}")
