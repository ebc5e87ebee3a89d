"""
Property Router - listing browse, CRUD and express-interest endpoints.
Every route requires an authenticated user with an active subscription.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth import require_active_subscription, require_roles
from database import get_db
from database_models import User
from models.enums import Role, RENTER_ROLES, PropertyType
from models.property import PropertyCreate, PropertyFilters, PropertyUpdate
from services.property_service import PropertyService

logger = logging.getLogger(__name__)

property_router = APIRouter(prefix="/api/properties", tags=["properties"])


@property_router.get("")
async def browse_properties(
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    radius: float = Query(default=10.0, gt=0, description="Search radius in kilometers"),
    property_type: Optional[PropertyType] = Query(default=None, alias="propertyType"),
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    bedrooms: Optional[int] = Query(default=None),
    user: User = Depends(require_active_subscription),
    db: AsyncSession = Depends(get_db),
):
    """
    Browse available listings.

    Filters combine with AND; lat + lng switch on the radius search.
    """
    filters = PropertyFilters(
        lat=lat,
        lng=lng,
        radius=radius,
        property_type=property_type,
        min_price=min_price,
        max_price=max_price,
        bedrooms=bedrooms,
    )
    return await PropertyService(db).browse(filters)


# Declared before /{property_id} so "my" is never read as an id
@property_router.get("/my/properties")
async def my_properties(
    user: User = Depends(require_roles(Role.LANDLORD)),
    db: AsyncSession = Depends(get_db),
):
    """Landlord's own listings, newest first, with interested users"""
    return await PropertyService(db).list_owned(user)


@property_router.get("/{property_id}")
async def get_property(
    property_id: int,
    user: User = Depends(require_active_subscription),
    db: AsyncSession = Depends(get_db),
):
    return await PropertyService(db).get(property_id)


@property_router.post("")
async def create_property(
    payload: PropertyCreate,
    user: User = Depends(require_roles(Role.LANDLORD)),
    db: AsyncSession = Depends(get_db),
):
    prop = await PropertyService(db).create(user, payload)
    return JSONResponse(
        status_code=201,
        content={"message": "Property created successfully", "property": prop},
    )


@property_router.put("/{property_id}")
async def update_property(
    property_id: int,
    payload: PropertyUpdate,
    user: User = Depends(require_roles(Role.LANDLORD)),
    db: AsyncSession = Depends(get_db),
):
    prop = await PropertyService(db).update(user, property_id, payload)
    return {"message": "Property updated successfully", "property": prop}


@property_router.delete("/{property_id}")
async def delete_property(
    property_id: int,
    user: User = Depends(require_roles(Role.LANDLORD)),
    db: AsyncSession = Depends(get_db),
):
    await PropertyService(db).delete(user, property_id)
    return {"message": "Property deleted successfully"}


@property_router.post("/{property_id}/interest")
async def express_interest(
    property_id: int,
    user: User = Depends(require_roles(*RENTER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    await PropertyService(db).express_interest(user, property_id)
    return {"message": "Interest expressed successfully"}
