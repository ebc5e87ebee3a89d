"""
PropertyRepository for database operations on listings and their interest rows
"""

from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from database_models import Property, PropertyInterest


class PropertyRepository:
    """
    Repository class for Property and PropertyInterest operations.
    Every read that returns listings to a caller loads the owner eagerly.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, property_id: int) -> Optional[Property]:
        """Retrieve a listing with its owner loaded, or None."""
        result = await self.db.execute(
            select(Property)
            .options(selectinload(Property.owner))
            .where(Property.id == property_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_owned(self, property_id: int, owner_id: int) -> Optional[Property]:
        """
        Retrieve a listing only if it belongs to owner_id.

        A listing owned by someone else is indistinguishable from a missing one.
        """
        result = await self.db.execute(
            select(Property)
            .options(selectinload(Property.owner))
            .where(Property.id == property_id, Property.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def create(self, data: dict) -> Property:
        prop = Property(**data)
        self.db.add(prop)
        await self.db.flush()
        return await self.get_by_id(prop.id)

    async def update(self, prop: Property, updates: dict) -> Property:
        for key, value in updates.items():
            if hasattr(prop, key):
                setattr(prop, key, value)
        await self.db.flush()
        return await self.get_by_id(prop.id)

    async def delete(self, prop: Property) -> None:
        await self.db.delete(prop)
        await self.db.flush()

    async def search(self, filters: Sequence, limit: Optional[int] = None) -> list[Property]:
        """Return listings matching every SQL filter clause (AND)."""
        query = (
            select(Property)
            .options(selectinload(Property.owner))
            .where(*filters)
            .order_by(Property.id)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_for_owner(self, owner_id: int) -> list[Property]:
        """Owner's listings, newest first, with the interest rows and their users loaded."""
        result = await self.db.execute(
            select(Property)
            .options(
                selectinload(Property.owner),
                selectinload(Property.interests).selectinload(PropertyInterest.user),
            )
            .where(Property.owner_id == owner_id)
            .order_by(Property.created_at.desc(), Property.id.desc())
        )
        return list(result.scalars().all())

    async def get_interest(self, property_id: int, user_id: int) -> Optional[PropertyInterest]:
        result = await self.db.execute(
            select(PropertyInterest).where(
                PropertyInterest.property_id == property_id,
                PropertyInterest.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_interest(self, property_id: int, user_id: int) -> PropertyInterest:
        """
        Insert an interest row.

        Raises:
            sqlalchemy.exc.IntegrityError: if the pair already exists
        """
        interest = PropertyInterest(property_id=property_id, user_id=user_id)
        self.db.add(interest)
        await self.db.flush()
        return interest
