"""
Listing Repository

Tier 1 catalog query.
"""
from typing import List

from sqlalchemy import select, func

from database.models import Listing
from processor.models import Property, PropertyFilters
from .base import BaseRepository


def to_property(row: Listing) -> Property:
    return Property(
        id=row.id,
        area=row.area,
        type=row.property_type,
        price=row.price,
        size=row.size_sqft,
        bedrooms=row.bedrooms,
        yield_estimate=row.yield_estimate,
        status=row.status,
        title=row.title,
        readiness_status=row.readiness_status,
    )


class ListingRepository(BaseRepository[Listing]):
    """Repository for catalog listings."""

    model = Listing

    async def list_properties(self, org_id: str, filters: PropertyFilters) -> List[Property]:
        """
        Filtered catalog query, newest first.

        Area and type comparisons are case-insensitive. `status="all"`
        disables the status filter.
        """
        conditions = [Listing.org_id == org_id]

        if filters.areas:
            conditions.append(func.lower(Listing.area).in_([a.strip().lower() for a in filters.areas]))
        if filters.property_types:
            conditions.append(
                func.lower(Listing.property_type).in_([t.strip().lower() for t in filters.property_types])
            )
        if filters.min_price is not None:
            conditions.append(Listing.price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Listing.price <= filters.max_price)
        if filters.min_yield is not None:
            conditions.append(Listing.yield_estimate >= filters.min_yield)
        if filters.status and filters.status != "all":
            conditions.append(Listing.status == filters.status)
        if filters.property_ids:
            conditions.append(Listing.id.in_(filters.property_ids))

        query = select(Listing).where(*conditions).order_by(Listing.created_at.desc(), Listing.id)
        if filters.limit:
            query = query.limit(filters.limit)

        result = await self.session.execute(query)
        return [to_property(row) for row in result.scalars().all()]
