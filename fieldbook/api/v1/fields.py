"""Field endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.api.deps import get_db
from fieldbook.core.exceptions import NotFoundError
from fieldbook.models.field import Field
from fieldbook.schemas.field import BookedSlot, FieldAvailabilityResponse, FieldResponse
from fieldbook.services.booking_store import BookingStore

router = APIRouter()


@router.get("/", response_model=list[FieldResponse])
async def list_fields(
    db: Annotated[AsyncSession, Depends(get_db)],
    include_inactive: bool = Query(default=False),
) -> list:
    """List fields, active ones only by default."""
    query = select(Field).order_by(Field.name)
    if not include_inactive:
        query = query.where(Field.status == "active")
    result = await db.execute(query)
    return list(result.scalars().all())


@router.get("/{field_id}/availability", response_model=FieldAvailabilityResponse)
async def get_field_availability(
    field_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    on_date: date = Query(..., alias="date"),
) -> FieldAvailabilityResponse:
    """Slots held by pending or confirmed bookings on a date."""
    store = BookingStore(db)
    field = await store.get_field(field_id)
    if field is None:
        raise NotFoundError("Field", str(field_id))

    live = await store.live_bookings_on(field_id, on_date)
    return FieldAvailabilityResponse(
        field_id=field.id,
        date=on_date,
        opening_time=field.opening_time,
        closing_time=field.closing_time,
        is_bookable=field.is_bookable,
        booked_slots=[BookedSlot.model_validate(b) for b in live],
    )
