"""Booking endpoints.

Lifecycle changes are delegated to the booking state machine, which runs
each change in its own transaction; these handlers only translate HTTP.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.api.deps import (
    get_actor,
    get_current_user,
    get_db,
    get_state_machine,
    unwrap,
)
from fieldbook.core.exceptions import AuthorizationError, NotFoundError
from fieldbook.core.permissions import Permission, has_permission
from fieldbook.domain.transition import Actor
from fieldbook.models.booking import Booking
from fieldbook.models.user import User
from fieldbook.schemas.booking import (
    BookingCreate,
    BookingHistoryResponse,
    BookingListResponse,
    BookingNotesRequest,
    BookingReasonRequest,
    BookingResponse,
)
from fieldbook.services.booking_service import BookingStateMachine
from fieldbook.services.history_service import history_emitter

router = APIRouter()

StateMachine = Annotated[BookingStateMachine, Depends(get_state_machine)]
CurrentActor = Annotated[Actor, Depends(get_actor)]


async def _get_visible_booking(db: AsyncSession, booking_id: int, user: User) -> Booking:
    """Owners see their bookings; staff see all."""
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking", str(booking_id))
    if booking.user_id != user.id and not has_permission(user.role, Permission.VIEW_ALL_BOOKINGS):
        raise AuthorizationError("You don't have permission to access this booking")
    return booking


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    actor: CurrentActor,
    state_machine: StateMachine,
) -> Booking:
    """Create a pending booking; staff may settle it in cash at once."""
    result = await state_machine.create(booking_data.to_draft(), actor)
    return unwrap(result)


@router.get("/", response_model=BookingListResponse)
async def list_bookings(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: str | None = Query(default=None, alias="status"),
    field_id: int | None = Query(default=None, ge=1),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> BookingListResponse:
    """Own bookings for customers, all bookings for staff."""
    query = select(Booking)
    if not has_permission(current_user.role, Permission.VIEW_ALL_BOOKINGS):
        query = query.where(Booking.user_id == current_user.id)
    if status_filter:
        query = query.where(Booking.status == status_filter)
    if field_id:
        query = query.where(Booking.field_id == field_id)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0

    offset = (page - 1) * page_size
    query = query.order_by(Booking.date.desc(), Booking.start_time.desc()).offset(offset).limit(page_size)
    result = await db.execute(query)

    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Get a booking by ID."""
    return await _get_visible_booking(db, booking_id, current_user)


@router.get("/{booking_id}/history", response_model=list[BookingHistoryResponse])
async def get_booking_history(
    booking_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list:
    """Transition history of a booking, oldest first."""
    await _get_visible_booking(db, booking_id, current_user)
    return await history_emitter.list_for_booking(db, booking_id)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: int,
    request: BookingNotesRequest,
    actor: CurrentActor,
    state_machine: StateMachine,
) -> Booking:
    """Confirm a pending booking whose payment is complete (operator+)."""
    return unwrap(await state_machine.confirm(booking_id, actor, notes=request.notes))


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: int,
    request: BookingReasonRequest,
    actor: CurrentActor,
    state_machine: StateMachine,
) -> Booking:
    """Reject a pending booking (operator+)."""
    return unwrap(
        await state_machine.reject(booking_id, actor, reason=request.reason, notes=request.notes)
    )


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    request: BookingReasonRequest,
    actor: CurrentActor,
    state_machine: StateMachine,
) -> Booking:
    """Cancel a pending or confirmed booking (owner or operator+). Frees the slot."""
    return unwrap(
        await state_machine.cancel(booking_id, actor, reason=request.reason, notes=request.notes)
    )


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: int,
    request: BookingNotesRequest,
    actor: CurrentActor,
    state_machine: StateMachine,
) -> Booking:
    """Mark a confirmed booking as completed once its slot has started (operator+)."""
    return unwrap(await state_machine.complete(booking_id, actor, notes=request.notes))
