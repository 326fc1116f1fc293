"""Payment endpoints.

Recording and marking payments is staff work (cashier and up); a booking can
only be confirmed once one of its payments is paid.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.api.deps import (
    get_clock,
    get_current_user,
    get_db,
    require_payment_recorder,
    require_refund,
)
from fieldbook.core.exceptions import AuthorizationError, NotFoundError
from fieldbook.core.permissions import Permission, has_permission
from fieldbook.models.booking import Booking
from fieldbook.models.payment import Payment
from fieldbook.models.user import User
from fieldbook.schemas.payment import (
    PaymentCreate,
    PaymentFailRequest,
    PaymentMarkPaidRequest,
    PaymentRefundRequest,
    PaymentResponse,
)
from fieldbook.services.payment_service import payment_service
from fieldbook.utils.clock import Clock

router = APIRouter()


@router.post("/", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    payment_data: PaymentCreate,
    current_user: Annotated[User, Depends(require_payment_recorder)],
    db: Annotated[AsyncSession, Depends(get_db)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> Payment:
    """Record a payment; cash payments are paid immediately."""
    return await payment_service.record_payment(
        db,
        payment_data.booking_id,
        payment_data.method,
        current_user.id,
        clock(),
        amount=payment_data.amount,
        admin_fee=payment_data.admin_fee,
        provider=payment_data.provider,
        external_reference=payment_data.external_reference,
        notes=payment_data.notes,
    )


@router.post("/{payment_id}/mark-paid", response_model=PaymentResponse)
async def mark_payment_paid(
    payment_id: int,
    request: PaymentMarkPaidRequest,
    current_user: Annotated[User, Depends(require_payment_recorder)],
    db: Annotated[AsyncSession, Depends(get_db)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> Payment:
    """Mark a pending payment as paid after verifying it."""
    return await payment_service.mark_paid(
        db,
        payment_id,
        current_user.id,
        clock(),
        external_reference=request.external_reference,
        gateway_response=request.gateway_response,
    )


@router.post("/{payment_id}/mark-failed", response_model=PaymentResponse)
async def mark_payment_failed(
    payment_id: int,
    request: PaymentFailRequest,
    current_user: Annotated[User, Depends(require_payment_recorder)],
    db: Annotated[AsyncSession, Depends(get_db)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> Payment:
    return await payment_service.mark_failed(db, payment_id, current_user.id, clock(), reason=request.reason)


@router.post("/{payment_id}/refund", response_model=PaymentResponse)
async def refund_payment(
    payment_id: int,
    request: PaymentRefundRequest,
    current_user: Annotated[User, Depends(require_refund)],
    db: Annotated[AsyncSession, Depends(get_db)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> Payment:
    """Refund a paid payment (manager+)."""
    return await payment_service.refund(db, payment_id, current_user.id, clock(), reason=request.reason)


@router.get("/booking/{booking_id}", response_model=list[PaymentResponse])
async def list_booking_payments(
    booking_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list:
    """Payments recorded for a booking (owner or staff)."""
    result = await db.execute(select(Booking.user_id).where(Booking.id == booking_id))
    owner_id = result.scalar_one_or_none()
    if owner_id is None:
        raise NotFoundError("Booking", str(booking_id))
    if owner_id != current_user.id and not has_permission(current_user.role, Permission.VIEW_ALL_BOOKINGS):
        raise AuthorizationError("You don't have permission to access this booking")
    return await payment_service.list_for_booking(db, booking_id)
