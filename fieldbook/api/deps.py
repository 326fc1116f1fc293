"""API dependencies for authentication and common operations."""

from typing import Annotated, Any, Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.core.exceptions import AuthenticationError, AuthorizationError
from fieldbook.core.permissions import Permission, has_permission
from fieldbook.core.security import verify_token
from fieldbook.database import async_session_maker, get_db
from fieldbook.domain.transition import Actor, TransitionResult
from fieldbook.models.booking import Booking
from fieldbook.models.user import User
from fieldbook.services.auto_completion_service import AutoCompletionEngine
from fieldbook.services.booking_service import BookingStateMachine
from fieldbook.utils.clock import Clock, local_now

# Security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    payload = verify_token(credentials.credentials, token_type="access")
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


def get_actor(current_user: Annotated[User, Depends(get_current_user)]) -> Actor:
    """Acting identity handed to the state machine."""
    return Actor(id=current_user.id, role=current_user.role)


def require_permission(permission: Permission) -> Callable[..., Any]:
    """Dependency to require a specific permission."""

    async def permission_checker(current_user: Annotated[User, Depends(get_current_user)]) -> User:
        if not has_permission(current_user.role, permission):
            raise AuthorizationError(
                f"Permission '{permission.value}' is required for this action",
                context={"permission": permission.value},
            )
        return current_user

    return permission_checker


def get_clock() -> Clock:
    return local_now


def get_state_machine(clock: Annotated[Clock, Depends(get_clock)]) -> BookingStateMachine:
    return BookingStateMachine(async_session_maker, clock=clock)


def get_auto_completion_engine(
    state_machine: Annotated[BookingStateMachine, Depends(get_state_machine)],
) -> AutoCompletionEngine:
    return AutoCompletionEngine(state_machine)


def unwrap(result: TransitionResult) -> Booking:
    """Return the booking of a successful transition, else raise its error."""
    if not result.success:
        raise result.error
    return result.booking


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# Convenience dependencies
require_payment_recorder = require_permission(Permission.RECORD_PAYMENT)
require_refund = require_permission(Permission.REFUND_PAYMENT)
require_auto_completion_admin = require_permission(Permission.MANAGE_AUTO_COMPLETION)
