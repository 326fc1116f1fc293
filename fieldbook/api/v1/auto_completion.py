"""Auto-completion admin endpoints (manager and above)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.api.deps import (
    client_ip,
    get_auto_completion_engine,
    get_db,
    require_auto_completion_admin,
)
from fieldbook.models.user import User
from fieldbook.schemas.auto_completion import (
    AutoCompletionConfig,
    AutoCompletionRunResponse,
    AutoCompletionStats,
    EligibleBooking,
    EligibleBookingsResponse,
)
from fieldbook.services.audit_service import audit_service
from fieldbook.services.auto_completion_service import AutoCompletionEngine

router = APIRouter()

Engine = Annotated[AutoCompletionEngine, Depends(get_auto_completion_engine)]
Admin = Annotated[User, Depends(require_auto_completion_admin)]


@router.post("/trigger", response_model=AutoCompletionRunResponse)
async def trigger_auto_completion(
    request: Request,
    current_user: Admin,
    engine: Engine,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Run auto-completion now and record who triggered it."""
    report = await engine.run()
    await audit_service.log_action(
        db,
        user_id=current_user.id,
        action="MANUAL_AUTO_COMPLETION_TRIGGER",
        resource_type="booking",
        new_values={
            "completed_count": report.completed_count,
            "completed": report.completed,
            "failed": len(report.failed),
        },
        ip_address=client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        created_at=report.started_at,
    )
    return report.as_dict()


@router.get("/eligible", response_model=EligibleBookingsResponse)
async def get_eligible_bookings(current_user: Admin, engine: Engine) -> EligibleBookingsResponse:
    """Bookings the next run would complete."""
    bookings = await engine.eligible()
    return EligibleBookingsResponse(
        count=len(bookings),
        grace_period_minutes=engine.config()["grace_period_minutes"],
        bookings=[EligibleBooking.model_validate(b) for b in bookings],
    )


@router.get("/stats", response_model=AutoCompletionStats)
async def get_auto_completion_stats(
    current_user: Admin,
    engine: Engine,
    days: int = Query(default=7, ge=1, le=365),
) -> dict:
    return await engine.stats(days)


@router.get("/config", response_model=AutoCompletionConfig)
async def get_auto_completion_config(current_user: Admin, engine: Engine) -> dict:
    return engine.config()
