"""Audit trail service for payment and admin actions."""

from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.models.admin import AuditLog


class AuditService:
    """Service for immutable audit logging."""

    PAYMENT_ACTIONS = {
        "payment_recorded",
        "payment_mark_paid",
        "payment_mark_failed",
        "payment_refund",
    }

    async def log_action(
        self,
        db: AsyncSession,
        user_id: int | None,
        action: str,
        resource_type: str,
        resource_id: int | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        created_at: datetime | None = None,
    ) -> AuditLog:
        """Log an action (immutable).

        Args:
            db: Database session
            user_id: User performing the action, None for the system
            action: Action name (e.g., "payment_mark_paid")
            resource_type: Resource type (e.g., "payment", "booking")
            resource_id: Resource ID
            old_values: Previous state
            new_values: New state
            ip_address: Client IP
            user_agent: Client user agent
            created_at: Explicit timestamp; database time when omitted

        Returns:
            Created audit log entry
        """
        audit = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        if created_at is not None:
            audit.created_at = created_at
        db.add(audit)
        return audit

    async def log_payment_action(
        self,
        db: AsyncSession,
        user_id: int | None,
        action: str,
        payment_id: int,
        old_status: str | None,
        new_status: str,
        amount: int | None = None,
        booking_id: int | None = None,
        created_at: datetime | None = None,
    ) -> AuditLog:
        """Log payment status change."""
        new_values: dict[str, Any] = {"status": new_status}
        if amount is not None:
            new_values["amount"] = amount
        if booking_id is not None:
            new_values["booking_id"] = booking_id
        return await self.log_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type="payment",
            resource_id=payment_id,
            old_values={"status": old_status} if old_status else None,
            new_values=new_values,
            created_at=created_at,
        )


audit_service = AuditService()
