"""Database models."""

from fieldbook.core.immutability import register_immutability_enforcement
from fieldbook.models.admin import AuditLog
from fieldbook.models.booking import Booking
from fieldbook.models.field import Field
from fieldbook.models.history import BookingHistory
from fieldbook.models.payment import Payment
from fieldbook.models.user import User

__all__ = [
    # User
    "User",
    # Field
    "Field",
    # Booking
    "Booking",
    "BookingHistory",
    # Payment
    "Payment",
    # Admin
    "AuditLog",
]

register_immutability_enforcement()
