"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from fieldbook.api.v1 import auto_completion, bookings, fields, payments

api_router = APIRouter()

# Fields
api_router.include_router(fields.router, prefix="/fields", tags=["Fields"])

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Payments
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

# Admin
api_router.include_router(
    auto_completion.router, prefix="/admin/auto-completion", tags=["Auto-completion"]
)
