from app.admin.bookings import list_bookings, serialize_booking
from app.admin.services import (
    CreateServiceArgs,
    UpdateServiceArgs,
    create_service,
    list_services,
    serialize_service,
    update_service,
)

__all__ = [
    "CreateServiceArgs",
    "UpdateServiceArgs",
    "create_service",
    "list_bookings",
    "list_services",
    "serialize_booking",
    "serialize_service",
    "update_service",
]
