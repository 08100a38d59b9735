from app.db.base import Base
from app.db.models import Booking, Hold, Service

__all__ = [
    "Base",
    "Booking",
    "Hold",
    "Service",
]
