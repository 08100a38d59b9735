from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.db.models import Service


class CreateServiceArgs(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    duration_minutes: int = Field(gt=0, le=24 * 60)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    is_active: bool = True


class UpdateServiceArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    duration_minutes: int | None = Field(default=None, gt=0, le=24 * 60)
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    is_active: bool | None = None


def create_service(db: Session, args: CreateServiceArgs) -> Service:
    service = Service(
        name=args.name,
        duration_minutes=args.duration_minutes,
        price=args.price,
        is_active=args.is_active,
    )
    db.add(service)
    db.commit()
    return service


def list_services(db: Session, active_only: bool = False) -> list[Service]:
    query = db.query(Service)
    if active_only:
        query = query.filter(Service.is_active.is_(True))
    services = query.order_by(Service.id).all()
    if active_only:
        services = [s for s in services if s.is_active]
    return sorted(services, key=lambda s: s.id)


def update_service(db: Session, service_id: int, args: UpdateServiceArgs) -> Service | None:
    # Deactivating or editing a service leaves its existing bookings untouched.
    service = db.get(Service, service_id)
    if service is None:
        return None

    for field, value in args.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(service, field, value)
    db.commit()
    return service


def serialize_service(service: Service) -> dict[str, Any]:
    return {
        "id": service.id,
        "name": service.name,
        "duration_minutes": service.duration_minutes,
        "price": str(service.price) if service.price is not None else None,
        "is_active": bool(service.is_active),
        "created_at": service.created_at.isoformat() if service.created_at else None,
    }
