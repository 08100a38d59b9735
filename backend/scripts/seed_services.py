from decimal import Decimal

from app.db.models import Service
from app.db.session import SessionLocal


DEMO_SERVICES = [
    {"name": "Haircut", "duration_minutes": 30, "price": Decimal("35.00")},
    {"name": "Beard trim", "duration_minutes": 15, "price": Decimal("15.00")},
    {"name": "Cut and color", "duration_minutes": 90, "price": Decimal("120.00")},
]


def seed_services() -> None:
    session = SessionLocal()
    try:
        for fields in DEMO_SERVICES:
            existing = session.query(Service).filter(Service.name == fields["name"]).first()
            if existing is not None:
                print(f"Service {fields['name']!r} already exists with id={existing.id}")
                continue

            service = Service(is_active=True, **fields)
            session.add(service)
            session.commit()
            session.refresh(service)
            print(f"Created service {service.name!r} with id={service.id}")
    finally:
        session.close()


if __name__ == "__main__":
    seed_services()
