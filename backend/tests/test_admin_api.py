from datetime import date

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

import app.main as main_module
from app.admin.bookings import list_bookings
from app.admin.services import list_services
from app.db.models import Booking, Hold, Service
from app.main import app
from app.scheduling.slots import BusinessHours
from conftest import FakeSession, make_booking, make_hold, make_service, utc


client = TestClient(app)
HEADERS = {"X-Admin-Key": "super-secret"}


def _use_session(monkeypatch, fake_session):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("ADMIN_API_KEY", "super-secret")
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)


def test_admin_auth_required(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)

    response = client.get("/v1/admin/services")

    assert response.status_code == 401
    assert response.json()["detail"]["error_code"] == "INVALID_ADMIN_API_KEY"


def test_admin_key_must_be_configured_outside_dev(monkeypatch, fake_session):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)

    response = client.get("/v1/admin/services", headers=HEADERS)

    assert response.status_code == 401
    assert response.json()["detail"]["error_code"] == "ADMIN_AUTH_NOT_CONFIGURED"


def test_create_service_success(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)

    response = client.post(
        "/v1/admin/services",
        json={"name": "Beard trim", "duration_minutes": 45, "price": "20.50"},
        headers=HEADERS,
    )

    body = response.json()
    assert response.status_code == 200
    assert body["data"]["service"]["id"] == 2
    assert body["data"]["service"]["name"] == "Beard trim"
    assert body["data"]["service"]["price"] == "20.50"
    assert body["data"]["service"]["is_active"] is True
    assert len(fake_session.store[Service]) == 2


def test_create_service_rejects_bad_values(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)

    zero_duration = client.post(
        "/v1/admin/services", json={"name": "Nothing", "duration_minutes": 0, "price": "10"}, headers=HEADERS
    )
    negative_price = client.post(
        "/v1/admin/services", json={"name": "Refund", "duration_minutes": 30, "price": "-1"}, headers=HEADERS
    )

    assert zero_duration.status_code == 400
    assert zero_duration.json()["error_code"] == "INVALID_ARGS"
    assert negative_price.status_code == 400
    assert len(fake_session.store[Service]) == 1


def test_list_services_includes_inactive(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)
    fake_session.store[Service].append(make_service(service_id=2, name="Retired", is_active=False))

    response = client.get("/v1/admin/services", headers=HEADERS)

    names = [s["name"] for s in response.json()["data"]["services"]]
    assert names == ["Haircut", "Retired"]


def test_deactivating_a_service_keeps_its_bookings(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)
    booking = make_booking(utc(2026, 10, 20, 16, 0), utc(2026, 10, 20, 16, 30))
    fake_session.store[Booking].append(booking)

    response = client.patch("/v1/admin/services/1", json={"is_active": False}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["data"]["service"]["is_active"] is False
    assert fake_session.store[Booking] == [booking]


def test_update_service_validation_and_not_found(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)

    unknown_field = client.patch("/v1/admin/services/1", json={"colour": "red"}, headers=HEADERS)
    missing = client.patch("/v1/admin/services/99", json={"name": "Ghost"}, headers=HEADERS)
    renamed = client.patch("/v1/admin/services/1", json={"name": "Skin fade", "duration_minutes": 40}, headers=HEADERS)

    assert unknown_field.status_code == 400
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "SERVICE_NOT_FOUND"
    assert renamed.json()["data"]["service"]["name"] == "Skin fade"
    assert renamed.json()["data"]["service"]["duration_minutes"] == 40


def test_list_bookings_for_a_local_day(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)
    late_evening = make_booking(utc(2026, 10, 21, 4, 0), utc(2026, 10, 21, 4, 30), customer_name="Night owl")
    morning = make_booking(utc(2026, 10, 20, 15, 0), utc(2026, 10, 20, 15, 30), customer_name="Early bird")
    next_day = make_booking(utc(2026, 10, 21, 15, 0), utc(2026, 10, 21, 15, 30), customer_name="Tomorrow")
    fake_session.store[Booking].extend([late_evening, next_day, morning])

    response = client.get("/v1/admin/bookings", params={"date": "2026-10-20"}, headers=HEADERS)

    bookings = response.json()["data"]["bookings"]
    assert response.status_code == 200
    assert [b["customer_name"] for b in bookings] == ["Early bird", "Night owl"]
    assert bookings[0]["service_name"] == "Haircut"
    assert bookings[0]["start_time"] == "2026-10-20T15:00:00Z"


def test_list_bookings_filters_by_service(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)
    fake_session.store[Service].append(make_service(service_id=2, name="Beard trim"))
    fake_session.store[Booking].extend(
        [
            make_booking(utc(2026, 10, 20, 15, 0), utc(2026, 10, 20, 15, 30), service_id=1),
            make_booking(utc(2026, 10, 20, 16, 0), utc(2026, 10, 20, 16, 30), service_id=2),
        ]
    )

    response = client.get("/v1/admin/bookings", params={"service_id": 2}, headers=HEADERS)

    bookings = response.json()["data"]["bookings"]
    assert [b["service_name"] for b in bookings] == ["Beard trim"]


def test_admin_cancel_booking(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)
    booking = make_booking(utc(2026, 10, 20, 16, 0), utc(2026, 10, 20, 16, 30))
    fake_session.store[Booking].append(booking)

    response = client.delete(f"/v1/admin/bookings/{booking.id}", headers=HEADERS)

    assert response.status_code == 200
    assert fake_session.store[Booking] == []


def test_sweep_expired_holds_endpoint(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)
    fake_session.store[Hold].extend(
        [
            make_hold(utc(2026, 10, 20, 16, 0), utc(2026, 10, 20, 16, 30), expires_at=utc(2020, 1, 1, 0, 0)),
            make_hold(utc(2026, 10, 20, 17, 0), utc(2026, 10, 20, 17, 30), expires_at=utc(2099, 1, 1, 0, 0)),
        ]
    )

    response = client.post("/v1/admin/holds/sweep", headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["data"] == {"removed": 1}
    assert len(fake_session.store[Hold]) == 1


def test_list_bookings_rejects_an_impossible_date(monkeypatch, fake_session):
    _use_session(monkeypatch, fake_session)

    response = client.get("/v1/admin/bookings", params={"date": "2026-13-40"}, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGS"


class UnavailableSession(FakeSession):
    def query(self, model):
        raise OperationalError("SELECT", {}, Exception("connection refused"))


def test_admin_listings_report_store_outage(monkeypatch):
    _use_session(monkeypatch, UnavailableSession())

    services = client.get("/v1/admin/services", headers=HEADERS)
    bookings = client.get("/v1/admin/bookings", params={"date": "2026-10-20"}, headers=HEADERS)

    assert services.status_code == 503
    assert services.json()["error_code"] == "SYSTEM_DOWN"
    assert bookings.status_code == 503
    assert bookings.json()["error_code"] == "SYSTEM_DOWN"


def _compiled(clauses):
    return [str(clause) for clause in clauses]


def test_list_bookings_narrows_the_store_query(fake_session):
    list_bookings(fake_session, BusinessHours(), day=date(2026, 10, 20), service_id=1)

    filters = " ".join(_compiled(fake_session.filters))
    assert "bookings.service_id =" in filters
    assert "bookings.start_time <" in filters
    assert "bookings.end_time >" in filters
    assert _compiled(fake_session.orderings) == ["bookings.start_time"]


def test_list_active_services_filters_in_the_store(fake_session):
    fake_session.store[Service].append(make_service(service_id=2, name="Retired", is_active=False))

    services = list_services(fake_session, active_only=True)

    assert [s.name for s in services] == ["Haircut"]
    assert any("services.is_active" in text for text in _compiled(fake_session.filters))
    assert _compiled(fake_session.orderings) == ["services.id"]
