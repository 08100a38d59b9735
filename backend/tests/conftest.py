import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app import config
from app.db.models import Booking, Hold, Service
from app.security.rate_limit import reset_rate_limiter


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeQuery:
    def __init__(self, session, model):
        self.session = session
        self.model = model

    def filter(self, *criteria):
        self.session.filters.extend(criteria)
        return self

    def order_by(self, *criteria):
        self.session.orderings.extend(criteria)
        return self

    def all(self):
        return list(self.session.store.get(self.model, []))

    def first(self):
        rows = self.all()
        return rows[0] if rows else None


class FakeSession:
    """In-memory stand-in for a SQLAlchemy session.

    Writes apply immediately and are undone on rollback. Sessions built with
    the same ``store`` share data; a shared ``lock`` serializes transactions
    the way a SERIALIZABLE store would.
    """

    def __init__(self, store=None, lock=None):
        self.store = store if store is not None else {Service: [], Hold: [], Booking: []}
        self.lock = lock
        self.isolation_levels = []
        self.filters = []
        self.orderings = []
        self.commits = 0
        self.rollbacks = 0
        self._undo = []
        self._locked = False

    def connection(self, execution_options=None):
        if self.lock is not None and not self._locked:
            self.lock.acquire()
            self._locked = True
        self.isolation_levels.append((execution_options or {}).get("isolation_level"))
        return None

    def query(self, model):
        return FakeQuery(self, model)

    def get(self, model, row_id):
        for row in self.store.get(model, []):
            if row.id == row_id:
                return row
        return None

    def add(self, row):
        model = type(row)
        if getattr(row, "id", None) is None and model is Service:
            row.id = max((s.id for s in self.store[Service]), default=0) + 1
        if getattr(row, "created_at", None) is None:
            row.created_at = datetime.now(timezone.utc)
        if row not in self.store[model]:
            self.store[model].append(row)
            self._undo.append(("add", model, row))

    def delete(self, row):
        model = type(row)
        if row in self.store[model]:
            self.store[model].remove(row)
            self._undo.append(("delete", model, row))

    def flush(self):
        return None

    def commit(self):
        self.commits += 1
        self._undo.clear()
        self._release()

    def rollback(self):
        self.rollbacks += 1
        for action, model, row in reversed(self._undo):
            if action == "add":
                self.store[model].remove(row)
            else:
                self.store[model].append(row)
        self._undo.clear()
        self._release()

    def close(self):
        self._release()

    def _release(self):
        if self._locked:
            self._locked = False
            self.lock.release()


def make_service(service_id=1, name="Haircut", duration_minutes=30, price="35.00", is_active=True):
    return Service(
        id=service_id,
        name=name,
        duration_minutes=duration_minutes,
        price=Decimal(price),
        is_active=is_active,
        created_at=utc(2026, 10, 1, 12, 0),
    )


def make_booking(start, end, service_id=1, customer_name="Alice"):
    return Booking(
        id=str(uuid.uuid4()),
        service_id=service_id,
        start_time=start,
        end_time=end,
        customer_name=customer_name,
        customer_phone="+15555550123",
        notes=None,
        created_at=utc(2026, 10, 1, 12, 0),
    )


def make_hold(start, end, expires_at, service_id=1, session_id="session-a"):
    return Hold(
        id=str(uuid.uuid4()),
        service_id=service_id,
        start_time=start,
        end_time=end,
        session_id=session_id,
        created_at=utc(2026, 10, 1, 12, 0),
        expires_at=expires_at,
    )


@pytest.fixture(autouse=True)
def isolated_rate_limiter(monkeypatch):
    monkeypatch.setattr(config, "REDIS_URL", "")
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
def fake_session():
    session = FakeSession()
    session.store[Service].append(make_service())
    return session
