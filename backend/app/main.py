import json
import logging
import time
import uuid
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.admin.bookings import list_bookings, serialize_booking
from app.admin.services import (
    CreateServiceArgs,
    UpdateServiceArgs,
    create_service,
    list_services,
    serialize_service,
    update_service,
)
from app.api.args import (
    map_validation_error,
    parse_availability_args,
    parse_confirm_booking_args,
    parse_date_args,
    parse_reserve_hold_args,
)
from app.chat.manychat import build_availability_message, build_text_message
from app.db.models import Service
from app.db.session import SessionLocal
from app.scheduling.availability import resolve_availability
from app.scheduling.cancellation import cancel_booking
from app.scheduling.finalizer import confirm_booking
from app.scheduling.holds import release_hold, reserve_hold, sweep_expired_holds
from app.scheduling.results import (
    ErrorKind,
    Failure,
    serialize_availability,
    serialize_booking_receipt,
    serialize_hold_receipt,
)
from app.scheduling.slots import load_business_hours
from app.scheduling.timeutils import utc_now
from app.security.dependencies import (
    enforce_rate_limit,
    require_admin_api_key,
    require_booking_api_key,
)


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger("slotbook.backend")


logger = configure_logging()
app = FastAPI(title="Slot Booking Backend")

public_gate = [Depends(require_booking_api_key), Depends(enforce_rate_limit)]
admin_gate = [Depends(require_admin_api_key)]

FAILURE_STATUS = {
    ErrorKind.SERVICE_NOT_FOUND: 400,
    ErrorKind.INVALID_INTERVAL: 400,
    ErrorKind.HOLD_NOT_FOUND: 404,
    ErrorKind.BOOKING_NOT_FOUND: 404,
    ErrorKind.SLOT_TAKEN: 409,
    ErrorKind.HOLD_EXPIRED: 409,
    ErrorKind.STORE_UNAVAILABLE: 503,
}


def failure_response(failure: Failure) -> JSONResponse:
    return JSONResponse(
        status_code=FAILURE_STATUS[failure.kind],
        content={
            "ok": False,
            "error_code": failure.kind.value,
            "human_message": failure.message,
            "retryable": failure.retryable,
        },
    )


def invalid_args_response(exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"ok": False, **map_validation_error(exc)})


def system_down_response(human_message: str) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={
            "ok": False,
            "error_code": "SYSTEM_DOWN",
            "human_message": human_message,
        },
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["x-request-id"] = request_id

    logger.info(
        json.dumps(
            {
                "event": "http_request",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )
    )
    return response


@app.get("/health")
async def health():
    return JSONResponse(content={"ok": True})


@app.get("/v1/services")
async def public_list_services() -> JSONResponse:
    db = SessionLocal()
    try:
        services = list_services(db=db, active_only=True)
        return JSONResponse(
            content={"ok": True, "data": {"services": [serialize_service(s) for s in services]}}
        )
    except SQLAlchemyError:
        logger.exception("Listing services failed")
        return system_down_response("Temporary issue listing services.")
    finally:
        db.close()


def _resolve_for_request(service_id: Any, date_text: Any):
    args = parse_availability_args({"service_id": service_id, "date": date_text})
    db = SessionLocal()
    try:
        return resolve_availability(
            db=db,
            service_id=args.service_id,
            day=args.day,
            hours=load_business_hours(),
            now=utc_now(),
        )
    except SQLAlchemyError:
        logger.exception("Availability lookup failed for service_id=%s", args.service_id)
        return Failure.of(ErrorKind.STORE_UNAVAILABLE)
    finally:
        db.close()


@app.get("/v1/availability", dependencies=public_gate)
async def availability(service_id: str | None = None, date: str | None = None) -> JSONResponse:
    try:
        result = _resolve_for_request(service_id, date)
    except ValidationError as exc:
        return invalid_args_response(exc)

    if isinstance(result, Failure):
        return failure_response(result)
    return JSONResponse(content={"ok": True, "data": serialize_availability(result)})


@app.get("/v1/chat/availability", dependencies=public_gate)
async def chat_availability(service_id: str | None = None, date: str | None = None) -> JSONResponse:
    try:
        result = _resolve_for_request(service_id, date)
    except ValidationError:
        return JSONResponse(
            status_code=400,
            content=build_text_message("Please choose a valid date (YYYY-MM-DD)."),
        )

    if isinstance(result, Failure):
        if result.kind is ErrorKind.SERVICE_NOT_FOUND:
            return JSONResponse(status_code=400, content=build_text_message("Service not found or inactive."))
        return JSONResponse(
            status_code=FAILURE_STATUS[result.kind],
            content=build_text_message("Sorry, something went wrong while fetching availability."),
        )
    return JSONResponse(content=build_availability_message(result))


@app.post("/v1/holds", dependencies=public_gate)
async def create_hold(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_reserve_hold_args(payload)
    except ValidationError as exc:
        return invalid_args_response(exc)

    result = reserve_hold(
        session_factory=SessionLocal,
        service_id=args.service_id,
        start=args.start,
        end=args.end,
        session_id=args.session_id,
    )
    if isinstance(result, Failure):
        return failure_response(result)
    return JSONResponse(content={"ok": True, "data": serialize_hold_receipt(result)})


@app.delete("/v1/holds/{hold_id}", dependencies=public_gate)
async def delete_hold(hold_id: str, session_id: str = "") -> JSONResponse:
    result = release_hold(session_factory=SessionLocal, hold_id=hold_id, session_id=session_id)
    if isinstance(result, Failure):
        return failure_response(result)
    return JSONResponse(content={"ok": True, "data": {"hold_id": hold_id, "released": True}})


@app.post("/v1/bookings", dependencies=public_gate)
async def create_booking(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_confirm_booking_args(payload)
    except ValidationError as exc:
        return invalid_args_response(exc)

    result = confirm_booking(
        session_factory=SessionLocal,
        hold_id=args.hold_id,
        customer_name=args.customer_name,
        customer_phone=args.customer_phone,
        notes=args.notes,
    )
    if isinstance(result, Failure):
        return failure_response(result)
    return JSONResponse(content={"ok": True, "data": serialize_booking_receipt(result)})


@app.delete("/v1/bookings/{booking_id}", dependencies=public_gate)
async def delete_booking(booking_id: str) -> JSONResponse:
    result = cancel_booking(session_factory=SessionLocal, booking_id=booking_id)
    if isinstance(result, Failure):
        return failure_response(result)
    return JSONResponse(content={"ok": True, "data": {"booking_id": result.booking_id, "cancelled": True}})


@app.post("/v1/admin/services", dependencies=admin_gate)
async def admin_create_service(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = CreateServiceArgs.model_validate(payload)
    except ValidationError as exc:
        return invalid_args_response(exc)

    db = SessionLocal()
    try:
        service = create_service(db=db, args=args)
        return JSONResponse(content={"ok": True, "data": {"service": serialize_service(service)}})
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Creating service failed")
        return system_down_response("Temporary issue creating service.")
    finally:
        db.close()


@app.get("/v1/admin/services", dependencies=admin_gate)
async def admin_list_services() -> JSONResponse:
    db = SessionLocal()
    try:
        services = list_services(db=db)
        return JSONResponse(
            content={"ok": True, "data": {"services": [serialize_service(s) for s in services]}}
        )
    except SQLAlchemyError:
        logger.exception("Listing services failed")
        return system_down_response("Temporary issue listing services.")
    finally:
        db.close()


@app.patch("/v1/admin/services/{service_id}", dependencies=admin_gate)
async def admin_update_service(service_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = UpdateServiceArgs.model_validate(payload)
    except ValidationError as exc:
        return invalid_args_response(exc)

    db = SessionLocal()
    try:
        service = update_service(db=db, service_id=service_id, args=args)
        if service is None:
            return JSONResponse(
                status_code=404,
                content={
                    "ok": False,
                    "error_code": "SERVICE_NOT_FOUND",
                    "human_message": "Service not found.",
                },
            )
        return JSONResponse(content={"ok": True, "data": {"service": serialize_service(service)}})
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Updating service %s failed", service_id)
        return system_down_response("Temporary issue updating service.")
    finally:
        db.close()


@app.get("/v1/admin/bookings", dependencies=admin_gate)
async def admin_list_bookings(date: str | None = None, service_id: int | None = None) -> JSONResponse:
    day = None
    if date:
        try:
            day = parse_date_args({"date": date}).day
        except ValidationError as exc:
            return invalid_args_response(exc)

    db = SessionLocal()
    try:
        bookings = list_bookings(db=db, hours=load_business_hours(), day=day, service_id=service_id)
        services = {s.id: s for s in db.query(Service).all()}
        return JSONResponse(
            content={
                "ok": True,
                "data": {
                    "bookings": [serialize_booking(b, services.get(b.service_id)) for b in bookings]
                },
            }
        )
    except SQLAlchemyError:
        logger.exception("Listing bookings failed")
        return system_down_response("Temporary issue listing bookings.")
    finally:
        db.close()


@app.delete("/v1/admin/bookings/{booking_id}", dependencies=admin_gate)
async def admin_cancel_booking(booking_id: str) -> JSONResponse:
    result = cancel_booking(session_factory=SessionLocal, booking_id=booking_id)
    if isinstance(result, Failure):
        return failure_response(result)
    return JSONResponse(content={"ok": True, "data": {"booking_id": result.booking_id, "cancelled": True}})


@app.post("/v1/admin/holds/sweep", dependencies=admin_gate)
async def admin_sweep_holds() -> JSONResponse:
    db = SessionLocal()
    try:
        removed = sweep_expired_holds(db=db, now=utc_now())
        return JSONResponse(content={"ok": True, "data": {"removed": removed}})
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Sweeping expired holds failed")
        return system_down_response("Temporary issue sweeping holds.")
    finally:
        db.close()
