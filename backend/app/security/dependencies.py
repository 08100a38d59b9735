import logging
import os

from fastapi import Header, HTTPException, Request, status

from app import config
from app.security.rate_limit import get_rate_limiter

logger = logging.getLogger("slotbook.security")


def _is_dev_env() -> bool:
    return os.getenv("ENV", "dev").lower() in {"dev", "development", "local"}


def _require_key(
    provided_key: str | None,
    env_var: str,
    not_configured_code: str,
    invalid_code: str,
    label: str,
) -> None:
    configured_key = os.getenv(env_var, "")

    if not configured_key:
        if _is_dev_env():
            logger.warning("%s is not set in dev; allowing %s request without key.", env_var, label)
            return
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": not_configured_code,
                "human_message": f"{label.capitalize()} API key is not configured.",
            },
        )

    if provided_key != configured_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": invalid_code,
                "human_message": f"Invalid {label} API key.",
            },
        )


def require_booking_api_key(
    x_booking_key: str | None = Header(default=None, alias="X-BOOKING-KEY"),
) -> None:
    _require_key(
        provided_key=x_booking_key,
        env_var="BOOKING_API_KEY",
        not_configured_code="BOOKING_AUTH_NOT_CONFIGURED",
        invalid_code="INVALID_BOOKING_API_KEY",
        label="booking",
    )


def require_admin_api_key(
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> None:
    _require_key(
        provided_key=x_admin_key,
        env_var="ADMIN_API_KEY",
        not_configured_code="ADMIN_AUTH_NOT_CONFIGURED",
        invalid_code="INVALID_ADMIN_API_KEY",
        label="admin",
    )


def client_address(request: Request) -> str:
    peer = request.client.host if request.client is not None else "unknown"
    if peer not in config.TRUSTED_PROXY_IPS:
        return peer

    # Nearest untrusted hop; entries further left are client-controlled.
    hops = [hop.strip() for hop in request.headers.get("x-forwarded-for", "").split(",")]
    for hop in reversed(hops):
        if hop and hop not in config.TRUSTED_PROXY_IPS:
            return hop
    return peer


def enforce_rate_limit(request: Request) -> None:
    if not get_rate_limiter().allow(client_address(request)):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error_code": "RATE_LIMITED",
                "human_message": "Too many requests. Please slow down.",
            },
        )
