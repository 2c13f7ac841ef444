"""
Authentication helpers.

Two schemes:
  - Admin endpoints: Authorization: Bearer <jwt> (HS256, issued by
    scripts/issue_admin_token.py) with role == "admin".
  - Cron endpoints: Authorization: Bearer <CRON_SECRET>, compared in
    constant time. An unconfigured secret rejects every call.
"""
import hmac
import logging
from datetime import datetime, timezone, timedelta
from fastapi import HTTPException, Header
from typing import Optional

import jwt

from config import settings
from domain.errors import PermissionDeniedError, UnauthorizedError

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def decode_access_token(token: str) -> dict:
    if not settings.jwt_secret:
        raise HTTPException(
            status_code=500,
            detail="Server auth misconfigured (JWT secret missing).",
        )
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "iss", "sub"]},
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Access token expired.")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid access token.")


def issue_access_token(*, subject: str, role: str, ttl_minutes: Optional[int] = None) -> str:
    if not settings.jwt_secret:
        raise HTTPException(
            status_code=500,
            detail="Server auth misconfigured (JWT secret missing).",
        )
    now = _now_utc()
    exp = now.replace(microsecond=0) + timedelta(minutes=ttl_minutes or settings.jwt_access_ttl_minutes)
    payload = {
        "iss": settings.jwt_issuer,
        "sub": subject,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


async def require_admin(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> str:
    """Return the admin's profile id from a valid admin access token."""
    token = _parse_bearer_token(authorization)
    if not token:
        raise UnauthorizedError("Authentication required. Provide Authorization: Bearer <token>.")
    payload = decode_access_token(token)
    if payload.get("role") != "admin":
        logger.warning(f"Non-admin token rejected (sub={str(payload.get('sub'))[:8]}...)")
        raise PermissionDeniedError("Admin role required for this endpoint.")
    return payload["sub"]


async def require_cron_secret(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> None:
    if not settings.cron_secret:
        logger.error("CRON_SECRET not configured — rejecting cron call")
        raise UnauthorizedError()
    token = _parse_bearer_token(authorization)
    secret = settings.cron_secret.encode("utf-8")
    if not token or not hmac.compare_digest(token.encode("utf-8"), secret):
        logger.warning("Cron call rejected: bad or missing bearer secret")
        raise UnauthorizedError()
