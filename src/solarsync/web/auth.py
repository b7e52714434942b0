"""Trigger authorization for the sync endpoints."""

import base64
import binascii
import hmac
import json
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote

from fastapi import Depends, HTTPException, Request, status

from solarsync.config.settings import Settings

SUPERADMIN = "SUPERADMIN"
SESSION_COOKIE = "session"


@dataclass(frozen=True)
class SessionUser:
    account_id: str | None
    account_type: str | None
    org_id: int | None


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def decode_session_cookie(value: str) -> dict[str, Any]:
    """Decode the base64-encoded JSON session cookie.

    Raises:
        ValueError: If the cookie is not base64 JSON describing an object.
    """
    try:
        raw = base64.b64decode(unquote(value), validate=False)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError("Invalid session") from e
    if not isinstance(data, dict):
        raise ValueError("Invalid session")
    return data


def verify_cron_secret(authorization: str | None, secret: str | None) -> bool:
    """An unset secret leaves the cron endpoints open."""
    if not secret:
        return True
    if not authorization:
        return False
    return hmac.compare_digest(authorization, f"Bearer {secret}")


async def require_cron_secret(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Reject cron calls without the configured bearer secret."""
    if not verify_cron_secret(request.headers.get("authorization"), settings.get_cron_secret()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


async def require_session(request: Request) -> SessionUser:
    """Require a decodable session cookie."""
    cookie = request.cookies.get(SESSION_COOKIE)
    if not cookie:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        data = decode_session_cookie(cookie)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session"
        ) from None

    account_id = data.get("accountId")
    org_id = data.get("orgId")
    return SessionUser(
        account_id=str(account_id) if account_id is not None else None,
        account_type=data.get("accountType"),
        org_id=org_id if isinstance(org_id, int) else None,
    )


async def require_superadmin(user: SessionUser = Depends(require_session)) -> SessionUser:
    """Require a session whose account type is SUPERADMIN."""
    if user.account_type != SUPERADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden - SUPERADMIN only"
        )
    return user
