"""Persistence of vendor access tokens."""

from datetime import datetime, timezone
from typing import Protocol

import structlog
from sqlalchemy import Engine

from solarsync.db.engine import get_session
from solarsync.db.repositories.vendor import VendorRepository
from solarsync.vendors.models import CachedToken

logger = structlog.get_logger(__name__)

ACCESS_TOKEN_KEY = "access_token"
EXPIRES_AT_KEY = "token_expires_at"
REFRESH_TOKEN_KEY = "refresh_token"


class TokenStore(Protocol):
    """Where an adapter keeps its token between runs."""

    def load(self) -> CachedToken | None: ...

    def save(self, token: CachedToken) -> None: ...


class MemoryTokenStore:
    """Token store that lives as long as the adapter."""

    def __init__(self, token: CachedToken | None = None) -> None:
        self.token = token

    def load(self) -> CachedToken | None:
        return self.token

    def save(self, token: CachedToken) -> None:
        self.token = token


def _parse_expiry(value: object) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class DatabaseTokenStore:
    """Keeps the token inside the vendor's credentials JSON.

    Each call opens its own short transaction, so it is safe to use from
    concurrently running vendor tasks.
    """

    def __init__(self, engine: Engine, vendor_id: int) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine.
            vendor_id: Vendor whose credentials hold the token.
        """
        self.engine = engine
        self.vendor_id = vendor_id

    def load(self) -> CachedToken | None:
        with get_session(self.engine) as session:
            credentials = VendorRepository(session).get_credentials(self.vendor_id)

        access_token = credentials.get(ACCESS_TOKEN_KEY)
        if not access_token:
            return None
        return CachedToken(
            access_token=str(access_token),
            expires_at=_parse_expiry(credentials.get(EXPIRES_AT_KEY)),
            refresh_token=credentials.get(REFRESH_TOKEN_KEY),
        )

    def save(self, token: CachedToken) -> None:
        updates: dict[str, str | None] = {
            ACCESS_TOKEN_KEY: token.access_token,
            EXPIRES_AT_KEY: token.expires_at.isoformat() if token.expires_at else None,
        }
        if token.refresh_token:
            updates[REFRESH_TOKEN_KEY] = token.refresh_token

        with get_session(self.engine) as session:
            VendorRepository(session).merge_credentials(self.vendor_id, updates)

        logger.debug("Stored vendor token", vendor_id=self.vendor_id, expires_at=updates[EXPIRES_AT_KEY])
