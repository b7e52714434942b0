"""Vendor adapter contract and optional capability interfaces."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar

import httpx
import structlog
from jose import jwt
from jose.exceptions import JOSEError

from solarsync.config.settings import Settings
from solarsync.db.models.enums import VendorType
from solarsync.vendors.http import VendorHttpClient
from solarsync.vendors.models import CachedToken, TelemetryRecords, VendorConfig, VendorPlant
from solarsync.vendors.token_store import MemoryTokenStore, TokenStore

logger = structlog.get_logger(__name__)


def decode_jwt_expiry(token: str) -> datetime | None:
    """Read the ``exp`` claim of a JWT without verifying it.

    Returns:
        Expiry as an aware UTC datetime, or None if the token is not a JWT
        or has no expiry.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JOSEError:
        return None
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


class VendorAdapter(ABC):
    """Base class for a monitoring vendor integration.

    Subclasses implement :meth:`login` and :meth:`list_plants`, and mix in
    the capability interfaces below for whatever else the vendor offers.
    Adapters are used as async context managers so the HTTP client is
    closed when the sync is done.
    """

    vendor_type: ClassVar[VendorType]
    default_base_url: ClassVar[str] = ""

    def __init__(
        self,
        config: VendorConfig,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            config: Vendor snapshot with credentials.
            settings: Application settings.
            transport: Optional httpx transport override.
        """
        self.config = config
        self.settings = settings
        self.http = VendorHttpClient(
            config.vendor_type.value, timeout=settings.api_timeout, transport=transport
        )
        self._token_store: TokenStore = MemoryTokenStore()
        self._token: CachedToken | None = None

    async def __aenter__(self) -> "VendorAdapter":
        await self.http.__aenter__()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.http.__aexit__(*args)

    def set_token_storage(self, store: TokenStore) -> None:
        """Use ``store`` to load and persist tokens."""
        self._token_store = store
        self._token = None

    def get_credentials(self) -> dict[str, Any]:
        return self.config.credentials

    def get_api_base_url(self) -> str:
        """Vendor base URL, preferring the per-vendor override."""
        return (self.config.api_base_url or self.default_base_url).rstrip("/")

    def is_token_valid(self, token: CachedToken, now: datetime | None = None) -> bool:
        """Check that a token is not within the expiry buffer of its expiry.

        When no expiry was stored, the JWT ``exp`` claim is used. A token
        with no known expiry at all is not trusted.
        """
        now = now or datetime.now(timezone.utc)
        expires_at = token.expires_at or decode_jwt_expiry(token.access_token)
        if expires_at is None:
            return False
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at > now + timedelta(seconds=self.settings.token_expiry_buffer_seconds)

    async def authenticate(self) -> str:
        """Return a valid access token, logging in again only when needed.

        Raises:
            AuthenticationError: If the vendor rejects the credentials.
            APIError: If the vendor cannot be reached.
        """
        if self._token and self.is_token_valid(self._token):
            return self._token.access_token

        cached = self._token_store.load()
        if cached and self.is_token_valid(cached):
            self._token = cached
            return cached.access_token

        logger.info("Authenticating with vendor", vendor_id=self.config.id, vendor=self.config.name)
        token = await self.login()
        self._token_store.save(token)
        self._token = token
        return token.access_token

    async def authorized_request(
        self, method: str, url: str, *, operation: str, **kwargs: Any
    ) -> Any:
        """Send a request carrying the Bearer token."""
        token = await self.authenticate()
        headers = {"Authorization": f"Bearer {token}", **kwargs.pop("headers", {})}
        return await self.http.request(method, url, operation=operation, headers=headers, **kwargs)

    @abstractmethod
    async def login(self) -> CachedToken:
        """Exchange credentials for a fresh token."""

    @abstractmethod
    async def list_plants(self) -> list[VendorPlant]:
        """List all plants visible to this vendor account."""


class SupportsDailyTelemetry(ABC):
    """Intraday power series for one day."""

    @abstractmethod
    async def get_daily_telemetry_records(
        self, plant_id: str, year: int, month: int, day: int
    ) -> TelemetryRecords: ...


class SupportsMonthlyTelemetry(ABC):
    """Daily energy for one month."""

    @abstractmethod
    async def get_monthly_telemetry_records(
        self, plant_id: str, year: int, month: int
    ) -> TelemetryRecords: ...


class SupportsYearlyTelemetry(ABC):
    """Monthly energy for one year."""

    @abstractmethod
    async def get_yearly_telemetry_records(self, plant_id: str, year: int) -> TelemetryRecords: ...


class SupportsTotalTelemetry(ABC):
    """Yearly energy across a range of years."""

    @abstractmethod
    async def get_total_telemetry_records(
        self, plant_id: str, start_year: int, end_year: int
    ) -> TelemetryRecords: ...


class SupportsAlertSearch(ABC):
    """Paged alert search across all stations of the account."""

    @abstractmethod
    async def search_alerts(
        self, start_day: str, end_day: str, page: int, size: int
    ) -> list[dict[str, Any]]: ...


CAPABILITIES: dict[str, type] = {
    "daily_telemetry": SupportsDailyTelemetry,
    "monthly_telemetry": SupportsMonthlyTelemetry,
    "yearly_telemetry": SupportsYearlyTelemetry,
    "total_telemetry": SupportsTotalTelemetry,
    "alert_search": SupportsAlertSearch,
}


def adapter_capabilities(adapter: VendorAdapter | type[VendorAdapter]) -> list[str]:
    """Names of the optional capabilities an adapter (or adapter class) implements."""
    cls = adapter if isinstance(adapter, type) else type(adapter)
    return [name for name, iface in CAPABILITIES.items() if issubclass(cls, iface)]
