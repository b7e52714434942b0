"""Shared plumbing for the vendor sync services."""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog
from sqlalchemy import Engine

from solarsync.config.settings import Settings
from solarsync.db.engine import get_session
from solarsync.db.models.organization import Organization
from solarsync.db.models.vendor import Vendor
from solarsync.db.repositories.vendor import VendorRepository
from solarsync.sync.context import SyncContext
from solarsync.sync.results import VendorSyncResult
from solarsync.utils.exceptions import SyncError, VendorNotFoundError
from solarsync.vendors.base import VendorAdapter
from solarsync.vendors.models import VendorConfig
from solarsync.vendors.registry import VendorRegistry, create_default_registry
from solarsync.vendors.token_store import DatabaseTokenStore

logger = structlog.get_logger(__name__)

AUTH_FAILED_MESSAGE = "Token validation/refresh failed"


@dataclass(frozen=True)
class OrgSnapshot:
    """Organization fields the sync needs, detached from any session."""

    id: int
    name: str
    auto_sync_enabled: bool
    sync_interval_minutes: int | None

    @classmethod
    def from_model(cls, org: Organization) -> "OrgSnapshot":
        return cls(
            id=org.id,
            name=org.name,
            auto_sync_enabled=bool(org.auto_sync_enabled),
            sync_interval_minutes=org.sync_interval_minutes,
        )


@dataclass(frozen=True)
class SyncTarget:
    vendor: VendorConfig
    org: OrgSnapshot | None


def vendor_config(vendor: Vendor) -> VendorConfig:
    """Snapshot a vendor row for an adapter."""
    return VendorConfig(
        id=vendor.id,
        name=vendor.name,
        vendor_type=vendor.vendor_type,
        credentials=dict(vendor.credentials or {}),
        api_base_url=vendor.api_base_url,
        is_active=vendor.is_active,
        org_id=vendor.org_id,
    )


def elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class BaseSyncService(ABC):
    """Base class for services that fan a job out over vendors."""

    operation: str

    def __init__(
        self,
        engine: Engine,
        settings: Settings,
        registry: VendorRegistry | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            engine: SQLAlchemy engine.
            settings: Application settings.
            registry: Adapter registry (the built-in adapters if not given).
        """
        self.engine = engine
        self.settings = settings
        self.registry = registry or create_default_registry()

    def load_active_targets(self) -> list[SyncTarget]:
        """Active vendors that belong to an organization."""
        with get_session(self.engine) as session:
            pairs = VendorRepository(session).get_active_with_org()
            return [SyncTarget(vendor_config(v), OrgSnapshot.from_model(o)) for v, o in pairs]

    def load_target(self, vendor_id: int) -> SyncTarget:
        """Load one vendor for a manual sync.

        Raises:
            VendorNotFoundError: If the vendor does not exist.
        """
        with get_session(self.engine) as session:
            found = VendorRepository(session).get_with_org(vendor_id)
            if found is None:
                raise VendorNotFoundError(vendor_id)
            vendor, org = found
            return SyncTarget(vendor_config(vendor), OrgSnapshot.from_model(org) if org else None)

    def require_org(self, target: SyncTarget) -> OrgSnapshot:
        if target.org is None:
            raise SyncError(f"Vendor {target.vendor.id} is not assigned to an organization")
        return target.org

    def new_result(self, target: SyncTarget) -> VendorSyncResult:
        return VendorSyncResult(
            vendor_id=target.vendor.id,
            vendor_name=target.vendor.name,
            org_id=target.org.id if target.org else target.vendor.org_id,
            org_name=target.org.name if target.org else None,
        )

    def create_adapter(self, config: VendorConfig) -> VendorAdapter:
        """Create an adapter whose tokens persist to the vendor row."""
        adapter = self.registry.create(config, self.settings)
        adapter.set_token_storage(DatabaseTokenStore(self.engine, config.id))
        return adapter

    def vendor_context(self, context: SyncContext, target: SyncTarget) -> SyncContext:
        return context.child(
            vendor_id=target.vendor.id,
            vendor_name=target.vendor.name,
            org_id=target.org.id if target.org else None,
            operation=context.operation or self.operation,
        )

    async def run_targets(
        self,
        targets: list[SyncTarget],
        context: SyncContext,
        worker: Callable[[SyncTarget, SyncContext], Awaitable[VendorSyncResult]] | None = None,
    ) -> list[VendorSyncResult]:
        """Sync all targets concurrently; one vendor's failure never stops the others."""
        worker = worker or self.sync_target
        return list(
            await asyncio.gather(
                *(self._guarded(worker, t, self.vendor_context(context, t)) for t in targets)
            )
        )

    async def _guarded(
        self,
        worker: Callable[[SyncTarget, SyncContext], Awaitable[VendorSyncResult]],
        target: SyncTarget,
        context: SyncContext,
    ) -> VendorSyncResult:
        try:
            return await worker(target, context)
        except Exception as e:
            context.bind(logger).exception("Vendor sync failed", error=str(e))
            result = self.new_result(target)
            result.error = str(e) or e.__class__.__name__
            return result

    @abstractmethod
    async def sync_target(self, target: SyncTarget, context: SyncContext) -> VendorSyncResult:
        """Sync one vendor."""
