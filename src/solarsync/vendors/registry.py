"""Vendor type to adapter class registry."""

import httpx
import structlog

from solarsync.config.settings import Settings
from solarsync.db.models.enums import VendorType
from solarsync.utils.exceptions import UnsupportedVendorError
from solarsync.vendors.base import VendorAdapter
from solarsync.vendors.models import VendorConfig
from solarsync.vendors.solardm import SolarDmAdapter
from solarsync.vendors.solarman import SolarmanAdapter

logger = structlog.get_logger(__name__)


class VendorRegistry:
    """Creates adapters for vendor configurations."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialize an empty registry.

        Args:
            transport: Optional httpx transport passed to every adapter.
        """
        self._adapters: dict[str, type[VendorAdapter]] = {}
        self._transport = transport

    @staticmethod
    def _key(vendor_type: VendorType | str) -> str:
        value = vendor_type.value if isinstance(vendor_type, VendorType) else str(vendor_type)
        return value.upper()

    def register(self, vendor_type: VendorType | str, adapter_class: type[VendorAdapter]) -> None:
        """Register (or replace) the adapter class for a vendor type."""
        self._adapters[self._key(vendor_type)] = adapter_class
        logger.debug("Registered vendor adapter", vendor_type=self._key(vendor_type))

    def is_supported(self, vendor_type: VendorType | str) -> bool:
        return self._key(vendor_type) in self._adapters

    def supported_types(self) -> list[str]:
        return sorted(self._adapters)

    def adapter_class(self, vendor_type: VendorType | str) -> type[VendorAdapter]:
        """Look up the adapter class for a vendor type.

        Raises:
            UnsupportedVendorError: If nothing is registered for the type.
        """
        try:
            return self._adapters[self._key(vendor_type)]
        except KeyError:
            raise UnsupportedVendorError(self._key(vendor_type), self.supported_types()) from None

    def create(self, config: VendorConfig, settings: Settings) -> VendorAdapter:
        """Instantiate the adapter for a vendor.

        Args:
            config: Vendor snapshot.
            settings: Application settings.

        Returns:
            A new adapter; use it as an async context manager.

        Raises:
            UnsupportedVendorError: If the vendor type has no adapter.
        """
        adapter_class = self.adapter_class(config.vendor_type)
        return adapter_class(config, settings, transport=self._transport)


def create_default_registry(transport: httpx.AsyncBaseTransport | None = None) -> VendorRegistry:
    """Registry with the built-in SOLARMAN and SOLARDM adapters."""
    registry = VendorRegistry(transport=transport)
    registry.register(VendorType.SOLARMAN, SolarmanAdapter)
    registry.register(VendorType.SOLARDM, SolarDmAdapter)
    return registry
