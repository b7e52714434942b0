"""Vendor adapters for solar-monitoring APIs."""

from solarsync.vendors.base import (
    SupportsAlertSearch,
    SupportsDailyTelemetry,
    SupportsMonthlyTelemetry,
    SupportsTotalTelemetry,
    SupportsYearlyTelemetry,
    VendorAdapter,
    adapter_capabilities,
)
from solarsync.vendors.models import CachedToken, PlantLocation, VendorConfig, VendorPlant
from solarsync.vendors.registry import VendorRegistry, create_default_registry
from solarsync.vendors.solardm import SolarDmAdapter
from solarsync.vendors.solarman import SolarmanAdapter
from solarsync.vendors.token_store import DatabaseTokenStore, MemoryTokenStore, TokenStore

__all__ = [
    "CachedToken",
    "DatabaseTokenStore",
    "MemoryTokenStore",
    "PlantLocation",
    "SolarDmAdapter",
    "SolarmanAdapter",
    "SupportsAlertSearch",
    "SupportsDailyTelemetry",
    "SupportsMonthlyTelemetry",
    "SupportsTotalTelemetry",
    "SupportsYearlyTelemetry",
    "TokenStore",
    "VendorAdapter",
    "VendorConfig",
    "VendorPlant",
    "VendorRegistry",
    "adapter_capabilities",
    "create_default_registry",
]
