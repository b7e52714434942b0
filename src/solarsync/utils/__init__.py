"""Utility modules for Solar Sync."""

from solarsync.utils.exceptions import (
    APIError,
    AuthenticationError,
    InvalidRequestError,
    NotFoundError,
    SolarSyncError,
    SyncError,
    UnsupportedCapabilityError,
    UnsupportedVendorError,
    VendorNotFoundError,
)

__all__ = [
    "APIError",
    "AuthenticationError",
    "InvalidRequestError",
    "NotFoundError",
    "SolarSyncError",
    "SyncError",
    "UnsupportedCapabilityError",
    "UnsupportedVendorError",
    "VendorNotFoundError",
]
