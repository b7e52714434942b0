"""Custom exception hierarchy for Solar Sync."""


class SolarSyncError(Exception):
    """Base exception for all Solar Sync errors."""

    pass


class APIError(SolarSyncError):
    """Error communicating with a vendor API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize API error.

        Args:
            message: Error message.
            status_code: HTTP status code if available.
        """
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Vendor rejected the credential exchange or returned no token."""

    pass


class UnsupportedVendorError(SolarSyncError):
    """No adapter is registered for a vendor type."""

    def __init__(self, vendor_type: str, supported: list[str]) -> None:
        super().__init__(
            f"Unsupported vendor type: {vendor_type}. "
            f"Supported types: {', '.join(supported) or 'none'}"
        )
        self.vendor_type = vendor_type


class UnsupportedCapabilityError(SolarSyncError):
    """Adapter does not implement an optional capability."""

    def __init__(self, vendor_type: str, capability: str) -> None:
        super().__init__(f"{vendor_type} adapter does not support {capability}")
        self.vendor_type = vendor_type
        self.capability = capability


class SyncError(SolarSyncError):
    """Error during data synchronization."""

    pass


class NotFoundError(SolarSyncError):
    """Requested record does not exist."""

    pass


class VendorNotFoundError(NotFoundError):
    """Vendor id does not exist."""

    def __init__(self, vendor_id: int) -> None:
        super().__init__(f"Vendor not found: {vendor_id}")
        self.vendor_id = vendor_id


class InvalidRequestError(SolarSyncError):
    """Caller supplied malformed parameters."""

    pass
