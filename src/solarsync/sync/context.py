"""Diagnostic context passed explicitly through a sync run."""

import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal

SyncSource = Literal["user", "cron", "system", "api"]


def new_request_id() -> str:
    """Generate a short request id."""
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class SyncContext:
    """Who triggered a sync and what it is working on.

    A context is created once per trigger and narrowed with :meth:`child`
    for each vendor, so concurrent vendor tasks never share mutable state.
    """

    source: SyncSource = "system"
    request_id: str = field(default_factory=new_request_id)
    operation: str | None = None
    user_id: str | None = None
    account_type: str | None = None
    org_id: int | None = None
    vendor_id: int | None = None
    vendor_name: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def for_cron(cls, operation: str) -> "SyncContext":
        return cls(source="cron", operation=operation)

    @classmethod
    def for_user(
        cls,
        operation: str,
        user_id: str | None = None,
        account_type: str | None = None,
    ) -> "SyncContext":
        return cls(
            source="user",
            operation=operation,
            user_id=user_id,
            account_type=account_type,
        )

    def child(self, **changes: Any) -> "SyncContext":
        """Derive a narrower context, keeping the request id and trigger."""
        return replace(self, **changes)

    def as_log_fields(self) -> dict[str, Any]:
        """Non-empty fields suitable for binding to a logger."""
        fields = asdict(self)
        fields.pop("timestamp")
        return {k: v for k, v in fields.items() if v is not None}

    def bind(self, logger: Any) -> Any:
        """Return ``logger`` bound with this context's fields."""
        return logger.bind(**self.as_log_fields())

    def log_prefix(self) -> str:
        """Human-readable prefix, e.g. ``[CRON] [sync-plants] [Vendor:Acme]``."""
        parts = [f"[{self.source.upper()}]"]
        if self.user_id:
            parts.append(f"[User:{self.user_id}]")
        if self.operation:
            parts.append(f"[{self.operation}]")
        if self.vendor_name:
            parts.append(f"[Vendor:{self.vendor_name}]")
        return " ".join(parts)
