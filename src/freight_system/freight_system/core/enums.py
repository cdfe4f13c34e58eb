from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for route and service authorization."""

    CUSTOMER = "customer"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @property
    def is_staff(self) -> bool:
        return self in {Role.ADMIN, Role.SUPERADMIN}


class ManifestType(str, Enum):
    AIR = "air"
    SEA = "sea"


class PackageStatus(str, Enum):
    """Package lifecycle status stored in the packages table."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    CUSTOMS = "customs"
    READY = "ready"
    DELIVERED = "delivered"
    DELAYED = "delayed"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @property
    def badge_class(self) -> str:
        return _STATUS_BADGES[self]

    def valid_transitions(self) -> list["PackageStatus"]:
        return list(_TRANSITIONS[self])

    def can_transition_to(self, other: "PackageStatus") -> bool:
        return other in _TRANSITIONS[self]

    def allows_distribution(self) -> bool:
        return self == PackageStatus.READY


_STATUS_LABELS = {
    PackageStatus.PENDING: "Pending",
    PackageStatus.PROCESSING: "Processing",
    PackageStatus.SHIPPED: "Shipped",
    PackageStatus.CUSTOMS: "At Customs",
    PackageStatus.READY: "Ready for Pickup",
    PackageStatus.DELIVERED: "Delivered",
    PackageStatus.DELAYED: "Delayed",
}

_STATUS_BADGES = {
    PackageStatus.PENDING: "secondary",
    PackageStatus.PROCESSING: "info",
    PackageStatus.SHIPPED: "primary",
    PackageStatus.CUSTOMS: "warning",
    PackageStatus.READY: "success",
    PackageStatus.DELIVERED: "dark",
    PackageStatus.DELAYED: "danger",
}

_TRANSITIONS = {
    PackageStatus.PENDING: (PackageStatus.PROCESSING, PackageStatus.SHIPPED, PackageStatus.DELAYED),
    PackageStatus.PROCESSING: (PackageStatus.SHIPPED, PackageStatus.DELAYED),
    PackageStatus.SHIPPED: (PackageStatus.CUSTOMS, PackageStatus.DELAYED),
    PackageStatus.CUSTOMS: (PackageStatus.READY, PackageStatus.DELAYED),
    PackageStatus.READY: (PackageStatus.DELIVERED, PackageStatus.DELAYED),
    PackageStatus.DELAYED: (
        PackageStatus.PROCESSING,
        PackageStatus.SHIPPED,
        PackageStatus.CUSTOMS,
        PackageStatus.READY,
    ),
    PackageStatus.DELIVERED: (),
}


class ManifestAuditAction(str, Enum):
    CLOSED = "closed"
    UNLOCKED = "unlocked"
    AUTO_COMPLETE = "auto_complete"


class BackupType(str, Enum):
    DATABASE = "database"
    FILES = "files"
    FULL = "full"


class BackupStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CLEANED_UP = "cleaned_up"


class AuditEventType(str, Enum):
    """Event categories accepted by the audit log."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    MODEL_CREATED = "model_created"
    MODEL_UPDATED = "model_updated"
    MODEL_DELETED = "model_deleted"
    MODEL_RESTORED = "model_restored"
    BUSINESS_ACTION = "business_action"
    FINANCIAL_TRANSACTION = "financial_transaction"
    SYSTEM_EVENT = "system_event"
    SECURITY_EVENT = "security_event"
