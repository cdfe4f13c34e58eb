"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from .enums import PackageStatus

DEFAULT_SESSION_DAYS = 7
DEFAULT_HISTORY_LIMIT = 50
DEFAULT_RECENT_ACTIVITY_LIMIT = 10

MIN_REASON_LENGTH = 10
MAX_REASON_LENGTH = 500

CUBIC_INCHES_PER_CUBIC_FOOT = 1728

SENSITIVE_FIELDS = frozenset({"password", "password_hash", "remember_token", "api_token"})

CONSOLIDATABLE_STATUSES = frozenset(
    {
        PackageStatus.PENDING,
        PackageStatus.PROCESSING,
        PackageStatus.READY,
        PackageStatus.SHIPPED,
        PackageStatus.CUSTOMS,
    }
)

CONSOLIDATED_STATUS_PRIORITY = {
    PackageStatus.DELIVERED: 6,
    PackageStatus.READY: 5,
    PackageStatus.CUSTOMS: 4,
    PackageStatus.SHIPPED: 3,
    PackageStatus.PROCESSING: 2,
    PackageStatus.PENDING: 1,
    PackageStatus.DELAYED: 0,
}

FEE_FIELDS = ("freight_price", "clearance_fee", "storage_fee", "delivery_fee")

BACKUP_HEALTHY_SUCCESS_RATE = 80.0
BACKUP_MAX_AGE_DAYS = 1
BACKUP_RECENT_DAYS = 7
