from enum import Enum


class SchoolStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    pending = "pending"


class TransportationType(str, Enum):
    NONE = "none"
    ONE_WAY = "one-way"
    TWO_WAY = "two-way"


class InstallmentStatus(str, Enum):
    unpaid = "unpaid"
    partial = "partial"
    paid = "paid"


class PaymentKind(str, Enum):
    payment = "payment"
    adjustment = "adjustment"  # signed correction of an earlier payment


class OverpaymentPolicy(str, Enum):
    REJECT = "reject"
    CLAMP = "clamp"


class SyncOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncEntity(str, Enum):
    SCHOOL = "school"
    STUDENT = "student"
    FEE = "fee"
    INSTALLMENT = "installment"
    PAYMENT = "payment"


class SyncState(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"

    @property
    def wire_value(self) -> str:
        """Marker used by the queue wire format ("yes" / "no")."""
        return "yes" if self is SyncState.SYNCED else "no"


class SyncStatus(str, Enum):
    idle = "idle"
    syncing = "syncing"
    error = "error"


class ConnectionState(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class ContextState(str, Enum):
    INITIALIZED = "initialized"
    WAITING = "waiting"
    ACTIVE = "active"
    TORN_DOWN = "torn_down"
