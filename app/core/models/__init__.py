from app.core.models.school import School
from app.core.models.student import Student
from app.core.models.fee import Fee
from app.core.models.installment import Installment
from app.core.models.payment import Payment
from app.core.models.user import User
from app.core.models.receipt import Receipt
from app.core.models.message_template import MessageTemplate
from app.core.models.sync_queue import SyncQueueEntry
from app.core.models.sync_log import LOST_WRITE_ENTITY, SyncLog
from app.core.models.replay_request import HeldRequest

__all__ = [
    "School",
    "Student",
    "Fee",
    "Installment",
    "Payment",
    "User",
    "Receipt",
    "MessageTemplate",
    "SyncQueueEntry",
    "SyncLog",
    "LOST_WRITE_ENTITY",
    "HeldRequest",
]
