"""
Ledger store: local durable storage of schools, students, fees, installments and payments.

Every mutation is paired with a sync queue entry inside the same transaction, so a
committed write always has its replay record and a failed write leaves none.
Reads are scoped by school_id when the store is bound to a school.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type

from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import SyncEntity, SyncOperation
from app.core.exceptions import LocalStorageError, NotFoundError
from app.core.models import Fee, Installment, Payment, School, Student
from app.sync.queue import SyncQueueManager

logger = logging.getLogger(__name__)

ENTITY_MODELS: Dict[SyncEntity, Type] = {
    SyncEntity.SCHOOL: School,
    SyncEntity.STUDENT: Student,
    SyncEntity.FEE: Fee,
    SyncEntity.INSTALLMENT: Installment,
    SyncEntity.PAYMENT: Payment,
}


def snapshot(obj) -> Dict[str, Any]:
    """JSON-safe copy of a row's columns, used as the replay payload."""
    return jsonable_encoder({c.name: getattr(obj, c.name) for c in obj.__table__.columns})


def _entity_for(obj) -> SyncEntity:
    for entity, model in ENTITY_MODELS.items():
        if isinstance(obj, model):
            return entity
    raise TypeError(f"{type(obj).__name__} is not a ledger entity")


class LedgerStore:
    def __init__(self, db: AsyncSession, school_id: Optional[int] = None) -> None:
        self.db = db
        self.school_id = school_id
        self.queue = SyncQueueManager(db)

    # --- Transactions ---
    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Local store commit failed")
            raise LocalStorageError(f"Local storage error: {e.__class__.__name__}") from e

    async def rollback(self) -> None:
        await self.db.rollback()

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Local store write failed")
            raise LocalStorageError(f"Local storage error: {e.__class__.__name__}") from e

    # --- Mutations (always paired with an enqueue) ---
    async def add(self, obj):
        if self.school_id is not None and hasattr(obj, "school_id") and obj.school_id is None:
            obj.school_id = self.school_id
        self.db.add(obj)
        await self._flush()
        await self.queue.enqueue(SyncOperation.CREATE, _entity_for(obj), obj.id, snapshot(obj))
        return obj

    async def update(self, obj, values: Dict[str, Any]):
        for key, value in values.items():
            setattr(obj, key, value)
        await self._flush()
        await self.queue.enqueue(SyncOperation.UPDATE, _entity_for(obj), obj.id, snapshot(obj))
        return obj

    async def delete(self, obj) -> None:
        entity = _entity_for(obj)
        row_id = obj.id
        await self.db.delete(obj)
        await self._flush()
        await self.queue.enqueue(SyncOperation.DELETE, entity, row_id, {"id": row_id})

    # --- Reads ---
    async def get(self, model: Type, row_id: int, scoped: bool = True):
        """Fetch by id; rows of another school are treated as missing."""
        obj = await self.db.get(model, row_id)
        if obj is not None and scoped and self.school_id is not None and hasattr(model, "school_id"):
            if obj.school_id != self.school_id:
                obj = None
        return obj

    async def require(self, model: Type, row_id: int):
        obj = await self.get(model, row_id)
        if obj is None:
            raise NotFoundError(f"{model.__name__} not found")
        return obj

    def _scoped(self, model: Type):
        stmt = select(model)
        if self.school_id is not None:
            stmt = stmt.where(model.school_id == self.school_id)
        return stmt

    async def list_schools(self, status: Optional[str] = None) -> List[School]:
        stmt = select(School)
        if status:
            stmt = stmt.where(School.status == status)
        result = await self.db.execute(stmt.order_by(School.name))
        return list(result.scalars().all())

    async def list_students(self, grade: Optional[str] = None) -> List[Student]:
        stmt = self._scoped(Student)
        if grade is not None:
            stmt = stmt.where(Student.grade == grade)
        result = await self.db.execute(stmt.order_by(Student.name, Student.id))
        return list(result.scalars().all())

    async def list_fees(self, grade: Optional[str] = None, student_id: Optional[int] = None) -> List[Fee]:
        stmt = self._scoped(Fee)
        if grade is not None:
            stmt = stmt.where(Fee.grade == grade)
        if student_id is not None:
            stmt = stmt.where(Fee.student_id == student_id)
        result = await self.db.execute(stmt.order_by(Fee.due_date, Fee.id))
        return list(result.scalars().all())

    async def students_for_fee(self, fee: Fee) -> List[Student]:
        """Students a fee is billed to: its specific student, or every student of its grade."""
        if fee.student_id is not None:
            student = await self.get(Student, fee.student_id)
            return [student] if student else []
        if fee.grade is None:
            return []
        return await self.list_students(grade=fee.grade)

    async def list_installments(
        self,
        fee_id: Optional[int] = None,
        student_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Installment]:
        stmt = self._scoped(Installment)
        if fee_id is not None:
            stmt = stmt.where(Installment.fee_id == fee_id)
        if student_id is not None:
            stmt = stmt.where(Installment.student_id == student_id)
        if status is not None:
            stmt = stmt.where(Installment.status == status)
        stmt = stmt.order_by(Installment.fee_id, Installment.student_id, Installment.number)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_installment(self, fee_id: int, student_id: int, number: int) -> Optional[Installment]:
        result = await self.db.execute(
            self._scoped(Installment).where(
                Installment.fee_id == fee_id,
                Installment.student_id == student_id,
                Installment.number == number,
            )
        )
        return result.scalar_one_or_none()

    async def list_payments(
        self,
        student_id: Optional[int] = None,
        fee_id: Optional[int] = None,
    ) -> List[Payment]:
        stmt = self._scoped(Payment)
        if student_id is not None:
            stmt = stmt.where(Payment.student_id == student_id)
        if fee_id is not None:
            stmt = stmt.where(Payment.fee_id == fee_id)
        result = await self.db.execute(stmt.order_by(Payment.date.desc(), Payment.id.desc()))
        return list(result.scalars().all())

    async def count_payments(self, student_id: Optional[int] = None, fee_id: Optional[int] = None) -> int:
        stmt = select(func.count(Payment.id))
        if self.school_id is not None:
            stmt = stmt.where(Payment.school_id == self.school_id)
        if student_id is not None:
            stmt = stmt.where(Payment.student_id == student_id)
        if fee_id is not None:
            stmt = stmt.where(Payment.fee_id == fee_id)
        result = await self.db.execute(stmt)
        return int(result.scalar() or 0)

    async def sum_payments(self, student_id: int, fee_id: int) -> Decimal:
        """Net amount received for a (student, fee), adjustments included."""
        stmt = select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.student_id == student_id,
            Payment.fee_id == fee_id,
        )
        if self.school_id is not None:
            stmt = stmt.where(Payment.school_id == self.school_id)
        result = await self.db.execute(stmt)
        total = result.scalar() or 0
        return total if isinstance(total, Decimal) else Decimal(str(total))
