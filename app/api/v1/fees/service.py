"""Fees service: fee templates, installment fan-out and schedule regeneration."""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import InstallmentStatus
from app.core.exceptions import ConflictError, ServiceError
from app.core.installments import build_schedule, regenerate_schedule, to_money
from app.core.ledger_store import LedgerStore
from app.core.models import Fee, Installment, Student

from .schemas import FeeCreate, FeeResponse, FeeUpdate, FeeWriteResponse

logger = logging.getLogger(__name__)

_SCHEDULE_FIELDS = ("amount", "due_date", "installments")


def _to_response(fee: Fee, students_scheduled: int = 0) -> FeeWriteResponse:
    response = FeeWriteResponse.model_validate(fee)
    response.students_scheduled = students_scheduled
    return response


async def create_fee(db: AsyncSession, school_id: int, payload: FeeCreate) -> FeeWriteResponse:
    """
    Create a fee. With installments > 1, generate the schedule for every targeted student
    (the specific student, or every student of school + grade) in the same transaction.
    """
    store = LedgerStore(db, school_id)
    if payload.student_id is not None:
        await store.require(Student, payload.student_id)
    amount = to_money(payload.amount)

    fee = Fee(
        school_id=school_id,
        name=payload.name.strip(),
        amount=amount,
        due_date=payload.due_date,
        grade=payload.grade.strip() if payload.grade else None,
        student_id=payload.student_id,
        installments=payload.installments,
        description=payload.description,
    )
    await store.add(fee)

    scheduled = 0
    if payload.installments > 1:
        schedule = build_schedule(amount, payload.installments, payload.due_date)
        for student in await store.students_for_fee(fee):
            for item in schedule:
                await store.add(
                    Installment(
                        fee_id=fee.id,
                        student_id=student.id,
                        school_id=school_id,
                        number=item.number,
                        amount=item.amount,
                        due_date=item.due_date,
                        status=InstallmentStatus.unpaid.value,
                    )
                )
            scheduled += 1
    await store.commit()
    logger.info("Created fee %s (school %s), schedule generated for %d students", fee.id, school_id, scheduled)
    return _to_response(fee, scheduled)


async def list_fees(
    db: AsyncSession,
    school_id: int,
    grade: Optional[str] = None,
    student_id: Optional[int] = None,
) -> List[FeeResponse]:
    fees = await LedgerStore(db, school_id).list_fees(grade=grade, student_id=student_id)
    return [FeeResponse.model_validate(f) for f in fees]


async def get_fee(db: AsyncSession, school_id: int, fee_id: int) -> FeeResponse:
    fee = await LedgerStore(db, school_id).require(Fee, fee_id)
    return FeeResponse.model_validate(fee)


async def _regenerate_for_student(store: LedgerStore, fee: Fee, student_id: int) -> bool:
    existing = await store.list_installments(fee_id=fee.id, student_id=student_id)
    if fee.installments <= 1 and not existing:
        return False
    plan = regenerate_schedule(existing, fee.amount, fee.installments, fee.due_date)
    by_number = {i.number: i for i in existing}
    # Deletes are flushed before inserts so freed numbers can be reused.
    for number in plan.delete:
        await store.delete(by_number[number])
    for item in plan.create:
        await store.add(
            Installment(
                fee_id=fee.id,
                student_id=student_id,
                school_id=fee.school_id,
                number=item.number,
                amount=item.amount,
                due_date=item.due_date,
                status=InstallmentStatus.unpaid.value,
            )
        )
    return True


async def update_fee(db: AsyncSession, school_id: int, fee_id: int, payload: FeeUpdate) -> FeeWriteResponse:
    """
    Update a fee. Changing amount, due date or installment count regenerates each
    student's schedule; installments that already carry payments are kept as they are.
    """
    store = LedgerStore(db, school_id)
    fee = await store.require(Fee, fee_id)
    values = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in values:
        values["name"] = values["name"].strip()
    if "amount" in values:
        values["amount"] = to_money(values["amount"])
    if not values:
        return _to_response(fee)

    reschedule = any(k in values and values[k] != getattr(fee, k) for k in _SCHEDULE_FIELDS)
    try:
        await store.update(fee, values)
        scheduled = 0
        if reschedule:
            for student in await store.students_for_fee(fee):
                if await _regenerate_for_student(store, fee, student.id):
                    scheduled += 1
        await store.commit()
    except ServiceError:
        await store.rollback()
        raise
    if reschedule:
        logger.info("Regenerated fee %s schedule for %d students", fee.id, scheduled)
    return _to_response(fee, scheduled)


async def delete_fee(db: AsyncSession, school_id: int, fee_id: int) -> None:
    """Delete a fee and its unpaid installments. Refused once any payment references the fee."""
    store = LedgerStore(db, school_id)
    fee = await store.require(Fee, fee_id)
    if await store.count_payments(fee_id=fee.id):
        raise ConflictError("Cannot delete a fee with recorded payments")
    installments = await store.list_installments(fee_id=fee.id)
    for inst in installments:
        await store.delete(inst)
    await store.delete(fee)
    await store.commit()
    logger.info("Deleted fee %s (school %s) and %d installments", fee_id, school_id, len(installments))
