"""Payments service: general fee payments and payment history. Payments are never updated or deleted."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.installments.schemas import InstallmentPaymentCreate
from app.api.v1.installments.service import pay_installment
from app.core.config import settings
from app.core.enums import OverpaymentPolicy, PaymentKind
from app.core.exceptions import LedgerValidationError, NotFoundError
from app.core.installments import apply_payment
from app.core.ledger_store import LedgerStore
from app.core.models import Fee, Payment, Student

from .schemas import PaymentCreate, PaymentResponse

logger = logging.getLogger(__name__)


def _fee_applies_to(fee: Fee, student: Student) -> bool:
    if fee.student_id is not None:
        return fee.student_id == student.id
    return fee.grade == student.grade


async def record_payment(
    db: AsyncSession,
    school_id: int,
    payload: PaymentCreate,
    policy: Optional[OverpaymentPolicy] = None,
) -> PaymentResponse:
    """
    Record money received for a (student, fee).

    With installment_number the payment goes through the installment state machine.
    Otherwise it is checked against the fee's remaining balance for that student.
    """
    store = LedgerStore(db, school_id)
    student = await store.require(Student, payload.student_id)
    fee = await store.require(Fee, payload.fee_id)
    if not _fee_applies_to(fee, student):
        raise LedgerValidationError("Fee does not apply to this student")

    if payload.installment_number is not None:
        inst = await store.find_installment(fee.id, student.id, payload.installment_number)
        if inst is None:
            raise NotFoundError(f"Installment #{payload.installment_number} not found for this fee and student")
        result = await pay_installment(
            store,
            inst,
            InstallmentPaymentCreate(
                amount=payload.amount,
                payment_method=payload.payment_method,
                date=payload.date,
                notes=payload.notes,
            ),
            policy,
        )
        return result.payment

    if fee.installments > 1:
        raise LedgerValidationError("This fee is paid in installments; installment_number is required")

    paid = await store.sum_payments(student.id, fee.id)
    state = apply_payment(fee.amount, paid, payload.amount, policy or settings.overpayment_policy)
    payment = await store.add(
        Payment(
            school_id=school_id,
            student_id=student.id,
            fee_id=fee.id,
            amount=state.accepted_amount,
            date=payload.date or datetime.now(timezone.utc),
            payment_method=payload.payment_method.strip(),
            kind=PaymentKind.payment.value,
            notes=payload.notes,
        )
    )
    await store.commit()
    logger.info("Fee %s (student %s): received %s, status %s", fee.id, student.id, state.accepted_amount, state.status.value)
    return PaymentResponse.model_validate(payment)


async def list_payments(
    db: AsyncSession,
    school_id: int,
    student_id: Optional[int] = None,
    fee_id: Optional[int] = None,
) -> List[PaymentResponse]:
    payments = await LedgerStore(db, school_id).list_payments(student_id=student_id, fee_id=fee_id)
    return [PaymentResponse.model_validate(p) for p in payments]


async def get_payment(db: AsyncSession, school_id: int, payment_id: int) -> PaymentResponse:
    payment = await LedgerStore(db, school_id).require(Payment, payment_id)
    return PaymentResponse.model_validate(payment)
