"""
Installments service: listing with derived overdue state, payments and adjustments.

Payment recording runs the installment state machine, updates the installment and
appends an immutable Payment in one transaction; each write is queued for sync.
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.payments.schemas import PaymentResponse
from app.core.config import settings
from app.core.enums import InstallmentStatus, OverpaymentPolicy, PaymentKind
from app.core.installments import InstallmentState, apply_adjustment, apply_payment, is_overdue, remaining
from app.core.ledger_store import LedgerStore
from app.core.models import Installment, Payment

from .schemas import (
    InstallmentAdjustmentCreate,
    InstallmentPaymentCreate,
    InstallmentPaymentResponse,
    InstallmentResponse,
)

logger = logging.getLogger(__name__)


def _to_response(inst: Installment, today: Optional[date] = None) -> InstallmentResponse:
    today = today or date.today()
    return InstallmentResponse(
        id=inst.id,
        fee_id=inst.fee_id,
        student_id=inst.student_id,
        school_id=inst.school_id,
        number=inst.number,
        amount=inst.amount,
        due_date=inst.due_date,
        status=inst.status,
        paid_amount=inst.paid_amount,
        paid_date=inst.paid_date,
        remaining=remaining(inst.amount, inst.paid_amount),
        overdue=is_overdue(inst.status, inst.due_date, today),
        created_at=inst.created_at,
        updated_at=inst.updated_at,
    )


async def list_installments(
    db: AsyncSession,
    school_id: int,
    student_id: Optional[int] = None,
    fee_id: Optional[int] = None,
    status_filter: Optional[InstallmentStatus] = None,
    overdue: Optional[bool] = None,
) -> List[InstallmentResponse]:
    rows = await LedgerStore(db, school_id).list_installments(
        fee_id=fee_id,
        student_id=student_id,
        status=status_filter.value if status_filter else None,
    )
    # Overdue is relative to today, so it is filtered after loading.
    items = [_to_response(i) for i in rows]
    if overdue is not None:
        items = [i for i in items if i.overdue == overdue]
    return items


async def get_installment(db: AsyncSession, school_id: int, installment_id: int) -> InstallmentResponse:
    inst = await LedgerStore(db, school_id).require(Installment, installment_id)
    return _to_response(inst)


async def _record(
    store: LedgerStore,
    inst: Installment,
    state: InstallmentState,
    kind: PaymentKind,
    payment_method: str,
    paid_at: datetime,
    notes: Optional[str],
) -> InstallmentPaymentResponse:
    await store.update(
        inst,
        {
            "paid_amount": state.paid_amount,
            "status": state.status.value,
            "paid_date": paid_at if state.paid_amount > 0 else None,
        },
    )
    payment = await store.add(
        Payment(
            school_id=inst.school_id,
            student_id=inst.student_id,
            fee_id=inst.fee_id,
            amount=state.accepted_amount,
            date=paid_at,
            payment_method=payment_method.strip(),
            installment_number=inst.number,
            kind=kind.value,
            notes=notes,
        )
    )
    await store.commit()
    return InstallmentPaymentResponse(
        installment=_to_response(inst),
        payment=PaymentResponse.model_validate(payment),
    )


async def record_installment_payment(
    db: AsyncSession,
    school_id: int,
    installment_id: int,
    payload: InstallmentPaymentCreate,
    policy: Optional[OverpaymentPolicy] = None,
) -> InstallmentPaymentResponse:
    store = LedgerStore(db, school_id)
    inst = await store.require(Installment, installment_id)
    return await pay_installment(store, inst, payload, policy)


async def pay_installment(
    store: LedgerStore,
    inst: Installment,
    payload: InstallmentPaymentCreate,
    policy: Optional[OverpaymentPolicy] = None,
) -> InstallmentPaymentResponse:
    """Apply a payment to a loaded installment. Invalid amounts raise before anything is written."""
    policy = policy or settings.overpayment_policy
    state = apply_payment(inst.amount, inst.paid_amount, payload.amount, policy)
    if state.accepted_amount != payload.amount:
        logger.warning(
            "Installment %s: payment of %s clamped to remaining balance %s",
            inst.id, payload.amount, state.accepted_amount,
        )
    paid_at = payload.date or datetime.now(timezone.utc)
    result = await _record(store, inst, state, PaymentKind.payment, payload.payment_method, paid_at, payload.notes)
    logger.info(
        "Installment %s (#%s, student %s): paid %s, status %s",
        inst.id, inst.number, inst.student_id, state.paid_amount, state.status.value,
    )
    return result


async def record_adjustment(
    db: AsyncSession,
    school_id: int,
    installment_id: int,
    payload: InstallmentAdjustmentCreate,
) -> InstallmentPaymentResponse:
    """Correct the paid amount with a signed adjustment; the original payments stay untouched."""
    store = LedgerStore(db, school_id)
    inst = await store.require(Installment, installment_id)
    state = apply_adjustment(inst.amount, inst.paid_amount, payload.amount)
    result = await _record(
        store, inst, state, PaymentKind.adjustment, payload.payment_method, datetime.now(timezone.utc), payload.notes
    )
    logger.info("Installment %s adjusted by %s: paid %s, status %s", inst.id, payload.amount, state.paid_amount, state.status.value)
    return result
