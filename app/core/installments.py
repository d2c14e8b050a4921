"""
Installment state machine and schedule math.

Pure functions over amounts and dates; the fees/installments services apply the
results to stored rows. Money is Decimal with two decimal places.

- status is a pure function of (amount, paid_amount).
- paid_amount never leaves [0, amount].
- overdue is derived from (status, due_date, today) on every read.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import List, Optional, Sequence

from app.core.enums import InstallmentStatus, OverpaymentPolicy
from app.core.exceptions import LedgerValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value) -> Decimal:
    """Coerce to a finite two-place Decimal. Raises LedgerValidationError otherwise."""
    if isinstance(value, bool):
        raise LedgerValidationError("Amount must be a number")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise LedgerValidationError("Amount must be a number")
    if not amount.is_finite():
        raise LedgerValidationError("Amount must be a finite number")
    return amount.quantize(CENT)


def _paid(value: Optional[Decimal]) -> Decimal:
    return ZERO if value is None else Decimal(value)


def status_for(amount: Decimal, paid_amount: Optional[Decimal]) -> InstallmentStatus:
    paid = _paid(paid_amount)
    if paid <= ZERO:
        return InstallmentStatus.unpaid
    if paid >= Decimal(amount):
        return InstallmentStatus.paid
    return InstallmentStatus.partial


def remaining(amount: Decimal, paid_amount: Optional[Decimal]) -> Decimal:
    return max(ZERO, Decimal(amount) - _paid(paid_amount))


def is_overdue(status: str, due_date: date, today: date) -> bool:
    return status != InstallmentStatus.paid.value and due_date < today


@dataclass(frozen=True)
class InstallmentState:
    """Next state of an installment after a payment or adjustment."""

    paid_amount: Decimal
    status: InstallmentStatus
    # Amount to record on the Payment row (differs from the offered amount under CLAMP).
    accepted_amount: Decimal


def apply_payment(
    amount: Decimal,
    paid_amount: Optional[Decimal],
    payment,
    policy: OverpaymentPolicy = OverpaymentPolicy.REJECT,
) -> InstallmentState:
    """
    Compute the state after receiving `payment` against an installment of `amount`.

    Rejects non-positive and non-finite payments. A payment larger than the remaining
    balance is rejected (REJECT) or capped at the balance (CLAMP).
    """
    offered = to_money(payment)
    if offered <= ZERO:
        raise LedgerValidationError("Payment amount must be greater than zero")
    current = _paid(paid_amount)
    balance = remaining(amount, current)
    if balance <= ZERO:
        raise LedgerValidationError("Installment is already fully paid")

    accepted = offered
    if offered > balance:
        if policy == OverpaymentPolicy.REJECT:
            raise LedgerValidationError("Payment amount cannot exceed remaining balance")
        accepted = balance

    new_paid = current + accepted
    return InstallmentState(
        paid_amount=new_paid,
        status=InstallmentStatus.paid if new_paid >= Decimal(amount) else InstallmentStatus.partial,
        accepted_amount=accepted,
    )


def apply_adjustment(amount: Decimal, paid_amount: Optional[Decimal], delta) -> InstallmentState:
    """Signed correction of the paid amount. The result must stay within [0, amount]."""
    change = to_money(delta)
    if change == ZERO:
        raise LedgerValidationError("Adjustment amount must not be zero")
    new_paid = _paid(paid_amount) + change
    if new_paid < ZERO:
        raise LedgerValidationError("Adjustment would make the paid amount negative")
    if new_paid > Decimal(amount):
        raise LedgerValidationError("Adjustment would exceed the installment amount")
    return InstallmentState(
        paid_amount=new_paid,
        status=status_for(amount, new_paid),
        accepted_amount=change,
    )


# --- Schedules ---
@dataclass(frozen=True)
class ScheduledInstallment:
    number: int
    amount: Decimal
    due_date: date


def add_months(start: date, months: int) -> date:
    """Same day `months` later, clamped to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def split_amount(total: Decimal, parts: int) -> List[Decimal]:
    """Split into `parts` cent amounts; the last part absorbs the rounding remainder."""
    if parts < 1:
        raise LedgerValidationError("Installment count must be at least 1")
    total = to_money(total)
    share = (total / parts).quantize(CENT, rounding=ROUND_DOWN)
    if share <= ZERO:
        raise LedgerValidationError("Amount is too small to split into that many installments")
    amounts = [share] * (parts - 1)
    amounts.append(total - share * (parts - 1))
    return amounts


def build_schedule(fee_amount: Decimal, count: int, first_due_date: date) -> List[ScheduledInstallment]:
    """N installments of fee_amount / N, due one calendar month apart."""
    amounts = split_amount(fee_amount, count)
    return [
        ScheduledInstallment(number=i + 1, amount=amt, due_date=add_months(first_due_date, i))
        for i, amt in enumerate(amounts)
    ]


@dataclass
class SchedulePlan:
    """Diff between an existing installment set and a new (amount, count, due date)."""

    keep: List[int] = field(default_factory=list)
    delete: List[int] = field(default_factory=list)
    create: List[ScheduledInstallment] = field(default_factory=list)


def regenerate_schedule(
    existing: Sequence,
    fee_amount: Decimal,
    count: int,
    first_due_date: date,
) -> SchedulePlan:
    """
    Plan a schedule change without discarding payment history.

    `existing` items expose number, amount and paid_amount. Installments with a nonzero
    paid amount are kept as they are; unpaid ones are replaced, and the unpaid remainder
    (fee_amount minus the kept amounts) is split over the free installment numbers.
    A count of 1 removes the schedule entirely, which is only allowed while nothing is paid.
    """
    fee_amount = to_money(fee_amount)
    kept = sorted((i for i in existing if _paid(i.paid_amount) > ZERO), key=lambda i: i.number)
    unpaid_numbers = sorted(i.number for i in existing if _paid(i.paid_amount) <= ZERO)

    if count <= 1:
        if kept:
            raise LedgerValidationError("Cannot remove the installment schedule: some installments already have payments")
        return SchedulePlan(delete=unpaid_numbers)

    kept_numbers = [i.number for i in kept]
    if kept_numbers and max(kept_numbers) > count:
        raise LedgerValidationError(
            f"Cannot reduce installments to {count}: installment #{max(kept_numbers)} already has payments"
        )

    kept_total = sum((Decimal(i.amount) for i in kept), ZERO)
    remainder = fee_amount - kept_total
    free_numbers = [n for n in range(1, count + 1) if n not in kept_numbers]

    if remainder < ZERO:
        raise LedgerValidationError("Fee amount cannot be lower than the amount of installments with payments")
    if free_numbers and remainder == ZERO:
        raise LedgerValidationError("Fee amount is fully covered by installments with payments; reduce the count")
    if not free_numbers and remainder != ZERO:
        raise LedgerValidationError("Installments with payments cannot absorb a changed fee amount; increase the count")

    create: List[ScheduledInstallment] = []
    if free_numbers:
        for number, amt in zip(free_numbers, split_amount(remainder, len(free_numbers))):
            create.append(ScheduledInstallment(number=number, amount=amt, due_date=add_months(first_due_date, number - 1)))

    return SchedulePlan(keep=kept_numbers, delete=unpaid_numbers, create=create)
