"""Students service. Deleting a student drops their unpaid installments; payment history blocks deletion."""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import TransportationType
from app.core.exceptions import ConflictError
from app.core.ledger_store import LedgerStore
from app.core.models import Student

from .schemas import StudentCreate, StudentResponse, StudentUpdate

logger = logging.getLogger(__name__)


def _normalize_transport(values: dict) -> dict:
    # Students without transportation never carry a fee or route.
    if values.get("transportation_type") == TransportationType.NONE.value:
        values["transportation_fee"] = 0
        values["bus_route"] = None
    return values


async def create_student(db: AsyncSession, school_id: int, payload: StudentCreate) -> StudentResponse:
    store = LedgerStore(db, school_id)
    values = _normalize_transport({
        "name": payload.name.strip(),
        "grade": payload.grade.strip(),
        "parent_name": payload.parent_name,
        "parent_phone": payload.parent_phone,
        "enrollment_date": payload.enrollment_date,
        "transportation_type": payload.transportation_type.value,
        "transportation_fee": payload.transportation_fee,
        "bus_route": payload.bus_route,
    })
    student = await store.add(Student(school_id=school_id, **values))
    await store.commit()
    return StudentResponse.model_validate(student)


async def list_students(db: AsyncSession, school_id: int, grade: Optional[str] = None) -> List[StudentResponse]:
    students = await LedgerStore(db, school_id).list_students(grade=grade)
    return [StudentResponse.model_validate(s) for s in students]


async def get_student(db: AsyncSession, school_id: int, student_id: int) -> StudentResponse:
    student = await LedgerStore(db, school_id).require(Student, student_id)
    return StudentResponse.model_validate(student)


async def update_student(
    db: AsyncSession,
    school_id: int,
    student_id: int,
    payload: StudentUpdate,
) -> StudentResponse:
    store = LedgerStore(db, school_id)
    student = await store.require(Student, student_id)
    values = payload.model_dump(exclude_unset=True, exclude_none=True)
    for key in ("name", "grade"):
        if key in values:
            values[key] = values[key].strip()
    if "transportation_type" in values:
        values["transportation_type"] = values["transportation_type"].value
    values = _normalize_transport(values)
    if values:
        await store.update(student, values)
        await store.commit()
    return StudentResponse.model_validate(student)


async def delete_student(db: AsyncSession, school_id: int, student_id: int) -> None:
    store = LedgerStore(db, school_id)
    student = await store.require(Student, student_id)
    if await store.count_payments(student_id=student.id):
        raise ConflictError("Cannot delete a student with recorded payments")
    installments = await store.list_installments(student_id=student.id)
    for inst in installments:
        await store.delete(inst)
    for fee in await store.list_fees(student_id=student.id):
        await store.delete(fee)
    await store.delete(student)
    await store.commit()
    logger.info("Deleted student %s (school %s) with %d unpaid installments", student_id, school_id, len(installments))
