from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import SchoolStatus
from app.core.exceptions import LedgerValidationError
from app.core.ledger_store import LedgerStore
from app.core.models import School

from .schemas import SchoolCreate, SchoolResponse, SchoolUpdate


def _validate_window(start, end) -> None:
    if start and end and end <= start:
        raise LedgerValidationError("subscription_end must be after subscription_start")


async def create_school(db: AsyncSession, payload: SchoolCreate) -> SchoolResponse:
    _validate_window(payload.subscription_start, payload.subscription_end)
    store = LedgerStore(db)
    school = School(
        name=payload.name.strip(),
        logo=payload.logo,
        address=payload.address,
        phone=payload.phone,
        email=payload.email,
        status=payload.status.value,
        subscription_start=payload.subscription_start,
        subscription_end=payload.subscription_end,
    )
    await store.add(school)
    await store.commit()
    return SchoolResponse.model_validate(school)


async def list_schools(db: AsyncSession, status_filter: Optional[SchoolStatus] = None) -> List[SchoolResponse]:
    store = LedgerStore(db)
    schools = await store.list_schools(status_filter.value if status_filter else None)
    return [SchoolResponse.model_validate(s) for s in schools]


async def get_school(db: AsyncSession, school_id: int) -> SchoolResponse:
    school = await LedgerStore(db).require(School, school_id)
    return SchoolResponse.model_validate(school)


async def update_school(db: AsyncSession, school_id: int, payload: SchoolUpdate) -> SchoolResponse:
    store = LedgerStore(db)
    school = await store.require(School, school_id)
    values = payload.model_dump(exclude_unset=True)
    if "name" in values and values["name"] is not None:
        values["name"] = values["name"].strip()
    _validate_window(
        values.get("subscription_start", school.subscription_start),
        values.get("subscription_end", school.subscription_end),
    )
    if values:
        await store.update(school, values)
        await store.commit()
    return SchoolResponse.model_validate(school)


async def set_school_status(db: AsyncSession, school_id: int, new_status: SchoolStatus) -> SchoolResponse:
    """Activate / deactivate a school. Schools are never hard-deleted."""
    store = LedgerStore(db)
    school = await store.require(School, school_id)
    if school.status != new_status.value:
        await store.update(school, {"status": new_status.value})
        await store.commit()
    return SchoolResponse.model_validate(school)
