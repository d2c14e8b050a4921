from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import SyncContext
from app.core.models import School
from app.db.session import get_db


async def get_school_id(
    x_school_id: int = Header(..., alias="X-School-Id", description="School the operation is scoped to"),
    db: AsyncSession = Depends(get_db),
) -> int:
    """Resolve the school scope of a request. Every ledger operation is scoped by school."""
    school = await db.get(School, x_school_id)
    if not school:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="School not found")
    return school.id


def get_sync_context(request: Request) -> SyncContext:
    ctx = getattr(request.app.state, "sync_context", None)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync context is not initialized",
        )
    return ctx
