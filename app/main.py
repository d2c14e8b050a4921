import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.fees.router import router as fees_router
from app.api.v1.installments.router import router as installments_router
from app.api.v1.payments.router import router as payments_router
from app.api.v1.schools.router import router as schools_router
from app.api.v1.students.router import router as students_router
from app.api.v1.sync.router import router as sync_router
from app.core.config import settings
from app.core.context import SyncContext
from app.core.logging import configure_logging
from app.db.session import AsyncSessionLocal, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create local tables, then own one sync context for the life of the process."""
    logger.info("Starting School Finance Ledger")
    await init_db()
    ctx = SyncContext(settings, AsyncSessionLocal)
    await ctx.start()
    app.state.sync_context = ctx

    yield

    logger.info("Shutting down School Finance Ledger")
    await ctx.teardown()


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="School Finance Ledger", lifespan=lifespan)

    # CORS: allow the frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(schools_router)
    app.include_router(students_router)
    app.include_router(fees_router)
    app.include_router(installments_router)
    app.include_router(payments_router)
    app.include_router(sync_router)

    return app


app = create_app()
