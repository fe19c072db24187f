from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from banksync.api.middleware.error_handler import (
    handle_bank_sync_error,
    handle_generic_error,
    handle_integrity_error,
    handle_validation_error,
)
from banksync.api.middleware.logging import RequestLoggingMiddleware, configure_logging
from banksync.api.v1 import router as v1_router
from banksync.config import settings
from banksync.core.exceptions import BankSyncError
from banksync.db.session import async_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    yield
    # Shutdown
    await async_engine.dispose()


def create_app() -> FastAPI:
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title="Bank Sync API",
        description="Open-Banking account linking, transaction sync and categorization",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers (order matters - most specific first)
    app.add_exception_handler(BankSyncError, handle_bank_sync_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_generic_error)

    # Register routers
    app.include_router(v1_router)

    return app


app = create_app()
