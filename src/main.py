"""Procurement Ledger FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from src.core.audit.router import router as audit_router
from src.core.config import settings
from src.core.documents.router import router as sequences_router
from src.core.exceptions import AppException
from src.core.exceptions.handlers import (
    app_exception_handler,
    http_exception_handler,
    sqlalchemy_db_error_handler,
    stale_data_handler,
    validation_exception_handler,
)
from src.modules.accounting.router import router as accounting_router
from src.modules.procurement.router import router as procurement_router
from src.modules.sales_orders.router import router as sales_orders_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Procurement Ledger starting (%s)", settings.app_env)
    yield
    logger.info("Procurement Ledger stopped")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title="Procurement Ledger",
        description="Purchase-order lifecycle, numbering and AP/GL posting service",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StaleDataError, stale_data_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_db_error_handler)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    # Routers
    app.include_router(sequences_router, prefix="/api/v1")
    app.include_router(audit_router, prefix="/api/v1")
    app.include_router(sales_orders_router, prefix="/api/v1")
    app.include_router(procurement_router, prefix="/api/v1")
    app.include_router(accounting_router, prefix="/api/v1")

    return app


app = create_app()
