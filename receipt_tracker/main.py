"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from receipt_tracker.api import categories, insights, receipts, sync
from receipt_tracker.api.error_handlers import register_error_handlers
from receipt_tracker.config import get_settings
from receipt_tracker.database import SessionLocal
from receipt_tracker.services.local_cache import create_local_cache
from receipt_tracker.services.receipt_service import ReceiptService
from receipt_tracker.services.remote_store import RemoteReceiptStore

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    # Tests install their own service before startup
    if getattr(app.state, "receipt_service", None) is None:
        app.state.receipt_service = ReceiptService(
            RemoteReceiptStore(SessionLocal),
            create_local_cache(settings),
            online=settings.start_online,
        )
        logger.info(f"Receipt service started {app.state.receipt_service.connectivity.value}")
    yield


app = FastAPI(
    title="Receipt Tracker API",
    description="Receipt capture with offline reconciliation and spending insights",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_error_handlers(app)

# Register routers
app.include_router(receipts.router)
app.include_router(insights.router)
app.include_router(categories.router)
app.include_router(sync.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
