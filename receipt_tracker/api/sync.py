"""Connectivity and sync API endpoints."""

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends

from receipt_tracker.api.dependencies import get_current_user_id, get_receipt_service
from receipt_tracker.schemas.sync import (
    ConnectivityResponse,
    ConnectivityUpdate,
    SyncReportResponse,
)
from receipt_tracker.services.receipt_service import ReceiptService

router = APIRouter(prefix="/api/v1", tags=["sync"])


@router.get("/connectivity", response_model=ConnectivityResponse)
async def get_connectivity(
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
):
    """Current connectivity state of the receipt service."""
    return ConnectivityResponse(
        connectivity=service.connectivity,
        sync_scheduled=service.sync_in_progress,
    )


@router.put("/connectivity", response_model=ConnectivityResponse)
async def set_connectivity(
    update: ConnectivityUpdate,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
):
    """Report a connectivity change. Coming back online starts a sync sweep."""
    task = service.set_online(update.online)
    return ConnectivityResponse(connectivity=service.connectivity, sync_scheduled=task is not None)


@router.post("/sync", response_model=SyncReportResponse)
async def run_sync(
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
):
    """Run a sync sweep now and report its outcome."""
    report = await service.sync()
    return SyncReportResponse(**asdict(report))
