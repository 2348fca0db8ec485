"""Receipt API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from receipt_tracker.api.dependencies import (
    get_current_user_id,
    get_extraction_service,
    get_normalizer,
    get_receipt_service,
)
from receipt_tracker.schemas.receipt import (
    ExtractRequest,
    Receipt,
    ReceiptCreate,
    ReceiptCreateRequest,
    ReceiptDraft,
    ReceiptUpdate,
)
from receipt_tracker.services.extraction import ExtractionService
from receipt_tracker.services.normalizer import ReceiptNormalizer
from receipt_tracker.services.receipt_service import ReceiptService

router = APIRouter(prefix="/api/v1/receipts", tags=["receipts"])

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def _create_from_draft(draft: ReceiptDraft, user_id: str) -> ReceiptCreate:
    return ReceiptCreate(**draft.model_dump(), user_id=user_id)


@router.get("", response_model=list[Receipt])
async def list_receipts(
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
):
    """List the current user's receipts, newest first."""
    return await service.list_receipts(user_id)


@router.post("", response_model=Receipt, status_code=status.HTTP_201_CREATED)
async def create_receipt(
    receipt_data: ReceiptCreateRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
):
    """Create a receipt from already structured data."""
    return await service.add_receipt(ReceiptCreate(**receipt_data.model_dump(), user_id=user_id))


@router.post("/extract", response_model=Receipt, status_code=status.HTTP_201_CREATED)
async def create_from_extraction(
    request: ExtractRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
    normalizer: Annotated[ReceiptNormalizer, Depends(get_normalizer)],
):
    """Normalize a raw extraction payload and store the result."""
    draft = normalizer.normalize(request.payload)
    if request.image_url and not draft.image_url:
        draft = draft.model_copy(update={"image_url": request.image_url})
    return await service.add_receipt(_create_from_draft(draft, user_id))


@router.post("/scan", response_model=Receipt, status_code=status.HTTP_201_CREATED)
async def scan_receipt(
    file: Annotated[UploadFile, File(description="Receipt image (JPEG, PNG, GIF, or WebP)")],
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
    normalizer: Annotated[ReceiptNormalizer, Depends(get_normalizer)],
    extraction: Annotated[ExtractionService, Depends(get_extraction_service)],
):
    """Read a receipt image with Claude Vision and store the result."""
    if not extraction.is_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Receipt extraction is not configured",
        )

    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type. Allowed types: {', '.join(sorted(ALLOWED_IMAGE_TYPES))}",
        )

    image_data = await file.read()
    if len(image_data) > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File too large. Maximum size is 10MB.",
        )

    raw = await extraction.extract(image_data, file.content_type)
    draft = normalizer.normalize(raw)
    return await service.add_receipt(_create_from_draft(draft, user_id))


@router.get("/{receipt_id}", response_model=Receipt)
async def get_receipt(
    receipt_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
):
    """Get a single receipt."""
    return await service.get_receipt(receipt_id, user_id)


@router.patch("/{receipt_id}", response_model=Receipt)
async def update_receipt(
    receipt_id: str,
    update: ReceiptUpdate,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
):
    """Partially update a receipt."""
    return await service.update_receipt(receipt_id, user_id, update)


@router.delete("/{receipt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_receipt(
    receipt_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
):
    """Delete a receipt."""
    await service.delete_receipt(receipt_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
