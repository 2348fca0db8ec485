"""FastAPI dependencies for authentication and services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from receipt_tracker.services.auth import decode_access_token
from receipt_tracker.services.categorization import CategorizationEngine
from receipt_tracker.services.extraction import ExtractionService
from receipt_tracker.services.normalizer import ReceiptNormalizer
from receipt_tracker.services.receipt_service import ReceiptService

security = HTTPBearer()

_engine = CategorizationEngine()


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> str:
    """Get the authenticated user's id from the JWT subject."""
    payload = decode_access_token(credentials.credentials)

    if payload is None or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return str(payload["sub"])


def get_receipt_service(request: Request) -> ReceiptService:
    """Get the application's reconciling receipt service."""
    return request.app.state.receipt_service


def get_categorization_engine() -> CategorizationEngine:
    """Get the shared categorization engine."""
    return _engine


def get_normalizer(
    engine: Annotated[CategorizationEngine, Depends(get_categorization_engine)],
) -> ReceiptNormalizer:
    """Get a normalizer backed by the shared engine."""
    return ReceiptNormalizer(engine)


def get_extraction_service() -> ExtractionService:
    """Get extraction service instance."""
    return ExtractionService()
