"""Connectivity and sync schemas."""

from pydantic import BaseModel, Field

from receipt_tracker.models.enums import Category, Connectivity


class ConnectivityUpdate(BaseModel):
    """Network status signal from the client."""

    online: bool


class ConnectivityResponse(BaseModel):
    """Current connectivity state."""

    connectivity: Connectivity
    sync_scheduled: bool = False


class SyncReportResponse(BaseModel):
    """Outcome of a sync sweep."""

    deleted: list[str] = Field(default_factory=list)
    delete_failed: list[str] = Field(default_factory=list)
    uploaded: list[str] = Field(default_factory=list)
    upload_failed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class CategorizeRequest(BaseModel):
    """Item names to categorize."""

    names: list[str] = Field(..., max_length=500)


class CategorizedName(BaseModel):
    """An item name and its category."""

    name: str
    category: Category
