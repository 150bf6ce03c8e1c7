"""
API request and response schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator, model_validator

from ..constants import CAMPUSES, LETTERS, normalize_campus

MAX_URL_LENGTH = 2048


def _validate_letter(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    letter = value.strip().upper()
    if letter not in LETTERS:
        raise ValueError("letter must be a single character A-Z or 0-9")
    return letter


def _validate_campus(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    campus = normalize_campus(value)
    if campus not in CAMPUSES:
        raise ValueError(f"campus must be one of: {', '.join(CAMPUSES)}")
    return campus


def _validate_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    url = value.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("url must be an absolute http or https URL")
    if len(url) > MAX_URL_LENGTH:
        raise ValueError(f"url must be at most {MAX_URL_LENGTH} characters")
    return url


class IndexItemBase(BaseModel):
    """Base index item schema with validation."""

    title: str = Field(..., min_length=1, max_length=200, description="Display title")
    letter: str = Field(..., description="Index letter A-Z or digit")
    url: str = Field(..., description="Absolute http(s) URL")
    campus: str = Field(..., description="Owning campus")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("letter")
    @classmethod
    def validate_letter(cls, v):
        return _validate_letter(v)

    @field_validator("campus")
    @classmethod
    def validate_campus(cls, v):
        return _validate_campus(v)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return _validate_url(v)


class IndexItemCreate(IndexItemBase):
    """Schema for creating index items."""


class IndexItemUpdate(BaseModel):
    """Schema for partial updates; omitted fields are left unchanged."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    letter: Optional[str] = None
    url: Optional[str] = None
    campus: Optional[str] = None

    @field_validator("letter")
    @classmethod
    def validate_letter(cls, v):
        return _validate_letter(v)

    @field_validator("campus")
    @classmethod
    def validate_campus(cls, v):
        return _validate_campus(v)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return _validate_url(v)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class IndexItemRead(BaseModel):
    """Schema for reading index items."""

    id: int
    title: str
    letter: str
    url: str
    campus: str

    model_config = ConfigDict(from_attributes=True)


class IndexItemQuery(BaseModel):
    """Listing filters."""

    campus: Optional[str] = None
    letter: Optional[str] = None
    search: Optional[str] = Field(None, max_length=100)

    @field_validator("letter")
    @classmethod
    def validate_letter(cls, v):
        return _validate_letter(v or None)

    @field_validator("campus")
    @classmethod
    def validate_campus(cls, v):
        return _validate_campus(v or None)

    @field_validator("search")
    @classmethod
    def strip_search(cls, v):
        if v is None:
            return v
        return v.strip() or None


class BulkOperation(BaseModel):
    """Bulk delete or update of up to 100 items."""

    operation: Literal["delete", "update"]
    items: List[PositiveInt] = Field(..., min_length=1, max_length=100)
    update_data: Optional[IndexItemUpdate] = None

    @model_validator(mode="after")
    def validate_update_data(self) -> "BulkOperation":
        if self.operation == "update" and (
            self.update_data is None or not self.update_data.changes()
        ):
            raise ValueError("update_data is required for update operations")
        return self


class BulkOperationResult(BaseModel):
    success: bool = True
    operation: str
    count: int
    invalidated_count: int
    duration_ms: int
    timestamp: datetime


class CacheInvalidationRequest(BaseModel):
    """Invalidation selector as submitted; emptiness is rejected by the cache."""

    key: Optional[str] = None
    keys: Optional[List[str]] = None
    pattern: Optional[str] = None


class CacheInvalidationResponse(BaseModel):
    success: bool = True
    invalidated_count: int
    mode: str


class DashboardStats(BaseModel):
    total_items: int
    campus_counts: Dict[str, int]
    recent_items: int
    last_updated: str


class LinkCheckFilter(BaseModel):
    """Restricts an on-demand link check; an empty filter runs a full scan."""

    campus: Optional[str] = None
    letter: Optional[str] = None

    @field_validator("letter")
    @classmethod
    def validate_letter(cls, v):
        return _validate_letter(v or None)

    @field_validator("campus")
    @classmethod
    def validate_campus(cls, v):
        return _validate_campus(v or None)


class CSRFTokenResponse(BaseModel):
    csrf_token: str
