"""
Pydantic models for the paste record and request/response validation.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

# Ten years
MAX_EXPIRE_MINUTES = 10 * 365 * 24 * 60


class PasteRecord(BaseModel):
    """A stored paste. Records are immutable once created."""

    model_config = ConfigDict(frozen=True)

    key: str
    content: str
    syntax: str = "plaintext"
    burn_after_reading: bool = False
    expire_at: Optional[datetime] = None
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """A record without expire_at never expires."""
        return self.expire_at is not None and self.expire_at <= now


class PasteCreate(BaseModel):
    """Schema for creating a new paste."""
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(..., min_length=1, description="Text content (required, non-empty)")
    syntax: Optional[str] = Field(None, description="Syntax label, used for download file names")
    burn_after_reading: Optional[bool] = Field(
        None, alias="isBurnAfterReading", description="Destroy the paste after its first view"
    )
    expire_minutes: Optional[int] = Field(
        None,
        alias="expireMinutes",
        le=MAX_EXPIRE_MINUTES,
        description="Minutes until expiry; null or <= 0 never expires",
    )


class CreatePasteResponse(BaseModel):
    """Schema for paste creation response."""
    key: str = Field(..., description="Short paste key")
    url: str = Field(..., description="Shareable URL to view the paste")


class PasteView(BaseModel):
    """Schema for viewing/fetching a paste."""
    model_config = ConfigDict(populate_by_name=True)

    key: str
    content: str = Field(..., description="Paste text content")
    syntax: str
    burn_after_reading: bool = Field(..., alias="isBurnAfterReading")
    expire_at: Optional[datetime] = Field(None, alias="expireAt", description="Expiry timestamp, null if none")
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_record(cls, record: PasteRecord) -> "PasteView":
        return cls(
            key=record.key,
            content=record.content,
            syntax=record.syntax,
            burn_after_reading=record.burn_after_reading,
            expire_at=record.expire_at,
            created_at=record.created_at,
        )


class ErrorResponse(BaseModel):
    """Schema for JSON error bodies."""
    message: str


class HealthCheck(BaseModel):
    """Schema for health check response."""
    ok: bool = Field(..., description="Is the application healthy?")
    backend: str = Field(..., description="Active storage backend")
