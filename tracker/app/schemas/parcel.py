"""
Parcel Pydantic schemas.

Defines the input accepted by ParcelStore.add and the records it returns.
"""

from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator
from tracker.app.models.parcel_enums import ParcelStatus


# Identifiers are stored in signed 64-bit integer columns
MIN_IDENTIFIER = -(2 ** 63)
MAX_IDENTIFIER = 2 ** 63 - 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ParcelCreate(BaseModel):
    """Schema for creating a new parcel. The number is assigned on insert."""
    client: int = Field(..., ge=MIN_IDENTIFIER, le=MAX_IDENTIFIER, description="Owning client identifier")
    status: ParcelStatus = Field(default=ParcelStatus.REGISTERED, description="Initial status")
    address: str = Field(..., description="Delivery address")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time (UTC)")

    @field_validator("created_at")
    @classmethod
    def normalize_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are taken as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class ParcelResponse(BaseModel):
    """Schema for a persisted parcel."""
    number: int
    client: int
    status: ParcelStatus
    address: str
    created_at: datetime
    
    class Config:
        from_attributes = True
