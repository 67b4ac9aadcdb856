"""Tracked code Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CodeCreate(BaseModel):
    """Schema for creating a new tracked code.

    Blank values are rejected by the code service, not here, so the
    same rule applies to every caller.
    """

    name: str = Field(max_length=255, description="Label shown in the code list")
    target_url: str = Field(max_length=2048, description="Where scans are redirected")


class ScanResponse(BaseModel):
    """Schema for a stored scan."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    timestamp: datetime
    user_agent: str | None
    ip: str | None


class CodeResponse(BaseModel):
    """Schema for tracked code response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    target_url: str
    tracking_url: str
    created_at: datetime
    total_scans: int
    scans: list[ScanResponse] = Field(default_factory=list)


class CodeListResponse(BaseModel):
    """Schema for the full list of tracked codes."""

    items: list[CodeResponse]
    total: int
