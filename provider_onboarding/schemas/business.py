from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class BusinessCreate(BaseModel):
    user_id: UUID
    business_type: str
    business_name: str | None = Field(default=None, max_length=255)
    contact_email: str | None = Field(default=None, max_length=255)
    website_url: str | None = Field(default=None, max_length=500)


class BusinessUpdate(BaseModel):
    user_id: UUID
    business_type: str | None = None
    business_name: str | None = Field(default=None, max_length=255)
    contact_email: str | None = Field(default=None, max_length=255)
    website_url: str | None = Field(default=None, max_length=500)


class BusinessRead(BaseModel):
    id: UUID
    owner_user_id: UUID
    business_name: str | None = None
    business_type: str
    contact_email: str | None = None
    website_url: str | None = None
    verification_status: str

    application_submitted_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    suspended_at: datetime | None = None

    identity_verified: bool
    bank_connected: bool
    payment_account_id: str | None = None
    setup_step: int

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ApplicationSubmit(BaseModel):
    user_id: UUID
    consents: dict[str, bool]
    metadata: dict[str, Any] | None = None


class ApplicationResubmit(BaseModel):
    user_id: UUID


class ApplicationRead(BaseModel):
    id: UUID
    business_id: UUID
    user_id: UUID
    application_status: str
    review_status: str
    review_cycle: int
    consents: dict[str, Any]
    submitted_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by: UUID | None = None
    approval_notes: str | None = None
    rejection_reason: str | None = None

    class Config:
        from_attributes = True
