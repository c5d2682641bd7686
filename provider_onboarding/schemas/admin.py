from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ApproveRequest(BaseModel):
    admin_user_id: UUID
    notes: str | None = Field(default=None, max_length=2000)


class ApproveResponse(BaseModel):
    business_id: UUID
    application_id: UUID
    token: str
    token_id: str
    expires_at: datetime
    approval_url: str


class RejectRequest(BaseModel):
    admin_user_id: UUID
    reason: str = Field(..., min_length=1, max_length=2000)


class SuspendRequest(BaseModel):
    admin_user_id: UUID
    reason: str | None = Field(default=None, max_length=2000)


class DocumentReviewRequest(BaseModel):
    admin_user_id: UUID
    action: str
    reason: str | None = Field(default=None, max_length=2000)


class TokenVerifyRequest(BaseModel):
    token: str = Field(..., min_length=1)


class TokenVerifyResponse(BaseModel):
    valid: bool = True
    business_id: UUID
    user_id: UUID
    application_id: UUID
    business_name: str | None = None
    phase: str
    issued_at: datetime
    expires_at: datetime
    current_step: int | None = None
    phase_1_completed: bool
