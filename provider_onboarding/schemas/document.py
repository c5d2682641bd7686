from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class DocumentRead(BaseModel):
    id: UUID
    business_id: UUID
    uploaded_by: UUID | None = None

    document_type: str
    document_name: str
    file_url: str
    content_type: str
    file_size_bytes: int

    verification_status: str
    rejection_reason: str | None = None
    reviewed_at: datetime | None = None
    verified_at: datetime | None = None
    superseded_by_id: UUID | None = None

    created_at: datetime

    class Config:
        from_attributes = True


class DocumentListResponse(BaseModel):
    items: list[DocumentRead]
    missing_documents: list[str]
