from __future__ import annotations

import uuid

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, utcnow


class ProviderApplication(Base):
    """Phase-1 submission record; one per business."""

    __tablename__ = "provider_applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    application_status: Mapped[str] = mapped_column(String(30), nullable=False, default="submitted", server_default="submitted")
    review_status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending", server_default="pending")
    review_cycle: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    consents: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    submission_metadata: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    submitted_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    reviewed_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    approval_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
