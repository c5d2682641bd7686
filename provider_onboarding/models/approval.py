from __future__ import annotations

import uuid

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class ApplicationApproval(Base):
    __tablename__ = "application_approvals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("provider_applications.id", ondelete="CASCADE"), nullable=False
    )
    approved_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    token_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    token_expires_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False)
    approval_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
