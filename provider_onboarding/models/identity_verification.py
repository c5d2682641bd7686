from __future__ import annotations

import uuid

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, utcnow


class IdentityVerificationSession(Base):
    """One row per remote identity-proofing attempt (append-only)."""

    __tablename__ = "identity_verification_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    business_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)

    session_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    session_type: Mapped[str] = mapped_column(String(30), nullable=False, default="document", server_default="document")
    status: Mapped[str] = mapped_column(String(30), nullable=False)

    verification_report: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    last_error: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    verified_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
