from __future__ import annotations

import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint, Uuid, false, true
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class Provider(Base):
    """Links a user (owner or staff) to a business."""

    __tablename__ = "providers"
    __table_args__ = (UniqueConstraint("user_id", "business_id", name="uq_providers_user_business"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    business_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)

    provider_role: Mapped[str] = mapped_column(String(30), nullable=False, default="staff", server_default="staff")
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    verification_status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending", server_default="pending")
    identity_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    identity_verified_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
