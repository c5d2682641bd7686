from __future__ import annotations

import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class Business(Base):
    """The Business Application: one provider organization going through onboarding.

    Never hard-deleted; every change goes through a service-level transition.
    ``setup_step`` is a UI resume hint only.
    """

    __tablename__ = "businesses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False, unique=True)

    business_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_type: Mapped[str] = mapped_column(String(50), nullable=False)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    verification_status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending", server_default="pending")
    application_submitted_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    approved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approval_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejected_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    suspended_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    identity_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    identity_verified_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    bank_connected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    bank_connected_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_account_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    setup_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
