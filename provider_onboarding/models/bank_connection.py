from __future__ import annotations

import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, utcnow


class BankConnection(Base):
    """The single active linked bank account of a business (upserted on business_id)."""

    __tablename__ = "bank_connections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    item_id: Mapped[str] = mapped_column(String(255), nullable=False)
    access_token_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    account_id: Mapped[str] = mapped_column(String(255), nullable=False)

    institution_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    institution_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    account_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    account_mask: Mapped[str | None] = mapped_column(String(10), nullable=True)
    account_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    account_subtype: Mapped[str | None] = mapped_column(String(50), nullable=True)

    routing_numbers: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    account_number_mask: Mapped[str | None] = mapped_column(String(10), nullable=True)
    verification_status: Mapped[str] = mapped_column(String(30), nullable=False, default="verified", server_default="verified")

    connected_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    disconnected_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
