from __future__ import annotations

import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, utcnow


class PaymentAccount(Base):
    __tablename__ = "payment_accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    account_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    account_type: Mapped[str] = mapped_column(String(30), nullable=False, default="express", server_default="express")
    business_type: Mapped[str] = mapped_column(String(30), nullable=False)
    country: Mapped[str] = mapped_column(String(2), nullable=False, default="US", server_default="US")
    default_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="usd", server_default="usd")

    charges_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    payouts_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    details_submitted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    requirements: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
