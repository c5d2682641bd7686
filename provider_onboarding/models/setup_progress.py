from __future__ import annotations

import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class SetupProgress(Base):
    __tablename__ = "business_setup_progress"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    total_steps: Mapped[int] = mapped_column(Integer, nullable=False, default=7, server_default="7")

    business_info_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    documents_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    phase_1_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    phase_1_completed_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    identity_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    bank_connected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    payment_setup_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    phase_2_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    phase_2_completed_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
