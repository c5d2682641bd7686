from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel


class OnboardingStatusRead(BaseModel):
    phase: str
    step: str
    needs_onboarding: bool
    business_id: UUID | None = None
    verification_status: str | None = None
    missing_documents: list[str] = []
    redirect_to: str | None = None
    resume_step: int | None = None
