from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.database import get_db
from provider_onboarding.schemas.onboarding import OnboardingStatusRead
from provider_onboarding.services.onboarding_state import resolve_onboarding_state

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


@router.get("/status/{user_id}", response_model=OnboardingStatusRead)
async def onboarding_status_endpoint(
    user_id: UUID,
    session: AsyncSession = Depends(get_db),
) -> OnboardingStatusRead:
    state = await resolve_onboarding_state(session, user_id=user_id)
    return OnboardingStatusRead(
        phase=state.phase.value,
        step=state.step.value,
        needs_onboarding=state.needs_onboarding,
        business_id=state.business_id,
        verification_status=state.verification_status,
        missing_documents=[d.value for d in state.missing_documents],
        redirect_to=state.redirect_to,
        resume_step=state.resume_step,
    )
