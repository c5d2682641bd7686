"""Guards and progress bookkeeping shared by the onboarding services."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.crud import onboarding as crud
from provider_onboarding.enums import STEP_ORDINALS, TOTAL_STEPS, OnboardingStep
from provider_onboarding.errors import AuthorizationError, NotFoundError
from provider_onboarding.models.business import Business
from provider_onboarding.models.provider import Provider
from provider_onboarding.models.setup_progress import SetupProgress
from provider_onboarding.models.user import User


async def require_admin(session: AsyncSession, *, user_id: UUID) -> User:
    admin = await crud.get_active_admin(session, user_id=user_id)
    if admin is None:
        raise AuthorizationError("Administrator role required", details={"user_id": str(user_id)})
    return admin


async def get_business_or_404(session: AsyncSession, *, business_id: UUID) -> Business:
    business = await crud.businesses.get(session, id=business_id)
    if business is None:
        raise NotFoundError("Business not found", details={"business_id": str(business_id)})
    return business


async def require_association(session: AsyncSession, *, user_id: UUID, business_id: UUID) -> Provider:
    provider = await crud.get_provider_association(session, user_id=user_id, business_id=business_id)
    if provider is None:
        raise AuthorizationError(
            "User is not associated with this business",
            details={"user_id": str(user_id), "business_id": str(business_id)},
        )
    return provider


def require_owner(business: Business, *, user_id: UUID) -> None:
    if business.owner_user_id != user_id:
        raise AuthorizationError(
            "Only the business owner can perform this action",
            details={"user_id": str(user_id), "business_id": str(business.id)},
        )


async def get_or_create_progress(session: AsyncSession, *, business_id: UUID) -> SetupProgress:
    progress = await crud.get_setup_progress(session, business_id=business_id)
    if progress is None:
        progress = SetupProgress(business_id=business_id, current_step=1, total_steps=TOTAL_STEPS)
        session.add(progress)
    return progress


def advance_step(business: Business | None, progress: SetupProgress | None, step: OnboardingStep) -> None:
    """Move the stored resume hint forward (never backwards) to ``step``."""

    ordinal = STEP_ORDINALS[step]
    if progress is not None:
        progress.current_step = max(progress.current_step or 1, ordinal)
    if business is not None:
        business.setup_step = max(business.setup_step or 1, ordinal)
