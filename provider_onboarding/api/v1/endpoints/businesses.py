from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters import ProviderRegistry
from provider_onboarding.api.deps import get_providers
from provider_onboarding.database import get_db
from provider_onboarding.schemas.business import (
    ApplicationRead,
    ApplicationResubmit,
    ApplicationSubmit,
    BusinessCreate,
    BusinessRead,
    BusinessUpdate,
)
from provider_onboarding.services import application_service

router = APIRouter(prefix="/businesses", tags=["businesses"])


@router.post("", response_model=BusinessRead, status_code=status.HTTP_201_CREATED)
async def create_business_endpoint(
    payload: BusinessCreate,
    session: AsyncSession = Depends(get_db),
) -> BusinessRead:
    business = await application_service.create_business(
        session,
        user_id=payload.user_id,
        business_type=payload.business_type,
        business_name=payload.business_name,
        contact_email=payload.contact_email,
        website_url=payload.website_url,
    )
    return BusinessRead.model_validate(business)


@router.patch("/{business_id}", response_model=BusinessRead)
async def update_business_endpoint(
    business_id: UUID,
    payload: BusinessUpdate,
    session: AsyncSession = Depends(get_db),
) -> BusinessRead:
    changes = payload.model_dump(exclude_unset=True, exclude={"user_id"})
    business = await application_service.update_business_info(
        session,
        user_id=payload.user_id,
        business_id=business_id,
        changes=changes,
    )
    return BusinessRead.model_validate(business)


@router.post("/{business_id}/application", response_model=ApplicationRead, status_code=status.HTTP_201_CREATED)
async def submit_application_endpoint(
    business_id: UUID,
    payload: ApplicationSubmit,
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> ApplicationRead:
    application = await application_service.submit_application(
        session,
        providers.notifier,
        user_id=payload.user_id,
        business_id=business_id,
        consents=payload.consents,
        metadata=payload.metadata,
    )
    return ApplicationRead.model_validate(application)


@router.post("/{business_id}/application/resubmit", response_model=ApplicationRead)
async def resubmit_application_endpoint(
    business_id: UUID,
    payload: ApplicationResubmit,
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> ApplicationRead:
    application = await application_service.resubmit_application(
        session,
        providers.notifier,
        user_id=payload.user_id,
        business_id=business_id,
    )
    return ApplicationRead.model_validate(application)
