from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters import ProviderRegistry
from provider_onboarding.api.deps import get_providers
from provider_onboarding.database import get_db
from provider_onboarding.schemas.verification import (
    AccountRefreshRequest,
    AccountStatusResponse,
    ConnectAccountRequest,
    ConnectAccountResponse,
    PersistenceRead,
)
from provider_onboarding.services import payment_account_service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/connect-account", response_model=ConnectAccountResponse)
async def connect_account_endpoint(
    payload: ConnectAccountRequest,
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> ConnectAccountResponse:
    outcome = await payment_account_service.create_or_resume_connect_account(
        session,
        providers.payments,
        user_id=payload.user_id,
        business_id=payload.business_id,
        business_name=payload.business_name,
        business_type=payload.business_type,
        email=payload.email,
    )
    result = outcome.result
    return ConnectAccountResponse(
        account_id=result.account_id,
        onboarding_url=result.onboarding_url,
        existing=result.existing,
        persistence=PersistenceRead(ok=outcome.persistence.ok, reason=outcome.persistence.reason),
    )


@router.post("/connect-account/{business_id}/refresh", response_model=AccountStatusResponse)
async def refresh_account_endpoint(
    business_id: UUID,
    payload: AccountRefreshRequest,
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> AccountStatusResponse:
    outcome = await payment_account_service.refresh_payment_account_status(
        session,
        providers.payments,
        user_id=payload.user_id,
        business_id=business_id,
    )
    result = outcome.result
    return AccountStatusResponse(
        account_id=result.account_id,
        charges_enabled=result.charges_enabled,
        payouts_enabled=result.payouts_enabled,
        details_submitted=result.details_submitted,
        requirements=result.requirements,
        persistence=PersistenceRead(ok=outcome.persistence.ok, reason=outcome.persistence.reason),
    )
