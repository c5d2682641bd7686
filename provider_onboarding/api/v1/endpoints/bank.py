from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters import ProviderRegistry
from provider_onboarding.api.deps import get_providers
from provider_onboarding.database import get_db
from provider_onboarding.schemas.verification import (
    BankExchangeRequest,
    BankExchangeResponse,
    BankLinkTokenRequest,
    BankLinkTokenResponse,
    BankUnlinkRequest,
    BankUnlinkResponse,
    PersistenceRead,
)
from provider_onboarding.services.bank_link_service import (
    create_link_token,
    exchange_link_token,
    unlink_bank_account,
)

router = APIRouter(prefix="/bank", tags=["bank"])


@router.post("/link-token", response_model=BankLinkTokenResponse)
async def create_link_token_endpoint(
    payload: BankLinkTokenRequest,
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> BankLinkTokenResponse:
    token = await create_link_token(
        session,
        providers.bank,
        user_id=payload.user_id,
        business_id=payload.business_id,
    )
    return BankLinkTokenResponse(link_token=token.link_token, expiration=token.expiration)


@router.post("/exchange", response_model=BankExchangeResponse)
async def exchange_token_endpoint(
    payload: BankExchangeRequest,
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> BankExchangeResponse:
    outcome = await exchange_link_token(
        session,
        providers.bank,
        public_token=payload.public_token,
        account_id=payload.account_id,
        user_id=payload.user_id,
        business_id=payload.business_id,
        metadata=payload.metadata,
    )
    result = outcome.result
    return BankExchangeResponse(
        account_id=result.account_id,
        account_name=result.account_name,
        account_mask=result.account_mask,
        account_type=result.account_type,
        account_subtype=result.account_subtype,
        institution_name=result.institution_name,
        account_number_mask=result.account_number_mask,
        verification_status=result.verification_status,
        persistence=PersistenceRead(ok=outcome.persistence.ok, reason=outcome.persistence.reason),
    )


@router.post("/unlink", response_model=BankUnlinkResponse)
async def unlink_endpoint(
    payload: BankUnlinkRequest,
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> BankUnlinkResponse:
    outcome = await unlink_bank_account(
        session,
        providers.bank,
        user_id=payload.user_id,
        business_id=payload.business_id,
    )
    return BankUnlinkResponse(
        item_id=outcome.result.item_id,
        account_id=outcome.result.account_id,
        removed=outcome.result.removed,
        persistence=PersistenceRead(ok=outcome.persistence.ok, reason=outcome.persistence.reason),
    )
