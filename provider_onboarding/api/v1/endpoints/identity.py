from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters import ProviderRegistry
from provider_onboarding.adapters.identity import DEFAULT_ALLOWED_DOCUMENT_TYPES, IdentitySessionOptions
from provider_onboarding.api.deps import get_providers
from provider_onboarding.database import get_db
from provider_onboarding.schemas.verification import (
    IdentitySessionCreate,
    IdentitySessionOptionsIn,
    IdentitySessionResponse,
    IdentityStatusResponse,
    PersistenceRead,
)
from provider_onboarding.services import identity_service

router = APIRouter(prefix="/identity", tags=["identity"])


def _session_options(options: IdentitySessionOptionsIn | None) -> IdentitySessionOptions | None:
    if options is None:
        return None
    return IdentitySessionOptions(
        allowed_types=tuple(options.allowed_types or DEFAULT_ALLOWED_DOCUMENT_TYPES),
        require_id_number=options.require_id_number,
        require_live_capture=options.require_live_capture,
        require_matching_selfie=options.require_matching_selfie,
    )


def _status_response(outcome) -> IdentityStatusResponse:
    result = outcome.result
    return IdentityStatusResponse(
        session_id=result.session_id,
        status=result.status.value,
        verified=result.verified,
        last_error=result.last_error,
        persistence=PersistenceRead(ok=outcome.persistence.ok, reason=outcome.persistence.reason),
    )


@router.post("/sessions", response_model=IdentitySessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session_endpoint(
    payload: IdentitySessionCreate,
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> IdentitySessionResponse:
    outcome = await identity_service.create_verification_session(
        session,
        providers.identity,
        user_id=payload.user_id,
        business_id=payload.business_id,
        options=_session_options(payload.options),
    )
    result = outcome.result
    return IdentitySessionResponse(
        session_id=result.session_id,
        client_secret=result.client_secret,
        status=result.status.value,
        reused=result.reused,
        persistence=PersistenceRead(ok=outcome.persistence.ok, reason=outcome.persistence.reason),
    )


@router.get("/sessions/{session_id}", response_model=IdentityStatusResponse)
async def session_status_endpoint(
    session_id: str,
    user_id: UUID = Query(...),
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> IdentityStatusResponse:
    outcome = await identity_service.check_verification_status(
        session,
        providers.identity,
        user_id=user_id,
        session_id=session_id,
    )
    return _status_response(outcome)


@router.get("/status", response_model=IdentityStatusResponse)
async def latest_status_endpoint(
    user_id: UUID = Query(...),
    business_id: UUID = Query(...),
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> IdentityStatusResponse:
    outcome = await identity_service.check_verification_status(
        session,
        providers.identity,
        user_id=user_id,
        business_id=business_id,
    )
    return _status_response(outcome)
