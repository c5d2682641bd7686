from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.database import get_db
from provider_onboarding.schemas.admin import TokenVerifyRequest, TokenVerifyResponse
from provider_onboarding.services.approval_service import verify_approval_token

router = APIRouter(prefix="/approval-tokens", tags=["approval-tokens"])


@router.post("/verify", response_model=TokenVerifyResponse)
async def verify_token_endpoint(
    payload: TokenVerifyRequest,
    session: AsyncSession = Depends(get_db),
) -> TokenVerifyResponse:
    verification = await verify_approval_token(session, token=payload.token)
    claims = verification.claims
    return TokenVerifyResponse(
        business_id=claims.business_id,
        user_id=claims.user_id,
        application_id=claims.application_id,
        business_name=verification.business_name,
        phase=claims.phase,
        issued_at=claims.issued_at,
        expires_at=claims.expires_at,
        current_step=verification.current_step,
        phase_1_completed=verification.phase_1_completed,
    )
