from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters import ProviderRegistry
from provider_onboarding.api.deps import get_providers
from provider_onboarding.database import get_db
from provider_onboarding.schemas.admin import (
    ApproveRequest,
    ApproveResponse,
    DocumentReviewRequest,
    RejectRequest,
    SuspendRequest,
)
from provider_onboarding.schemas.business import ApplicationRead, BusinessRead
from provider_onboarding.schemas.document import DocumentRead
from provider_onboarding.services import application_service, document_service
from provider_onboarding.services.approval_service import issue_approval_token

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/businesses/{business_id}/approve", response_model=ApproveResponse)
async def approve_business_endpoint(
    business_id: UUID,
    payload: ApproveRequest,
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> ApproveResponse:
    result = await issue_approval_token(
        session,
        providers.notifier,
        business_id=business_id,
        admin_user_id=payload.admin_user_id,
        notes=payload.notes,
    )
    return ApproveResponse(
        business_id=result.claims.business_id,
        application_id=result.claims.application_id,
        token=result.token,
        token_id=result.claims.token_id,
        expires_at=result.claims.expires_at,
        approval_url=result.approval_url,
    )


@router.post("/businesses/{business_id}/reject", response_model=ApplicationRead)
async def reject_business_endpoint(
    business_id: UUID,
    payload: RejectRequest,
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> ApplicationRead:
    application = await application_service.reject_application(
        session,
        providers.notifier,
        business_id=business_id,
        admin_user_id=payload.admin_user_id,
        reason=payload.reason,
    )
    return ApplicationRead.model_validate(application)


@router.post("/businesses/{business_id}/suspend", response_model=BusinessRead)
async def suspend_business_endpoint(
    business_id: UUID,
    payload: SuspendRequest,
    session: AsyncSession = Depends(get_db),
) -> BusinessRead:
    business = await application_service.suspend_business(
        session,
        business_id=business_id,
        admin_user_id=payload.admin_user_id,
        reason=payload.reason,
    )
    return BusinessRead.model_validate(business)


@router.post("/documents/{document_id}/review", response_model=DocumentRead)
async def review_document_endpoint(
    document_id: UUID,
    payload: DocumentReviewRequest,
    session: AsyncSession = Depends(get_db),
) -> DocumentRead:
    document = await document_service.review_document(
        session,
        document_id=document_id,
        admin_user_id=payload.admin_user_id,
        action=payload.action,
        reason=payload.reason,
    )
    return DocumentRead.model_validate(document)
