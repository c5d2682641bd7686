from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters import ProviderRegistry
from provider_onboarding.api.deps import get_providers
from provider_onboarding.config import settings
from provider_onboarding.database import get_db
from provider_onboarding.schemas.document import DocumentListResponse, DocumentRead
from provider_onboarding.services import document_service
from provider_onboarding.services.common import get_business_or_404

router = APIRouter(prefix="/businesses/{business_id}/documents", tags=["documents"])


@router.post("", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def upload_document_endpoint(
    business_id: UUID,
    user_id: UUID = Form(...),
    document_type: str = Form(...),
    replaces_document_id: UUID | None = Form(None),
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db),
    providers: ProviderRegistry = Depends(get_providers),
) -> DocumentRead:
    # One byte past the limit is enough to reject without loading the whole upload.
    data = await file.read(settings.max_document_bytes + 1)
    document = await document_service.upload_document(
        session,
        providers.store,
        business_id=business_id,
        user_id=user_id,
        document_type=document_type,
        filename=file.filename or "",
        content_type=file.content_type or "application/octet-stream",
        data=data,
        replaces_document_id=replaces_document_id,
    )
    return DocumentRead.model_validate(document)


@router.get("", response_model=DocumentListResponse)
async def list_documents_endpoint(
    business_id: UUID,
    user_id: UUID = Query(..., description="Caller (business member or admin)"),
    session: AsyncSession = Depends(get_db),
) -> DocumentListResponse:
    documents = await document_service.list_documents(session, business_id=business_id, user_id=user_id)
    business = await get_business_or_404(session, business_id=business_id)
    missing = document_service.missing_required_documents(business.business_type, documents)
    return DocumentListResponse(
        items=[DocumentRead.model_validate(d) for d in documents],
        missing_documents=[d.value for d in missing],
    )
