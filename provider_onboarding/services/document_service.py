"""Document uploads and administrative review.

Uploads write the blob before the row. If the row cannot be written the blob
is deleted again so the store never holds files the database does not know.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import uuid
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters.storage import DocumentStore
from provider_onboarding.config import settings
from provider_onboarding.crud import onboarding as crud
from provider_onboarding.enums import (
    BusinessType,
    DocumentReviewAction,
    DocumentStatus,
    DocumentType,
    OnboardingStep,
    required_document_types,
)
from provider_onboarding.errors import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    StorageProviderError,
    ValidationError,
)
from provider_onboarding.models.base import utcnow
from provider_onboarding.models.document import BusinessDocument
from provider_onboarding.services.common import (
    advance_step,
    get_business_or_404,
    get_or_create_progress,
    require_admin,
    require_association,
)

logger = logging.getLogger(__name__)

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "application/pdf": "pdf"}


def counts_toward_completeness(document: BusinessDocument) -> bool:
    return (
        document.superseded_by_id is None
        and document.verification_status != DocumentStatus.REJECTED.value
    )


def document_types_on_file(documents: Iterable[BusinessDocument]) -> frozenset[DocumentType]:
    on_file: set[DocumentType] = set()
    for doc in documents:
        if not counts_toward_completeness(doc):
            continue
        try:
            on_file.add(DocumentType(doc.document_type))
        except ValueError:
            continue
    return frozenset(on_file)


def missing_required_documents(
    business_type: BusinessType | str,
    documents: Iterable[BusinessDocument],
) -> list[DocumentType]:
    """Required document types without a live (non-rejected, non-superseded) upload."""

    missing = required_document_types(business_type) - document_types_on_file(documents)
    return sorted(missing, key=lambda d: d.value)


def build_storage_path(
    *,
    business_id: UUID,
    document_type: DocumentType,
    filename: str,
    content_type: str,
    now: datetime | None = None,
) -> str:
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    if not ext:
        ext = _EXTENSIONS.get(content_type) or (mimetypes.guess_extension(content_type) or ".bin").lstrip(".")
    timestamp = int((now or utcnow()).timestamp() * 1000)
    return f"provider-documents/{business_id}/{document_type.value}_{timestamp}_{uuid.uuid4().hex}.{ext}"


def _validate_upload(document_type: str, content_type: str, data: bytes) -> DocumentType:
    try:
        dtype = DocumentType(document_type)
    except ValueError as e:
        raise ValidationError(
            "Invalid document type",
            details={"document_type": document_type, "allowed": [d.value for d in DocumentType]},
        ) from e

    if content_type not in settings.document_content_types:
        raise ValidationError(
            "Unsupported file type",
            details={"content_type": content_type, "allowed": sorted(settings.document_content_types)},
        )
    if not data:
        raise ValidationError("File is empty")
    if len(data) > settings.max_document_bytes:
        raise ValidationError(
            "File too large",
            details={"max_bytes": settings.max_document_bytes},
        )
    return dtype


async def upload_document(
    session: AsyncSession,
    store: DocumentStore,
    *,
    business_id: UUID,
    user_id: UUID,
    document_type: str,
    filename: str,
    content_type: str,
    data: bytes,
    replaces_document_id: UUID | None = None,
) -> BusinessDocument:
    business = await get_business_or_404(session, business_id=business_id)
    await require_association(session, user_id=user_id, business_id=business_id)
    dtype = _validate_upload(document_type, content_type, data)

    replaced: BusinessDocument | None = None
    if replaces_document_id is not None:
        replaced = await crud.documents.get(session, id=replaces_document_id)
        if replaced is None or replaced.business_id != business_id:
            raise NotFoundError("Document to replace not found", details={"document_id": str(replaces_document_id)})
        if replaced.document_type != dtype.value:
            raise ValidationError("Replacement must have the same document type")
        if replaced.superseded_by_id is not None:
            raise ConflictError("Document has already been superseded")

    path = build_storage_path(
        business_id=business_id,
        document_type=dtype,
        filename=filename,
        content_type=content_type,
    )
    file_url = await store.put(path, data, content_type)

    try:
        document = BusinessDocument(
            id=uuid.uuid4(),
            business_id=business_id,
            uploaded_by=user_id,
            document_type=dtype.value,
            document_name=filename or path.rsplit("/", 1)[-1],
            storage_path=path,
            file_url=file_url,
            content_type=content_type,
            file_size_bytes=len(data),
            verification_status=DocumentStatus.PENDING.value,
        )
        session.add(document)
        await session.flush()

        if replaced is not None:
            replaced.superseded_by_id = document.id
            replaced.superseded_at = utcnow()

        documents = await crud.list_business_documents(session, business_id=business_id)
        progress = await get_or_create_progress(session, business_id=business_id)
        progress.documents_completed = not missing_required_documents(business.business_type, documents)
        if progress.documents_completed:
            advance_step(business, progress, OnboardingStep.DOCUMENTS)

        crud.add_audit(
            session,
            entity_type="business_document",
            entity_id=document.id,
            action="uploaded",
            user_id=user_id,
            new_value={"document_type": dtype.value, "storage_path": path},
            change_summary=f"replaces {replaces_document_id}" if replaced is not None else None,
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("document row insert failed business_id=%s path=%s error=%s", business_id, path, e)
        try:
            await store.delete(path)
        except StorageProviderError:
            logger.error("orphaned document blob left in storage path=%s business_id=%s", path, business_id)
        raise PersistenceError("Failed to save document") from e

    logger.info(
        "document uploaded business_id=%s document_id=%s type=%s",
        business_id,
        document.id,
        dtype.value,
    )
    return document


async def review_document(
    session: AsyncSession,
    *,
    document_id: UUID,
    admin_user_id: UUID,
    action: str,
    reason: str | None = None,
) -> BusinessDocument:
    await require_admin(session, user_id=admin_user_id)

    try:
        review_action = DocumentReviewAction(action)
    except ValueError as e:
        raise ValidationError(
            "Invalid review action",
            details={"action": action, "allowed": [a.value for a in DocumentReviewAction]},
        ) from e
    if review_action is DocumentReviewAction.REJECT and not (reason or "").strip():
        raise ValidationError("Rejection reason is required")

    document = await crud.documents.get(session, id=document_id)
    if document is None:
        raise NotFoundError("Document not found", details={"document_id": str(document_id)})
    if document.superseded_by_id is not None:
        raise ConflictError("Document has been superseded", details={"document_id": str(document_id)})

    current = DocumentStatus(document.verification_status)
    target = review_action.target_status
    if target not in DocumentStatus.valid_transitions()[current]:
        raise ConflictError(
            f"Cannot move document from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )

    now = utcnow()
    document.verification_status = target.value
    document.reviewed_by = admin_user_id
    document.reviewed_at = now
    if target is DocumentStatus.VERIFIED:
        document.verified_by = admin_user_id
        document.verified_at = now
        document.rejection_reason = None
    elif target is DocumentStatus.REJECTED:
        document.rejection_reason = reason.strip()

    crud.add_audit(
        session,
        entity_type="business_document",
        entity_id=document.id,
        action=f"review_{review_action.value}",
        user_id=admin_user_id,
        old_value={"verification_status": current.value},
        new_value={"verification_status": target.value},
        change_summary=reason,
    )
    await session.commit()
    return document


async def list_documents(session: AsyncSession, *, business_id: UUID, user_id: UUID) -> list[BusinessDocument]:
    await get_business_or_404(session, business_id=business_id)
    admin = await crud.get_active_admin(session, user_id=user_id)
    if admin is None:
        await require_association(session, user_id=user_id, business_id=business_id)
    return await crud.list_business_documents(session, business_id=business_id)
