"""Phase-1 transitions: signup, business info, submission, rejection,
resubmission and suspension. Approval lives in ``approval_service``.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters.notifications import Notifier
from provider_onboarding.crud import onboarding as crud
from provider_onboarding.enums import (
    ApplicationStatus,
    BusinessType,
    BusinessVerificationStatus,
    OnboardingStep,
    ProviderRole,
)
from provider_onboarding.errors import ConflictError, NotFoundError, ValidationError
from provider_onboarding.models.application import ProviderApplication
from provider_onboarding.models.base import utcnow
from provider_onboarding.models.business import Business
from provider_onboarding.models.provider import Provider
from provider_onboarding.models.setup_progress import SetupProgress
from provider_onboarding.services.common import (
    advance_step,
    get_business_or_404,
    get_or_create_progress,
    require_admin,
    require_association,
    require_owner,
)
from provider_onboarding.services.document_service import missing_required_documents

logger = logging.getLogger(__name__)

REQUIRED_CONSENTS = ("information_accuracy", "terms_of_service", "background_check")
EDITABLE_STATUSES = {BusinessVerificationStatus.PENDING.value, BusinessVerificationStatus.REJECTED.value}
BUSINESS_INFO_FIELDS = ("business_name", "business_type", "contact_email", "website_url")


def _parse_business_type(value: str) -> BusinessType:
    try:
        return BusinessType(value)
    except ValueError as e:
        raise ValidationError(
            "Invalid business type",
            details={"business_type": value, "allowed": [t.value for t in BusinessType]},
        ) from e


async def _require_documents_complete(session: AsyncSession, business: Business) -> None:
    documents = await crud.list_business_documents(session, business_id=business.id)
    missing = missing_required_documents(business.business_type, documents)
    if missing:
        raise ValidationError(
            "Required documents are missing",
            details={"missing_documents": [d.value for d in missing]},
        )


async def _notify_owner(session: AsyncSession, notifier: Notifier, business: Business, template_id: str, **variables: Any) -> None:
    recipient = business.contact_email
    if not recipient:
        owner = await crud.users.get(session, id=business.owner_user_id)
        recipient = owner.email if owner else None
    if not recipient:
        logger.warning("no recipient for notification template=%s business_id=%s", template_id, business.id)
        return
    notifier.dispatch(
        template_id,
        recipient,
        {"business_id": str(business.id), "business_name": business.business_name, **variables},
    )


async def create_business(
    session: AsyncSession,
    *,
    user_id: UUID,
    business_type: str,
    business_name: str | None = None,
    contact_email: str | None = None,
    website_url: str | None = None,
) -> Business:
    user = await crud.users.get(session, id=user_id)
    if user is None:
        raise NotFoundError("User not found", details={"user_id": str(user_id)})

    btype = _parse_business_type(business_type)
    if await crud.get_business_for_owner(session, user_id=user_id) is not None:
        raise ConflictError("User already owns a business", details={"user_id": str(user_id)})

    name = (business_name or "").strip() or None
    business = await crud.businesses.create(
        session,
        values={
            "owner_user_id": user_id,
            "business_type": btype.value,
            "business_name": name,
            "contact_email": contact_email or user.email,
            "website_url": website_url,
            "verification_status": BusinessVerificationStatus.PENDING.value,
        },
    )
    session.add(
        Provider(
            user_id=user_id,
            business_id=business.id,
            provider_role=ProviderRole.OWNER.value,
            first_name=user.first_name,
            last_name=user.last_name,
        )
    )
    progress = SetupProgress(business_id=business.id, business_info_completed=name is not None)
    session.add(progress)
    if name is not None:
        advance_step(business, progress, OnboardingStep.BUSINESS_INFO)

    crud.add_audit(
        session,
        entity_type="business",
        entity_id=business.id,
        action="created",
        user_id=user_id,
        new_value={"business_type": btype.value, "business_name": name},
    )
    await session.commit()
    logger.info("business created business_id=%s owner=%s type=%s", business.id, user_id, btype.value)
    return business


async def update_business_info(
    session: AsyncSession,
    *,
    user_id: UUID,
    business_id: UUID,
    changes: dict[str, Any],
) -> Business:
    business = await get_business_or_404(session, business_id=business_id)
    await require_association(session, user_id=user_id, business_id=business_id)
    if business.verification_status not in EDITABLE_STATUSES:
        raise ConflictError(
            f"Business info cannot be edited while {business.verification_status}",
            details={"verification_status": business.verification_status},
        )

    updates = {k: v for k, v in changes.items() if k in BUSINESS_INFO_FIELDS}
    if "business_type" in updates:
        updates["business_type"] = _parse_business_type(updates["business_type"]).value
    if "business_name" in updates:
        updates["business_name"] = (updates["business_name"] or "").strip() or None

    old_value = await crud.businesses.update(session, db_obj=business, values=updates)

    progress = await get_or_create_progress(session, business_id=business_id)
    progress.business_info_completed = bool(business.business_name)
    if progress.business_info_completed:
        advance_step(business, progress, OnboardingStep.BUSINESS_INFO)

    crud.add_audit(
        session,
        entity_type="business",
        entity_id=business.id,
        action="info_updated",
        user_id=user_id,
        old_value=old_value,
        new_value={k: updates[k] for k in old_value},
    )
    await session.commit()
    return business


async def submit_application(
    session: AsyncSession,
    notifier: Notifier,
    *,
    user_id: UUID,
    business_id: UUID,
    consents: dict[str, bool],
    metadata: dict[str, Any] | None = None,
) -> ProviderApplication:
    business = await get_business_or_404(session, business_id=business_id)
    require_owner(business, user_id=user_id)

    missing_consents = [c for c in REQUIRED_CONSENTS if consents.get(c) is not True]
    if missing_consents:
        raise ValidationError("All consents must be accepted", details={"missing_consents": missing_consents})
    if not (business.business_name or "").strip():
        raise ValidationError("Business name is required")

    if await crud.get_application_for_business(session, business_id=business_id) is not None:
        raise ConflictError("Application already submitted", details={"business_id": str(business_id)})
    if business.verification_status != BusinessVerificationStatus.PENDING.value:
        raise ConflictError(
            f"Cannot submit an application for a {business.verification_status} business",
            details={"verification_status": business.verification_status},
        )
    await _require_documents_complete(session, business)

    now = utcnow()
    application = ProviderApplication(
        business_id=business_id,
        user_id=user_id,
        application_status=ApplicationStatus.SUBMITTED.value,
        review_status="pending",
        review_cycle=1,
        consents={c: True for c in REQUIRED_CONSENTS},
        submission_metadata=metadata or {},
        submitted_at=now,
    )
    session.add(application)

    business.verification_status = BusinessVerificationStatus.UNDER_REVIEW.value
    business.application_submitted_at = now

    progress = await get_or_create_progress(session, business_id=business_id)
    progress.business_info_completed = True
    progress.documents_completed = True
    advance_step(business, progress, OnboardingStep.SUBMITTED)

    await session.flush()
    crud.add_audit(
        session,
        entity_type="provider_application",
        entity_id=application.id,
        action="submitted",
        user_id=user_id,
        old_value={"verification_status": BusinessVerificationStatus.PENDING.value},
        new_value={"verification_status": business.verification_status},
    )
    await session.commit()
    logger.info("application submitted business_id=%s application_id=%s", business_id, application.id)

    await _notify_owner(session, notifier, business, "application_submitted")
    return application


async def reject_application(
    session: AsyncSession,
    notifier: Notifier,
    *,
    business_id: UUID,
    admin_user_id: UUID,
    reason: str,
) -> ProviderApplication:
    await require_admin(session, user_id=admin_user_id)
    if not (reason or "").strip():
        raise ValidationError("Rejection reason is required")

    business = await get_business_or_404(session, business_id=business_id)
    application = await crud.get_application_for_business(session, business_id=business_id)
    if application is None:
        raise NotFoundError("Application not found", details={"business_id": str(business_id)})
    if application.application_status != ApplicationStatus.SUBMITTED.value:
        raise ConflictError(
            f"Cannot reject an application that is {application.application_status}",
            details={"application_status": application.application_status},
        )

    now = utcnow()
    application.application_status = ApplicationStatus.REJECTED.value
    application.review_status = "rejected"
    application.reviewed_at = now
    application.reviewed_by = admin_user_id
    application.rejection_reason = reason.strip()

    previous_status = business.verification_status
    business.verification_status = BusinessVerificationStatus.REJECTED.value
    business.rejected_at = now
    business.rejection_reason = reason.strip()

    crud.add_audit(
        session,
        entity_type="business",
        entity_id=business.id,
        action="rejected",
        user_id=admin_user_id,
        old_value={"verification_status": previous_status},
        new_value={"verification_status": business.verification_status},
        change_summary=reason.strip(),
    )
    await session.commit()
    logger.info("application rejected business_id=%s admin=%s", business_id, admin_user_id)

    await _notify_owner(session, notifier, business, "application_rejected", reason=reason.strip())
    return application


async def resubmit_application(
    session: AsyncSession,
    notifier: Notifier,
    *,
    user_id: UUID,
    business_id: UUID,
) -> ProviderApplication:
    business = await get_business_or_404(session, business_id=business_id)
    require_owner(business, user_id=user_id)

    application = await crud.get_application_for_business(session, business_id=business_id)
    if application is None:
        raise NotFoundError("Application not found", details={"business_id": str(business_id)})
    if application.application_status != ApplicationStatus.REJECTED.value:
        raise ConflictError(
            "Only rejected applications can be resubmitted",
            details={"application_status": application.application_status},
        )
    if business.verification_status == BusinessVerificationStatus.SUSPENDED.value:
        raise ConflictError("Suspended businesses cannot resubmit")
    await _require_documents_complete(session, business)

    now = utcnow()
    application.application_status = ApplicationStatus.SUBMITTED.value
    application.review_status = "pending"
    application.review_cycle = (application.review_cycle or 1) + 1
    application.reviewed_at = None
    application.reviewed_by = None
    application.rejection_reason = None
    application.submitted_at = now

    business.verification_status = BusinessVerificationStatus.UNDER_REVIEW.value
    business.rejected_at = None
    business.rejection_reason = None
    business.application_submitted_at = now

    crud.add_audit(
        session,
        entity_type="provider_application",
        entity_id=application.id,
        action="resubmitted",
        user_id=user_id,
        new_value={"review_cycle": application.review_cycle},
    )
    await session.commit()
    logger.info(
        "application resubmitted business_id=%s review_cycle=%s",
        business_id,
        application.review_cycle,
    )

    await _notify_owner(session, notifier, business, "application_resubmitted", review_cycle=application.review_cycle)
    return application


async def suspend_business(
    session: AsyncSession,
    *,
    business_id: UUID,
    admin_user_id: UUID,
    reason: str | None = None,
) -> Business:
    await require_admin(session, user_id=admin_user_id)
    business = await get_business_or_404(session, business_id=business_id)
    if business.verification_status == BusinessVerificationStatus.SUSPENDED.value:
        raise ConflictError("Business is already suspended")

    previous_status = business.verification_status
    business.verification_status = BusinessVerificationStatus.SUSPENDED.value
    business.suspended_at = utcnow()

    crud.add_audit(
        session,
        entity_type="business",
        entity_id=business.id,
        action="suspended",
        user_id=admin_user_id,
        old_value={"verification_status": previous_status},
        new_value={"verification_status": business.verification_status},
        change_summary=reason,
    )
    await session.commit()
    logger.warning("business suspended business_id=%s admin=%s", business_id, admin_user_id)
    return business
