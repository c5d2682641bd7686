"""Administrative approval and Phase 2 access tokens."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import urlencode
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters.notifications import Notifier
from provider_onboarding.config import settings
from provider_onboarding.crud import onboarding as crud
from provider_onboarding.enums import (
    ApplicationStatus,
    BusinessVerificationStatus,
    OnboardingStep,
)
from provider_onboarding.errors import ApprovalTokenError, ConflictError, ErrorKind, NotFoundError
from provider_onboarding.models.approval import ApplicationApproval
from provider_onboarding.models.base import utcnow
from provider_onboarding.services.approval_tokens import ApprovalClaims, decode_approval_token, encode_approval_token
from provider_onboarding.services.common import (
    advance_step,
    get_business_or_404,
    get_or_create_progress,
    require_admin,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApprovalResult:
    token: str
    claims: ApprovalClaims
    approval_url: str


@dataclass(frozen=True)
class TokenVerification:
    claims: ApprovalClaims
    business_name: str | None
    current_step: int | None
    phase_1_completed: bool


def approval_url(token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/provider-onboarding/phase2?{urlencode({'token': token})}"


async def issue_approval_token(
    session: AsyncSession,
    notifier: Notifier,
    *,
    business_id: UUID,
    admin_user_id: UUID,
    notes: str | None = None,
    now: datetime | None = None,
) -> ApprovalResult:
    """Approve a submitted application and mint its Phase 2 token.

    All state changes commit together; the notification goes out afterwards and
    never affects the result.
    """

    await require_admin(session, user_id=admin_user_id)
    business = await get_business_or_404(session, business_id=business_id)
    application = await crud.get_application_for_business(session, business_id=business_id)
    if application is None:
        raise NotFoundError("Application not found", details={"business_id": str(business_id)})
    if application.application_status != ApplicationStatus.SUBMITTED.value:
        raise ConflictError(
            f"Cannot approve an application that is {application.application_status}",
            details={"application_status": application.application_status},
        )
    if business.verification_status == BusinessVerificationStatus.SUSPENDED.value:
        raise ConflictError("Cannot approve a suspended business")

    token, claims = encode_approval_token(
        business_id=business.id,
        user_id=business.owner_user_id,
        application_id=application.id,
        now=now,
    )

    approved_at = utcnow()
    previous_status = business.verification_status
    business.verification_status = BusinessVerificationStatus.APPROVED.value
    business.approved_by = admin_user_id
    business.approved_at = approved_at
    business.approval_notes = notes

    application.application_status = ApplicationStatus.APPROVED.value
    application.review_status = "approved"
    application.reviewed_by = admin_user_id
    application.reviewed_at = approved_at
    application.approval_notes = notes

    owner = await crud.get_provider_association(session, user_id=business.owner_user_id, business_id=business.id)
    if owner is not None:
        owner.verification_status = BusinessVerificationStatus.APPROVED.value

    progress = await get_or_create_progress(session, business_id=business.id)
    progress.phase_1_completed = True
    progress.phase_1_completed_at = approved_at
    advance_step(business, progress, OnboardingStep.IDENTITY_VERIFICATION)

    session.add(
        ApplicationApproval(
            business_id=business.id,
            application_id=application.id,
            approved_by=admin_user_id,
            token_id=claims.token_id,
            token_expires_at=claims.expires_at,
            approval_notes=notes,
        )
    )
    crud.add_audit(
        session,
        entity_type="business",
        entity_id=business.id,
        action="approved",
        user_id=admin_user_id,
        old_value={"verification_status": previous_status},
        new_value={"verification_status": business.verification_status, "token_id": claims.token_id},
        change_summary=notes,
    )
    await session.commit()
    logger.info("application approved business_id=%s admin=%s jti=%s", business.id, admin_user_id, claims.token_id)

    url = approval_url(token)
    recipient = business.contact_email
    if not recipient:
        user = await crud.users.get(session, id=business.owner_user_id)
        recipient = user.email if user else None
    if recipient:
        notifier.dispatch(
            "application_approved",
            recipient,
            {
                "business_id": str(business.id),
                "business_name": business.business_name,
                "approval_url": url,
                "expires_at": claims.expires_at.isoformat(),
            },
        )
    else:
        logger.warning("no recipient for approval notification business_id=%s", business.id)

    return ApprovalResult(token=token, claims=claims, approval_url=url)


async def verify_approval_token(
    session: AsyncSession,
    *,
    token: str,
    now: datetime | None = None,
) -> TokenVerification:
    claims = decode_approval_token(token, now=now)

    res = await session.execute(
        select(ApplicationApproval).where(ApplicationApproval.token_id == claims.token_id)
    )
    if res.scalar_one_or_none() is None:
        raise ApprovalTokenError(ErrorKind.INVALID, "Approval token was not issued by this service")

    business = await crud.businesses.get(session, id=claims.business_id)
    if business is None:
        raise ApprovalTokenError(ErrorKind.INVALID, "Business for this token no longer exists")
    if business.verification_status != BusinessVerificationStatus.APPROVED.value:
        raise ApprovalTokenError(ErrorKind.REVOKED, f"Business approval has been revoked ({business.verification_status})")

    progress = await crud.get_setup_progress(session, business_id=business.id)
    return TokenVerification(
        claims=claims,
        business_name=business.business_name,
        current_step=progress.current_step if progress else business.setup_step,
        phase_1_completed=bool(progress and progress.phase_1_completed),
    )
