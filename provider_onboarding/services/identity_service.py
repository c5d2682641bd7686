from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters.identity import IdentityProvider, IdentitySessionOptions
from provider_onboarding.crud import onboarding as crud
from provider_onboarding.enums import IdentityStatus, OnboardingStep
from provider_onboarding.errors import NotFoundError, ValidationError
from provider_onboarding.models.base import utcnow
from provider_onboarding.models.identity_verification import IdentityVerificationSession
from provider_onboarding.services.common import (
    advance_step,
    get_business_or_404,
    get_or_create_progress,
    require_association,
)
from provider_onboarding.services.outcomes import ExternalOutcome, PersistenceOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationSessionResult:
    session_id: str
    client_secret: str | None
    status: IdentityStatus
    reused: bool = False


@dataclass(frozen=True)
class VerificationStatusResult:
    session_id: str
    status: IdentityStatus
    last_error: dict[str, Any] | None = None

    @property
    def verified(self) -> bool:
        return self.status is IdentityStatus.VERIFIED


async def create_verification_session(
    session: AsyncSession,
    identity: IdentityProvider,
    *,
    user_id: UUID,
    business_id: UUID,
    options: IdentitySessionOptions | None = None,
) -> ExternalOutcome[VerificationSessionResult]:
    business = await get_business_or_404(session, business_id=business_id)
    await require_association(session, user_id=user_id, business_id=business_id)

    latest = await crud.get_latest_identity_session(session, user_id=user_id, business_id=business_id)
    if latest is not None and latest.status == IdentityStatus.VERIFIED.value:
        logger.info("identity already verified user_id=%s business_id=%s", user_id, business_id)
        return ExternalOutcome(
            result=VerificationSessionResult(
                session_id=latest.session_id,
                client_secret=None,
                status=IdentityStatus.VERIFIED,
                reused=True,
            ),
            persistence=PersistenceOutcome.succeeded(),
        )

    session_options = replace(
        options or IdentitySessionOptions(),
        metadata={
            "user_id": str(user_id),
            "business_id": str(business_id),
            "business_name": business.business_name or "",
        },
    )
    remote = await identity.create_session(session_options)

    result = VerificationSessionResult(
        session_id=remote.id,
        client_secret=remote.client_secret,
        status=remote.status,
    )
    try:
        session.add(
            IdentityVerificationSession(
                user_id=user_id,
                business_id=business_id,
                session_id=remote.id,
                session_type=remote.session_type,
                status=remote.status.value,
                last_error=remote.last_error,
            )
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(
            "identity session persist failed session_id=%s business_id=%s error=%s",
            remote.id,
            business_id,
            e,
        )
        return ExternalOutcome(result=result, persistence=PersistenceOutcome.failed("identity session not recorded"))

    logger.info("identity session created session_id=%s business_id=%s", remote.id, business_id)
    return ExternalOutcome(result=result, persistence=PersistenceOutcome.succeeded())


async def _locate_session(
    session: AsyncSession,
    *,
    session_id: str | None,
    user_id: UUID,
    business_id: UUID | None,
) -> IdentityVerificationSession:
    if session_id:
        row = await crud.get_identity_session(session, session_id=session_id)
    elif business_id is not None:
        row = await crud.get_latest_identity_session(session, user_id=user_id, business_id=business_id)
    else:
        raise ValidationError("Provide session_id or business_id")

    if row is None:
        raise NotFoundError("Verification session not found")
    return row


async def check_verification_status(
    session: AsyncSession,
    identity: IdentityProvider,
    *,
    user_id: UUID,
    session_id: str | None = None,
    business_id: UUID | None = None,
) -> ExternalOutcome[VerificationStatusResult]:
    """Refresh one session from the provider and apply the result locally.

    The caller must be associated with the session's business.
    """

    row = await _locate_session(session, session_id=session_id, user_id=user_id, business_id=business_id)
    await require_association(session, user_id=user_id, business_id=row.business_id)
    remote_id = row.session_id
    owner_id, owner_business_id = row.user_id, row.business_id

    remote = await identity.get_session(remote_id)
    report = None
    if remote.status is IdentityStatus.VERIFIED and remote.last_report_id:
        report = await identity.get_report(remote.last_report_id)

    result = VerificationStatusResult(session_id=remote_id, status=remote.status, last_error=remote.last_error)

    try:
        now = utcnow()
        row.status = remote.status.value
        if remote.status is IdentityStatus.VERIFIED:
            row.verified_at = row.verified_at or now
            if report is not None:
                row.verification_report = report

            business = await crud.businesses.get(session, id=owner_business_id)
            if business is not None:
                business.identity_verified = True
                business.identity_verified_at = business.identity_verified_at or now

            staff = await crud.get_provider_association(session, user_id=owner_id, business_id=owner_business_id)
            if staff is not None:
                staff.identity_verified = True
                staff.identity_verified_at = staff.identity_verified_at or now

            progress = await get_or_create_progress(session, business_id=owner_business_id)
            progress.identity_completed = True
            advance_step(business, progress, OnboardingStep.BANK_CONNECTION)
        elif remote.status in IdentityStatus.failed_statuses():
            row.failed_at = now
            row.last_error = remote.last_error

        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(
            "identity status persist failed session_id=%s status=%s error=%s",
            remote_id,
            remote.status.value,
            e,
        )
        return ExternalOutcome(result=result, persistence=PersistenceOutcome.failed("verification status not recorded"))

    return ExternalOutcome(result=result, persistence=PersistenceOutcome.succeeded())
