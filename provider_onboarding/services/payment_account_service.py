from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from provider_onboarding.adapters.payments import ConnectAccountParams, PaymentProcessor
from provider_onboarding.config import settings
from provider_onboarding.crud import onboarding as crud
from provider_onboarding.enums import BusinessType, BusinessVerificationStatus, OnboardingStep
from provider_onboarding.errors import ConflictError, NotFoundError
from provider_onboarding.models.base import utcnow
from provider_onboarding.models.business import Business
from provider_onboarding.models.payment_account import PaymentAccount
from provider_onboarding.services.common import (
    advance_step,
    get_business_or_404,
    get_or_create_progress,
    require_association,
)
from provider_onboarding.services.outcomes import ExternalOutcome, PersistenceOutcome

logger = logging.getLogger(__name__)

PAYMENT_SETUP_PATH = "/provider-onboarding/phase2/payment_setup"


@dataclass(frozen=True)
class ConnectAccountResult:
    account_id: str
    onboarding_url: str
    existing: bool


@dataclass(frozen=True)
class AccountStatusResult:
    account_id: str
    charges_enabled: bool
    payouts_enabled: bool
    details_submitted: bool
    requirements: dict[str, Any] | None = None

    @property
    def active(self) -> bool:
        return self.charges_enabled and self.payouts_enabled


def onboarding_return_urls() -> tuple[str, str]:
    base = f"{settings.frontend_url.rstrip('/')}{PAYMENT_SETUP_PATH}"
    return f"{base}?success=true", f"{base}?refresh=true"


def processor_business_type(business_type: str | None) -> str:
    try:
        individual = BusinessType(business_type).is_individual
    except ValueError:
        individual = False
    return "individual" if individual else "company"


async def _require_approved(session: AsyncSession, *, user_id: UUID, business_id: UUID) -> Business:
    business = await get_business_or_404(session, business_id=business_id)
    await require_association(session, user_id=user_id, business_id=business_id)
    if business.verification_status != BusinessVerificationStatus.APPROVED.value:
        raise ConflictError(
            "Payment setup requires an approved business",
            details={"verification_status": business.verification_status},
        )
    return business


async def create_or_resume_connect_account(
    session: AsyncSession,
    payments: PaymentProcessor,
    *,
    user_id: UUID,
    business_id: UUID,
    business_name: str | None = None,
    business_type: str | None = None,
    email: str | None = None,
) -> ExternalOutcome[ConnectAccountResult]:
    """Create the business's connected account, or resume onboarding on the
    existing one. Either way a fresh onboarding link is returned.
    """

    business = await _require_approved(session, user_id=user_id, business_id=business_id)
    return_url, refresh_url = onboarding_return_urls()

    existing = await crud.get_payment_account(session, business_id=business_id)
    existing_id = existing.account_id if existing is not None else business.payment_account_id
    if existing_id:
        url = await payments.create_onboarding_link(existing_id, return_url, refresh_url)
        logger.info("resuming payment onboarding business_id=%s account_id=%s", business_id, existing_id)
        return ExternalOutcome(
            result=ConnectAccountResult(account_id=existing_id, onboarding_url=url, existing=True),
            persistence=PersistenceOutcome.succeeded(),
        )

    btype = processor_business_type(business_type or business.business_type)
    account_id = await payments.create_account(
        ConnectAccountParams(
            business_type=btype,
            business_name=business_name or business.business_name or "",
            country=settings.payment_country,
            email=email or business.contact_email,
            website_url=business.website_url,
            payout_weekly_anchor=settings.payout_weekly_anchor,
            metadata={"business_id": str(business_id), "user_id": str(user_id)},
        )
    )
    logger.info("payment account created business_id=%s account_id=%s", business_id, account_id)

    persistence = PersistenceOutcome.succeeded()

    # The business reference is written first so a later call can resume even
    # if the account row below fails. It is only written while still empty.
    claimed = True
    try:
        claimed = await crud.claim_payment_account_reference(session, business_id=business_id, account_id=account_id)
        if claimed:
            set_committed_value(business, "payment_account_id", account_id)
            progress = await get_or_create_progress(session, business_id=business_id)
            advance_step(business, progress, OnboardingStep.PAYMENT_SETUP)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("payment account reference not saved business_id=%s account_id=%s error=%s", business_id, account_id, e)
        persistence = PersistenceOutcome.failed("business payment account reference not saved")

    if not claimed:
        await session.refresh(business)
        winner = business.payment_account_id
        logger.warning(
            "orphaned payment account account_id=%s business_id=%s existing=%s", account_id, business_id, winner
        )
        url = await payments.create_onboarding_link(winner, return_url, refresh_url)
        return ExternalOutcome(
            result=ConnectAccountResult(account_id=winner, onboarding_url=url, existing=True),
            persistence=persistence,
        )

    try:
        session.add(
            PaymentAccount(
                business_id=business_id,
                user_id=user_id,
                account_id=account_id,
                account_type="express",
                business_type=btype,
                country=settings.payment_country,
                charges_enabled=False,
                payouts_enabled=False,
                details_submitted=False,
            )
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("payment account row not saved business_id=%s account_id=%s error=%s", business_id, account_id, e)
        persistence = PersistenceOutcome.failed("payment account not recorded")

    url = await payments.create_onboarding_link(account_id, return_url, refresh_url)
    return ExternalOutcome(
        result=ConnectAccountResult(account_id=account_id, onboarding_url=url, existing=False),
        persistence=persistence,
    )


async def refresh_payment_account_status(
    session: AsyncSession,
    payments: PaymentProcessor,
    *,
    user_id: UUID,
    business_id: UUID,
) -> ExternalOutcome[AccountStatusResult]:
    business = await _require_approved(session, user_id=user_id, business_id=business_id)
    account = await crud.get_payment_account(session, business_id=business_id)
    account_id = account.account_id if account is not None else business.payment_account_id
    if not account_id:
        raise NotFoundError("No payment account for this business", details={"business_id": str(business_id)})

    caps = await payments.retrieve_account(account_id)
    result = AccountStatusResult(
        account_id=caps.account_id,
        charges_enabled=caps.charges_enabled,
        payouts_enabled=caps.payouts_enabled,
        details_submitted=caps.details_submitted,
        requirements=caps.requirements,
    )

    try:
        if account is None:
            account = PaymentAccount(
                business_id=business_id,
                user_id=user_id,
                account_id=account_id,
                business_type=processor_business_type(business.business_type),
                country=settings.payment_country,
            )
            session.add(account)
        account.charges_enabled = caps.charges_enabled
        account.payouts_enabled = caps.payouts_enabled
        account.details_submitted = caps.details_submitted
        account.requirements = caps.requirements

        if result.active:
            progress = await get_or_create_progress(session, business_id=business_id)
            progress.payment_setup_completed = True
            if progress.identity_completed and progress.bank_connected and not progress.phase_2_completed:
                progress.phase_2_completed = True
                progress.phase_2_completed_at = utcnow()
            advance_step(business, progress, OnboardingStep.COMPLETE)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("payment account status not saved business_id=%s account_id=%s error=%s", business_id, account_id, e)
        return ExternalOutcome(result=result, persistence=PersistenceOutcome.failed("payment account status not saved"))

    logger.info(
        "payment account refreshed business_id=%s charges_enabled=%s payouts_enabled=%s",
        business_id,
        caps.charges_enabled,
        caps.payouts_enabled,
    )
    return ExternalOutcome(result=result, persistence=PersistenceOutcome.succeeded())
