"""Onboarding status derivation.

The phase/step a user sees is always recomputed from persisted facts. The
stored ``setup_step`` and Setup Progress row are returned as a resume hint and
never feed the derivation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.config import settings
from provider_onboarding.crud import onboarding as crud
from provider_onboarding.enums import (
    ApplicationStatus,
    BusinessVerificationStatus,
    DocumentType,
    OnboardingPhase,
    OnboardingStep,
    required_document_types,
)
from provider_onboarding.errors import StateLookupError
from provider_onboarding.services.document_service import document_types_on_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OnboardingFacts:
    user_id: UUID
    business_id: UUID | None = None
    business_name: str | None = None
    business_type: str | None = None
    verification_status: str | None = None
    application_status: str | None = None
    documents_on_file: frozenset[DocumentType] = frozenset()
    identity_verified: bool = False
    bank_connected: bool = False
    has_payment_account: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False
    resume_step: int | None = None


@dataclass(frozen=True)
class OnboardingState:
    phase: OnboardingPhase
    step: OnboardingStep
    needs_onboarding: bool
    business_id: UUID | None = None
    verification_status: str | None = None
    missing_documents: tuple[DocumentType, ...] = field(default_factory=tuple)
    redirect_to: str | None = None
    resume_step: int | None = None


def derive_onboarding_state(facts: OnboardingFacts) -> OnboardingState:
    if facts.business_id is None:
        return OnboardingState(phase=OnboardingPhase.PHASE1, step=OnboardingStep.SIGNUP, needs_onboarding=True)

    def state(phase: OnboardingPhase, step: OnboardingStep, **extra) -> OnboardingState:
        return OnboardingState(
            phase=phase,
            step=step,
            needs_onboarding=step != OnboardingStep.COMPLETE,
            business_id=facts.business_id,
            verification_status=facts.verification_status,
            resume_step=facts.resume_step,
            **extra,
        )

    if facts.verification_status != BusinessVerificationStatus.APPROVED.value:
        phase1 = OnboardingPhase.PHASE1
        if facts.verification_status == BusinessVerificationStatus.SUSPENDED.value:
            return state(phase1, OnboardingStep.SUSPENDED)
        if not (facts.business_name or "").strip():
            return state(phase1, OnboardingStep.BUSINESS_INFO)

        missing = required_document_types(facts.business_type) - facts.documents_on_file
        if missing:
            return state(
                phase1,
                OnboardingStep.DOCUMENTS,
                missing_documents=tuple(sorted(missing, key=lambda d: d.value)),
            )

        if facts.application_status == ApplicationStatus.SUBMITTED.value:
            return state(phase1, OnboardingStep.SUBMITTED)
        if (
            facts.application_status == ApplicationStatus.REJECTED.value
            or facts.verification_status == BusinessVerificationStatus.REJECTED.value
        ):
            return state(phase1, OnboardingStep.REJECTED)
        return state(phase1, OnboardingStep.REVIEW)

    phase2 = OnboardingPhase.PHASE2
    if not facts.identity_verified:
        return state(phase2, OnboardingStep.IDENTITY_VERIFICATION)
    if not facts.bank_connected:
        return state(phase2, OnboardingStep.BANK_CONNECTION)
    if not facts.has_payment_account:
        return state(phase2, OnboardingStep.PAYMENT_SETUP)
    if not (facts.charges_enabled and facts.payouts_enabled):
        return state(phase2, OnboardingStep.PAYMENT_SETUP)

    return state(OnboardingPhase.COMPLETE, OnboardingStep.COMPLETE, redirect_to=settings.dashboard_path)


async def load_onboarding_facts(session: AsyncSession, *, user_id: UUID) -> OnboardingFacts:
    business = await crud.get_business_for_owner(session, user_id=user_id)
    if business is None:
        return OnboardingFacts(user_id=user_id)

    application = await crud.get_application_for_business(session, business_id=business.id)
    documents = await crud.list_business_documents(session, business_id=business.id)
    account = await crud.get_payment_account(session, business_id=business.id)
    progress = await crud.get_setup_progress(session, business_id=business.id)

    return OnboardingFacts(
        user_id=user_id,
        business_id=business.id,
        business_name=business.business_name,
        business_type=business.business_type,
        verification_status=business.verification_status,
        application_status=application.application_status if application else None,
        documents_on_file=document_types_on_file(documents),
        identity_verified=bool(business.identity_verified),
        bank_connected=bool(business.bank_connected),
        has_payment_account=account is not None or bool(business.payment_account_id),
        charges_enabled=bool(account and account.charges_enabled),
        payouts_enabled=bool(account and account.payouts_enabled),
        resume_step=progress.current_step if progress else business.setup_step,
    )


async def resolve_onboarding_state(session: AsyncSession, *, user_id: UUID) -> OnboardingState:
    try:
        facts = await load_onboarding_facts(session, user_id=user_id)
    except SQLAlchemyError as e:
        logger.error("onboarding state lookup failed user_id=%s error=%s", user_id, e)
        raise StateLookupError("Could not load onboarding state", details={"user_id": str(user_id)}) from e

    return derive_onboarding_state(facts)
