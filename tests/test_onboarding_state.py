import itertools
import uuid

import pytest
from sqlalchemy.exc import OperationalError

from provider_onboarding.enums import (
    BusinessVerificationStatus,
    DocumentType,
    OnboardingPhase,
    OnboardingStep,
)
from provider_onboarding.services import onboarding_state
from provider_onboarding.services.onboarding_state import OnboardingFacts, derive_onboarding_state
from tests.factories import add_document, make_business, make_user


def _facts(**overrides) -> OnboardingFacts:
    base = dict(
        user_id=uuid.uuid4(),
        business_id=uuid.uuid4(),
        business_name="Sparkle Cleaning",
        business_type="llc",
        verification_status="approved",
        application_status="approved",
        documents_on_file=frozenset(
            {DocumentType.PROFESSIONAL_LICENSE, DocumentType.PROFESSIONAL_HEADSHOT, DocumentType.BUSINESS_LICENSE}
        ),
        identity_verified=True,
        bank_connected=True,
        has_payment_account=True,
        charges_enabled=True,
        payouts_enabled=True,
    )
    base.update(overrides)
    return OnboardingFacts(**base)


def test_no_business_means_signup():
    state = derive_onboarding_state(OnboardingFacts(user_id=uuid.uuid4()))
    assert state.phase is OnboardingPhase.PHASE1
    assert state.step is OnboardingStep.SIGNUP
    assert state.needs_onboarding is True


def test_sole_proprietorship_with_base_documents_is_in_review():
    facts = _facts(
        business_type="sole_proprietorship",
        verification_status="pending",
        application_status=None,
        documents_on_file=frozenset({DocumentType.PROFESSIONAL_LICENSE, DocumentType.PROFESSIONAL_HEADSHOT}),
    )
    state = derive_onboarding_state(facts)
    assert (state.phase, state.step) == (OnboardingPhase.PHASE1, OnboardingStep.REVIEW)


def test_llc_missing_documents_stays_on_documents_step():
    facts = _facts(
        verification_status="pending",
        application_status=None,
        documents_on_file=frozenset({DocumentType.PROFESSIONAL_LICENSE}),
    )
    state = derive_onboarding_state(facts)
    assert state.step is OnboardingStep.DOCUMENTS
    assert state.missing_documents == (DocumentType.BUSINESS_LICENSE, DocumentType.PROFESSIONAL_HEADSHOT)


def test_phase1_order_suspended_then_business_info_then_submitted_then_rejected():
    assert derive_onboarding_state(_facts(verification_status="suspended", business_name=None)).step is OnboardingStep.SUSPENDED
    assert derive_onboarding_state(_facts(verification_status="pending", business_name="  ")).step is OnboardingStep.BUSINESS_INFO
    assert (
        derive_onboarding_state(_facts(verification_status="under_review", application_status="submitted")).step
        is OnboardingStep.SUBMITTED
    )
    assert (
        derive_onboarding_state(_facts(verification_status="rejected", application_status="rejected")).step
        is OnboardingStep.REJECTED
    )


def test_approved_identity_verified_without_bank_is_bank_connection():
    state = derive_onboarding_state(_facts(bank_connected=False, has_payment_account=False))
    assert (state.phase, state.step) == (OnboardingPhase.PHASE2, OnboardingStep.BANK_CONNECTION)


def test_payment_setup_until_both_capabilities_enabled():
    assert derive_onboarding_state(_facts(has_payment_account=False)).step is OnboardingStep.PAYMENT_SETUP
    assert derive_onboarding_state(_facts(payouts_enabled=False)).step is OnboardingStep.PAYMENT_SETUP
    assert derive_onboarding_state(_facts(charges_enabled=False)).step is OnboardingStep.PAYMENT_SETUP


def test_all_facts_complete_regardless_of_stored_step():
    for resume_step in (None, 1, 3, 7):
        state = derive_onboarding_state(_facts(resume_step=resume_step))
        assert state.phase is OnboardingPhase.COMPLETE
        assert state.step is OnboardingStep.COMPLETE
        assert state.redirect_to == "/provider-dashboard"
        assert state.needs_onboarding is False


def test_derivation_is_deterministic():
    facts = _facts(bank_connected=False)
    assert derive_onboarding_state(facts) == derive_onboarding_state(facts)


def test_unapproved_business_never_reaches_identity_verification():
    statuses = [s.value for s in BusinessVerificationStatus if s is not BusinessVerificationStatus.APPROVED]
    for status, app_status, identity, bank, account in itertools.product(
        statuses,
        [None, "submitted", "approved", "rejected"],
        [True, False],
        [True, False],
        [True, False],
    ):
        state = derive_onboarding_state(
            _facts(
                verification_status=status,
                application_status=app_status,
                identity_verified=identity,
                bank_connected=bank,
                has_payment_account=account,
            )
        )
        assert state.phase is OnboardingPhase.PHASE1
        assert state.step not in {
            OnboardingStep.IDENTITY_VERIFICATION,
            OnboardingStep.BANK_CONNECTION,
            OnboardingStep.PAYMENT_SETUP,
            OnboardingStep.COMPLETE,
        }


@pytest.mark.anyio
async def test_rejected_and_superseded_documents_do_not_count(session):
    business = await make_business(session, business_type="individual")
    await add_document(session, business, "professional_license", status="rejected")
    await add_document(session, business, "professional_headshot")

    facts = await onboarding_state.load_onboarding_facts(session, user_id=business.owner_user_id)
    assert facts.documents_on_file == frozenset({DocumentType.PROFESSIONAL_HEADSHOT})
    assert derive_onboarding_state(facts).step is OnboardingStep.DOCUMENTS


@pytest.mark.anyio
async def test_status_endpoint_reports_signup_for_user_without_business(client, session):
    user = await make_user(session)

    r = await client.get(f"/api/v1/onboarding/status/{user.id}")
    assert r.status_code == 200, r.text
    assert r.json()["phase"] == "phase1"
    assert r.json()["step"] == "signup"
    assert r.json()["needs_onboarding"] is True


@pytest.mark.anyio
async def test_status_endpoint_returns_503_when_facts_cannot_be_read(client, monkeypatch):
    async def _broken(session, *, user_id):
        raise OperationalError("SELECT 1", {}, Exception("database is down"))

    monkeypatch.setattr(onboarding_state, "load_onboarding_facts", _broken)

    r = await client.get(f"/api/v1/onboarding/status/{uuid.uuid4()}")
    assert r.status_code == 503
    body = r.json()
    assert body["code"] == "STATE_LOOKUP_FAILED"
    assert body["request_id"]
