"""Onboarding vocabulary shared by models, schemas and services."""

from __future__ import annotations

import enum


class BusinessType(str, enum.Enum):
    INDIVIDUAL = "individual"
    SOLE_PROPRIETORSHIP = "sole_proprietorship"
    LLC = "llc"
    CORPORATION = "corporation"
    PARTNERSHIP = "partnership"

    @property
    def is_individual(self) -> bool:
        return self in (BusinessType.INDIVIDUAL, BusinessType.SOLE_PROPRIETORSHIP)


class BusinessVerificationStatus(str, enum.Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class ApplicationStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentType(str, enum.Enum):
    DRIVERS_LICENSE = "drivers_license"
    PROOF_OF_ADDRESS = "proof_of_address"
    LIABILITY_INSURANCE = "liability_insurance"
    PROFESSIONAL_LICENSE = "professional_license"
    PROFESSIONAL_CERTIFICATE = "professional_certificate"
    BUSINESS_LICENSE = "business_license"
    PROFESSIONAL_HEADSHOT = "professional_headshot"


class DocumentStatus(str, enum.Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    VERIFIED = "verified"
    REJECTED = "rejected"

    @classmethod
    def valid_transitions(cls) -> dict["DocumentStatus", frozenset["DocumentStatus"]]:
        return {
            cls.PENDING: frozenset({cls.UNDER_REVIEW, cls.VERIFIED, cls.REJECTED}),
            cls.UNDER_REVIEW: frozenset({cls.VERIFIED, cls.REJECTED}),
            cls.REJECTED: frozenset({cls.UNDER_REVIEW}),
            cls.VERIFIED: frozenset(),
        }


class DocumentReviewAction(str, enum.Enum):
    VERIFY = "verify"
    REJECT = "reject"
    MARK_UNDER_REVIEW = "mark_under_review"

    @property
    def target_status(self) -> DocumentStatus:
        return {
            DocumentReviewAction.VERIFY: DocumentStatus.VERIFIED,
            DocumentReviewAction.REJECT: DocumentStatus.REJECTED,
            DocumentReviewAction.MARK_UNDER_REVIEW: DocumentStatus.UNDER_REVIEW,
        }[self]


class IdentityStatus(str, enum.Enum):
    REQUIRES_INPUT = "requires_input"
    PROCESSING = "processing"
    VERIFIED = "verified"
    CANCELED = "canceled"

    @classmethod
    def failed_statuses(cls) -> frozenset["IdentityStatus"]:
        return frozenset({cls.REQUIRES_INPUT, cls.CANCELED})


class OnboardingPhase(str, enum.Enum):
    PHASE1 = "phase1"
    PHASE2 = "phase2"
    COMPLETE = "complete"


class OnboardingStep(str, enum.Enum):
    SIGNUP = "signup"
    BUSINESS_INFO = "business_info"
    DOCUMENTS = "documents"
    REVIEW = "review"
    SUBMITTED = "submitted"
    REJECTED = "rejected"
    SUSPENDED = "suspended"
    IDENTITY_VERIFICATION = "identity_verification"
    BANK_CONNECTION = "bank_connection"
    PAYMENT_SETUP = "payment_setup"
    COMPLETE = "complete"


# Ordinal positions stored in Setup Progress.current_step (resume hint only).
STEP_ORDINALS: dict[OnboardingStep, int] = {
    OnboardingStep.BUSINESS_INFO: 1,
    OnboardingStep.DOCUMENTS: 2,
    OnboardingStep.SUBMITTED: 3,
    OnboardingStep.IDENTITY_VERIFICATION: 4,
    OnboardingStep.BANK_CONNECTION: 5,
    OnboardingStep.PAYMENT_SETUP: 6,
    OnboardingStep.COMPLETE: 7,
}
TOTAL_STEPS = max(STEP_ORDINALS.values())


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    PROVIDER = "provider"
    CUSTOMER = "customer"


class ProviderRole(str, enum.Enum):
    OWNER = "owner"
    STAFF = "staff"


BASE_REQUIRED_DOCUMENTS: frozenset[DocumentType] = frozenset(
    {DocumentType.PROFESSIONAL_LICENSE, DocumentType.PROFESSIONAL_HEADSHOT}
)


def required_document_types(business_type: BusinessType | str) -> frozenset[DocumentType]:
    """Documents that must be on file before an application can be submitted."""

    btype = BusinessType(business_type)
    if btype.is_individual:
        return BASE_REQUIRED_DOCUMENTS
    return BASE_REQUIRED_DOCUMENTS | {DocumentType.BUSINESS_LICENSE}
