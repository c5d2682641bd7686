"""Typed exceptions for the onboarding service.

Every exception carries a machine-readable ``code`` and optional structured
``details`` so the API layer can render a message without parsing strings.

    OnboardingError
    +-- ValidationError          malformed or missing input
    +-- AuthorizationError       caller lacks admin role or business association
    +-- NotFoundError            business / application / session / document absent
    +-- ConflictError            invalid state transition
    +-- StateLookupError         facts for status derivation could not be read
    +-- PersistenceError         local write failed (after a compensating action, if any)
    +-- ApprovalTokenError       expired / invalid / revoked approval token
    +-- ExternalProviderError    remote call failed
        +-- StorageProviderError
        +-- IdentityProviderError
        +-- PaymentProviderError
        +-- BankLinkProviderError
            +-- AccountNotFoundError
            +-- VerificationFailedError
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class OnboardingError(Exception):
    code: str = "ONBOARDING_ERROR"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(OnboardingError):
    code = "VALIDATION_ERROR"


class AuthorizationError(OnboardingError):
    code = "NOT_AUTHORIZED"


class NotFoundError(OnboardingError):
    code = "NOT_FOUND"


class ConflictError(OnboardingError):
    code = "INVALID_TRANSITION"


class StateLookupError(OnboardingError):
    code = "STATE_LOOKUP_FAILED"


class PersistenceError(OnboardingError):
    code = "PERSISTENCE_ERROR"


class ErrorKind(str, Enum):
    EXPIRED = "expired"
    INVALID = "invalid"
    REVOKED = "revoked"


class ApprovalTokenError(OnboardingError):
    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message, details={"kind": kind.value})
        self.kind = kind

    @property
    def code(self) -> str:  # type: ignore[override]
        return f"TOKEN_{self.kind.name}"


class ExternalProviderError(OnboardingError):
    """A remote provider call failed.

    ``rejected`` distinguishes the provider refusing the request (a 4xx with a
    reason that is safe to show) from transport failures (timeouts, connection
    errors, 5xx) where only a generic message is exposed.
    """

    code = "EXTERNAL_PROVIDER_ERROR"
    provider = "external"

    def __init__(
        self,
        message: str,
        *,
        rejected: bool = False,
        provider_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.rejected = rejected
        self.provider_code = provider_code
        self.status_code = status_code

    @property
    def public_message(self) -> str:
        if self.rejected:
            return self.message
        return f"{self.provider} provider unavailable"


class StorageProviderError(ExternalProviderError):
    provider = "storage"


class IdentityProviderError(ExternalProviderError):
    provider = "identity"


class PaymentProviderError(ExternalProviderError):
    provider = "payment"


class BankLinkProviderError(ExternalProviderError):
    provider = "bank_link"


class AccountNotFoundError(BankLinkProviderError):
    code = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str) -> None:
        super().__init__(
            "Selected account not found",
            rejected=True,
            details={"account_id": account_id},
        )


class VerificationFailedError(BankLinkProviderError):
    code = "VERIFICATION_FAILED"

    def __init__(self, account_id: str) -> None:
        super().__init__(
            "Account verification failed",
            rejected=True,
            details={"account_id": account_id},
        )
