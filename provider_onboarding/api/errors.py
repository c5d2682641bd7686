from __future__ import annotations

from typing import Any

from provider_onboarding.errors import (
    ApprovalTokenError,
    AuthorizationError,
    ConflictError,
    ErrorKind,
    ExternalProviderError,
    NotFoundError,
    OnboardingError,
    PersistenceError,
    StateLookupError,
    ValidationError,
)


_STATUS_BY_TYPE: tuple[tuple[type[OnboardingError], int], ...] = (
    (ValidationError, 422),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StateLookupError, 503),
    (PersistenceError, 500),
)


def status_for(exc: OnboardingError) -> int:
    if isinstance(exc, ApprovalTokenError):
        return 403 if exc.kind is ErrorKind.REVOKED else 401
    if isinstance(exc, ExternalProviderError):
        return 400 if exc.rejected else 502
    for exc_type, status_code in _STATUS_BY_TYPE:
        if isinstance(exc, exc_type):
            return status_code
    return 500


def error_body(exc: OnboardingError) -> dict[str, Any]:
    """Public envelope fields for a domain error.

    Transport failures and local write failures only expose a generic message.
    """

    if isinstance(exc, ExternalProviderError):
        body: dict[str, Any] = {"detail": exc.public_message, "code": exc.code, "provider": exc.provider}
        if exc.rejected:
            if exc.provider_code:
                body["provider_code"] = exc.provider_code
            if exc.details:
                body["details"] = exc.details
        return body
    if isinstance(exc, PersistenceError):
        return {"detail": "Failed to save changes", "code": exc.code}
    body = {"detail": exc.message, "code": exc.code}
    if exc.details:
        body["details"] = exc.details
    return body
