from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from provider_onboarding.config import settings
from provider_onboarding.errors import ApprovalTokenError, ErrorKind

ALGORITHM = "HS256"
PHASE2 = "phase2"


@dataclass(frozen=True)
class ApprovalClaims:
    business_id: UUID
    user_id: UUID
    application_id: UUID
    issued_at: datetime
    expires_at: datetime
    token_id: str
    phase: str = PHASE2


def _epoch(value: datetime) -> int:
    return int(value.timestamp())


def encode_approval_token(
    *,
    business_id: UUID,
    user_id: UUID,
    application_id: UUID,
    now: datetime | None = None,
) -> tuple[str, ApprovalClaims]:
    issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    expires_at = issued_at + timedelta(days=settings.approval_token_ttl_days)
    claims = ApprovalClaims(
        business_id=business_id,
        user_id=user_id,
        application_id=application_id,
        issued_at=issued_at,
        expires_at=expires_at,
        token_id=uuid.uuid4().hex,
    )
    payload: dict[str, Any] = {
        "business_id": str(business_id),
        "user_id": str(user_id),
        "application_id": str(application_id),
        "issued_at": _epoch(issued_at),
        "expires_at": _epoch(expires_at),
        "phase": PHASE2,
        "jti": claims.token_id,
        "iss": settings.approval_token_issuer,
        "aud": settings.approval_token_audience,
        "iat": _epoch(issued_at),
        "exp": _epoch(expires_at),
    }
    return jwt.encode(payload, settings.token_secret, algorithm=ALGORITHM), claims


def decode_approval_token(token: str, *, now: datetime | None = None) -> ApprovalClaims:
    """Check signature, audience, issuer, phase and expiry.

    Expiry is evaluated against ``now`` (defaults to the current time) so callers
    can verify a token as of a given instant.
    """

    try:
        payload = jwt.decode(
            token,
            settings.token_secret,
            algorithms=[ALGORITHM],
            audience=settings.approval_token_audience,
            issuer=settings.approval_token_issuer,
            options={"verify_exp": False},
        )
    except JWTError as e:
        raise ApprovalTokenError(ErrorKind.INVALID, "Invalid approval token") from e

    if payload.get("phase") != PHASE2:
        raise ApprovalTokenError(ErrorKind.INVALID, "Token is not a phase 2 approval token")

    try:
        claims = ApprovalClaims(
            business_id=UUID(payload["business_id"]),
            user_id=UUID(payload["user_id"]),
            application_id=UUID(payload["application_id"]),
            issued_at=datetime.fromtimestamp(int(payload["issued_at"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            token_id=str(payload["jti"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ApprovalTokenError(ErrorKind.INVALID, "Approval token is missing required claims") from e

    current = now or datetime.now(timezone.utc)
    if current >= claims.expires_at:
        raise ApprovalTokenError(ErrorKind.EXPIRED, "Approval token has expired")
    return claims
