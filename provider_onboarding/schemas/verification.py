from __future__ import annotations

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, StrictBool


class PersistenceRead(BaseModel):
    ok: bool
    reason: str | None = None


IdentityDocumentType = Literal["driving_license", "passport", "id_card"]


class IdentitySessionOptionsIn(BaseModel):
    allowed_types: list[IdentityDocumentType] | None = Field(default=None, min_length=1)
    require_id_number: StrictBool = True
    require_live_capture: StrictBool = True
    require_matching_selfie: StrictBool = True

    class Config:
        extra = "forbid"


class IdentitySessionCreate(BaseModel):
    user_id: UUID
    business_id: UUID
    options: IdentitySessionOptionsIn | None = None


class IdentitySessionResponse(BaseModel):
    session_id: str
    client_secret: str | None = None
    status: str
    reused: bool = False
    persistence: PersistenceRead


class IdentityStatusResponse(BaseModel):
    session_id: str
    status: str
    verified: bool
    last_error: dict[str, Any] | None = None
    persistence: PersistenceRead


class BankLinkTokenRequest(BaseModel):
    user_id: UUID
    business_id: UUID


class BankLinkTokenResponse(BaseModel):
    link_token: str
    expiration: str | None = None


class BankExchangeRequest(BaseModel):
    public_token: str = Field(..., min_length=1)
    account_id: str = Field(..., min_length=1)
    user_id: UUID
    business_id: UUID
    metadata: dict[str, Any] | None = None


class BankExchangeResponse(BaseModel):
    account_id: str
    account_name: str | None = None
    account_mask: str | None = None
    account_type: str | None = None
    account_subtype: str | None = None
    institution_name: str | None = None
    account_number_mask: str
    verification_status: str
    persistence: PersistenceRead


class BankUnlinkRequest(BaseModel):
    user_id: UUID
    business_id: UUID


class BankUnlinkResponse(BaseModel):
    item_id: str
    account_id: str
    removed: bool
    persistence: PersistenceRead


class ConnectAccountRequest(BaseModel):
    user_id: UUID
    business_id: UUID
    business_name: str | None = None
    business_type: str | None = None
    email: str | None = None


class ConnectAccountResponse(BaseModel):
    account_id: str
    onboarding_url: str
    existing: bool
    persistence: PersistenceRead


class AccountRefreshRequest(BaseModel):
    user_id: UUID


class AccountStatusResponse(BaseModel):
    account_id: str
    charges_enabled: bool
    payouts_enabled: bool
    details_submitted: bool
    requirements: dict[str, Any] | None = None
    persistence: PersistenceRead
