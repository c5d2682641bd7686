from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.adapters.bank_link import BankLinkProvider, LinkToken
from provider_onboarding.crud import onboarding as crud
from provider_onboarding.enums import BusinessVerificationStatus, OnboardingStep
from provider_onboarding.errors import (
    AccountNotFoundError,
    ConflictError,
    NotFoundError,
    ValidationError,
    VerificationFailedError,
)
from provider_onboarding.models.base import utcnow
from provider_onboarding.models.business import Business
from provider_onboarding.security import decrypt_secret, encrypt_secret
from provider_onboarding.services.common import (
    advance_step,
    get_business_or_404,
    get_or_create_progress,
    require_association,
)
from provider_onboarding.services.outcomes import ExternalOutcome, PersistenceOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BankUnlinkResult:
    item_id: str
    account_id: str
    removed: bool = True


@dataclass(frozen=True)
class BankLinkResult:
    account_id: str
    account_name: str | None
    account_mask: str | None
    account_type: str | None
    account_subtype: str | None
    institution_name: str | None
    account_number_mask: str
    verification_status: str = "verified"


async def _require_approved_business(session: AsyncSession, *, user_id: UUID, business_id: UUID) -> Business:
    business = await get_business_or_404(session, business_id=business_id)
    await require_association(session, user_id=user_id, business_id=business_id)
    if business.verification_status != BusinessVerificationStatus.APPROVED.value:
        raise ConflictError(
            "Bank linking requires an approved business",
            details={"verification_status": business.verification_status},
        )
    return business


async def create_link_token(
    session: AsyncSession,
    bank: BankLinkProvider,
    *,
    user_id: UUID,
    business_id: UUID,
) -> LinkToken:
    """Start a bank-link flow for an approved business; nothing is stored locally."""

    await _require_approved_business(session, user_id=user_id, business_id=business_id)
    token = await bank.create_link_token(str(user_id))
    logger.info("bank link token created business_id=%s expiration=%s", business_id, token.expiration)
    return token


async def exchange_link_token(
    session: AsyncSession,
    bank: BankLinkProvider,
    *,
    public_token: str,
    account_id: str,
    user_id: UUID,
    business_id: UUID,
    metadata: dict[str, Any] | None = None,
) -> ExternalOutcome[BankLinkResult]:
    """Exchange a bank-link public token and record the selected account.

    The returned result never carries the access token. Failures writing the
    connection (or the flags that follow it) are reported in ``persistence``;
    the remote linkage stays in place.
    """

    if not (public_token or "").strip() or not (account_id or "").strip():
        raise ValidationError("public_token and account_id are required")

    business = await _require_approved_business(session, user_id=user_id, business_id=business_id)

    exchange = await bank.exchange_token(public_token)
    accounts = await bank.get_accounts(exchange.access_token)
    account = next((a for a in accounts if a.account_id == account_id), None)
    if account is None:
        logger.warning("bank account not found business_id=%s account_id=%s", business_id, account_id)
        raise AccountNotFoundError(account_id)

    numbers = next((n for n in await bank.get_auth(exchange.access_token) if n.account_id == account_id), None)
    if numbers is None:
        logger.warning("bank account verification failed business_id=%s account_id=%s", business_id, account_id)
        raise VerificationFailedError(account_id)

    institution = (metadata or {}).get("institution") or {}
    result = BankLinkResult(
        account_id=account.account_id,
        account_name=account.name,
        account_mask=account.mask,
        account_type=account.type,
        account_subtype=account.subtype,
        institution_name=institution.get("name"),
        account_number_mask=numbers.account_number_mask,
    )

    try:
        await crud.upsert_bank_connection(
            session,
            values={
                "business_id": business_id,
                "user_id": user_id,
                "item_id": exchange.item_id,
                "access_token_encrypted": encrypt_secret(exchange.access_token),
                "account_id": account.account_id,
                "institution_id": institution.get("institution_id") or institution.get("id"),
                "institution_name": institution.get("name"),
                "account_name": account.name,
                "account_mask": account.mask,
                "account_type": account.type,
                "account_subtype": account.subtype,
                "routing_numbers": list(numbers.routing_numbers),
                "account_number_mask": numbers.account_number_mask,
                "verification_status": "verified",
            },
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("bank connection upsert failed business_id=%s item_id=%s error=%s", business_id, exchange.item_id, e)
        return ExternalOutcome(result=result, persistence=PersistenceOutcome.failed("bank connection not recorded"))

    try:
        now = utcnow()
        business.bank_connected = True
        business.bank_connected_at = now
        progress = await get_or_create_progress(session, business_id=business_id)
        progress.bank_connected = True
        advance_step(business, progress, OnboardingStep.PAYMENT_SETUP)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("bank connected flags not updated business_id=%s error=%s", business_id, e)
        return ExternalOutcome(result=result, persistence=PersistenceOutcome.failed("business bank flags not updated"))

    logger.info("bank account linked business_id=%s account_mask=%s", business_id, account.mask)
    return ExternalOutcome(result=result, persistence=PersistenceOutcome.succeeded())


async def unlink_bank_account(
    session: AsyncSession,
    bank: BankLinkProvider,
    *,
    user_id: UUID,
    business_id: UUID,
) -> ExternalOutcome[BankUnlinkResult]:
    """Revoke the linked item at the aggregator, then deactivate the local connection.

    The remote removal is not undone when the local writes fail; the failure
    is reported in ``persistence`` and a later unlink retries the removal.
    """

    business = await get_business_or_404(session, business_id=business_id)
    await require_association(session, user_id=user_id, business_id=business_id)

    connection = await crud.get_bank_connection(session, business_id=business_id)
    if connection is None or not connection.is_active:
        raise NotFoundError("No active bank connection", details={"business_id": str(business_id)})

    await bank.remove_item(decrypt_secret(connection.access_token_encrypted))
    result = BankUnlinkResult(item_id=connection.item_id, account_id=connection.account_id)

    try:
        now = utcnow()
        connection.is_active = False
        connection.disconnected_at = now
        business.bank_connected = False
        business.bank_connected_at = None
        progress = await get_or_create_progress(session, business_id=business_id)
        progress.bank_connected = False
        crud.add_audit(
            session,
            entity_type="bank_connection",
            entity_id=connection.id,
            action="disconnected",
            user_id=user_id,
            old_value={"is_active": True},
            new_value={"is_active": False},
            change_summary=f"Bank account ending {connection.account_mask or '????'} disconnected",
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("bank connection not deactivated business_id=%s item_id=%s error=%s", business_id, result.item_id, e)
        return ExternalOutcome(result=result, persistence=PersistenceOutcome.failed("bank connection not deactivated"))

    logger.info("bank account unlinked business_id=%s item_id=%s", business_id, result.item_id)
    return ExternalOutcome(result=result, persistence=PersistenceOutcome.succeeded())
