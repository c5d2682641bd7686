"""Queries over the onboarding tables.

Like the rest of the CRUD layer these helpers never commit; services own the
transaction boundaries.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from provider_onboarding.crud.base import RecordCRUD
from provider_onboarding.enums import UserRole
from provider_onboarding.models.application import ProviderApplication
from provider_onboarding.models.audit_log import AuditLog
from provider_onboarding.models.bank_connection import BankConnection
from provider_onboarding.models.base import utcnow
from provider_onboarding.models.business import Business
from provider_onboarding.models.document import BusinessDocument
from provider_onboarding.models.identity_verification import IdentityVerificationSession
from provider_onboarding.models.payment_account import PaymentAccount
from provider_onboarding.models.provider import Provider
from provider_onboarding.models.setup_progress import SetupProgress
from provider_onboarding.models.user import User


users = RecordCRUD[User](User)
businesses = RecordCRUD[Business](Business)
documents = RecordCRUD[BusinessDocument](BusinessDocument)


async def get_active_admin(session: AsyncSession, *, user_id: UUID) -> User | None:
    stmt = select(User).where(
        User.id == user_id,
        User.role == UserRole.ADMIN.value,
        User.is_active.is_(True),
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_business_for_owner(session: AsyncSession, *, user_id: UUID) -> Business | None:
    res = await session.execute(select(Business).where(Business.owner_user_id == user_id))
    return res.scalar_one_or_none()


async def get_provider_association(
    session: AsyncSession,
    *,
    user_id: UUID,
    business_id: UUID,
) -> Provider | None:
    stmt = select(Provider).where(
        Provider.user_id == user_id,
        Provider.business_id == business_id,
        Provider.is_active.is_(True),
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_application_for_business(session: AsyncSession, *, business_id: UUID) -> ProviderApplication | None:
    res = await session.execute(select(ProviderApplication).where(ProviderApplication.business_id == business_id))
    return res.scalar_one_or_none()


async def get_setup_progress(session: AsyncSession, *, business_id: UUID) -> SetupProgress | None:
    res = await session.execute(select(SetupProgress).where(SetupProgress.business_id == business_id))
    return res.scalar_one_or_none()


async def list_business_documents(session: AsyncSession, *, business_id: UUID) -> list[BusinessDocument]:
    stmt = (
        select(BusinessDocument)
        .where(BusinessDocument.business_id == business_id)
        .order_by(BusinessDocument.created_at.desc(), BusinessDocument.id.desc())
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def get_latest_identity_session(
    session: AsyncSession,
    *,
    user_id: UUID,
    business_id: UUID,
) -> IdentityVerificationSession | None:
    stmt = (
        select(IdentityVerificationSession)
        .where(
            IdentityVerificationSession.user_id == user_id,
            IdentityVerificationSession.business_id == business_id,
        )
        .order_by(IdentityVerificationSession.created_at.desc(), IdentityVerificationSession.id.desc())
        .limit(1)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_identity_session(session: AsyncSession, *, session_id: str) -> IdentityVerificationSession | None:
    stmt = select(IdentityVerificationSession).where(IdentityVerificationSession.session_id == session_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_payment_account(session: AsyncSession, *, business_id: UUID) -> PaymentAccount | None:
    res = await session.execute(select(PaymentAccount).where(PaymentAccount.business_id == business_id))
    return res.scalar_one_or_none()


async def claim_payment_account_reference(session: AsyncSession, *, business_id: UUID, account_id: str) -> bool:
    """Set the business's payment account only if none is recorded; False when another write got there first."""

    stmt = (
        update(Business)
        .where(Business.id == business_id, Business.payment_account_id.is_(None))
        .values(payment_account_id=account_id)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount == 1


async def get_bank_connection(session: AsyncSession, *, business_id: UUID) -> BankConnection | None:
    stmt = (
        select(BankConnection)
        .where(BankConnection.business_id == business_id)
        .execution_options(populate_existing=True)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"upsert not supported on dialect {dialect}")


async def upsert_bank_connection(session: AsyncSession, *, values: dict[str, Any]) -> BankConnection:
    """Insert or replace the business's bank connection (conflict target: business_id)."""

    now = utcnow()
    insert = _insert_for(session)
    row = {**values, "connected_at": now, "updated_at": now, "is_active": True, "disconnected_at": None}
    stmt = insert(BankConnection).values(**row)
    stmt = stmt.on_conflict_do_update(
        index_elements=[BankConnection.business_id],
        set_={k: stmt.excluded[k] for k in row if k != "business_id"},
    )
    await session.execute(stmt)

    connection = await get_bank_connection(session, business_id=values["business_id"])
    assert connection is not None
    return connection


def add_audit(
    session: AsyncSession,
    *,
    entity_type: str,
    entity_id: UUID,
    action: str,
    user_id: UUID | None = None,
    old_value: dict | None = None,
    new_value: dict | None = None,
    change_summary: str | None = None,
) -> AuditLog:
    audit = AuditLog(
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        old_value=old_value,
        new_value=new_value,
        change_summary=change_summary,
    )
    session.add(audit)
    return audit
