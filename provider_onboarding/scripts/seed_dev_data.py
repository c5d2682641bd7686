from __future__ import annotations

import asyncio
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from provider_onboarding.config import settings
from provider_onboarding.enums import BusinessType, ProviderRole, UserRole
from provider_onboarding.models.business import Business
from provider_onboarding.models.provider import Provider
from provider_onboarding.models.setup_progress import SetupProgress
from provider_onboarding.models.user import User


@dataclass(frozen=True)
class SeedUserSpec:
    email: str
    role: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class SeedResult:
    admin_id: UUID
    provider_user_id: UUID
    business_id: UUID


DEMO_ADMIN = SeedUserSpec(email="admin@demo.local", role=UserRole.ADMIN.value, first_name="Demo", last_name="Admin")
DEMO_PROVIDER = SeedUserSpec(
    email="provider@demo.local",
    role=UserRole.PROVIDER.value,
    first_name="Demo",
    last_name="Provider",
)
DEMO_BUSINESS_NAME = "Demo Cleaning Co"


async def _get_or_create_user(session: AsyncSession, *, spec: SeedUserSpec) -> User:
    res = await session.execute(select(User).where(User.email == spec.email))
    user = res.scalar_one_or_none()

    if user is None:
        user = User(
            email=spec.email,
            role=spec.role,
            first_name=spec.first_name,
            last_name=spec.last_name,
            is_active=True,
        )
        session.add(user)
        await session.flush()
    else:
        # Keep the demo users active with the expected roles.
        user.is_active = True
        user.role = spec.role

    return user


async def _get_or_create_business(session: AsyncSession, *, owner: User) -> Business:
    res = await session.execute(select(Business).where(Business.owner_user_id == owner.id))
    business = res.scalar_one_or_none()
    if business is not None:
        return business

    business = Business(
        owner_user_id=owner.id,
        business_name=DEMO_BUSINESS_NAME,
        business_type=BusinessType.LLC.value,
        contact_email=owner.email,
        verification_status="pending",
    )
    session.add(business)
    await session.flush()

    session.add(
        Provider(
            user_id=owner.id,
            business_id=business.id,
            provider_role=ProviderRole.OWNER.value,
            first_name=owner.first_name,
            last_name=owner.last_name,
        )
    )
    session.add(SetupProgress(business_id=business.id, current_step=2, business_info_completed=True))
    await session.flush()
    return business


async def seed_dev_data(database_url: str | None = None) -> SeedResult:
    engine = create_async_engine(database_url or settings.database_url, pool_pre_ping=True)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        async with session_maker() as session:
            async with session.begin():
                admin = await _get_or_create_user(session, spec=DEMO_ADMIN)
                provider = await _get_or_create_user(session, spec=DEMO_PROVIDER)
                business = await _get_or_create_business(session, owner=provider)
                result = SeedResult(admin_id=admin.id, provider_user_id=provider.id, business_id=business.id)
    finally:
        await engine.dispose()

    return result


def main() -> None:
    result = asyncio.run(seed_dev_data())
    print(f"admin={result.admin_id} provider={result.provider_user_id} business={result.business_id}")


if __name__ == "__main__":
    main()
