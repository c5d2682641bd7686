import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine

from provider_onboarding.models import Base
from provider_onboarding.models.business import Business
from provider_onboarding.models.setup_progress import SetupProgress
from provider_onboarding.models.user import User
from provider_onboarding.scripts.seed_dev_data import DEMO_BUSINESS_NAME, seed_dev_data


@pytest.mark.anyio
async def test_seed_dev_data_is_idempotent(tmp_path):
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'seed.db'}"
    engine = create_async_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        r1 = await seed_dev_data(database_url)
        r2 = await seed_dev_data(database_url)
        assert r1 == r2

        async with engine.connect() as conn:
            users = await conn.scalar(
                select(func.count()).select_from(User).where(User.email.in_(["admin@demo.local", "provider@demo.local"]))
            )
            assert users == 2

            business = (await conn.execute(select(Business.id, Business.business_name))).one()
            assert business.id == r1.business_id
            assert business.business_name == DEMO_BUSINESS_NAME

            assert await conn.scalar(select(func.count()).select_from(SetupProgress)) == 1
    finally:
        await engine.dispose()
