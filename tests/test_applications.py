import pytest
from sqlalchemy import func, select

from provider_onboarding.models.audit_log import AuditLog
from provider_onboarding.models.business import Business
from provider_onboarding.models.setup_progress import SetupProgress
from tests.factories import (
    add_required_documents,
    make_admin,
    make_business,
    make_submitted_business,
    make_user,
)

CONSENTS = {"information_accuracy": True, "terms_of_service": True, "background_check": True}


@pytest.mark.anyio
async def test_create_business_201_creates_owner_link_and_progress(client, session):
    user = await make_user(session)

    r = await client.post(
        "/api/v1/businesses",
        json={"user_id": str(user.id), "business_type": "llc", "business_name": "Sparkle Cleaning"},
    )
    assert r.status_code == 201, r.text
    data = r.json()
    assert data["verification_status"] == "pending"
    assert data["contact_email"] == user.email

    progress = (await session.execute(select(SetupProgress))).scalar_one()
    assert progress.business_info_completed is True

    r = await client.get(f"/api/v1/onboarding/status/{user.id}")
    assert r.json()["step"] == "documents"


@pytest.mark.anyio
async def test_create_business_rejects_second_business_and_unknown_type(client, session):
    user = await make_user(session)
    await make_business(session, owner=user)

    r = await client.post("/api/v1/businesses", json={"user_id": str(user.id), "business_type": "llc"})
    assert r.status_code == 409
    assert r.json()["code"] == "INVALID_TRANSITION"

    other = await make_user(session)
    r = await client.post("/api/v1/businesses", json={"user_id": str(other.id), "business_type": "cooperative"})
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.anyio
async def test_update_business_info_only_while_editable(client, session):
    business = await make_business(session, business_name=None)

    r = await client.patch(
        f"/api/v1/businesses/{business.id}",
        json={"user_id": str(business.owner_user_id), "business_name": "Fresh Start"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["business_name"] == "Fresh Start"

    r = await client.patch(
        f"/api/v1/businesses/{business.id}",
        json={"user_id": str(business.owner_user_id), "business_name": "Fresh Start", "website_url": "https://fresh.test"},
    )
    assert r.status_code == 200, r.text
    audits = (
        await session.execute(
            select(AuditLog).where(AuditLog.action == "info_updated").order_by(AuditLog.created_at)
        )
    ).scalars().all()
    assert [a.old_value for a in audits] == [{"business_name": None}, {"website_url": None}]
    assert audits[-1].new_value == {"website_url": "https://fresh.test"}

    submitted, _ = await make_submitted_business(session)
    r = await client.patch(
        f"/api/v1/businesses/{submitted.id}",
        json={"user_id": str(submitted.owner_user_id), "business_name": "Renamed"},
    )
    assert r.status_code == 409


@pytest.mark.anyio
async def test_submit_application_requires_consents_and_documents(client, session, providers):
    business = await make_business(session)
    url = f"/api/v1/businesses/{business.id}/application"

    r = await client.post(
        url,
        json={"user_id": str(business.owner_user_id), "consents": {**CONSENTS, "background_check": False}},
    )
    assert r.status_code == 422
    assert r.json()["details"]["missing_consents"] == ["background_check"]

    r = await client.post(url, json={"user_id": str(business.owner_user_id), "consents": CONSENTS})
    assert r.status_code == 422
    assert r.json()["details"]["missing_documents"] == [
        "business_license",
        "professional_headshot",
        "professional_license",
    ]
    assert providers.notifier.sent == []


@pytest.mark.anyio
async def test_submit_application_moves_business_under_review(client, session, providers):
    business = await make_business(session)
    await add_required_documents(session, business)

    r = await client.post(
        f"/api/v1/businesses/{business.id}/application",
        json={"user_id": str(business.owner_user_id), "consents": CONSENTS, "metadata": {"source": "web"}},
    )
    assert r.status_code == 201, r.text
    data = r.json()
    assert data["application_status"] == "submitted"
    assert data["review_cycle"] == 1

    await session.refresh(business)
    assert business.verification_status == "under_review"
    assert business.application_submitted_at is not None
    assert providers.notifier.templates() == ["application_submitted"]

    r = await client.get(f"/api/v1/onboarding/status/{business.owner_user_id}")
    assert r.json()["step"] == "submitted"

    r = await client.post(
        f"/api/v1/businesses/{business.id}/application",
        json={"user_id": str(business.owner_user_id), "consents": CONSENTS},
    )
    assert r.status_code == 409


@pytest.mark.anyio
async def test_only_owner_can_submit(client, session):
    business = await make_business(session)
    await add_required_documents(session, business)
    stranger = await make_user(session)

    r = await client.post(
        f"/api/v1/businesses/{business.id}/application",
        json={"user_id": str(stranger.id), "consents": CONSENTS},
    )
    assert r.status_code == 403


@pytest.mark.anyio
async def test_reject_then_resubmit_increments_review_cycle(client, session, providers):
    admin = await make_admin(session)
    business, application = await make_submitted_business(session)

    r = await client.post(
        f"/api/v1/admin/businesses/{business.id}/reject",
        json={"admin_user_id": str(admin.id), "reason": "License is expired"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["application_status"] == "rejected"
    assert r.json()["rejection_reason"] == "License is expired"

    r = await client.get(f"/api/v1/onboarding/status/{business.owner_user_id}")
    assert r.json()["step"] == "rejected"

    r = await client.post(
        f"/api/v1/admin/businesses/{business.id}/reject",
        json={"admin_user_id": str(admin.id), "reason": "again"},
    )
    assert r.status_code == 409

    r = await client.post(
        f"/api/v1/businesses/{business.id}/application/resubmit",
        json={"user_id": str(business.owner_user_id)},
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["application_status"] == "submitted"
    assert data["review_cycle"] == 2
    assert data["rejection_reason"] is None

    await session.refresh(business)
    assert business.verification_status == "under_review"
    assert providers.notifier.templates() == ["application_rejected", "application_resubmitted"]


@pytest.mark.anyio
async def test_resubmit_only_from_rejected(client, session):
    business, _ = await make_submitted_business(session)

    r = await client.post(
        f"/api/v1/businesses/{business.id}/application/resubmit",
        json={"user_id": str(business.owner_user_id)},
    )
    assert r.status_code == 409


@pytest.mark.anyio
async def test_suspend_business_requires_admin_and_writes_audit(client, session):
    admin = await make_admin(session)
    provider_user = await make_user(session)
    business, _ = await make_submitted_business(session)

    r = await client.post(
        f"/api/v1/admin/businesses/{business.id}/suspend",
        json={"admin_user_id": str(provider_user.id), "reason": "fraud"},
    )
    assert r.status_code == 403

    r = await client.post(
        f"/api/v1/admin/businesses/{business.id}/suspend",
        json={"admin_user_id": str(admin.id), "reason": "fraud"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["verification_status"] == "suspended"

    r = await client.get(f"/api/v1/onboarding/status/{business.owner_user_id}")
    assert r.json()["step"] == "suspended"

    count = await session.scalar(
        select(func.count()).select_from(AuditLog).where(AuditLog.entity_id == business.id, AuditLog.action == "suspended")
    )
    assert count == 1

    r = await client.post(
        f"/api/v1/admin/businesses/{business.id}/suspend",
        json={"admin_user_id": str(admin.id)},
    )
    assert r.status_code == 409


@pytest.mark.anyio
async def test_inactive_admin_is_not_authorized(client, session):
    inactive = await make_admin(session)
    inactive.is_active = False
    await session.commit()
    business, _ = await make_submitted_business(session)

    r = await client.post(
        f"/api/v1/admin/businesses/{business.id}/reject",
        json={"admin_user_id": str(inactive.id), "reason": "nope"},
    )
    assert r.status_code == 403
    refreshed = await session.get(Business, business.id, populate_existing=True)
    assert refreshed.verification_status == "under_review"
