import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from provider_onboarding.crud import onboarding as crud
from provider_onboarding.models.audit_log import AuditLog
from provider_onboarding.models.bank_connection import BankConnection
from provider_onboarding.models.business import Business
from provider_onboarding.security import decrypt_secret
from provider_onboarding.services import bank_link_service
from tests.factories import make_approved_business, make_business, make_user


def _payload(business, account_id="acc_checking", public_token="public-sandbox-1"):
    return {
        "public_token": public_token,
        "account_id": account_id,
        "user_id": str(business.owner_user_id),
        "business_id": str(business.id),
        "metadata": {"institution": {"institution_id": "ins_1", "name": "First Platypus Bank"}},
    }


async def _connection_count(session) -> int:
    return await session.scalar(select(func.count()).select_from(BankConnection))


@pytest.mark.anyio
async def test_exchange_records_connection_with_encrypted_token(client, session):
    business = await make_approved_business(session)

    r = await client.post("/api/v1/bank/exchange", json=_payload(business))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["account_mask"] == "0000"
    assert data["account_number_mask"] == "0000"
    assert data["institution_name"] == "First Platypus Bank"
    assert data["persistence"]["ok"] is True
    assert "access-public-sandbox-1" not in r.text

    conn = (await session.execute(select(BankConnection))).scalar_one()
    assert conn.access_token_encrypted != "access-public-sandbox-1"
    assert decrypt_secret(conn.access_token_encrypted) == "access-public-sandbox-1"
    assert conn.routing_numbers == ["011401533"]

    b = await session.get(Business, business.id, populate_existing=True)
    assert b.bank_connected is True


@pytest.mark.anyio
async def test_unknown_account_fails_without_row(client, session):
    business = await make_approved_business(session)

    r = await client.post("/api/v1/bank/exchange", json=_payload(business, account_id="acc_missing"))
    assert r.status_code == 400
    assert r.json()["code"] == "ACCOUNT_NOT_FOUND"
    assert await _connection_count(session) == 0


@pytest.mark.anyio
async def test_account_without_auth_numbers_fails_verification(client, session):
    business = await make_approved_business(session)

    r = await client.post("/api/v1/bank/exchange", json=_payload(business, account_id="acc_savings"))
    assert r.status_code == 400
    assert r.json()["code"] == "VERIFICATION_FAILED"
    assert await _connection_count(session) == 0


@pytest.mark.anyio
async def test_bank_link_requires_approved_business(client, session, providers):
    business = await make_business(session)

    r = await client.post("/api/v1/bank/exchange", json=_payload(business))
    assert r.status_code == 409
    assert providers.bank.exchanged == []


@pytest.mark.anyio
async def test_relinking_replaces_the_single_connection(client, session):
    business = await make_approved_business(session)

    assert (await client.post("/api/v1/bank/exchange", json=_payload(business))).status_code == 200
    r = await client.post("/api/v1/bank/exchange", json=_payload(business, public_token="public-sandbox-2"))
    assert r.status_code == 200, r.text

    assert await _connection_count(session) == 1
    conn = (await session.execute(select(BankConnection))).scalar_one()
    assert decrypt_secret(conn.access_token_encrypted) == "access-public-sandbox-2"


@pytest.mark.anyio
async def test_upsert_failure_is_reported_not_raised(session, providers, monkeypatch):
    business = await make_approved_business(session)
    owner_id, business_id = business.owner_user_id, business.id

    async def _broken_upsert(*args, **kwargs):
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(crud, "upsert_bank_connection", _broken_upsert)

    outcome = await bank_link_service.exchange_link_token(
        session,
        providers.bank,
        public_token="public-sandbox-1",
        account_id="acc_checking",
        user_id=owner_id,
        business_id=business_id,
    )
    assert outcome.result.account_id == "acc_checking"
    assert outcome.persistence.ok is False
    assert outcome.persistence.reason == "bank connection not recorded"

    b = await session.get(Business, business_id, populate_existing=True)
    assert b.bank_connected is False


@pytest.mark.anyio
async def test_missing_fields_are_validation_errors(client, session):
    business = await make_approved_business(session)

    r = await client.post("/api/v1/bank/exchange", json={**_payload(business), "public_token": ""})
    assert r.status_code == 422


@pytest.mark.anyio
async def test_flag_write_failure_keeps_the_recorded_connection(session, providers, monkeypatch):
    business = await make_approved_business(session)
    owner_id, business_id = business.owner_user_id, business.id
    real_commit = session.commit
    commits = []

    async def _commit_once_then_fail():
        commits.append(1)
        if len(commits) > 1:
            raise SQLAlchemyError("connection reset")
        await real_commit()

    monkeypatch.setattr(session, "commit", _commit_once_then_fail)

    outcome = await bank_link_service.exchange_link_token(
        session,
        providers.bank,
        public_token="public-sandbox-1",
        account_id="acc_checking",
        user_id=owner_id,
        business_id=business_id,
    )
    assert outcome.result.account_number_mask == "0000"
    assert outcome.persistence.ok is False
    assert outcome.persistence.reason == "business bank flags not updated"

    monkeypatch.undo()
    assert await _connection_count(session) == 1
    b = await session.get(Business, business_id, populate_existing=True)
    assert b.bank_connected is False


@pytest.mark.anyio
async def test_link_token_is_issued_for_approved_business_only(client, session, providers):
    business = await make_approved_business(session)
    body = {"user_id": str(business.owner_user_id), "business_id": str(business.id)}

    r = await client.post("/api/v1/bank/link-token", json=body)
    assert r.status_code == 200, r.text
    assert r.json() == {"link_token": "link-sandbox-1", "expiration": "2026-10-18T12:30:00Z"}
    assert providers.bank.link_users == [str(business.owner_user_id)]

    pending = await make_business(session)
    r = await client.post(
        "/api/v1/bank/link-token",
        json={"user_id": str(pending.owner_user_id), "business_id": str(pending.id)},
    )
    assert r.status_code == 409
    assert len(providers.bank.link_users) == 1


@pytest.mark.anyio
async def test_link_token_requires_association(client, session, providers):
    business = await make_approved_business(session)
    stranger = await make_user(session)

    r = await client.post(
        "/api/v1/bank/link-token",
        json={"user_id": str(stranger.id), "business_id": str(business.id)},
    )
    assert r.status_code == 403
    assert providers.bank.link_users == []


@pytest.mark.anyio
async def test_unlink_revokes_item_and_reopens_bank_step(client, session, providers):
    business = await make_approved_business(session, identity_verified=True)
    owner_id, business_id = business.owner_user_id, business.id
    body = {"user_id": str(owner_id), "business_id": str(business_id)}

    assert (await client.post("/api/v1/bank/exchange", json=_payload(business))).status_code == 200
    r = await client.get(f"/api/v1/onboarding/status/{owner_id}")
    assert r.json()["step"] == "payment_setup"

    r = await client.post("/api/v1/bank/unlink", json=body)
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["item_id"] == "item_1"
    assert data["removed"] is True
    assert data["persistence"]["ok"] is True
    assert providers.bank.removed == ["access-public-sandbox-1"]

    conn = (await session.execute(select(BankConnection))).scalar_one()
    assert conn.is_active is False
    assert conn.disconnected_at is not None
    b = await session.get(Business, business_id, populate_existing=True)
    assert b.bank_connected is False
    assert b.bank_connected_at is None
    audit = (
        await session.execute(select(AuditLog).where(AuditLog.action == "disconnected"))
    ).scalar_one()
    assert audit.entity_id == conn.id

    r = await client.get(f"/api/v1/onboarding/status/{owner_id}")
    assert r.json()["step"] == "bank_connection"

    r = await client.post("/api/v1/bank/unlink", json=body)
    assert r.status_code == 404
    assert len(providers.bank.removed) == 1


@pytest.mark.anyio
async def test_relink_after_unlink_reactivates_the_connection(client, session, providers):
    business = await make_approved_business(session)
    body = {"user_id": str(business.owner_user_id), "business_id": str(business.id)}

    assert (await client.post("/api/v1/bank/exchange", json=_payload(business))).status_code == 200
    assert (await client.post("/api/v1/bank/unlink", json=body)).status_code == 200
    r = await client.post("/api/v1/bank/exchange", json=_payload(business, public_token="public-sandbox-2"))
    assert r.status_code == 200, r.text

    conn = (await session.execute(select(BankConnection))).scalar_one()
    assert conn.is_active is True
    assert conn.disconnected_at is None
    assert decrypt_secret(conn.access_token_encrypted) == "access-public-sandbox-2"


@pytest.mark.anyio
async def test_unlink_without_connection_is_not_found(client, session, providers):
    business = await make_approved_business(session)

    r = await client.post(
        "/api/v1/bank/unlink",
        json={"user_id": str(business.owner_user_id), "business_id": str(business.id)},
    )
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"
    assert providers.bank.removed == []


@pytest.mark.anyio
async def test_remote_removal_failure_leaves_connection_active(client, session, providers):
    business = await make_approved_business(session)
    body = {"user_id": str(business.owner_user_id), "business_id": str(business.id)}
    assert (await client.post("/api/v1/bank/exchange", json=_payload(business))).status_code == 200
    providers.bank.fail_remove = True

    r = await client.post("/api/v1/bank/unlink", json=body)
    assert r.status_code == 502
    conn = (await session.execute(select(BankConnection))).scalar_one()
    assert conn.is_active is True
