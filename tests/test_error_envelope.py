import uuid

import pytest
from fastapi.testclient import TestClient

from provider_onboarding.api.errors import error_body, status_for
from provider_onboarding.errors import (
    AccountNotFoundError,
    ApprovalTokenError,
    ConflictError,
    ErrorKind,
    PaymentProviderError,
    PersistenceError,
)
from provider_onboarding.main import create_app


def test_error_responses_include_request_id_in_body_and_header(providers):
    client = TestClient(create_app(providers=providers))

    r = client.get("/this-route-does-not-exist")
    assert r.status_code == 404

    payload = r.json()
    assert "request_id" in payload
    assert payload["request_id"], payload

    assert r.headers.get("x-request-id") == payload["request_id"]


@pytest.mark.anyio
async def test_domain_errors_use_envelope_and_echo_caller_request_id(client):
    r = await client.post(
        "/api/v1/admin/businesses/" + str(uuid.uuid4()) + "/approve",
        json={"admin_user_id": str(uuid.uuid4())},
        headers={"X-Request-ID": "req-123"},
    )
    assert r.status_code == 403
    body = r.json()
    assert body["code"] == "NOT_AUTHORIZED"
    assert body["request_id"] == "req-123"
    assert r.headers["x-request-id"] == "req-123"


def test_status_mapping():
    assert status_for(ConflictError("x")) == 409
    assert status_for(PersistenceError("x")) == 500
    assert status_for(PaymentProviderError("timeout")) == 502
    assert status_for(PaymentProviderError("card declined", rejected=True)) == 400
    assert status_for(AccountNotFoundError("acc_1")) == 400
    assert status_for(ApprovalTokenError(ErrorKind.EXPIRED, "x")) == 401
    assert status_for(ApprovalTokenError(ErrorKind.INVALID, "x")) == 401
    assert status_for(ApprovalTokenError(ErrorKind.REVOKED, "x")) == 403


def test_transport_failures_and_persistence_errors_hide_internal_messages():
    body = error_body(PaymentProviderError("connect timeout to 10.0.0.3"))
    assert body["detail"] == "payment provider unavailable"

    body = error_body(PaymentProviderError("No such account", rejected=True, provider_code="resource_missing"))
    assert body["detail"] == "No such account"
    assert body["provider_code"] == "resource_missing"

    assert error_body(PersistenceError("duplicate key on ix_foo"))["detail"] == "Failed to save changes"
