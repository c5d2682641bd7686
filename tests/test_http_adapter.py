import json

import httpx
import pytest

from provider_onboarding.adapters.bank_link import PlaidClient
from provider_onboarding.adapters.http import flatten_form, send
from provider_onboarding.adapters.identity import StripeIdentityClient
from provider_onboarding.enums import IdentityStatus
from provider_onboarding.errors import IdentityProviderError, PaymentProviderError


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_flatten_form_nested_and_lists():
    items = flatten_form(
        {
            "type": "express",
            "email": None,
            "capabilities": {"transfers": {"requested": True}},
            "allowed_types": ["passport", "id_card"],
        }
    )
    assert ("type", "express") in items
    assert ("capabilities[transfers][requested]", "true") in items
    assert ("allowed_types[0]", "passport") in items
    assert ("allowed_types[1]", "id_card") in items
    assert not any(k == "email" for k, _ in items)


@pytest.mark.anyio
async def test_send_returns_json_payload():
    async with _client(lambda request: httpx.Response(200, json={"id": "acct_1"})) as client:
        payload = await send(client, "GET", "https://api.test/accounts/acct_1", error_cls=PaymentProviderError)
    assert payload == {"id": "acct_1"}


@pytest.mark.anyio
async def test_send_maps_timeout_to_transport_failure():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    async with _client(handler) as client:
        with pytest.raises(PaymentProviderError) as exc_info:
            await send(client, "POST", "https://api.test/accounts", error_cls=PaymentProviderError)

    err = exc_info.value
    assert err.rejected is False
    assert err.public_message == "payment provider unavailable"


@pytest.mark.anyio
async def test_send_maps_5xx_to_transport_failure():
    async with _client(lambda request: httpx.Response(503, json={"error": {"message": "down"}})) as client:
        with pytest.raises(IdentityProviderError) as exc_info:
            await send(client, "GET", "https://api.test/x", error_cls=IdentityProviderError)

    assert exc_info.value.rejected is False
    assert exc_info.value.status_code == 503
    assert "down" not in exc_info.value.public_message


@pytest.mark.anyio
async def test_send_exposes_stripe_rejection_reason():
    body = {"error": {"message": "Invalid email address", "code": "email_invalid"}}
    async with _client(lambda request: httpx.Response(400, json=body)) as client:
        with pytest.raises(PaymentProviderError) as exc_info:
            await send(client, "POST", "https://api.test/accounts", error_cls=PaymentProviderError)

    err = exc_info.value
    assert err.rejected is True
    assert err.provider_code == "email_invalid"
    assert err.public_message == "Invalid email address"


@pytest.mark.anyio
async def test_send_exposes_plaid_rejection_reason():
    body = {"error_code": "INVALID_PUBLIC_TOKEN", "error_message": "provided public token is expired"}
    async with _client(lambda request: httpx.Response(400, json=body)) as client:
        with pytest.raises(PaymentProviderError) as exc_info:
            await send(client, "POST", "https://api.test/item/public_token/exchange", error_cls=PaymentProviderError)

    assert exc_info.value.provider_code == "INVALID_PUBLIC_TOKEN"
    assert exc_info.value.message == "provided public token is expired"


@pytest.mark.anyio
async def test_identity_client_parses_session(monkeypatch):
    client = StripeIdentityClient(api_key="sk_test", base_url="https://api.test/v1")
    calls = []

    async def fake_call(method, path, **kwargs):
        calls.append((method, path, kwargs))
        return {
            "id": "vs_123",
            "status": "verified",
            "type": "document",
            "client_secret": None,
            "last_verification_report": {"id": "vr_9"},
        }

    monkeypatch.setattr(client, "_call", fake_call)

    session = await client.get_session("vs_123")
    assert session.status is IdentityStatus.VERIFIED
    assert session.last_report_id == "vr_9"
    assert calls == [("GET", "/identity/verification_sessions/vs_123", {})]


@pytest.mark.anyio
async def test_identity_client_rejects_unknown_status(monkeypatch):
    client = StripeIdentityClient(api_key="sk_test", base_url="https://api.test/v1")

    async def fake_call(method, path, **kwargs):
        return {"id": "vs_1", "status": "teleported"}

    monkeypatch.setattr(client, "_call", fake_call)

    with pytest.raises(IdentityProviderError):
        await client.get_session("vs_1")


@pytest.mark.anyio
async def test_plaid_auth_groups_numbers_by_account(monkeypatch):
    client = PlaidClient(client_id="cid", secret="s", environment="sandbox")

    async def fake_post(path, body):
        assert path == "/auth/get"
        return {
            "numbers": {
                "ach": [
                    {"account_id": "acc_1", "account": "9900009606", "routing": "011401533"},
                    {"account_id": "acc_1", "account": "9900009606", "routing": "021000021"},
                    {"account_id": "acc_2", "account": None, "routing": "011401533"},
                ]
            }
        }

    monkeypatch.setattr(client, "_post", fake_post)

    [numbers] = await client.get_auth("access-sandbox")
    assert numbers.account_id == "acc_1"
    assert numbers.routing_numbers == ("011401533", "021000021")
    assert numbers.account_number_mask == "9606"


@pytest.mark.anyio
async def test_plaid_link_token_requests_auth_for_checking_and_savings(monkeypatch):
    client = PlaidClient(
        client_id="cid",
        secret="s",
        client_name="Sparkle Pros",
        webhook_url="https://hooks.test/plaid",
    )
    calls = []

    async def fake_post(path, body):
        calls.append((path, body))
        return {"link_token": "link-sandbox-abc", "expiration": "2026-10-18T16:00:00Z"}

    monkeypatch.setattr(client, "_post", fake_post)

    token = await client.create_link_token("user-1")
    assert token.link_token == "link-sandbox-abc"
    assert token.expiration == "2026-10-18T16:00:00Z"

    [(path, body)] = calls
    assert path == "/link/token/create"
    assert body["user"] == {"client_user_id": "user-1"}
    assert body["client_name"] == "Sparkle Pros"
    assert body["products"] == ["auth"]
    assert body["account_filters"] == {"depository": {"account_subtypes": ["checking", "savings"]}}
    assert body["webhook"] == "https://hooks.test/plaid"


@pytest.mark.anyio
async def test_plaid_remove_item_posts_credentials_and_token():
    seen = []

    def handler(request):
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"request_id": "r1"})

    transport = httpx.MockTransport(handler)
    real_client = httpx.AsyncClient

    class _MockedClient(real_client):
        def __init__(self, **kwargs):
            super().__init__(transport=transport, **kwargs)

    client = PlaidClient(client_id="cid", secret="s")
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(httpx, "AsyncClient", _MockedClient)
        await client.remove_item("access-sandbox-1")

    assert seen == [("/item/remove", {"client_id": "cid", "secret": "s", "access_token": "access-sandbox-1"})]
