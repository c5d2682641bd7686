from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from provider_onboarding.adapters.http import flatten_form, send
from provider_onboarding.config import Settings
from provider_onboarding.errors import PaymentProviderError


@dataclass(frozen=True)
class ConnectAccountParams:
    business_type: str  # "individual" | "company"
    business_name: str
    country: str = "US"
    email: str | None = None
    website_url: str | None = None
    payout_weekly_anchor: str = "friday"
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AccountCapabilities:
    account_id: str
    charges_enabled: bool
    payouts_enabled: bool
    details_submitted: bool
    requirements: dict[str, Any] | None = None


class PaymentProcessor(Protocol):
    async def create_account(self, params: ConnectAccountParams) -> str: ...

    async def create_onboarding_link(self, account_id: str, return_url: str, refresh_url: str) -> str: ...

    async def retrieve_account(self, account_id: str) -> AccountCapabilities: ...


class StripeConnectClient:
    """Connected-account provisioning over Stripe's REST API."""

    def __init__(self, *, api_key: str | None, base_url: str, timeout_seconds: float = 20.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_key or ''}"}
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeConnectClient":
        return cls(
            api_key=settings.stripe_secret_key,
            base_url=settings.stripe_api_base,
            timeout_seconds=settings.external_timeout_seconds,
        )

    async def _call(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout, headers=self._headers) as client:
            return await send(client, method, f"{self._base_url}{path}", error_cls=PaymentProviderError, **kwargs)

    async def create_account(self, params: ConnectAccountParams) -> str:
        body = {
            "type": "express",
            "country": params.country,
            "email": params.email,
            "business_type": params.business_type,
            "business_profile": {"name": params.business_name, "url": params.website_url},
            "capabilities": {
                "card_payments": {"requested": True},
                "transfers": {"requested": True},
            },
            "settings": {
                "payouts": {
                    "schedule": {"interval": "weekly", "weekly_anchor": params.payout_weekly_anchor},
                }
            },
            "metadata": params.metadata,
        }
        payload = await self._call("POST", "/accounts", data=flatten_form(body))
        return payload["id"]

    async def create_onboarding_link(self, account_id: str, return_url: str, refresh_url: str) -> str:
        body = {
            "account": account_id,
            "refresh_url": refresh_url,
            "return_url": return_url,
            "type": "account_onboarding",
            "collect": "eventually_due",
        }
        payload = await self._call("POST", "/account_links", data=flatten_form(body))
        return payload["url"]

    async def retrieve_account(self, account_id: str) -> AccountCapabilities:
        payload = await self._call("GET", f"/accounts/{account_id}")
        return AccountCapabilities(
            account_id=payload["id"],
            charges_enabled=bool(payload.get("charges_enabled")),
            payouts_enabled=bool(payload.get("payouts_enabled")),
            details_submitted=bool(payload.get("details_submitted")),
            requirements=payload.get("requirements"),
        )
