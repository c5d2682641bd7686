from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from provider_onboarding.adapters.http import send
from provider_onboarding.config import Settings
from provider_onboarding.errors import BankLinkProviderError


PLAID_ENVIRONMENTS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}

LINKABLE_ACCOUNT_SUBTYPES = ("checking", "savings")


@dataclass(frozen=True)
class LinkToken:
    link_token: str
    expiration: str | None = None


@dataclass(frozen=True)
class TokenExchange:
    access_token: str
    item_id: str


@dataclass(frozen=True)
class BankAccount:
    account_id: str
    name: str | None = None
    mask: str | None = None
    type: str | None = None
    subtype: str | None = None


@dataclass(frozen=True)
class AccountNumbers:
    account_id: str
    routing_numbers: tuple[str, ...]
    account_number: str

    @property
    def account_number_mask(self) -> str:
        return self.account_number[-4:]


class BankLinkProvider(Protocol):
    async def create_link_token(self, client_user_id: str) -> LinkToken: ...

    async def exchange_token(self, public_token: str) -> TokenExchange: ...

    async def get_accounts(self, access_token: str) -> list[BankAccount]: ...

    async def get_auth(self, access_token: str) -> list[AccountNumbers]: ...

    async def remove_item(self, access_token: str) -> None: ...


class PlaidClient:
    """Bank aggregation over Plaid's JSON API."""

    def __init__(
        self,
        *,
        client_id: str | None,
        secret: str | None,
        environment: str = "sandbox",
        client_name: str = "Provider Onboarding",
        webhook_url: str | None = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        self._base_url = PLAID_ENVIRONMENTS.get(environment, PLAID_ENVIRONMENTS["sandbox"])
        self._credentials = {"client_id": client_id or "", "secret": secret or ""}
        self._client_name = client_name
        self._webhook_url = webhook_url
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlaidClient":
        return cls(
            client_id=settings.plaid_client_id,
            secret=settings.plaid_secret,
            environment=settings.plaid_env,
            client_name=settings.plaid_client_name,
            webhook_url=settings.plaid_webhook_url,
            timeout_seconds=settings.external_timeout_seconds,
        )

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await send(
                client,
                "POST",
                f"{self._base_url}{path}",
                error_cls=BankLinkProviderError,
                json={**self._credentials, **body},
            )

    async def create_link_token(self, client_user_id: str) -> LinkToken:
        body: dict[str, Any] = {
            "user": {"client_user_id": client_user_id},
            "client_name": self._client_name,
            "products": ["auth"],
            "country_codes": ["US"],
            "language": "en",
            "account_filters": {"depository": {"account_subtypes": list(LINKABLE_ACCOUNT_SUBTYPES)}},
        }
        if self._webhook_url:
            body["webhook"] = self._webhook_url
        payload = await self._post("/link/token/create", body)
        return LinkToken(link_token=payload["link_token"], expiration=payload.get("expiration"))

    async def exchange_token(self, public_token: str) -> TokenExchange:
        payload = await self._post("/item/public_token/exchange", {"public_token": public_token})
        return TokenExchange(access_token=payload["access_token"], item_id=payload["item_id"])

    async def get_accounts(self, access_token: str) -> list[BankAccount]:
        payload = await self._post("/accounts/get", {"access_token": access_token})
        return [
            BankAccount(
                account_id=a["account_id"],
                name=a.get("name"),
                mask=a.get("mask"),
                type=a.get("type"),
                subtype=a.get("subtype"),
            )
            for a in payload.get("accounts", [])
        ]

    async def get_auth(self, access_token: str) -> list[AccountNumbers]:
        payload = await self._post("/auth/get", {"access_token": access_token})
        by_account: dict[str, list[dict[str, Any]]] = {}
        for ach in (payload.get("numbers") or {}).get("ach", []):
            by_account.setdefault(ach["account_id"], []).append(ach)

        numbers: list[AccountNumbers] = []
        for account_id, entries in by_account.items():
            if not entries[0].get("account"):
                continue
            numbers.append(
                AccountNumbers(
                    account_id=account_id,
                    routing_numbers=tuple(e["routing"] for e in entries if e.get("routing")),
                    account_number=entries[0]["account"],
                )
            )
        return numbers

    async def remove_item(self, access_token: str) -> None:
        await self._post("/item/remove", {"access_token": access_token})
