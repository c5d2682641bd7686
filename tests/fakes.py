"""In-memory stand-ins for the external collaborators."""

from __future__ import annotations

import itertools
from typing import Any

from provider_onboarding.adapters.bank_link import AccountNumbers, BankAccount, LinkToken, TokenExchange
from provider_onboarding.adapters.identity import IdentitySession, IdentitySessionOptions
from provider_onboarding.adapters.payments import AccountCapabilities, ConnectAccountParams
from provider_onboarding.enums import IdentityStatus
from provider_onboarding.errors import BankLinkProviderError, PaymentProviderError, StorageProviderError


class FakeDocumentStore:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_put = False
        self.fail_delete = False

    async def put(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_put:
            raise StorageProviderError("Document upload failed")
        self.objects[path] = data
        return f"https://files.test/{path}"

    async def delete(self, path: str) -> None:
        if self.fail_delete:
            raise StorageProviderError("Document delete failed")
        self.deleted.append(path)
        self.objects.pop(path, None)


class FakeIdentityProvider:
    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.created: list[IdentitySessionOptions] = []
        self.sessions: dict[str, IdentitySession] = {}
        self.reports: dict[str, dict[str, Any]] = {}

    async def create_session(self, options: IdentitySessionOptions) -> IdentitySession:
        self.created.append(options)
        n = next(self._ids)
        session = IdentitySession(
            id=f"vs_{n}",
            status=IdentityStatus.REQUIRES_INPUT,
            client_secret=f"vs_{n}_secret",
        )
        self.sessions[session.id] = session
        return session

    def set_status(self, session_id: str, status: IdentityStatus, **fields: Any) -> None:
        current = self.sessions[session_id]
        self.sessions[session_id] = IdentitySession(
            id=current.id,
            status=status,
            client_secret=current.client_secret,
            last_report_id=fields.get("last_report_id"),
            last_error=fields.get("last_error"),
        )

    async def get_session(self, session_id: str) -> IdentitySession:
        return self.sessions[session_id]

    async def get_report(self, report_id: str) -> dict[str, Any]:
        return self.reports.get(report_id, {"id": report_id, "document": {"status": "verified"}})


class FakeBankLink:
    def __init__(self) -> None:
        self.accounts = [
            BankAccount(account_id="acc_checking", name="Checking", mask="0000", type="depository", subtype="checking"),
            BankAccount(account_id="acc_savings", name="Savings", mask="1111", type="depository", subtype="savings"),
        ]
        self.numbers = [
            AccountNumbers(account_id="acc_checking", routing_numbers=("011401533",), account_number="1111222233330000"),
        ]
        self.exchanged: list[str] = []
        self.link_users: list[str] = []
        self.removed: list[str] = []
        self.fail_remove = False

    async def create_link_token(self, client_user_id: str) -> LinkToken:
        self.link_users.append(client_user_id)
        return LinkToken(link_token=f"link-sandbox-{len(self.link_users)}", expiration="2026-10-18T12:30:00Z")

    async def exchange_token(self, public_token: str) -> TokenExchange:
        self.exchanged.append(public_token)
        return TokenExchange(access_token=f"access-{public_token}", item_id="item_1")

    async def get_accounts(self, access_token: str) -> list[BankAccount]:
        return list(self.accounts)

    async def get_auth(self, access_token: str) -> list[AccountNumbers]:
        return list(self.numbers)

    async def remove_item(self, access_token: str) -> None:
        if self.fail_remove:
            raise BankLinkProviderError("Provider request timed out")
        self.removed.append(access_token)


class FakePaymentProcessor:
    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._links = itertools.count(1)
        self.created: list[ConnectAccountParams] = []
        self.links: list[tuple[str, str, str]] = []
        self.capabilities: dict[str, AccountCapabilities] = {}
        self.fail_create = False

    async def create_account(self, params: ConnectAccountParams) -> str:
        if self.fail_create:
            raise PaymentProviderError("Provider request timed out")
        self.created.append(params)
        return f"acct_{next(self._ids)}"

    async def create_onboarding_link(self, account_id: str, return_url: str, refresh_url: str) -> str:
        self.links.append((account_id, return_url, refresh_url))
        return f"https://connect.test/setup/{account_id}/{next(self._links)}"

    async def retrieve_account(self, account_id: str) -> AccountCapabilities:
        return self.capabilities.get(
            account_id,
            AccountCapabilities(
                account_id=account_id,
                charges_enabled=False,
                payouts_enabled=False,
                details_submitted=False,
            ),
        )


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []

    def dispatch(self, template_id: str, recipient: str, variables: dict[str, Any]) -> None:
        self.sent.append((template_id, recipient, variables))

    def templates(self) -> list[str]:
        return [t for t, _, _ in self.sent]
