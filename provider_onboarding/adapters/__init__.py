from __future__ import annotations

from dataclasses import dataclass

from provider_onboarding.adapters.bank_link import BankLinkProvider, PlaidClient
from provider_onboarding.adapters.identity import IdentityProvider, StripeIdentityClient
from provider_onboarding.adapters.notifications import NotificationDispatcher, Notifier
from provider_onboarding.adapters.payments import PaymentProcessor, StripeConnectClient
from provider_onboarding.adapters.storage import DocumentStore, S3DocumentStore
from provider_onboarding.config import Settings


@dataclass
class ProviderRegistry:
    """External collaborators used by the services, built once per app."""

    store: DocumentStore
    identity: IdentityProvider
    bank: BankLinkProvider
    payments: PaymentProcessor
    notifier: Notifier

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderRegistry":
        return cls(
            store=S3DocumentStore.from_settings(settings),
            identity=StripeIdentityClient.from_settings(settings),
            bank=PlaidClient.from_settings(settings),
            payments=StripeConnectClient.from_settings(settings),
            notifier=NotificationDispatcher(enabled=settings.celery_enabled),
        )
