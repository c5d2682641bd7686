from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from provider_onboarding.adapters.http import flatten_form, send
from provider_onboarding.config import Settings
from provider_onboarding.enums import IdentityStatus
from provider_onboarding.errors import IdentityProviderError


DEFAULT_ALLOWED_DOCUMENT_TYPES = ("driving_license", "passport", "id_card")


@dataclass(frozen=True)
class IdentitySessionOptions:
    session_type: str = "document"
    allowed_types: tuple[str, ...] = DEFAULT_ALLOWED_DOCUMENT_TYPES
    require_id_number: bool = True
    require_live_capture: bool = True
    require_matching_selfie: bool = True
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class IdentitySession:
    id: str
    status: IdentityStatus
    session_type: str = "document"
    client_secret: str | None = None
    last_report_id: str | None = None
    last_error: dict[str, Any] | None = None
    created: int | None = None


class IdentityProvider(Protocol):
    async def create_session(self, options: IdentitySessionOptions) -> IdentitySession: ...

    async def get_session(self, session_id: str) -> IdentitySession: ...

    async def get_report(self, report_id: str) -> dict[str, Any]: ...


def _normalize_status(raw: str | None) -> IdentityStatus:
    try:
        return IdentityStatus(raw)
    except ValueError as e:
        raise IdentityProviderError(f"Unknown verification status: {raw}") from e


def _to_session(payload: dict[str, Any]) -> IdentitySession:
    report = payload.get("last_verification_report")
    if isinstance(report, dict):
        report = report.get("id")
    return IdentitySession(
        id=payload["id"],
        status=_normalize_status(payload.get("status")),
        session_type=payload.get("type") or "document",
        client_secret=payload.get("client_secret"),
        last_report_id=report,
        last_error=payload.get("last_error"),
        created=payload.get("created"),
    )


class StripeIdentityClient:
    """Identity proofing (document + selfie) over Stripe Identity's REST API."""

    def __init__(self, *, api_key: str | None, base_url: str, timeout_seconds: float = 20.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_key or ''}"}
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeIdentityClient":
        return cls(
            api_key=settings.stripe_secret_key,
            base_url=settings.stripe_api_base,
            timeout_seconds=settings.external_timeout_seconds,
        )

    async def _call(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout, headers=self._headers) as client:
            return await send(client, method, f"{self._base_url}{path}", error_cls=IdentityProviderError, **kwargs)

    async def create_session(self, options: IdentitySessionOptions) -> IdentitySession:
        params: dict[str, Any] = {"type": options.session_type, "metadata": options.metadata}
        if options.session_type == "document":
            params["options"] = {
                "document": {
                    "allowed_types": list(options.allowed_types),
                    "require_id_number": options.require_id_number,
                    "require_live_capture": options.require_live_capture,
                    "require_matching_selfie": options.require_matching_selfie,
                }
            }
        payload = await self._call("POST", "/identity/verification_sessions", data=flatten_form(params))
        return _to_session(payload)

    async def get_session(self, session_id: str) -> IdentitySession:
        payload = await self._call("GET", f"/identity/verification_sessions/{session_id}")
        return _to_session(payload)

    async def get_report(self, report_id: str) -> dict[str, Any]:
        return await self._call("GET", f"/identity/verification_reports/{report_id}")
