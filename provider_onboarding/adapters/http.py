from __future__ import annotations

import logging
from typing import Any

import httpx

from provider_onboarding.errors import ExternalProviderError

logger = logging.getLogger(__name__)


def flatten_form(data: dict[str, Any], prefix: str = "") -> list[tuple[str, str]]:
    """Encode nested params the way form-encoded payment APIs expect.

    ``{"capabilities": {"transfers": {"requested": True}}}`` becomes
    ``capabilities[transfers][requested]=true``.
    """

    items: list[tuple[str, str]] = []
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            items.extend(flatten_form(value, name))
        elif isinstance(value, (list, tuple)):
            for i, v in enumerate(value):
                if isinstance(v, dict):
                    items.extend(flatten_form(v, f"{name}[{i}]"))
                else:
                    items.append((f"{name}[{i}]", _scalar(v)))
        else:
            items.append((name, _scalar(value)))
    return items


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    error_cls: type[ExternalProviderError],
    **kwargs: Any,
) -> dict[str, Any]:
    """Perform one outbound call and map failures onto ``error_cls``.

    4xx responses are provider rejections (reason exposed); timeouts, network
    errors and 5xx are transport failures.
    """

    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        logger.warning("provider timeout provider=%s url=%s", error_cls.provider, url)
        raise error_cls("Provider request timed out") from e
    except httpx.HTTPError as e:
        logger.warning("provider transport error provider=%s url=%s error=%s", error_cls.provider, url, e)
        raise error_cls("Provider request failed") from e

    try:
        payload = response.json()
    except ValueError:
        payload = {}

    if response.status_code >= 500:
        logger.error(
            "provider server error provider=%s url=%s status=%s",
            error_cls.provider,
            url,
            response.status_code,
        )
        raise error_cls("Provider server error", status_code=response.status_code)

    if response.status_code >= 400:
        message, code = _error_fields(payload)
        logger.warning(
            "provider rejected request provider=%s url=%s status=%s code=%s",
            error_cls.provider,
            url,
            response.status_code,
            code,
        )
        raise error_cls(
            message or "Provider rejected the request",
            rejected=True,
            provider_code=code,
            status_code=response.status_code,
        )

    return payload if isinstance(payload, dict) else {"data": payload}


def _error_fields(payload: Any) -> tuple[str | None, str | None]:
    if not isinstance(payload, dict):
        return None, None
    # Stripe: {"error": {"message", "code"}}; Plaid: {"error_message", "error_code"}
    err = payload.get("error")
    if isinstance(err, dict):
        return err.get("message"), err.get("code") or err.get("type")
    return payload.get("error_message"), payload.get("error_code")
