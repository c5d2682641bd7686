from __future__ import annotations

from fastapi import Request

from provider_onboarding.adapters import ProviderRegistry


def get_providers(request: Request) -> ProviderRegistry:
    return request.app.state.providers
