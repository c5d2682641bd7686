from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet

from provider_onboarding.config import settings


def _fernet(secret_key: str | None = None) -> Fernet:
    digest = hashlib.sha256((secret_key or settings.secret_key).encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def encrypt_secret(value: str, *, secret_key: str | None = None) -> str:
    """Encrypt a provider credential for storage at rest."""

    return _fernet(secret_key).encrypt(value.encode("utf-8")).decode("ascii")


def decrypt_secret(token: str, *, secret_key: str | None = None) -> str:
    return _fernet(secret_key).decrypt(token.encode("ascii")).decode("utf-8")
