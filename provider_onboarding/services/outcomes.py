from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class PersistenceOutcome:
    """Result of the local writes that follow a successful remote call."""

    ok: bool
    reason: str | None = None

    @classmethod
    def succeeded(cls) -> "PersistenceOutcome":
        return cls(ok=True)

    @classmethod
    def failed(cls, reason: str) -> "PersistenceOutcome":
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class ExternalOutcome(Generic[T]):
    """Remote result plus the outcome of persisting it.

    A remote success is never undone because a local write failed; callers get
    both halves and decide what to surface.
    """

    result: T
    persistence: PersistenceOutcome
