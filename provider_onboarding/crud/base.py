from __future__ import annotations

from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession


TModel = TypeVar("TModel")

# Never rewritten through the generic update path.
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def _values(values: dict[str, Any] | BaseModel | None) -> dict[str, Any]:
    if values is None:
        return {}
    if isinstance(values, BaseModel):
        return values.model_dump(exclude_unset=True)
    return dict(values)


class RecordCRUD(Generic[TModel]):
    """Keyed access to one onboarding table.

    Nothing here commits; services own the transaction boundaries.
    """

    def __init__(self, model: type[TModel]) -> None:
        self.model = model

    async def get(self, session: AsyncSession, *, id: UUID) -> TModel | None:
        return await session.get(self.model, id)

    async def create(self, session: AsyncSession, *, values: dict[str, Any] | BaseModel) -> TModel:
        db_obj = self.model(**_values(values))  # type: ignore[call-arg]
        session.add(db_obj)
        await session.flush()
        return db_obj

    async def update(
        self,
        session: AsyncSession,
        *,
        db_obj: TModel,
        values: dict[str, Any] | BaseModel,
    ) -> dict[str, Any]:
        """Apply ``values`` and return the previous value of every field that changed."""

        previous: dict[str, Any] = {}
        for field, value in _values(values).items():
            if field in IMMUTABLE_FIELDS or not hasattr(db_obj, field):
                continue
            current = getattr(db_obj, field)
            if current != value:
                previous[field] = current
                setattr(db_obj, field, value)

        if previous:
            await session.flush()
        return previous
