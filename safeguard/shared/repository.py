"""Generic async data access over one mapped table."""

import builtins
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """CRUD helpers bound to a caller-owned session.

    Methods flush so generated values are visible, but never commit: the
    ``DatabaseManager.session()`` block around them is the transaction.
    Models are expected to have a string primary key named ``id``.

    Example:
        class PasswordRepository(BaseRepository[PasswordRecord]):
            def __init__(self, session: AsyncSession):
                super().__init__(session, PasswordRecord)
    """

    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        self._session = session
        self._model = model

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def model(self) -> type[ModelT]:
        return self._model

    async def create(self, data: dict[str, Any]) -> ModelT:
        """Insert a row built from ``data`` and return it with defaults loaded."""
        instance = self._model(**data)
        self._session.add(instance)
        await self._session.flush()
        await self._session.refresh(instance)
        return instance

    async def get_by_id(self, id: str) -> ModelT | None:
        return await self._session.get(self._model, id)

    async def list(
        self,
        *,
        where: builtins.list[Any] | None = None,
        order_by: builtins.list[Any] | None = None,
    ) -> Sequence[ModelT]:
        """Rows matching every ``where`` condition, in ``order_by`` order."""
        query = select(self._model)
        if where:
            query = query.where(*where)
        if order_by:
            query = query.order_by(*order_by)

        result = await self._session.execute(query)
        return result.scalars().all()

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(self._model))
        return result.scalar_one()

    async def update(self, instance: ModelT, data: dict[str, Any]) -> ModelT:
        """Assign ``data`` onto ``instance``; keys that are not columns are ignored."""
        for field, value in data.items():
            if hasattr(instance, field):
                setattr(instance, field, value)

        await self._session.flush()
        await self._session.refresh(instance)
        return instance

    async def delete_by_id(self, id: str) -> bool:
        """Returns:
            True if a row was removed, False if none had this id
        """
        result = await self._session.execute(delete(self._model).where(self._model.id == id))
        return bool(result.rowcount)

    async def delete_all(self) -> int:
        """Remove every row and return how many there were."""
        result = await self._session.execute(delete(self._model))
        return result.rowcount or 0
