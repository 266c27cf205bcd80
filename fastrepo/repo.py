"""레포지터리 패턴 구현."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Type

from sqlalchemy import Select
from sqlalchemy.orm import Query

from fastrepo.core import AbstractAsyncRepository, AbstractRepository, EntityState
from fastrepo.core.models import E
from fastrepo.tracking import AsyncEntitySet, EntitySet

if TYPE_CHECKING:
    from fastrepo.uow import AsyncSqlAlchemyUnitOfWork, SqlAlchemyUnitOfWork


class SqlAlchemyRepository(AbstractRepository[E]):
    """SqlAlchemy ORM을 저장소로 하는 :class:`AbstractRepository` 구현입니다.

    세션은 `uow` 가 소유합니다. 레포지터리는 세션을 열거나 닫지 않습니다.
    """

    def __init__(self, entity_class: Type[E], uow: SqlAlchemyUnitOfWork):
        """임의의 엔티티 E 를 받아 E에 대한 Repository를 초기화합니다."""
        super().__init__(entity_class)
        self.uow = uow

    @property
    def set(self) -> EntitySet[E]:
        return self.uow.set(self.entity_class)

    def find(self) -> Query:
        return super().find()  # type: ignore

    def _query(self) -> Query:
        return self.set.query()

    def _get(self, id: Any) -> Optional[E]:
        return self.set.get(id)

    def _get_many(self, ids: list[Any]) -> list[E]:
        return self.set.get_many(ids)

    def _first(self, *criteria: Any, **filter_by: Any) -> Optional[E]:
        return self.set.first(*criteria, **filter_by)

    def _add(self, entity: E) -> None:
        self.set.add(entity)

    def _add_all(self, entities: list[E]) -> None:
        self.set.add_all(entities)

    def _mark_modified(self, entity: E) -> None:
        self.uow.entry(entity).state = EntityState.MODIFIED

    def _set_values(self, target: E, source: E) -> None:
        self.uow.entry(target).set_values(source)

    def _delete_all(self, entities: list[E]) -> None:
        self.set.remove_all(entities)


class AsyncSqlAlchemyRepository(AbstractAsyncRepository[E]):
    """:class:`AsyncSession` 을 저장소로 하는 비동기 레포지터리 구현입니다.

    :meth:`find` 는 실행되지 않은 ``Select`` 문을 리턴합니다. ::

        result = await uow.session.execute(repo.find().where(Account.name == "kim"))
    """

    def __init__(self, entity_class: Type[E], uow: AsyncSqlAlchemyUnitOfWork):
        super().__init__(entity_class)
        self.uow = uow

    @property
    def set(self) -> AsyncEntitySet[E]:
        return self.uow.set(self.entity_class)

    def find(self) -> Select:
        return super().find()

    def _query(self) -> Select:
        return self.set.select()

    async def _get(self, id: Any) -> Optional[E]:
        return await self.set.get(id)

    async def _get_many(self, ids: list[Any]) -> list[E]:
        return await self.set.get_many(ids)

    async def _first(self, *criteria: Any, **filter_by: Any) -> Optional[E]:
        return await self.set.first(*criteria, **filter_by)

    async def _add(self, entity: E) -> None:
        await self.set.add(entity)

    async def _add_all(self, entities: list[E]) -> None:
        await self.set.add_all(entities)

    async def _mark_modified(self, entity: E) -> None:
        await self.set.load_expired(entity)
        self.uow.entry(entity).state = EntityState.MODIFIED

    async def _set_values(self, target: E, source: E) -> None:
        self.uow.entry(target).set_values(source)

    async def _delete_all(self, entities: list[E]) -> None:
        await self.set.remove_all(entities)
