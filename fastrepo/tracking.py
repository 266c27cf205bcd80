"""Unit of Work 가 레포지터리에 제공하는 엔티티 집합과 상태 추적 핸들.

- :class:`EntitySet` / :class:`AsyncEntitySet`: 타입별 조회, 추가, 삭제.
- :class:`EntityEntry`: 엔티티 하나의 추적 상태를 읽고 바꾸거나 값을 일괄 복사합니다.
"""
from __future__ import annotations

from typing import Any, Generic, Iterable, Optional, Type, TypeVar

from sqlalchemy import Select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapper, Query, Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.session import make_transient_to_detached

from fastrepo.core import EntityState

T = TypeVar("T")


def _key_column(entity_class: Type[Any]) -> Any:
    return getattr(entity_class, "id")


def untracked_keys(mapper: Mapper) -> set[str]:
    """값 복사나 수정 표시에서 제외할 속성(기본키, 버전 컬럼) 이름들."""
    keys = {mapper.get_property_by_column(col).key for col in mapper.primary_key}
    if mapper.version_id_col is not None:
        keys.add(mapper.get_property_by_column(mapper.version_id_col).key)
    return keys


def unloaded_columns(entity: Any) -> list[str]:
    """아직 로드되지 않았거나 만료된 컬럼 속성 이름들."""
    insp = sa_inspect(entity)
    return [attr.key for attr in insp.mapper.column_attrs if attr.key in insp.unloaded]


class EntitySet(Generic[T]):
    """세션 위의 `entity_class` 타입 엔티티 집합."""

    def __init__(self, session: Session, entity_class: Type[T]):
        self.session = session
        self.entity_class = entity_class

    def __repr__(self) -> str:
        return f"EntitySet[{self.entity_class.__name__}]"

    def query(self) -> Query:
        return self.session.query(self.entity_class)

    def get(self, id: Any) -> Optional[T]:
        return self.session.get(self.entity_class, id)

    def get_many(self, ids: Iterable[Any]) -> list[T]:
        return self.query().filter(_key_column(self.entity_class).in_(list(ids))).all()

    def first(self, *criteria: Any, **filter_by: Any) -> Optional[T]:
        return self.query().filter(*criteria).filter_by(**filter_by).first()

    def add(self, entity: T) -> None:
        self.session.add(entity)

    def add_all(self, entities: Iterable[T]) -> None:
        self.session.add_all(entities)

    def remove(self, entity: T) -> None:
        self.session.delete(entity)

    def remove_all(self, entities: Iterable[T]) -> None:
        for entity in entities:
            self.session.delete(entity)


class AsyncEntitySet(Generic[T]):
    """:class:`AsyncSession` 위의 `entity_class` 타입 엔티티 집합."""

    def __init__(self, session: AsyncSession, entity_class: Type[T]):
        self.session = session
        self.entity_class = entity_class

    def __repr__(self) -> str:
        return f"AsyncEntitySet[{self.entity_class.__name__}]"

    def select(self) -> Select:
        return select(self.entity_class)

    async def get(self, id: Any) -> Optional[T]:
        return await self.session.get(self.entity_class, id)

    async def get_many(self, ids: Iterable[Any]) -> list[T]:
        stmt = self.select().where(_key_column(self.entity_class).in_(list(ids)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def first(self, *criteria: Any, **filter_by: Any) -> Optional[T]:
        stmt = self.select()
        if criteria:
            stmt = stmt.where(*criteria)
        stmt = stmt.filter_by(**filter_by).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def add(self, entity: T) -> None:
        self.session.add(entity)

    async def add_all(self, entities: Iterable[T]) -> None:
        self.session.add_all(entities)

    async def load_expired(self, entity: T) -> None:
        """만료된 컬럼을 다시 로드합니다.

        :class:`EntityEntry` 는 비동기 세션에서 I/O를 할 수 없으므로 수정 표시 전에 호출합니다.
        """
        unloaded = unloaded_columns(entity)
        if sa_inspect(entity).persistent and unloaded:
            await self.session.refresh(entity, attribute_names=unloaded)

    async def remove(self, entity: T) -> None:
        await self.session.delete(entity)

    async def remove_all(self, entities: Iterable[T]) -> None:
        for entity in entities:
            await self.session.delete(entity)


class EntityEntry:
    """엔티티 하나에 대한 추적 핸들.

    비동기 세션의 경우 :attr:`AsyncSession.sync_session` 을 전달하면 됩니다.
    이때 I/O가 필요한 ``UNCHANGED`` (refresh) 전환은 사용할 수 없습니다.
    """

    def __init__(self, session: Session, entity: Any):
        self.session = session
        self.entity = entity

    def __repr__(self) -> str:
        return f"EntityEntry[{self.entity!r}, {self.state.value}]"

    @property
    def state(self) -> EntityState:
        """현재 추적 상태."""
        insp = sa_inspect(self.entity)
        if insp.pending:
            return EntityState.ADDED
        if insp.deleted or insp.was_deleted or self.entity in self.session.deleted:
            return EntityState.DELETED
        if insp.persistent and insp.session is self.session:
            if self.session.is_modified(self.entity) or insp.modified:
                return EntityState.MODIFIED
            return EntityState.UNCHANGED
        return EntityState.DETACHED

    @state.setter
    def state(self, new_state: EntityState) -> None:
        if new_state is EntityState.MODIFIED:
            self._mark_modified()
        elif new_state is EntityState.ADDED:
            self.session.add(self.entity)
        elif new_state is EntityState.DELETED:
            self.session.delete(self.entity)
        elif new_state is EntityState.DETACHED:
            if self.entity in self.session:
                self.session.expunge(self.entity)
        elif new_state is EntityState.UNCHANGED:
            self.session.refresh(self.entity)

    def _mark_modified(self) -> None:
        """세션에 붙이고, 로드된 모든 컬럼을 수정된 것으로 표시합니다.

        키가 있는 transient 객체는 DB에 이미 존재하는 행으로 간주해 UPDATE 대상이 됩니다.
        """
        insp = sa_inspect(self.entity)
        if insp.transient:
            make_transient_to_detached(self.entity)
        if insp.detached:
            self.session.add(self.entity)

        # 커밋 후 만료된 컬럼은 dict 에 없어서 표시되지 않습니다. 먼저 로드합니다.
        unloaded = unloaded_columns(self.entity)
        if insp.persistent and unloaded:
            self.session.refresh(self.entity, attribute_names=unloaded)

        skip = untracked_keys(insp.mapper)
        for attr in insp.mapper.column_attrs:
            if attr.key not in skip and attr.key in insp.dict:
                flag_modified(self.entity, attr.key)

    def set_values(self, source: Any) -> None:
        """`source` 의 컬럼 값들을 추적중인 엔티티에 복사합니다.

        기본키와 버전 컬럼은 복사하지 않습니다.
        """
        mapper = sa_inspect(self.entity).mapper
        skip = untracked_keys(mapper)
        for attr in mapper.column_attrs:
            if attr.key not in skip:
                setattr(self.entity, attr.key, getattr(source, attr.key))
