"""레포지터리 패턴의 추상 인터페이스.

CRUD 요청을 하위 저장소 연산으로 변환하면서 두 가지 정책을 적용합니다.

- 낙관적 동시성: ``update(new, old)`` 는 버전 토큰을 비교한 뒤에만 값을 병합합니다.
- 소프트 삭제: :class:`SoftDeletable` 엔티티는 삭제 대신 ``is_deleted`` 가 설정됩니다.

실제 조회/추적/삭제는 ``_`` 로 시작하는 추상 메소드로 위임하며, 하위 클래스가
저장소(SqlAlchemy 세션, 메모리 등)에 맞게 구현합니다.
"""
from __future__ import annotations

import abc
from typing import Any, Generic, Iterable, Optional, Type

from fastrepo.core.errors import InvalidArgumentError
from fastrepo.core.models import E
from fastrepo.core.policy import check_entity_class, split_deletions, validate_version

_MISSING: Any = object()

COLLECTION_TYPES = (list, tuple, set, frozenset)


def normalize_keys(ids: tuple[Any, ...]) -> Optional[list[Any]]:
    """``find_by_ids(1, 2)`` 와 ``find_by_ids([1, 2])`` 를 같은 키 리스트로 만듭니다.

    인자가 ``None`` 하나뿐이면 ``None`` 을 리턴합니다. 복합키(tuple)를 조회할 때는
    ``find_by_ids([(1, "a")])`` 처럼 리스트로 감싸서 전달해야 합니다.
    """
    if len(ids) == 1:
        (arg,) = ids
        if arg is None:
            return None
        if isinstance(arg, COLLECTION_TYPES) or (
            isinstance(arg, Iterable) and not isinstance(arg, (str, bytes))
        ):
            return list(arg)
    return list(ids)


class _RepositoryBase(Generic[E]):
    entity_class: Type[E]

    def __init__(self, entity_class: Type[E]):
        check_entity_class(entity_class)
        self.entity_class = entity_class

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}[{self.entity_class.__name__}]"

    def _key_of(self, item: Any) -> Any:
        """엔티티가 주어지면 그 키를, 아니면 인자 자체를 키로 리턴합니다."""
        if isinstance(item, self.entity_class):
            return item.id
        return item


class AbstractRepository(_RepositoryBase[E], abc.ABC):
    """Repository 패턴의 추상 인터페이스 입니다."""

    def find(self) -> Iterable[E]:
        """모든 :class:`E` 객체에 대한 지연 평가 쿼리를 리턴합니다."""
        return self._query()

    def find_by_id(self, id: Any) -> Optional[E]:
        """주어진 키에 해당하는 :class:`E` 객체를 조회합니다.

        `id` 가 ``None`` 이면 저장소를 조회하지 않고 ``None`` 을 리턴합니다.
        못 찾을 경우 ``None`` 을 리턴합니다.
        """
        if id is None:
            return None
        return self._get(id)

    def find_by_ids(self, *ids: Any) -> list[E]:
        """키 목록에 포함된 모든 :class:`E` 객체를 조회합니다. 순서는 보장하지 않습니다."""
        keys = normalize_keys(ids)
        if not keys:
            return []
        return self._get_many(keys)

    def single(self, *criteria: Any, **filter_by: Any) -> Optional[E]:
        """조건에 맞는 첫번째 객체를 리턴합니다. 없으면 ``None`` 입니다."""
        return self._first(*criteria, **filter_by)

    def add(self, entity: E) -> None:
        """레포지터리에 :class:`E` 객체를 추가합니다.

        Raises:
            :class:`InvalidArgumentError`: `entity` 가 ``None`` 일 때.
        """
        if entity is None:
            raise InvalidArgumentError("entity")
        self._add(entity)

    def add_all(self, entities: Iterable[E]) -> None:
        """레포지터리에 여러 :class:`E` 객체를 추가합니다."""
        if entities is None:
            raise InvalidArgumentError("entities")
        self._add_all(list(entities))

    def update(self, entity: E, old_entity: Optional[E] = _MISSING) -> None:
        """엔티티를 수정 상태로 표시합니다.

        `old_entity` 가 주어지면 버전 토큰을 검증한 후 `entity` 의 값을 추적중인
        `old_entity` 에 복사합니다.

        Raises:
            :class:`InvalidArgumentError`: 인자가 ``None`` 일 때.
            :class:`ConcurrencyError`: 버전 토큰이 없거나 일치하지 않을 때.
        """
        if old_entity is _MISSING:
            if entity is None:
                raise InvalidArgumentError("entity")
            self._mark_modified(entity)
            return

        if entity is None:
            raise InvalidArgumentError("new_entity")
        if old_entity is None:
            raise InvalidArgumentError("old_entity")
        validate_version(entity, old_entity)
        self._set_values(old_entity, entity)

    def remove(self, item: Any) -> None:
        """키 또는 엔티티에 해당하는 객체를 삭제합니다. 없으면 아무 일도 하지 않습니다."""
        if item is None:
            return
        entity = self.find_by_id(self._key_of(item))
        if entity is None:
            return
        self._delete_all(split_deletions([entity]))

    def remove_all(self, items: Optional[Iterable[Any]]) -> None:
        """키 또는 엔티티 목록에 해당하는 객체들을 삭제합니다.

        존재하지 않는 키는 무시합니다. 문자열 하나는 키 하나로 취급합니다.
        """
        keys = normalize_keys((items,))
        if keys is None:
            return
        entities = self.find_by_ids([self._key_of(it) for it in keys])
        hard_deletes = split_deletions(entities)
        if hard_deletes:
            self._delete_all(hard_deletes)

    @abc.abstractmethod
    def _query(self) -> Iterable[E]:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, id: Any) -> Optional[E]:
        raise NotImplementedError

    @abc.abstractmethod
    def _get_many(self, ids: list[Any]) -> list[E]:
        raise NotImplementedError

    @abc.abstractmethod
    def _first(self, *criteria: Any, **filter_by: Any) -> Optional[E]:
        raise NotImplementedError

    @abc.abstractmethod
    def _add(self, entity: E) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _add_all(self, entities: list[E]) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _mark_modified(self, entity: E) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _set_values(self, target: E, source: E) -> None:
        """`source` 의 값들을 추적중인 `target` 에 복사합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def _delete_all(self, entities: list[E]) -> None:
        raise NotImplementedError


class AbstractAsyncRepository(_RepositoryBase[E], abc.ABC):
    """:class:`AbstractRepository` 의 비동기 버전입니다.

    하위 저장소 호출에서만 await 하며, 동작은 동기 버전과 같습니다.
    """

    def find(self) -> Any:
        """모든 :class:`E` 객체에 대한 지연 평가 쿼리를 리턴합니다."""
        return self._query()

    async def find_by_id(self, id: Any) -> Optional[E]:
        if id is None:
            return None
        return await self._get(id)

    async def find_by_ids(self, *ids: Any) -> list[E]:
        keys = normalize_keys(ids)
        if not keys:
            return []
        return await self._get_many(keys)

    async def single(self, *criteria: Any, **filter_by: Any) -> Optional[E]:
        return await self._first(*criteria, **filter_by)

    async def add(self, entity: E) -> None:
        if entity is None:
            raise InvalidArgumentError("entity")
        await self._add(entity)

    async def add_all(self, entities: Iterable[E]) -> None:
        if entities is None:
            raise InvalidArgumentError("entities")
        await self._add_all(list(entities))

    async def update(self, entity: E, old_entity: Optional[E] = _MISSING) -> None:
        """:meth:`AbstractRepository.update` 참고."""
        if old_entity is _MISSING:
            if entity is None:
                raise InvalidArgumentError("entity")
            await self._mark_modified(entity)
            return

        if entity is None:
            raise InvalidArgumentError("new_entity")
        if old_entity is None:
            raise InvalidArgumentError("old_entity")
        validate_version(entity, old_entity)
        await self._set_values(old_entity, entity)

    async def remove(self, item: Any) -> None:
        if item is None:
            return
        entity = await self.find_by_id(self._key_of(item))
        if entity is None:
            return
        await self._delete_all(split_deletions([entity]))

    async def remove_all(self, items: Optional[Iterable[Any]]) -> None:
        keys = normalize_keys((items,))
        if keys is None:
            return
        entities = await self.find_by_ids([self._key_of(it) for it in keys])
        hard_deletes = split_deletions(entities)
        if hard_deletes:
            await self._delete_all(hard_deletes)

    @abc.abstractmethod
    def _query(self) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    async def _get(self, id: Any) -> Optional[E]:
        raise NotImplementedError

    @abc.abstractmethod
    async def _get_many(self, ids: list[Any]) -> list[E]:
        raise NotImplementedError

    @abc.abstractmethod
    async def _first(self, *criteria: Any, **filter_by: Any) -> Optional[E]:
        raise NotImplementedError

    @abc.abstractmethod
    async def _add(self, entity: E) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def _add_all(self, entities: list[E]) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def _mark_modified(self, entity: E) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def _set_values(self, target: E, source: E) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def _delete_all(self, entities: list[E]) -> None:
        raise NotImplementedError
