from __future__ import annotations

import abc
import enum
from contextlib import AbstractAsyncContextManager, AbstractContextManager
from typing import (
    TYPE_CHECKING,
    Any,
    Optional,
    Protocol,
    Sequence,
    Type,
    TypeVar,
    runtime_checkable,
)

from fastrepo.core.errors import FastRepoError

if TYPE_CHECKING:
    from fastrepo.core.repository import AbstractAsyncRepository, AbstractRepository


class Entity(Protocol):
    """Entity 프로토콜 명세."""

    id: Any  # PK 컬럼으로 id 라는 필드를 제공해야 합니다.


class Versioned(Entity, Protocol):
    """동시성 토큰(`version`)을 가진 Entity 프로토콜 명세.

    토큰은 의미 없는 바이트열로 취급하며, 저장소가 UPDATE 마다 새 값을 부여합니다.
    """

    version: Optional[bytes]


@runtime_checkable
class SoftDeletable(Protocol):
    """소프트 삭제를 지원하는 엔티티 프로토콜.

    이 프로토콜을 만족하는 엔티티는 삭제시 실제로 지워지지 않고
    ``is_deleted`` 플래그만 설정됩니다.
    """

    is_deleted: bool


E = TypeVar("E", bound=Versioned)


class EntityState(enum.Enum):
    """Unit of Work 가 추적하는 엔티티 상태."""

    DETACHED = "detached"
    ADDED = "added"
    UNCHANGED = "unchanged"
    MODIFIED = "modified"
    DELETED = "deleted"


EntityReposMap = dict[Type[Any], "AbstractRepository"]
AsyncEntityReposMap = dict[Type[Any], "AbstractAsyncRepository"]


class AbstractUnitOfWork(AbstractContextManager["AbstractUnitOfWork"]):
    """UnitOfWork 패턴의 추상 인터페이스입니다.

    UnitOfWork(UoW)는 영구 저장소의 유일한 진입점이며, 로드된 객체의
    최신 상태를 계속 트래킹 합니다.
    """

    entity_classes: Sequence[Type[Any]]
    repos: EntityReposMap

    def __enter__(self) -> AbstractUnitOfWork:
        """``with`` 블록에 진입했을때 실행되는 메소드입니다."""
        return self

    def __exit__(self, *args: Any) -> None:
        """``with`` 블록에서 빠져나갈 때 실행되는 메소드입니다."""
        self.rollback()  # commit() 안되었을때 변경을 롤백합니다.
        # (이미 커밋 되었을 경우 rollback은 아무 효과도 없음)

    def __getitem__(self, key: Type[E]) -> AbstractRepository[E]:
        if key not in self.repos:
            raise FastRepoError("repository not found for: %r" % key)
        return self.repos[key]

    def commit(self) -> None:
        """세션을 커밋합니다."""
        self._commit()

    @abc.abstractmethod
    def set(self, entity_class: Type[E]) -> Any:
        """`entity_class` 에 대한 엔티티 집합(조회, 추가, 삭제)을 리턴합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def entry(self, entity: Any) -> Any:
        """`entity` 의 상태를 추적하는 핸들을 리턴합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        """세션을 롤백합니다."""
        raise NotImplementedError


class AbstractAsyncUnitOfWork(AbstractAsyncContextManager["AbstractAsyncUnitOfWork"]):
    """:class:`AbstractUnitOfWork` 의 비동기 버전입니다."""

    entity_classes: Sequence[Type[Any]]
    repos: AsyncEntityReposMap

    async def __aenter__(self) -> AbstractAsyncUnitOfWork:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.rollback()

    def __getitem__(self, key: Type[E]) -> AbstractAsyncRepository[E]:
        if key not in self.repos:
            raise FastRepoError("repository not found for: %r" % key)
        return self.repos[key]

    async def commit(self) -> None:
        """세션을 커밋합니다."""
        await self._commit()

    @abc.abstractmethod
    def set(self, entity_class: Type[E]) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    def entry(self, entity: Any) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    async def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        """세션을 롤백합니다."""
        raise NotImplementedError
