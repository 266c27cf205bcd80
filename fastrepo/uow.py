"""UnitOfWork 패턴 모듈.

SqlAlchemy를 이용한 기본 구현체(동기, 비동기)를 제공합니다.
UoW 는 세션의 생명주기(시작, 커밋, 롤백, 종료)를 소유하며, 레포지터리는
:meth:`set` 과 :meth:`entry` 를 통해서만 세션을 사용합니다.
"""
from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from fastrepo.core import (
    AbstractAsyncRepository,
    AbstractAsyncUnitOfWork,
    AbstractRepository,
    AbstractUnitOfWork,
    AsyncEntityReposMap,
    ConcurrencyError,
    EntityReposMap,
    FastRepoError,
)
from fastrepo.logging import get_logger
from fastrepo.orm import (
    AsyncSessionMaker,
    Session,
    SessionMaker,
    get_async_sessionmaker,
    get_sessionmaker,
)
from fastrepo.repo import AsyncSqlAlchemyRepository, SqlAlchemyRepository
from fastrepo.tracking import AsyncEntitySet, EntityEntry, EntitySet

T = TypeVar("T")

RepoMakerFunc = Callable[["SqlAlchemyUnitOfWork"], AbstractRepository]
RepoMakerDict = dict[Type[Any], RepoMakerFunc]
AsyncRepoMakerFunc = Callable[["AsyncSqlAlchemyUnitOfWork"], AbstractAsyncRepository]
AsyncRepoMakerDict = dict[Type[Any], AsyncRepoMakerFunc]


logger = get_logger("fastrepo.uow")


def _stale_to_conflict(ex: StaleDataError) -> ConcurrencyError:
    logger.warning("optimistic concurrency conflict on commit: %s", ex)
    return ConcurrencyError(f"entity was changed by another transaction: {ex}")


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):  # type: ignore
    """``SqlAlchemy`` ORM을 이용한 UnitOfWork 패턴 구현입니다."""

    def __init__(
        self,
        entity_classes: Sequence[Type[Any]],
        get_session: Optional[SessionMaker] = None,
        repo_maker: Optional[RepoMakerDict] = None,
    ) -> None:
        """``SqlAlchemy`` 기반의 UoW를 초기화합니다."""
        super().__init__()
        self.entity_classes = entity_classes
        self.repos: EntityReposMap = {}
        self.repo_maker = repo_maker or {}

        if not get_session:
            self.get_session = get_sessionmaker()
        else:
            self.get_session = get_session

        self.committed = False
        self.session: Optional[Session] = None

    def __repr__(self):
        return f"SqlAlchemyUnitOfWork[{', '.join(c.__name__ for c in self.entity_classes)}]"

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        """``with`` 블록에 진입했을 때 필요한 작업을 수행합니다.

        세션을 할당하고, 엔티티 클래스별 레포지터리를 초기화합니다.
        """
        super().__enter__()
        self.session = self.get_session()
        self.committed = False
        for entity_class in self.entity_classes:
            repo_maker = self.repo_maker.get(entity_class)
            self.repos[entity_class] = (
                repo_maker(self)
                if repo_maker
                else SqlAlchemyRepository(entity_class, self)
            )
        logger.debug("%r started", self)
        return self

    def __exit__(self, *args: Any) -> None:
        """``with`` 블록을 빠져나갈 때 필요한 작업을 수행합니다.

        커밋되지 않은 변경을 롤백하고 세션을 close합니다.
        """
        super().__exit__(*args)
        if self.session:
            self.session.close()
            self.session = None
        logger.debug("%r closed", self)

    def _require_session(self) -> Session:
        if not self.session:
            raise FastRepoError(f"{self!r} is not started. use `with` block.")
        return self.session

    def set(self, entity_class: Type[T]) -> EntitySet[T]:
        """`entity_class` 의 :class:`EntitySet` 을 리턴합니다."""
        return EntitySet(self._require_session(), entity_class)

    def entry(self, entity: Any) -> EntityEntry:
        """`entity` 의 :class:`EntityEntry` 를 리턴합니다."""
        return EntityEntry(self._require_session(), entity)

    def _commit(self) -> None:
        """세션을 커밋합니다.

        Raises:
            :class:`ConcurrencyError`: 플러시 중 버전 컬럼 충돌이 감지된 경우.
        """
        session = self._require_session()
        try:
            session.commit()
        except StaleDataError as ex:
            raise _stale_to_conflict(ex) from ex
        self.committed = True
        logger.debug("%r committed", self)

    def rollback(self) -> None:
        """세션을 롤백합니다."""
        if self.session:
            self.session.rollback()


class AsyncSqlAlchemyUnitOfWork(AbstractAsyncUnitOfWork):  # type: ignore
    """:class:`AsyncSession` 을 이용한 비동기 UnitOfWork 구현입니다. ::

        async with AsyncSqlAlchemyUnitOfWork([Account]) as uow:
            await uow[Account].add(Account("kim"))
            await uow.commit()
    """

    def __init__(
        self,
        entity_classes: Sequence[Type[Any]],
        get_session: Optional[AsyncSessionMaker] = None,
        repo_maker: Optional[AsyncRepoMakerDict] = None,
    ) -> None:
        super().__init__()
        self.entity_classes = entity_classes
        self.repos: AsyncEntityReposMap = {}
        self.repo_maker = repo_maker or {}
        self.get_session = get_session or get_async_sessionmaker()
        self.committed = False
        self.session: Optional[AsyncSession] = None

    def __repr__(self):
        return f"AsyncSqlAlchemyUnitOfWork[{', '.join(c.__name__ for c in self.entity_classes)}]"

    async def __aenter__(self) -> AsyncSqlAlchemyUnitOfWork:
        await super().__aenter__()
        self.session = self.get_session()
        self.committed = False
        for entity_class in self.entity_classes:
            repo_maker = self.repo_maker.get(entity_class)
            self.repos[entity_class] = (
                repo_maker(self)
                if repo_maker
                else AsyncSqlAlchemyRepository(entity_class, self)
            )
        logger.debug("%r started", self)
        return self

    async def __aexit__(self, *args: Any) -> None:
        await super().__aexit__(*args)
        if self.session:
            await self.session.close()
            self.session = None
        logger.debug("%r closed", self)

    def _require_session(self) -> AsyncSession:
        if not self.session:
            raise FastRepoError(f"{self!r} is not started. use `async with` block.")
        return self.session

    def set(self, entity_class: Type[T]) -> AsyncEntitySet[T]:
        return AsyncEntitySet(self._require_session(), entity_class)

    def entry(self, entity: Any) -> EntityEntry:
        return EntityEntry(self._require_session().sync_session, entity)

    async def _commit(self) -> None:
        session = self._require_session()
        try:
            await session.commit()
        except StaleDataError as ex:
            raise _stale_to_conflict(ex) from ex
        self.committed = True
        logger.debug("%r committed", self)

    async def rollback(self) -> None:
        if self.session:
            await self.session.rollback()
