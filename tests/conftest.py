# pylint: disable=redefined-outer-name, protected-access
"""pytest 에서 사용될 전역 Fixture들을 정의합니다."""
from __future__ import annotations

from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fastrepo.orm import (
    AsyncSessionMaker,
    SessionMaker,
    clear_mappers,
    start_mappers,
)
from fastrepo.uow import AsyncSqlAlchemyUnitOfWork, SqlAlchemyUnitOfWork
from tests.app.adapters.orm import init_mappers
from tests.app.domain.models import Account, Tag

# types

AddAccountsFunc = Callable[..., list[int]]
""":meth:`add_accounts` 픽스쳐 함수 타입."""


def memory_sessionmaker() -> SessionMaker:
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    clear_mappers()
    mapper_registry = start_mappers(use_exist=False, init_hooks=[init_mappers])
    mapper_registry.metadata.create_all(engine)
    return sessionmaker(engine)


@pytest.fixture
def get_session() -> SessionMaker:
    """:class:`.Session` 팩토리 메소드를 리턴하는 픽스쳐 입니다.

    호출시마다 새 메모리 DB를 만들고 매퍼를 재등록합니다.
    """
    return memory_sessionmaker()


@pytest.fixture
def session(get_session: SessionMaker) -> Session:
    """테스트에 사용될 새로운 :class:`.Session` 픽스처를 리턴합니다.

    :rtype: :class:`~sqlalchemy.orm.Session`
    """
    return get_session()


@pytest.fixture
def uow(get_session: SessionMaker) -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork([Account, Tag], get_session)


@pytest.fixture
def add_accounts(get_session: SessionMaker) -> AddAccountsFunc:
    """계정들을 저장하고 부여된 id 목록을 리턴하는 함수를 제공합니다."""

    def wrapper(*names: str) -> list[int]:
        with get_session() as session:
            accounts = [Account(name, email=f"{name}@example.com") for name in names]
            session.add_all(accounts)
            session.commit()
            return [it.id for it in accounts]

    return wrapper


@pytest_asyncio.fixture
async def get_async_session() -> AsyncGenerator[AsyncSessionMaker, None]:
    """비동기 테스트용 :class:`AsyncSession` 팩토리 픽스쳐 입니다."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    clear_mappers()
    mapper_registry = start_mappers(use_exist=False, init_hooks=[init_mappers])
    async with engine.begin() as conn:
        await conn.run_sync(mapper_registry.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def async_uow(get_async_session: AsyncSessionMaker) -> AsyncSqlAlchemyUnitOfWork:
    return AsyncSqlAlchemyUnitOfWork([Account, Tag], get_async_session)
