"""ORM 어댑터 모듈"""
from __future__ import annotations

import io
import logging
import re
from contextlib import AbstractContextManager, contextmanager
from typing import Any, Callable, Generator, Optional, Type, Union, cast

from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import clear_mappers as _clear_mappers
from sqlalchemy.orm import registry, sessionmaker
from sqlalchemy.orm.session import Session
from sqlalchemy.pool import Pool

from fastrepo.config import FastRepoConfig, get_config
from fastrepo.logging import get_logger

SessionMaker = Callable[[], Session]
"""Session 팩토리 타입."""
AsyncSessionMaker = Callable[[], AsyncSession]
"""AsyncSession 팩토리 타입."""
ScopedSession = AbstractContextManager[Session]
MapperHook = Callable[[registry], Any]
"""매퍼 레지스트리를 받아 테이블과 도메인 클래스를 매핑하는 사용자 함수 타입."""

ROW_VERSION_SIZE = 8

mapper_registry: Optional[registry] = None

__session_factory: Optional[SessionMaker] = None
__async_session_factory: Optional[AsyncSessionMaker] = None

logger = get_logger("fastrepo.orm")


def next_row_version(current: Optional[bytes]) -> bytes:
    """다음 행 버전 토큰을 만듭니다.

    8바이트 big-endian 카운터입니다. 매퍼의 ``version_id_generator`` 로 지정하면
    INSERT/UPDATE 마다 SqlAlchemy 가 새 토큰을 부여합니다. ::

        mapper_registry.map_imperatively(
            Account, account,
            version_id_col=account.c.version,
            version_id_generator=next_row_version,
        )
    """
    counter = int.from_bytes(current, "big") if current else 0
    return (counter + 1).to_bytes(ROW_VERSION_SIZE, "big")


def get_sessionmaker() -> SessionMaker:
    """기본설정으로 SqlAlchemy Session 팩토리를 만듭니다."""
    global __session_factory

    if not __session_factory:
        config = get_config()
        url = config.get_db_url()
        engine = init_engine(
            start_mappers().metadata,
            url,
            connect_args=config.get_db_connect_args(url),
            poolclass=config.get_db_poolclass(url),
            show_log=config.echo,
        )
        __session_factory = cast(SessionMaker, sessionmaker(engine))

    return __session_factory


def set_default_sessionmaker(session_factory: Optional[SessionMaker]) -> None:
    """:func:`get_sessionmaker` 가 리턴할 기본 Session 팩토리를 교체합니다."""
    global __session_factory
    __session_factory = session_factory


def get_async_sessionmaker() -> AsyncSessionMaker:
    """기본설정으로 AsyncSession 팩토리를 만듭니다.

    스키마 생성은 비동기 작업이므로 여기서는 하지 않습니다.
    필요하면 :func:`init_async_db` 를 사용하세요.
    """
    global __async_session_factory

    if not __async_session_factory:
        config = get_config()
        url = config.get_async_db_url()
        start_mappers()
        engine = init_async_engine(
            url,
            connect_args=config.get_db_connect_args(url),
            poolclass=config.get_db_poolclass(url),
            show_log=config.echo,
        )
        __async_session_factory = async_sessionmaker(engine, expire_on_commit=False)

    return __async_session_factory


def set_default_async_sessionmaker(
    session_factory: Optional[AsyncSessionMaker],
) -> None:
    """:func:`get_async_sessionmaker` 가 리턴할 기본 팩토리를 교체합니다."""
    global __async_session_factory
    __async_session_factory = session_factory


def init_db(
    db_url: Optional[str] = None,
    drop_all: bool = False,
    show_log: bool = False,
    init_hooks: list[MapperHook] = None,
    config: FastRepoConfig = None,
) -> SessionMaker:
    """DB 엔진을 초기화 하고, 기본 Session 팩토리로 등록합니다."""
    config = config or get_config()
    url = db_url or config.get_db_url()
    meta = start_mappers(init_hooks=init_hooks).metadata

    engine = init_engine(
        meta,
        url,
        connect_args=config.get_db_connect_args(url),
        poolclass=config.get_db_poolclass(url),
        drop_all=drop_all,
        show_log=show_log,
    )
    session_factory = cast(SessionMaker, sessionmaker(engine))
    set_default_sessionmaker(session_factory)
    return session_factory


async def init_async_db(
    db_url: Optional[str] = None,
    drop_all: bool = False,
    init_hooks: list[MapperHook] = None,
    config: FastRepoConfig = None,
) -> AsyncSessionMaker:
    """비동기 DB 엔진을 초기화 하고 스키마를 생성합니다."""
    config = config or get_config()
    url = db_url or config.get_async_db_url()
    meta = start_mappers(init_hooks=init_hooks).metadata

    engine = init_async_engine(
        url,
        connect_args=config.get_db_connect_args(url),
        poolclass=config.get_db_poolclass(url),
    )
    async with engine.begin() as conn:
        if drop_all:
            await conn.run_sync(meta.drop_all)
        await conn.run_sync(meta.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    set_default_async_sessionmaker(session_factory)
    return session_factory


def start_mappers(
    use_exist: bool = True, init_hooks: list[MapperHook] = None
) -> registry:
    """도메인 객체들을 SqlAlchemy ORM 매퍼에 등록합니다."""
    global mapper_registry  # pylint: disable=global-statement,invalid-name
    if use_exist and mapper_registry:
        return mapper_registry

    mapper_registry = registry(metadata=MetaData())

    # 사용자 매핑 함수 추가.
    if init_hooks:
        for hook in init_hooks:
            hook(mapper_registry)

    return mapper_registry


def clear_mappers() -> None:
    """ORM 매핑을 초기화 합니다."""
    global mapper_registry
    _clear_mappers()
    mapper_registry = None


def init_engine(
    meta: MetaData,
    url: str,
    connect_args: Optional[dict[str, Any]] = None,
    poolclass: Optional[Type[Pool]] = None,
    show_log: Union[bool, dict[str, Any]] = False,
    isolation_level: Optional[str] = None,
    drop_all: bool = False,
) -> Engine:
    """ORM Engine을 초기화 하고 `meta` 의 테이블들을 생성합니다.

    Args:
        show_log: ``True`` 면 생성된 ``CREATE`` 문만, ``{"all": True}`` 면
            엔진이 출력한 모든 SQL 로그를 ``fastrepo.orm`` 로거로 출력합니다.
    """
    sa_logger = logging.getLogger("sqlalchemy.engine.Engine")
    out = io.StringIO()
    handler = logging.StreamHandler(out)
    sa_logger.addHandler(handler)

    kwargs: dict[str, Any] = dict(
        connect_args=connect_args or {},
        echo=bool(show_log),
    )
    if poolclass:
        kwargs["poolclass"] = poolclass
    if isolation_level:
        kwargs["isolation_level"] = isolation_level

    try:
        engine = create_engine(url, **kwargs)

        if drop_all:
            meta.drop_all(engine)

        meta.create_all(engine)
    finally:
        sa_logger.removeHandler(handler)

    logger.debug("engine initialized: %s", engine.url)

    if show_log:
        log_txt = out.getvalue()
        if show_log is True:
            logger.info("".join(re.findall("CREATE.*?\n\n", log_txt, re.DOTALL | re.I)))
        elif isinstance(show_log, dict):
            if show_log.get("all"):
                logger.info(log_txt)

    return engine


def init_async_engine(
    url: str,
    connect_args: Optional[dict[str, Any]] = None,
    poolclass: Optional[Type[Pool]] = None,
    show_log: bool = False,
) -> AsyncEngine:
    """비동기 ORM Engine을 초기화 합니다."""
    kwargs: dict[str, Any] = dict(connect_args=connect_args or {}, echo=show_log)
    if poolclass:
        kwargs["poolclass"] = poolclass

    engine = create_async_engine(url, **kwargs)
    logger.debug("async engine initialized: %s", engine.url)
    return engine


def get_scoped_session(engine: Engine) -> Callable[[], ScopedSession]:
    """``with...`` 문으로 자동 리소스가 반환되는 세션을 리턴합니다.

    Example: ::

        with get_scoped_session(engine)() as db:
            accounts = db.query(Account).all()
            ...

    Args:
        engine: Engine.

    """
    session_factory = sessionmaker(engine)

    @contextmanager
    def scoped_session() -> Generator[Session, None, None]:
        session: Optional[Session] = None
        try:
            yield (session := session_factory())  # pylint: disable=superfluous-parens
        finally:
            if session:
                session.close()  # pylint: disable=no-member

    return scoped_session
