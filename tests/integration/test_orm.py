import logging

from sqlalchemy import Column, Integer, MetaData, Table, text
from sqlalchemy.orm import Session

from fastrepo.config import FastRepoConfig
from fastrepo.orm import (
    ROW_VERSION_SIZE,
    get_scoped_session,
    get_sessionmaker,
    init_db,
    init_engine,
    next_row_version,
    set_default_sessionmaker,
)
from tests.app.domain.models import Account, Tag


def test_next_row_version_is_fixed_size_counter() -> None:
    first = next_row_version(None)
    assert first == b"\x00" * 7 + b"\x01"
    assert len(first) == ROW_VERSION_SIZE
    assert next_row_version(first) == b"\x00" * 7 + b"\x02"
    assert next_row_version(b"\x00" * 7 + b"\xff") == b"\x00" * 6 + b"\x01\x00"


def test_account_mapper_can_save_and_load(session: Session) -> None:
    session.add(Account("kim", email="kim@example.com"))
    session.commit()

    rows = list(session.execute(text("SELECT name, email, is_deleted, version FROM account")))
    assert rows == [("kim", "kim@example.com", False, next_row_version(None))]

    [account] = session.query(Account).all()
    assert account.name == "kim"


def test_version_changes_on_every_update(session: Session) -> None:
    tag = Tag("t1", "first")
    session.add(tag)
    session.commit()
    versions = [tag.version]

    for label in ("second", "third"):
        tag.label = label
        session.commit()
        versions.append(tag.version)

    assert len(set(versions)) == 3
    assert versions[-1] == next_row_version(versions[-2])


def test_get_scoped_session_closes_session(session: Session) -> None:
    engine = session.get_bind()
    scoped_session = get_scoped_session(engine)

    with scoped_session() as db:
        db.add(Tag("t1", "label"))
        db.commit()
        assert db.query(Tag).count() == 1

    assert not db.in_transaction()


def test_init_engine_logs_create_statements(caplog) -> None:
    meta = MetaData()
    Table("account", meta, Column("id", Integer, primary_key=True))

    with caplog.at_level(logging.INFO, logger="fastrepo.orm"):
        engine = init_engine(meta, "sqlite://", show_log=True)

    assert "CREATE TABLE account" in caplog.text
    engine.dispose()


def test_init_db_registers_default_sessionmaker(session: Session) -> None:
    # session 픽스쳐가 매퍼를 등록한 상태에서 새로운 DB를 초기화합니다.
    config = FastRepoConfig(db_url="sqlite://")
    try:
        get_session = init_db(config=config)
        assert get_sessionmaker() is get_session

        with get_session() as db:
            db.add(Tag("t1", "label"))
            db.commit()
            assert db.query(Tag).count() == 1
    finally:
        set_default_sessionmaker(None)
