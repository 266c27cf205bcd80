from typing import Optional, cast

from sqlalchemy import text
from sqlalchemy.orm import Session

from fastrepo.orm import next_row_version
from tests import random_name, random_tag_id


def insert_account(session: Session, name: str = "", is_deleted: bool = False) -> int:
    if not name:
        name = random_name()

    session.execute(
        text(
            "INSERT INTO account (name, email, is_deleted, version)"
            " VALUES (:name, :email, :is_deleted, :version)"
        ),
        dict(
            name=name,
            email=f"{name}@example.com",
            is_deleted=is_deleted,
            version=next_row_version(None),
        ),
    )
    [[account_id]] = session.execute(
        text("SELECT id FROM account WHERE name=:name"), dict(name=name)
    )

    return cast(int, account_id)


def insert_tag(session: Session, tag_id: str = "", label: str = "label") -> str:
    if not tag_id:
        tag_id = random_tag_id()

    session.execute(
        text("INSERT INTO tag (id, label, version) VALUES (:id, :label, :version)"),
        dict(id=tag_id, label=label, version=next_row_version(None)),
    )
    return tag_id


def select_account(session: Session, account_id: int) -> Optional[tuple]:
    return session.execute(
        text("SELECT name, email, is_deleted, version FROM account WHERE id=:id"),
        dict(id=account_id),
    ).first()


def count_rows(session: Session, table: str) -> int:
    [[count]] = session.execute(text(f"SELECT count(*) FROM {table}"))
    return cast(int, count)
