from dataclasses import dataclass
from typing import Optional

import pytest

from fastrepo.core import ConcurrencyError, EntityDefinitionError
from fastrepo.core.policy import (
    check_entity_class,
    describe_entity,
    has_field,
    is_soft_deletable,
    split_deletions,
    validate_version,
)
from fastrepo.core.repository import normalize_keys


@dataclass
class Document:
    title: str
    id: Optional[int] = None
    version: Optional[bytes] = None


@dataclass
class Draft(Document):
    is_deleted: bool = False


class Note:
    id: int


def test_has_field_checks_annotations_and_bases() -> None:
    assert has_field(Document, "version")
    assert has_field(Draft, "id")
    assert has_field(Draft, "is_deleted")
    assert not has_field(Note, "version")


def test_check_entity_class() -> None:
    check_entity_class(Document)
    check_entity_class(Draft)

    with pytest.raises(EntityDefinitionError, match="Note must provide field"):
        check_entity_class(Note)

    with pytest.raises(TypeError):
        check_entity_class(object)


def test_describe_entity_lists_public_fields() -> None:
    assert describe_entity(None) == "None"
    assert describe_entity(Document("a", 1, b"\x01")) == (
        "Document(title='a', id=1, version=b'\\x01')"
    )


def test_validate_version_message_contains_both_entities() -> None:
    new, old = Document("new", 1, b"\x01\x02"), Document("old", 1, b"\x01\x03")

    with pytest.raises(ConcurrencyError) as exc_info:
        validate_version(new, old)

    message = str(exc_info.value)
    assert "new entity: Document(title='new'" in message
    assert "old entity: Document(title='old'" in message

    validate_version(Document("x", 1, b"\x01\x03"), old)


def test_soft_delete_is_decided_per_entity() -> None:
    draft, document = Draft("draft", 1), Document("doc", 2)

    assert is_soft_deletable(draft)
    assert not is_soft_deletable(document)
    assert split_deletions([draft, document]) == [document]
    assert draft.is_deleted


@pytest.mark.parametrize(
    "args, expected",
    [
        ((None,), None),
        ((), []),
        ((1,), [1]),
        ((1, 2), [1, 2]),
        (([1, 2],), [1, 2]),
        (((1, 2),), [1, 2]),
        (({3},), [3]),
        (("abc",), ["abc"]),
        ((b"\x01",), [b"\x01"]),
        (([(1, "a")],), [(1, "a")]),
    ],
)
def test_normalize_keys(args, expected) -> None:
    assert normalize_keys(args) == expected
