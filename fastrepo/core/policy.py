"""레포지터리가 적용하는 두 가지 정책(낙관적 동시성, 소프트 삭제) 구현.

동기/비동기 레포지터리가 같은 규칙을 공유할 수 있도록 순수 함수로 분리했습니다.
"""
from __future__ import annotations

from typing import Any, Iterable, Type

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable

from fastrepo.core.errors import ConcurrencyError, EntityDefinitionError
from fastrepo.core.models import SoftDeletable, Versioned

REQUIRED_FIELDS = ("id", "version")


def has_field(cls: Type, name: str) -> bool:
    """클래스(또는 상위 클래스)가 `name` 필드를 선언했는지 확인합니다.

    dataclass 처럼 기본값 없이 어노테이션만 있는 필드도 선언된 것으로 봅니다.
    """
    return any(
        name in vars(klass) or name in getattr(klass, "__annotations__", {})
        for klass in cls.__mro__
    )


def check_entity_class(entity_class: Type) -> None:
    """레포지터리가 다룰 수 있는 엔티티 클래스인지 검사합니다.

    Raises:
        :class:`EntityDefinitionError`: `id` 또는 `version` 필드가 없을 때.
    """
    missing = [f for f in REQUIRED_FIELDS if not has_field(entity_class, f)]
    if missing:
        raise EntityDefinitionError(
            f"{entity_class.__name__} must provide field(s): {', '.join(missing)}"
        )


def describe_entity(entity: Any) -> str:
    """진단 메세지에 사용할 엔티티 스냅샷 문자열을 만듭니다.

    SqlAlchemy 에 매핑된 객체라면 컬럼 속성만, 아니라면 public 인스턴스 속성을 출력합니다.
    """
    if entity is None:
        return "None"

    try:
        mapper = sa_inspect(type(entity))
        keys = [attr.key for attr in mapper.column_attrs]
    except NoInspectionAvailable:
        keys = [k for k in vars(entity) if not k.startswith("_")]

    fields = ", ".join(f"{k}={getattr(entity, k, None)!r}" for k in keys)
    return f"{type(entity).__name__}({fields})"


def validate_version(new_entity: Versioned, old_entity: Versioned) -> None:
    """`new_entity` 의 버전 토큰이 `old_entity` 와 바이트 단위로 같은지 검사합니다.

    앞부분만 같고 길이가 다른 토큰(예: ``[1, 2, 0]`` 과 ``[1, 2]``)도 불일치로 봅니다.

    Raises:
        :class:`ConcurrencyError`: 새 버전이 없거나, 길이 또는 바이트가 다를 때.
    """
    new_version, old_version = new_entity.version, old_entity.version

    if new_version is None:
        raise _conflict("version token is missing", new_entity, old_entity)

    if old_version is None or len(new_version) != len(old_version):
        raise _conflict("version token does not match", new_entity, old_entity)

    for new_byte, old_byte in zip(bytes(new_version), bytes(old_version)):
        if new_byte != old_byte:
            raise _conflict("version token does not match", new_entity, old_entity)


def _conflict(reason: str, new_entity: Any, old_entity: Any) -> ConcurrencyError:
    message = (
        f"{reason}: new entity: {describe_entity(new_entity)},"
        f" old entity: {describe_entity(old_entity)}"
    )
    return ConcurrencyError(message, new_entity=new_entity, old_entity=old_entity)


def is_soft_deletable(entity: Any) -> bool:
    """엔티티가 소프트 삭제 기능(``is_deleted`` 플래그)을 제공하는지 확인합니다."""
    return isinstance(entity, SoftDeletable)


def split_deletions(entities: Iterable[Any]) -> list[Any]:
    """소프트 삭제가 가능한 엔티티는 플래그만 설정하고, 나머지를 리턴합니다.

    리턴된 엔티티들은 호출한 쪽에서 저장소로부터 실제로 삭제해야 합니다.
    """
    hard_deletes = []
    for entity in entities:
        if is_soft_deletable(entity):
            entity.is_deleted = True
        else:
            hard_deletes.append(entity)
    return hard_deletes
