"""FastRepo - SqlAlchemy 기반의 범용 레포지터리/UnitOfWork 라이브러리."""
from fastrepo.config import FastRepoConfig  # noqa
from fastrepo.core import (  # noqa
    AbstractAsyncRepository,
    AbstractAsyncUnitOfWork,
    AbstractRepository,
    AbstractUnitOfWork,
    ConcurrencyError,
    Entity,
    EntityDefinitionError,
    EntityState,
    FastRepoError,
    InvalidArgumentError,
    SoftDeletable,
    Versioned,
)
from fastrepo.orm import next_row_version  # noqa
from fastrepo.repo import AsyncSqlAlchemyRepository, SqlAlchemyRepository  # noqa
from fastrepo.uow import AsyncSqlAlchemyUnitOfWork, SqlAlchemyUnitOfWork  # noqa
