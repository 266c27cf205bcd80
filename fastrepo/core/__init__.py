from .errors import (  # noqa
    ConcurrencyError,
    EntityDefinitionError,
    FastRepoError,
    InvalidArgumentError,
)
from .models import (  # noqa
    AbstractAsyncUnitOfWork,
    AbstractUnitOfWork,
    AsyncEntityReposMap,
    Entity,
    EntityReposMap,
    EntityState,
    SoftDeletable,
    Versioned,
)
from .repository import AbstractAsyncRepository, AbstractRepository  # noqa
