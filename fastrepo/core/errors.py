from typing import Any, Optional


class FastRepoError(Exception):
    """``FastRepo`` 와 관련된 모든 에러의 기본 클래스."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    ...


class InvalidArgumentError(FastRepoError, ValueError):
    """필수 인자로 ``None`` 이 전달되었을 때 발생하는 에러."""

    def __init__(self, param_name: str):
        super().__init__(f"{param_name} must not be None")
        self.param_name = param_name


class ConcurrencyError(FastRepoError):
    """낙관적 동시성 검사(버전 토큰 비교)에 실패했을 때 발생하는 에러.

    진단을 위해 수정하려던 엔티티와 현재 추적중인 엔티티를 함께 가지고 있습니다.
    이 에러는 재시도 없이 호출자에게 그대로 전달되어야 합니다.
    """

    def __init__(
        self,
        message: str = "concurrency conflict",
        new_entity: Optional[Any] = None,
        old_entity: Optional[Any] = None,
    ):
        super().__init__(message)
        self.new_entity = new_entity
        self.old_entity = old_entity


class EntityDefinitionError(FastRepoError, TypeError):
    """엔티티 클래스가 레포지터리에 필요한 필드(`id`, `version`)를 제공하지 않을 때 발생합니다."""

    ...
