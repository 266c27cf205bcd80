import uuid


def random_suffix() -> str:
    """랜덤 ID뒤에 붙일 UUID 기반의 6자리 임의의 ID를 생성합니다."""
    return uuid.uuid4().hex[:6]


def random_name(name: str = "") -> str:
    """임의의 계정 이름을 생성합니다."""
    return f"user-{name}-{random_suffix()}"


def random_tag_id(num: int = 1) -> str:
    """임의의 Tag id를 생성합니다."""
    return f"tag-{num}-{random_suffix()}"
