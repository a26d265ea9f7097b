import uuid


def random_suffix() -> str:
    """랜덤 ID뒤에 붙일 UUID 기반의 6자리 임의의 ID를 생성합니다."""
    return uuid.uuid4().hex[:6]


def random_session_id() -> uuid.UUID:
    """임의의 사용자 세션 id 를 생성합니다."""
    return uuid.uuid4()


def random_company_name(prefix: str = "") -> str:
    """임의의 회사 이름을 생성합니다."""
    return f"{prefix}company-{random_suffix()}"
