"""Northwind 데이터 접근 계층.

세션 단위로 격리된 Northwind 샘플 데이터에 대한 쿼리, 저장, 초기화를 제공합니다.
"""
from northwind.repository import (  # noqa
    GUEST_USER_SESSION_ID,
    NorthwindRepository,
    normalize_session_id,
)

__version__ = "0.1"
