from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence


class NorthwindError(Exception):
    """``northwind`` 와 관련된 모든 에러의 기본 클래스."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    ...


class NorthwindConfigError(NorthwindError):
    """설정 로딩 실패 에러."""

    ...


class SaveBundleError(NorthwindError):
    """save bundle 의 형식이 잘못되었거나 알 수 없는 엔티티 타입이 포함된 경우."""

    ...


@dataclass
class EntityError:
    """저장이 거부된 엔티티 하나에 대한 에러 정보."""

    error_name: str
    entity_type_name: str
    error_message: str
    key_values: Optional[list[Any]] = None
    property_name: Optional[str] = None


class EntityErrorsError(NorthwindError):
    """save guard 가 하나 이상의 엔티티 저장을 거부했을 때 발생합니다."""

    def __init__(self, message: str, entity_errors: Sequence[EntityError] = ()):
        super().__init__(message)
        self.entity_errors = list(entity_errors)
