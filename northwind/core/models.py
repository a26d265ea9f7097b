from __future__ import annotations

import abc
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    Mapping,
    Optional,
    Type,
    TypeVar,
    Union,
)
from uuid import UUID


def is_saveable(entity_class: type) -> bool:
    """엔티티 클래스가 세션 소유권 필드(``user_session_id``)를 가지고 있는지 확인합니다.

    ``user_session_id`` 가 ``None`` 이면 모든 세션이 공유하는 기본 데이터이고,
    값이 있으면 그 값을 가진 세션만 조회할 수 있는 데이터입니다.
    """
    return hasattr(entity_class, "user_session_id")


class EntityState(str, Enum):
    """save bundle 에 담긴 엔티티의 변경 상태."""

    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"
    UNCHANGED = "Unchanged"


@dataclass
class EntityInfo:
    """저장 파이프라인을 흐르는 엔티티 하나의 정보.

    ``entity`` 는 클라이언트가 보낸 값으로 만든 (세션에 붙지 않은) 도메인 객체이고,
    ``original_values`` 는 클라이언트가 변경한 속성의 변경 전 값입니다.
    """

    entity: Any
    entity_state: EntityState
    original_values: dict[str, Any] = field(default_factory=dict)

    @property
    def entity_type(self) -> type:
        return type(self.entity)


@dataclass
class KeyMapping:
    """클라이언트의 임시 키와 DB 가 할당한 실제 키의 매핑."""

    entity_type_name: str
    temp_value: Any
    real_value: Any


@dataclass
class SaveResult:
    """저장 결과. 저장된 엔티티와 키 매핑 목록을 담습니다."""

    entities: list[Any] = field(default_factory=list)
    key_mappings: list[KeyMapping] = field(default_factory=list)


SaveMap = dict[Type[Any], list[EntityInfo]]
SaveBundleInput = Union[str, bytes, Mapping[str, Any]]

BeforeSaveEntityHook = Callable[[EntityInfo], bool]
BeforeSaveEntitiesHook = Callable[[SaveMap], SaveMap]
AfterSaveEntitiesHook = Callable[[SaveMap, list[KeyMapping]], None]


class AbstractSaveGuard(abc.ABC):
    """저장 파이프라인의 세 가지 훅을 구현하는 save guard 의 추상 인터페이스."""

    user_session_id: UUID

    @abc.abstractmethod
    def before_save_entity(self, info: EntityInfo) -> bool:
        """엔티티 하나를 저장하기 전에 호출됩니다. ``False`` 면 저장에서 제외합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def before_save_entities(self, save_map: SaveMap) -> SaveMap:
        """전체 엔티티를 저장하기 전에 호출됩니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def after_save_entities(
        self, save_map: SaveMap, key_mappings: list[KeyMapping]
    ) -> None:
        """DB 에 반영(flush)된 후, 커밋 전에 호출됩니다."""
        raise NotImplementedError


C = TypeVar("C")


class AbstractContextProvider(
    Generic[C], AbstractContextManager["AbstractContextProvider[C]"]
):
    """영속성 컨텍스트 제공자의 추상 인터페이스입니다.

    컨텍스트 타입(``context_class``)을 받아서 엔티티 컬렉션별 쿼리 핸들,
    save bundle 저장, 저장 훅 등록 지점, 메타데이터 문자열을 제공합니다.
    """

    context_class: Type[C]

    def __init__(self) -> None:
        self.before_save_entity_hooks: list[BeforeSaveEntityHook] = []
        self.before_save_entities_hooks: list[BeforeSaveEntitiesHook] = []
        self.after_save_entities_hooks: list[AfterSaveEntitiesHook] = []

    def __exit__(self, *args: Any) -> Literal[False]:
        self.close()
        return False

    @property
    @abc.abstractmethod
    def context(self) -> C:
        """컨텍스트 객체를 리턴합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def save_changes(self, save_bundle: SaveBundleInput) -> SaveResult:
        """save bundle 을 저장하고 결과를 리턴합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def metadata(self) -> str:
        """컨텍스트가 다루는 엔티티의 형태를 설명하는 문자열을 리턴합니다."""
        raise NotImplementedError

    def close(self) -> None:
        """컨텍스트와 연결된 자원을 반환합니다."""
        return

    def find_persistent(self, info: EntityInfo) -> Optional[Any]:
        """``info`` 와 같은 키로 저장되어 있는 엔티티를 리턴합니다. 없으면 ``None``."""
        return None
