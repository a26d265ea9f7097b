"""세션 단위로 저장을 제한하는 save guard."""
from __future__ import annotations

from typing import Any, Callable, Optional
from uuid import UUID

from sqlalchemy import inspect

from northwind.core import (
    AbstractSaveGuard,
    EntityError,
    EntityErrorsError,
    EntityInfo,
    EntityState,
    KeyMapping,
    SaveMap,
    get_logger,
    is_saveable,
)

DEFAULT_MAX_ENTITIES = 100

logger = get_logger("northwind.guard")


def _key_values(entity: Any) -> list[Any]:
    mapper = inspect(type(entity))
    return [
        getattr(entity, mapper.get_property_by_column(c).key)
        for c in mapper.primary_key
    ]


class NorthwindEntitySaveGuard(AbstractSaveGuard):
    """세션 데이터를 보호하는 save guard.

    - 세션 소유권 필드가 없는 참조 엔티티는 읽기 전용입니다.
    - 새로 추가되는 엔티티에는 현재 세션 id 를 기록합니다.
    - 다른 세션(또는 공유 기본 데이터)의 엔티티는 수정/삭제할 수 없습니다.
    """

    def __init__(
        self,
        user_session_id: UUID,
        max_entities: int = DEFAULT_MAX_ENTITIES,
        load_persistent: Optional[Callable[[EntityInfo], Any]] = None,
    ):
        self.user_session_id = user_session_id
        self.max_entities = max_entities
        self.load_persistent = load_persistent

    def __repr__(self) -> str:
        return f"NorthwindEntitySaveGuard[{self.user_session_id}]"

    def _reject(self, info: EntityInfo, message: str, property_name=None):
        entity_type_name = info.entity_type.__name__
        raise EntityErrorsError(
            message,
            [
                EntityError(
                    error_name="SaveGuard",
                    entity_type_name=entity_type_name,
                    error_message=message,
                    key_values=_key_values(info.entity),
                    property_name=property_name,
                )
            ],
        )

    def before_save_entity(self, info: EntityInfo) -> bool:
        entity = info.entity
        type_name = info.entity_type.__name__

        if not is_saveable(info.entity_type):
            self._reject(info, f"{type_name} is read-only and cannot be saved")

        if info.entity_state == EntityState.ADDED:
            entity.user_session_id = self.user_session_id
            return True

        if info.entity_state in (EntityState.MODIFIED, EntityState.DELETED):
            if entity.user_session_id != self.user_session_id:
                self._reject(
                    info,
                    f"cannot save changes to a {type_name} of another session",
                    property_name="user_session_id",
                )
            if "user_session_id" in info.original_values:
                self._reject(
                    info,
                    f"cannot change the session of a {type_name}",
                    property_name="user_session_id",
                )
            # 클라이언트가 보낸 세션 id 가 아닌 저장된 row 의 세션 id 로 확인
            stored = self.load_persistent(info) if self.load_persistent else None
            if stored is not None and stored.user_session_id != self.user_session_id:
                self._reject(
                    info,
                    f"cannot save changes to a {type_name} of another session",
                    property_name="user_session_id",
                )
            return True

        # Unchanged
        return False

    def before_save_entities(self, save_map: SaveMap) -> SaveMap:
        count = sum(len(infos) for infos in save_map.values())
        if count > self.max_entities:
            raise EntityErrorsError(
                f"too many entities in one save: {count} > {self.max_entities}"
            )
        return save_map

    def after_save_entities(
        self, save_map: SaveMap, key_mappings: list[KeyMapping]
    ) -> None:
        for entity_type, infos in save_map.items():
            logger.info(
                "session %s saved %d %s",
                self.user_session_id,
                len(infos),
                entity_type.__name__,
            )
        if key_mappings:
            logger.debug("key mappings: %s", key_mappings)
