"""SqlAlchemy 기반 영속성 컨텍스트 제공자.

변경 추적, SQL 생성, 낙관적 동시성 검사는 SqlAlchemy 에 그대로 맡기고,
이 모듈은 save bundle 을 세션 작업으로 옮기는 좁은 파이프라인과
매퍼 정보로부터 메타데이터 문서를 만드는 기능만 제공합니다.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import Column, Integer, Table, inspect
from sqlalchemy.orm import Mapper, Session
from sqlalchemy.orm.exc import StaleDataError
from pydantic.alias_generators import to_camel

from northwind.context import BaseContext
from northwind.core import (
    AbstractContextProvider,
    EntityInfo,
    EntityState,
    KeyMapping,
    SaveBundleError,
    SaveBundleInput,
    SaveMap,
    SaveResult,
    get_logger,
)
from northwind.orm import SessionMaker, get_sessionmaker, start_mappers
from northwind.schema import (
    DataProperty,
    EntityTypeMetadata,
    MetadataDocument,
    NavigationProperty,
    SaveBundle,
    SaveBundleEntity,
    type_adapter,
)

C = TypeVar("C", bound=BaseContext)

logger = get_logger("northwind.provider")

DATA_TYPES = {
    "int": "Int32",
    "str": "String",
    "UUID": "Guid",
    "datetime": "DateTime",
    "date": "DateTime",
    "Decimal": "Decimal",
    "float": "Double",
    "bool": "Boolean",
}


def identity_key_column(mapper: Mapper) -> Optional[Column]:
    """DB 가 값을 할당하는 정수형 단일 키 컬럼을 리턴합니다. 없으면 ``None``."""
    pks = mapper.primary_key
    if len(pks) != 1:
        return None
    pk = pks[0]
    if pk.autoincrement is True and isinstance(pk.type, Integer):
        return pk
    return None


def _table_of(entity_class: Type[Any]) -> Table:
    return inspect(entity_class).local_table


def _table_order(entity_class: Type[Any]) -> int:
    """외래키 의존 순서(부모 먼저)로 정렬하기 위한 테이블 순번."""
    table = _table_of(entity_class)
    return table.metadata.sorted_tables.index(table)


class SqlAlchemyContextProvider(AbstractContextProvider[C], Generic[C]):
    """컨텍스트 클래스를 받아서 세션, 저장 파이프라인, 메타데이터를 제공합니다.

    세션은 :attr:`context` 에 처음 접근할 때 열리고 :meth:`close` 에서 닫힙니다.
    """

    def __init__(
        self, context_class: Type[C], get_session: Optional[SessionMaker] = None
    ) -> None:
        super().__init__()
        self.context_class = context_class
        self._get_session = get_session
        self._session: Optional[Session] = None
        self._context: Optional[C] = None

    def __repr__(self) -> str:
        return f"SqlAlchemyContextProvider[{self.context_class.__name__}]"

    @property
    def session(self) -> Session:
        if self._session is None:
            get_session = self._get_session or get_sessionmaker()
            self._session = get_session()
        return self._session

    @property
    def context(self) -> C:
        if self._context is None:
            self._context = self.context_class(self.session)  # type: ignore
        return self._context

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
        self._session = None
        self._context = None

    # Save pipeline

    def save_changes(self, save_bundle: SaveBundleInput) -> SaveResult:
        """save bundle 을 하나의 트랜잭션으로 저장합니다.

        어떤 예외가 발생해도 롤백 후 그대로 다시 발생시킵니다.
        """
        bundle = SaveBundle.parse(save_bundle)
        infos = [self.create_entity_info(it) for it in bundle.entities]

        session = self.session
        try:
            save_map: SaveMap = defaultdict(list)
            for info in infos:
                if self._before_save_entity(info):
                    save_map[info.entity_type].append(info)

            for hook in self.before_save_entities_hooks:
                save_map = hook(save_map)

            entities, key_mappings = self._apply(session, save_map)
            session.flush()

            for after_hook in self.after_save_entities_hooks:
                after_hook(save_map, key_mappings)

            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.debug(
            "saved %d entities (%d key mappings)", len(entities), len(key_mappings)
        )
        return SaveResult(entities=entities, key_mappings=key_mappings)

    def create_entity_info(self, item: SaveBundleEntity) -> EntityInfo:
        """save bundle 의 엔티티 하나를 :class:`EntityInfo` 로 변환합니다."""
        aspect = item.entity_aspect
        entity_class = self.context_class.find_entity_type(aspect.entity_type_name)
        if not entity_class:
            raise SaveBundleError(f"unknown entity type: {aspect.entity_type_name}")

        mapper = inspect(entity_class)
        props = item.snake_properties
        values: dict[str, Any] = {}
        for attr in mapper.column_attrs:
            if attr.key not in props:
                continue
            column = attr.columns[0]
            values[attr.key] = type_adapter(column.type.python_type).validate_python(
                props[attr.key]
            )

        # 버전을 보내지 않은 엔티티는 버전 비교에서 항상 실패합니다.
        if mapper.version_id_col is not None:
            version_attr = mapper.get_property_by_column(mapper.version_id_col).key
            values.setdefault(version_attr, None)

        original_values = {
            k: v for k, v in item.snake_original_values.items() if k in mapper.attrs
        }

        return EntityInfo(
            entity=entity_class(**values),
            entity_state=aspect.entity_state,
            original_values=original_values,
        )

    def _before_save_entity(self, info: EntityInfo) -> bool:
        return all(hook(info) for hook in self.before_save_entity_hooks)

    def _apply(
        self, session: Session, save_map: SaveMap
    ) -> tuple[list[Any], list[KeyMapping]]:
        infos = [info for it in save_map.values() for info in it]
        added = sorted(
            (it for it in infos if it.entity_state == EntityState.ADDED),
            key=lambda it: _table_order(it.entity_type),
        )
        modified = [it for it in infos if it.entity_state == EntityState.MODIFIED]
        deleted = sorted(
            (it for it in infos if it.entity_state == EntityState.DELETED),
            key=lambda it: _table_order(it.entity_type),
            reverse=True,
        )

        key_map: dict[tuple[str, Any], Any] = {}
        key_mappings: list[KeyMapping] = []
        entities: list[Any] = []

        for info in added:
            entities.append(self._add(session, info, key_map, key_mappings))

        for info in modified:
            entities.append(self._update(session, info, key_map))

        for info in deleted:
            self._delete(session, info)
            entities.append(info.entity)

        return entities, key_mappings

    def _fix_foreign_keys(self, entity: Any, key_map: dict[tuple[str, Any], Any]):
        """임시 키를 가리키는 외래키 값을 실제 키로 바꿉니다."""
        if not key_map:
            return
        mapper = inspect(type(entity))
        for attr in mapper.column_attrs:
            column = attr.columns[0]
            for fk in column.foreign_keys:
                value = getattr(entity, attr.key)
                real_value = key_map.get((fk.column.table.name, value))
                if value is not None and real_value is not None:
                    setattr(entity, attr.key, real_value)

    def _add(
        self,
        session: Session,
        info: EntityInfo,
        key_map: dict[tuple[str, Any], Any],
        key_mappings: list[KeyMapping],
    ) -> Any:
        entity = info.entity
        self._fix_foreign_keys(entity, key_map)
        mapper = inspect(info.entity_type)
        key_column = identity_key_column(mapper)

        if key_column is None:
            session.add(entity)
            return entity

        key_attr = mapper.get_property_by_column(key_column).key
        temp_value = getattr(entity, key_attr)
        setattr(entity, key_attr, None)
        session.add(entity)
        session.flush()

        real_value = getattr(entity, key_attr)
        if temp_value is not None:
            key_map[(key_column.table.name, temp_value)] = real_value
            key_mappings.append(
                KeyMapping(
                    entity_type_name=self.context_class.qualified_name(
                        info.entity_type
                    ),
                    temp_value=temp_value,
                    real_value=real_value,
                )
            )
        return entity

    def _identity_of(self, info: EntityInfo) -> tuple[Any, ...]:
        mapper = inspect(info.entity_type)
        return tuple(
            getattr(info.entity, mapper.get_property_by_column(c).key)
            for c in mapper.primary_key
        )

    def find_persistent(self, info: EntityInfo) -> Optional[Any]:
        identity = self._identity_of(info)
        if any(it is None for it in identity):
            return None
        return self.session.get(info.entity_type, identity)

    def _load_persistent(self, session: Session, info: EntityInfo) -> Any:
        """DB 에 저장된 엔티티를 읽고 클라이언트가 보낸 버전과 비교합니다."""
        mapper = inspect(info.entity_type)
        identity = self._identity_of(info)
        persistent = session.get(info.entity_type, identity)
        if persistent is None:
            raise StaleDataError(
                f"{info.entity_type.__name__} {identity} was not found;"
                " it may have been deleted by another user"
            )

        if mapper.version_id_col is not None:
            version_attr = mapper.get_property_by_column(mapper.version_id_col).key
            client_version = info.original_values.get(
                version_attr, getattr(info.entity, version_attr)
            )
            current_version = getattr(persistent, version_attr)
            if client_version is None or client_version != current_version:
                raise StaleDataError(
                    f"{info.entity_type.__name__} {identity} version {client_version}"
                    f" does not match the current version {current_version}"
                )

        return persistent

    def _update(
        self, session: Session, info: EntityInfo, key_map: dict[tuple[str, Any], Any]
    ) -> Any:
        self._fix_foreign_keys(info.entity, key_map)
        persistent = self._load_persistent(session, info)

        mapper = inspect(info.entity_type)
        pk_keys = {mapper.get_property_by_column(c).key for c in mapper.primary_key}
        version_keys = (
            {mapper.get_property_by_column(mapper.version_id_col).key}
            if mapper.version_id_col is not None
            else set()
        )
        changed = list(info.original_values) or [
            attr.key for attr in mapper.column_attrs
        ]

        for key in changed:
            if key in pk_keys or key in version_keys:
                continue
            if key not in mapper.column_attrs:
                continue
            setattr(persistent, key, getattr(info.entity, key))

        return persistent

    def _delete(self, session: Session, info: EntityInfo) -> None:
        persistent = self._load_persistent(session, info)
        session.delete(persistent)

    # Metadata

    def metadata(self) -> str:
        """컨텍스트가 공개하는 엔티티 타입을 설명하는 JSON 문서를 리턴합니다."""
        start_mappers()
        return self.metadata_document().to_json()

    def metadata_document(self) -> MetadataDocument:
        context_class = self.context_class
        document = MetadataDocument()

        for resource_name, entity_class in context_class.entity_sets.items():
            entity_type = self._entity_type_metadata(entity_class)
            entity_type.default_resource_name = resource_name
            document.structural_types.append(entity_type)
            document.resource_entity_type_map[
                resource_name
            ] = context_class.qualified_name(entity_class)

        return document

    def _entity_type_metadata(self, entity_class: Type[Any]) -> EntityTypeMetadata:
        mapper = inspect(entity_class)
        known_types = set(self.context_class.entity_types())
        pk_columns = set(mapper.primary_key)

        data_properties = []
        for attr in mapper.column_attrs:
            column = attr.columns[0]
            python_type = column.type.python_type
            data_properties.append(
                DataProperty(
                    name=to_camel(attr.key),
                    data_type=DATA_TYPES.get(python_type.__name__, "String"),
                    is_nullable=bool(column.nullable),
                    is_part_of_key=column in pk_columns,
                    max_length=getattr(column.type, "length", None),
                    concurrency_mode="Fixed"
                    if column is mapper.version_id_col
                    else None,
                )
            )

        navigation_properties = []
        for rel in mapper.relationships:
            target = rel.mapper.class_
            if target not in known_types:
                continue
            is_scalar = not rel.uselist
            local_fks = [
                to_camel(mapper.get_property_by_column(c).key)
                for c in rel.local_columns
                if c.foreign_keys
            ]
            remote_fks = [
                to_camel(rel.mapper.get_property_by_column(c).key)
                for c in rel.remote_side
                if c.foreign_keys
            ]
            navigation_properties.append(
                NavigationProperty(
                    name=to_camel(rel.key),
                    entity_type_name=self.context_class.qualified_name(target),
                    is_scalar=is_scalar,
                    foreign_key_names=local_fks,
                    inv_foreign_key_names=remote_fks,
                )
            )

        return EntityTypeMetadata(
            short_name=entity_class.__name__,
            namespace=self.context_class.namespace,
            auto_generated_key_type="Identity"
            if identity_key_column(mapper) is not None
            else "None",
            data_properties=data_properties,
            navigation_properties=navigation_properties,
        )
