"""외부와 주고받는 데이터의 스키마 변환, 검증을 담당하는 모듈입니다.

- save bundle 파싱 (:class:`SaveBundle`)
- 고객 필터 옵션 (:class:`CustomerFilterOptions`)
- 메타데이터 문서 (:class:`MetadataDocument`)
"""
from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel, to_snake

from northwind.core import EntityState, SaveBundleError, SaveBundleInput

ENTITY_ASPECT_KEY = "entityAspect"


class EntityAspect(BaseModel):
    """save bundle 엔티티에 붙어 오는 변경 상태 정보."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entity_type_name: str
    entity_state: EntityState
    original_values_map: dict[str, Any] = Field(default_factory=dict)
    default_resource_name: Optional[str] = None


class SaveBundleEntity(BaseModel):
    """save bundle 의 엔티티 하나. 엔티티 속성은 ``properties`` 로 모읍니다."""

    entity_aspect: EntityAspect
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def snake_properties(self) -> dict[str, Any]:
        return {to_snake(k): v for k, v in self.properties.items()}

    @property
    def snake_original_values(self) -> dict[str, Any]:
        return {
            to_snake(k): v for k, v in self.entity_aspect.original_values_map.items()
        }


class SaveBundle(BaseModel):
    """여러 엔티티의 추가/수정/삭제를 한 번에 저장하기 위한 묶음."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entities: list[SaveBundleEntity] = Field(default_factory=list)
    save_options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("entities", mode="before")
    @classmethod
    def _split_entity_aspect(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        entities = []
        for item in v:
            if isinstance(item, dict) and ENTITY_ASPECT_KEY in item:
                props = {k: it for k, it in item.items() if k != ENTITY_ASPECT_KEY}
                entities.append(
                    {"entity_aspect": item[ENTITY_ASPECT_KEY], "properties": props}
                )
            else:
                entities.append(item)
        return entities

    @classmethod
    def parse(cls, bundle: SaveBundleInput) -> SaveBundle:
        """dict 또는 JSON 문자열로 된 save bundle 을 파싱합니다."""
        if isinstance(bundle, SaveBundle):
            return bundle
        if isinstance(bundle, (str, bytes)):
            try:
                bundle = json.loads(bundle)
            except ValueError as ex:
                raise SaveBundleError(f"save bundle is not a valid JSON: {ex}") from ex
        if not isinstance(bundle, dict):
            raise SaveBundleError("save bundle should be a JSON object")
        return cls.model_validate(bundle)


class CustomerFilterOptions(BaseModel):
    """고객 목록 필터 옵션. 비어 있는 값은 필터로 쓰지 않습니다."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company_name: Optional[str] = Field(default=None, alias="CompanyName")
    ids: Optional[list[UUID]] = Field(default=None, alias="Ids")

    @classmethod
    def parse(
        cls, options: Union[None, str, dict[str, Any], CustomerFilterOptions]
    ) -> Optional[CustomerFilterOptions]:
        if options is None or isinstance(options, CustomerFilterOptions):
            return options
        if isinstance(options, str):
            return cls.model_validate_json(options)
        return cls.model_validate(options)


@lru_cache(maxsize=None)
def type_adapter(python_type: type) -> TypeAdapter:
    """컬럼의 파이썬 타입으로 JSON 값을 변환하는 어댑터를 리턴합니다."""
    return TypeAdapter(Optional[python_type])  # type: ignore


# Metadata document


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DataProperty(_CamelModel):
    name: str
    data_type: str
    is_nullable: bool = True
    is_part_of_key: bool = False
    max_length: Optional[int] = None
    concurrency_mode: Optional[Literal["Fixed"]] = None


class NavigationProperty(_CamelModel):
    name: str
    entity_type_name: str
    is_scalar: bool
    foreign_key_names: list[str] = Field(default_factory=list)
    inv_foreign_key_names: list[str] = Field(default_factory=list)


class EntityTypeMetadata(_CamelModel):
    short_name: str
    namespace: str
    default_resource_name: Optional[str] = None
    auto_generated_key_type: Literal["Identity", "None"] = "None"
    data_properties: list[DataProperty] = Field(default_factory=list)
    navigation_properties: list[NavigationProperty] = Field(default_factory=list)


class MetadataDocument(_CamelModel):
    metadata_version: str = "1.0.5"
    naming_convention: str = "camelCase"
    structural_types: list[EntityTypeMetadata] = Field(default_factory=list)
    resource_entity_type_map: dict[str, str] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
