"""기본 환경 설정."""

from __future__ import annotations

import os
from configparser import ConfigParser
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Type

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.pool import Pool, StaticPool

from northwind.core import NorthwindConfigError

ENV_PREFIX = "NORTHWIND_"

_config: Optional[NorthwindConfig] = None


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_setupcfg(path: Path) -> dict[str, str]:
    """``setup.cfg`` 의 ``[northwind]`` 섹션을 읽어서 리턴합니다."""
    if (path / "setup.cfg").exists():
        config = ConfigParser()
        config.read(path / "setup.cfg")
        if "northwind" in config:
            return dict(config["northwind"])
    return {}


@dataclass
class NorthwindConfig:
    """Northwind 데이터 접근 계층 설정."""

    db_url: str = "sqlite://"
    db_echo: bool = False
    max_save_entities: int = 100
    """한 번의 save bundle 에 담을 수 있는 최대 엔티티 수."""

    @staticmethod
    def load_from_config(path: Path = Path(".")) -> NorthwindConfig:
        """기본값, ``setup.cfg``, 환경변수 순서로 설정을 덮어써서 로드합니다.

        환경변수는 ``NORTHWIND_DB_URL`` 처럼 ``NORTHWIND_`` 접두사에 필드 이름을
        대문자로 붙인 이름을 사용합니다.
        """
        values: dict[str, Any] = {}
        values.update(load_setupcfg(path))

        for f in fields(NorthwindConfig):
            env_value = os.environ.get(ENV_PREFIX + f.name.upper())
            if env_value is not None:
                values[f.name] = env_value

        kwargs: dict[str, Any] = {}
        for f in fields(NorthwindConfig):
            if f.name not in values:
                continue
            raw = values[f.name]
            try:
                if f.name == "db_echo":
                    kwargs[f.name] = raw if isinstance(raw, bool) else _to_bool(raw)
                elif f.name == "max_save_entities":
                    kwargs[f.name] = int(raw)
                else:
                    kwargs[f.name] = raw
            except ValueError as ex:
                raise NorthwindConfigError(
                    f"invalid value for {f.name}: {raw!r}"
                ) from ex

        config = NorthwindConfig(**kwargs)
        config.validate()
        return config

    def validate(self) -> None:
        try:
            make_url(self.db_url)
        except ArgumentError as ex:
            raise NorthwindConfigError(f"invalid db_url: {self.db_url!r}") from ex

        if self.max_save_entities < 1:
            raise NorthwindConfigError("max_save_entities should be positive")

    @property
    def is_memory_db(self) -> bool:
        url = make_url(self.db_url)
        return url.get_backend_name() == "sqlite" and url.database in (
            None,
            "",
            ":memory:",
        )

    def get_db_url(self) -> str:
        """SqlAlchemy 에서 사용 가능한 형식의 DB URL을 리턴합니다."""
        return self.db_url

    def get_db_connect_args(self) -> dict[str, Any]:
        """Get db connection arguments for SQLAlchemy's engine creation.

        Example:
            For SQLite dbs, it could be: ::

                {'check_same_thread': False}
        """
        if make_url(self.db_url).get_backend_name() == "sqlite":
            return {"check_same_thread": False}
        return {}

    def get_db_poolclass(self) -> Optional[Type[Pool]]:
        """Get db poolclass arguemnt for SQLAlchemy's engine creation.

        메모리 DB 는 커넥션마다 다른 DB 가 되므로 하나의 커넥션을 공유합니다.
        """
        return StaticPool if self.is_memory_db else None


def get_config() -> NorthwindConfig:
    """처음 호출될 때 설정을 로드하고, 이후에는 같은 객체를 리턴합니다."""
    global _config  # pylint: disable=global-statement

    if not _config:
        _config = NorthwindConfig.load_from_config()

    return _config


def set_config(config: Optional[NorthwindConfig]) -> None:
    """전역 설정을 교체합니다. ``None`` 을 주면 다음 호출 때 다시 로드합니다."""
    global _config  # pylint: disable=global-statement
    _config = config
