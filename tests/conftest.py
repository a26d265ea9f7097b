# pylint: disable=redefined-outer-name, protected-access
"""pytest 에서 사용될 전역 Fixture들을 정의합니다."""
from __future__ import annotations

from typing import Callable, Generator
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from northwind.config import NorthwindConfig, set_config
from northwind.orm import SessionMaker, init_db, set_default_sessionmaker
from northwind.repository import NorthwindRepository
from tests import random_session_id

# types

RepoMaker = Callable[[UUID], NorthwindRepository]
""":func:`make_repo` 픽스쳐 타입."""


@pytest.fixture(autouse=True)
def config() -> Generator[NorthwindConfig, None, None]:
    """테스트마다 기본 설정(메모리 DB)을 사용합니다."""
    config = NorthwindConfig()
    set_config(config)
    yield config
    set_config(None)
    set_default_sessionmaker(None)


@pytest.fixture
def get_session(config: NorthwindConfig) -> SessionMaker:
    """:class:`.Session` 팩토리 메소드(:class:`~northwind.orm.SessionMaker`)
    를 리턴하는 픽스쳐 입니다.

    호출시마다 새 메모리 DB 엔진을 만들어서 모든 테이블을 매번 재생성합니다.
    기본 세션 팩토리로도 등록합니다.

    :rtype: :class:`~northwind.orm.SessionMaker`
    """
    session_factory = init_db(config=config)
    set_default_sessionmaker(session_factory)
    return session_factory


@pytest.fixture
def session(get_session: SessionMaker) -> Generator[Session, None, None]:
    """테스트에 사용될 새로운 :class:`.Session` 픽스처를 리턴합니다.

    :rtype: :class:`~sqlalchemy.orm.Session`
    """
    session = get_session()
    yield session
    session.close()


@pytest.fixture
def make_repo(
    get_session: SessionMaker,
) -> Generator[RepoMaker, None, None]:
    """세션 id 를 받아서 :class:`NorthwindRepository` 를 만드는 팩토리 픽스쳐."""
    repos: list[NorthwindRepository] = []

    def make(user_session_id: UUID) -> NorthwindRepository:
        repo = NorthwindRepository(get_session)
        repo.user_session_id = user_session_id
        repos.append(repo)
        return repo

    yield make

    for repo in repos:
        repo.close()


@pytest.fixture
def session_id() -> UUID:
    return random_session_id()


@pytest.fixture
def other_session_id() -> UUID:
    return random_session_id()
