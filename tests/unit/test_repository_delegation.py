# pylint: disable=protected-access
"""DB 없이 레포지터리의 위임 동작을 테스트합니다.

Low Gear(고속 기어) 테스트입니다.
"""
from uuid import UUID

import pytest

from northwind import GUEST_USER_SESSION_ID, NorthwindRepository
from northwind.config import NorthwindConfig, set_config
from northwind.test.unit import FakeContextProvider
from tests import random_session_id

BUNDLE = {"entities": [], "saveOptions": {}}


@pytest.fixture
def provider() -> FakeContextProvider:
    return FakeContextProvider()


@pytest.fixture
def repo(provider: FakeContextProvider) -> NorthwindRepository:
    return NorthwindRepository(provider=provider)


def test_default_session_is_guest(repo: NorthwindRepository):
    assert repo.user_session_id == GUEST_USER_SESSION_ID

    repo.user_session_id = None
    assert repo.user_session_id == GUEST_USER_SESSION_ID


def test_set_session_id(repo: NorthwindRepository, session_id: UUID):
    repo.user_session_id = str(session_id)
    assert repo.user_session_id == session_id

    with pytest.raises(ValueError):
        repo.user_session_id = "bad"
    assert repo.user_session_id == session_id


def test_save_changes_delegates_to_provider(
    repo: NorthwindRepository, provider: FakeContextProvider
):
    result = repo.save_changes(BUNDLE)

    assert provider.saved == [BUNDLE]
    assert result.entities == []
    assert result.key_mappings == []


def test_save_guard_is_registered_once(
    repo: NorthwindRepository, provider: FakeContextProvider
):
    repo.save_changes(BUNDLE)
    repo.save_changes(BUNDLE)

    assert len(provider.before_save_entity_hooks) == 1
    assert len(provider.before_save_entities_hooks) == 1
    assert len(provider.after_save_entities_hooks) == 1


def test_save_guard_keeps_first_session_id(
    repo: NorthwindRepository, session_id: UUID
):
    """저장 가드는 처음 저장할 때의 세션 id 로 고정됩니다."""
    repo.user_session_id = session_id
    repo.save_changes(BUNDLE)

    repo.user_session_id = random_session_id()
    repo.save_changes(BUNDLE)

    assert repo._entity_save_guard is not None
    assert repo._entity_save_guard.user_session_id == session_id


def test_save_guard_uses_configured_limit(provider: FakeContextProvider):
    set_config(NorthwindConfig(max_save_entities=5))
    repo = NorthwindRepository(provider=provider)

    repo.save_changes(BUNDLE)

    assert repo._entity_save_guard is not None
    assert repo._entity_save_guard.max_entities == 5


def test_close_closes_provider(provider: FakeContextProvider):
    with NorthwindRepository(provider=provider):
        pass

    assert provider.closed
