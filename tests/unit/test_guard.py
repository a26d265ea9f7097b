# pylint: disable=redefined-outer-name
"""save guard 규칙 테스트."""
from collections import defaultdict
from typing import Any, Optional
from uuid import UUID, uuid4

import pytest

from northwind.core import EntityErrorsError, EntityInfo, EntityState, SaveMap
from northwind.domain import Category, Customer, Order, Role
from northwind.guard import NorthwindEntitySaveGuard
from northwind.orm import start_mappers
from northwind.test.unit import FakeContextProvider
from tests import random_session_id


@pytest.fixture(scope="module", autouse=True)
def mappers():
    start_mappers()


@pytest.fixture
def guard(session_id: UUID) -> NorthwindEntitySaveGuard:
    return NorthwindEntitySaveGuard(session_id, max_entities=2)


def customer_info(
    state: EntityState,
    user_session_id: Optional[UUID] = None,
    original_values: Optional[dict[str, Any]] = None,
) -> EntityInfo:
    return EntityInfo(
        Customer(
            customer_id=uuid4(),
            company_name="Alfreds",
            user_session_id=user_session_id,
        ),
        state,
        original_values or {},
    )


def test_added_entity_is_stamped(guard: NorthwindEntitySaveGuard, session_id: UUID):
    info = customer_info(EntityState.ADDED, user_session_id=random_session_id())

    assert guard.before_save_entity(info)
    assert info.entity.user_session_id == session_id


def test_unchanged_entity_is_skipped(guard: NorthwindEntitySaveGuard):
    assert not guard.before_save_entity(customer_info(EntityState.UNCHANGED))


@pytest.mark.parametrize("state", [EntityState.MODIFIED, EntityState.DELETED])
def test_own_entity_can_be_changed(
    guard: NorthwindEntitySaveGuard, session_id: UUID, state: EntityState
):
    assert guard.before_save_entity(customer_info(state, session_id))


@pytest.mark.parametrize("state", [EntityState.MODIFIED, EntityState.DELETED])
def test_shared_or_other_session_entity_is_rejected(
    guard: NorthwindEntitySaveGuard, state: EntityState
):
    for owner in (None, random_session_id()):
        with pytest.raises(EntityErrorsError) as exc_info:
            guard.before_save_entity(customer_info(state, owner))

        [error] = exc_info.value.entity_errors
        assert error.entity_type_name == "Customer"
        assert error.property_name == "user_session_id"
        assert error.key_values and isinstance(error.key_values[0], UUID)


def test_session_id_cannot_be_changed(
    guard: NorthwindEntitySaveGuard, session_id: UUID
):
    info = customer_info(
        EntityState.MODIFIED,
        session_id,
        original_values={"user_session_id": None},
    )

    with pytest.raises(EntityErrorsError):
        guard.before_save_entity(info)


def test_stored_owner_is_checked(session_id: UUID):
    """클라이언트가 세션 id 를 속여서 보내도 저장된 row 의 세션으로 판단합니다."""
    customer_id = uuid4()
    provider = FakeContextProvider(
        {
            (Order, (1,)): Order(order_id=1, user_session_id=session_id),
            (Order, (2,)): Order(order_id=2, user_session_id=random_session_id()),
        }
    )
    guard = NorthwindEntitySaveGuard(
        session_id, load_persistent=provider.find_persistent
    )

    def order_info(order_id: int) -> EntityInfo:
        # 주문은 고객 키가 아니라 자신의 키로 찾습니다.
        return EntityInfo(
            Order(order_id=order_id, customer_id=customer_id, user_session_id=session_id),
            EntityState.MODIFIED,
        )

    assert guard.before_save_entity(order_info(1))

    with pytest.raises(EntityErrorsError):
        guard.before_save_entity(order_info(2))

    # 저장되어 있지 않은 엔티티는 클라이언트 값으로만 판단합니다.
    assert provider.find_persistent(order_info(3)) is None
    assert guard.before_save_entity(order_info(3))


@pytest.mark.parametrize("entity", [Category(category_name="Beverages"), Role()])
def test_reference_entities_are_read_only(guard: NorthwindEntitySaveGuard, entity):
    with pytest.raises(EntityErrorsError) as exc_info:
        guard.before_save_entity(EntityInfo(entity, EntityState.ADDED))

    assert "read-only" in exc_info.value.message


def test_too_many_entities_are_rejected(guard: NorthwindEntitySaveGuard):
    save_map: SaveMap = defaultdict(list)
    for _ in range(2):
        save_map[Customer].append(customer_info(EntityState.ADDED))

    assert guard.before_save_entities(save_map) is save_map

    save_map[Customer].append(customer_info(EntityState.ADDED))
    with pytest.raises(EntityErrorsError):
        guard.before_save_entities(save_map)
