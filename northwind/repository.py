"""Northwind 레포지터리 (실제로는 Unit of Work) 모듈.

HTTP 컨트롤러와 SqlAlchemy 사이에서 세션 소유권 필터가 적용된 쿼리를 만들고,
저장은 컨텍스트 제공자에게, 저장 규칙은 save guard 에게 위임합니다.
"""
from __future__ import annotations

from contextlib import ContextDecorator
from typing import Any, Iterable, Iterator, Literal, Optional, Type, TypeVar, Union
from uuid import UUID

from sqlalchemy import and_, delete, extract, or_
from sqlalchemy.orm import Query, selectinload

from northwind.config import get_config
from northwind.context import NorthwindContext, NorthwindMetadataContext
from northwind.core import (
    AbstractContextProvider,
    SaveBundleInput,
    SaveResult,
    get_logger,
)
from northwind.domain import (
    Category,
    Customer,
    CustomerDto,
    Employee,
    EmployeeTerritory,
    InternationalOrder,
    Order,
    OrderDetail,
    Product,
    Region,
    Supplier,
    Territory,
    User,
    UserPartial,
    UserRole,
)
from northwind.guard import NorthwindEntitySaveGuard
from northwind.orm import SessionMaker
from northwind.provider import SqlAlchemyContextProvider
from northwind.query import Projection
from northwind.schema import CustomerFilterOptions

E = TypeVar("E")

GUEST_USER_SESSION_ID = UUID("12345678-9ABC-DEF0-1234-56789ABCDEF0")
"""세션 id 가 없는 요청이 사용하는 손님(guest) 세션 id."""

FULL_RESET_TOKEN = "fullreset"

RESET_TABLES: list[tuple[Type[Any], str]] = [
    (Customer, "Customers"),
    (Employee, "Employees"),
    (Product, "Products"),
    (OrderDetail, "OrderDetails"),
    (InternationalOrder, "InternationalOrders"),
    (Order, "Orders"),
    (User, "Users"),
]
"""reset 이 지우는 엔티티와 결과 메시지에 쓰는 이름. 이 순서대로 지웁니다."""

SessionIdInput = Union[None, str, UUID]

logger = get_logger("northwind.repository")


def normalize_session_id(value: SessionIdInput) -> UUID:
    """세션 id 를 :class:`UUID` 로 변환합니다.

    ``None``, 빈 문자열, ``UUID(int=0)`` 은 :data:`GUEST_USER_SESSION_ID` 가 됩니다.
    UUID 형식이 아닌 문자열은 :class:`ValueError` 를 발생시킵니다.
    """
    if value is None:
        return GUEST_USER_SESSION_ID
    if not isinstance(value, UUID):
        value = value.strip()
        if not value:
            return GUEST_USER_SESSION_ID
        value = UUID(value)
    return GUEST_USER_SESSION_ID if value.int == 0 else value


class NorthwindRepository(ContextDecorator):
    """Northwind 모델의 레포지터리 (사실상 "Unit of Work").

    요청 하나에 인스턴스 하나를 사용하며, 여러 요청이 공유하지 않습니다.
    모든 쿼리 속성은 실행되지 않은 쿼리를 리턴하고, 결과를 순회할 때 SQL 이 실행됩니다.

    Example: ::

        with NorthwindRepository() as repo:
            repo.user_session_id = session_id
            customers = repo.customers_starting_with_a.all()
    """

    def __init__(
        self,
        get_session: Optional[SessionMaker] = None,
        provider: Optional[AbstractContextProvider[NorthwindContext]] = None,
        max_save_entities: Optional[int] = None,
    ) -> None:
        self._provider: AbstractContextProvider[NorthwindContext] = (
            provider or SqlAlchemyContextProvider(NorthwindContext, get_session)
        )
        self._entity_save_guard: Optional[NorthwindEntitySaveGuard] = None
        self._user_session_id = GUEST_USER_SESSION_ID
        self.max_save_entities = (
            max_save_entities
            if max_save_entities is not None
            else get_config().max_save_entities
        )

    def __repr__(self) -> str:
        return f"NorthwindRepository[{self._user_session_id}]"

    def __enter__(self) -> NorthwindRepository:
        return self

    def __exit__(self, *args: Any) -> Literal[False]:
        self.close()
        return False

    def close(self) -> None:
        """컨텍스트 제공자의 세션을 닫습니다."""
        self._provider.close()

    @property
    def user_session_id(self) -> UUID:
        """현재 사용자의 세션 id. 보통 컨트롤러가 설정합니다.

        항상 값이 있으며 ``UUID(int=0)`` 이 되는 경우는 없습니다.
        """
        return self._user_session_id

    @user_session_id.setter
    def user_session_id(self, value: SessionIdInput) -> None:
        self._user_session_id = normalize_session_id(value)

    @property
    def metadata(self) -> str:
        """메타데이터 전용 컨텍스트로 만든 메타데이터 JSON 문자열.

        쿼리에 사용하는 운영용 컨텍스트와는 다른 형태이므로 별도의 제공자를 만듭니다.
        """
        with SqlAlchemyContextProvider(NorthwindMetadataContext) as meta_provider:
            return meta_provider.metadata()

    def save_changes(self, save_bundle: SaveBundleInput) -> SaveResult:
        """save bundle 을 저장하고 컨텍스트 제공자의 결과를 그대로 리턴합니다."""
        self._prepare_save_guard()
        return self._provider.save_changes(save_bundle)

    # Queries

    @property
    def categories(self) -> Query[Category]:
        return self.context.categories

    @property
    def customers(self) -> Query[Customer]:
        return self._for_current_user(self.context.customers)

    @property
    def customers_and_orders(self) -> Query[Customer]:
        return self.customers.options(selectinload(Customer.orders))  # type: ignore

    @property
    def customers_and_1998_orders(self) -> Projection[CustomerDto]:
        """고객별로 1998년 주문만 담은 projection.

        고객과 주문을 한 번의 outer join 으로 읽은 뒤 고객 단위로 묶습니다.
        """
        order_in_1998 = and_(
            Order.customer_id == Customer.customer_id,  # type: ignore
            Order.order_date.isnot(None),  # type: ignore
            extract("year", Order.order_date) == 1998,  # type: ignore
            self._visible(Order),
        )
        query = (
            self.customers.add_entity(Order)
            .outerjoin(Order, order_in_1998)
            .order_by(Customer.customer_id, Order.order_id)  # type: ignore
        )

        def to_dtos(rows: Iterable[Any]) -> Iterator[CustomerDto]:
            dtos: dict[UUID, CustomerDto] = {}
            for customer, order in rows:
                dto = dtos.get(customer.customer_id)
                if dto is None:
                    dto = dtos[customer.customer_id] = CustomerDto.from_customer(
                        customer
                    )
                if order is not None:
                    dto.orders.append(order)
            return iter(dtos.values())

        return Projection(query, to_dtos)

    @property
    def customers_starting_with_a(self) -> Query[Customer]:
        return self.customers.filter(
            Customer.company_name.startswith("A")  # type: ignore
        )

    def customers_with_filter_options(
        self, options: Union[None, str, dict[str, Any], CustomerFilterOptions]
    ) -> Query[Customer]:
        """필터 옵션(``CompanyName``, ``Ids``)으로 고객을 조회합니다.

        옵션이 ``None`` 이면 필터 없는 고객 쿼리를 리턴합니다.
        """
        query = self.customers
        filter_options = CustomerFilterOptions.parse(options)
        if filter_options is None:
            return query

        if filter_options.company_name:
            query = query.filter(
                Customer.company_name == filter_options.company_name  # type: ignore
            )

        if filter_options.ids:
            query = query.filter(
                Customer.customer_id.in_(filter_options.ids)  # type: ignore
            )

        return query

    @property
    def employees(self) -> Query[Employee]:
        return self._for_current_user(self.context.employees)

    @property
    def employee_territories(self) -> Query[EmployeeTerritory]:
        return self.context.employee_territories

    def orders_for_product(self, product_id: int = 0) -> Query[Order]:
        """``product_id`` 상품의 주문선을 하나 이상 가진 주문을 조회합니다.

        ``product_id`` 가 0 이면 모든 주문을 리턴합니다.
        """
        query = self.orders.options(
            selectinload(Order.customer),  # type: ignore
            selectinload(Order.order_details),  # type: ignore
        )

        if not product_id:
            return query

        return query.filter(
            Order.order_details.any(  # type: ignore
                OrderDetail.product_id == product_id  # type: ignore
            )
        )

    @property
    def orders(self) -> Query[Order]:
        return self._for_current_user(self.context.orders)

    @property
    def international_orders(self) -> Query[InternationalOrder]:
        return self._for_current_user(self.context.international_orders)

    @property
    def orders_and_customers(self) -> Query[Order]:
        return self.orders.options(selectinload(Order.customer))  # type: ignore

    @property
    def orders_and_details(self) -> Query[Order]:
        return self.orders.options(selectinload(Order.order_details))  # type: ignore

    @property
    def order_details(self) -> Query[OrderDetail]:
        return self._for_current_user(self.context.order_details)

    @property
    def products(self) -> Query[Product]:
        return self._for_current_user(self.context.products)

    @property
    def regions(self) -> Query[Region]:
        return self.context.regions

    @property
    def suppliers(self) -> Query[Supplier]:
        return self.context.suppliers

    @property
    def territories(self) -> Query[Territory]:
        return self.context.territories

    @property
    def user_partials(self) -> Projection[UserPartial]:
        """외부에 보여도 안전한 속성만 담은 사용자 목록.

        모든 사용자의 권한까지 보내는 것은 바람직하지 않으므로 ``email``, ``roles``
        는 채우지 않습니다.
        """
        query = self._for_current_user(
            self.context.users.with_entities(
                User.id, User.user_name, User.first_name, User.last_name  # type: ignore
            ),
            User,
        )

        def to_partials(rows: Iterable[Any]) -> Iterator[UserPartial]:
            for id_, user_name, first_name, last_name in rows:
                yield UserPartial(
                    id=id_,
                    user_name=user_name,
                    first_name=first_name,
                    last_name=last_name,
                )

        return Projection(query, to_partials)

    def get_user_by_id(self, id: int) -> Optional[UserPartial]:  # noqa: A002
        """사용자 한 명을 이메일, 권한 이름과 함께 조회합니다. 없으면 ``None``."""
        user = (
            self._for_current_user(self.context.users)
            .filter(User.id == id)  # type: ignore
            .options(
                selectinload(User.user_roles).selectinload(  # type: ignore
                    UserRole.role  # type: ignore
                )
            )
            .first()
        )
        if user is None:
            return None

        return UserPartial(
            id=user.id,
            user_name=user.user_name,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            roles=[ur.role.name for ur in user.user_roles],  # type: ignore
        )

    # Reset

    def reset(self, options: str = "") -> str:
        """이 세션에서 추가된 데이터를 지우고 지운 row 수를 요약해서 리턴합니다.

        ``options`` 에 ``fullreset`` 이 포함되어 있으면 세션과 상관없이 모든 세션의
        추가 데이터(세션 id 가 있는 row)를 지웁니다. 세션 id 가 없는 기본 데이터는
        어떤 경우에도 지우지 않습니다.
        """
        full_reset = FULL_RESET_TOKEN in (options or "")
        context = self.context
        counts: list[str] = []

        try:
            for entity_class, label in RESET_TABLES:
                column = entity_class.user_session_id
                condition = (
                    column.isnot(None)
                    if full_reset
                    else column == self.user_session_id
                )
                count = context.execute(
                    delete(entity_class)
                    .where(condition)
                    .execution_options(synchronize_session=False)
                )
                counts.append(f"{count} {label}")
            context.commit()
        except Exception:
            context.rollback()
            raise

        summary = "reset deleted: " + "; ".join(counts)
        logger.info(
            "%s reset by session %s: %s",
            "full" if full_reset else "session",
            self.user_session_id,
            summary,
        )
        return summary

    # Private

    @property
    def context(self) -> NorthwindContext:
        return self._provider.context

    def _prepare_save_guard(self) -> None:
        if self._entity_save_guard is None:
            provider = self._provider
            self._entity_save_guard = NorthwindEntitySaveGuard(
                self.user_session_id,
                max_entities=self.max_save_entities,
                load_persistent=provider.find_persistent,
            )
            guard = self._entity_save_guard
            provider.before_save_entity_hooks.append(guard.before_save_entity)
            provider.before_save_entities_hooks.append(guard.before_save_entities)
            provider.after_save_entities_hooks.append(guard.after_save_entities)

    def _visible(self, entity_class: Type[Any]):
        """세션 소유권 필터 조건. 공유 데이터이거나 현재 세션의 데이터만 보입니다."""
        column = entity_class.user_session_id
        return or_(column.is_(None), column == self.user_session_id)

    def _for_current_user(
        self, query: Query[E], entity_class: Optional[Type[Any]] = None
    ) -> Query[E]:
        if entity_class is None:
            entity_class = query.column_descriptions[0]["entity"]
        return query.filter(self._visible(entity_class))
