"""컨텍스트 모듈.

컨텍스트는 "어떤 엔티티 컬렉션을 다루는가" 를 정의하는 형태(shape) 입니다.
:class:`~northwind.provider.SqlAlchemyContextProvider` 가 컨텍스트 클래스를 받아서
운영용(쿼리/저장) 또는 메타데이터 전용 컨텍스트 제공자를 만듭니다.
"""
from __future__ import annotations

from typing import Any, ClassVar, Optional, Type

from sqlalchemy import Executable
from sqlalchemy.orm import Query, Session

from northwind.domain import (
    Category,
    Customer,
    Employee,
    EmployeeTerritory,
    InternationalOrder,
    Order,
    OrderDetail,
    Product,
    Region,
    Role,
    Supplier,
    Territory,
    User,
    UserRole,
)

NAMESPACE = "Northwind.Models"


class BaseContext:
    """컨텍스트의 공통 속성."""

    namespace: ClassVar[str] = NAMESPACE
    entity_sets: ClassVar[dict[str, Type[Any]]] = {}
    """리소스 이름(예: ``Customers``) 별 엔티티 클래스."""

    @classmethod
    def entity_types(cls) -> list[Type[Any]]:
        return list(cls.entity_sets.values())

    @classmethod
    def qualified_name(cls, entity_class: Type[Any]) -> str:
        """``Customer:#Northwind.Models`` 형식의 엔티티 타입 이름."""
        return f"{entity_class.__name__}:#{cls.namespace}"

    @classmethod
    def find_entity_type(cls, type_name: str) -> Optional[Type[Any]]:
        """``Customer`` 또는 ``Customer:#Northwind.Models`` 형식의 이름으로 엔티티
        클래스를 찾습니다."""
        short_name = type_name.split(":", 1)[0]
        return next(
            (it for it in cls.entity_sets.values() if it.__name__ == short_name),
            None,
        )


class NorthwindContext(BaseContext):
    """쿼리와 저장에 사용하는 운영용 컨텍스트.

    하나의 :class:`Session` 위에서 엔티티 컬렉션별 쿼리 핸들을 제공합니다.
    """

    entity_sets = {
        "Categories": Category,
        "Customers": Customer,
        "Employees": Employee,
        "EmployeeTerritories": EmployeeTerritory,
        "InternationalOrders": InternationalOrder,
        "Orders": Order,
        "OrderDetails": OrderDetail,
        "Products": Product,
        "Regions": Region,
        "Roles": Role,
        "Suppliers": Supplier,
        "Territories": Territory,
        "Users": User,
        "UserRoles": UserRole,
    }

    def __init__(self, session: Session):
        self.session = session

    def __repr__(self) -> str:
        return f"NorthwindContext[{self.session}]"

    @property
    def categories(self) -> Query[Category]:
        return self.session.query(Category)

    @property
    def customers(self) -> Query[Customer]:
        return self.session.query(Customer)

    @property
    def employees(self) -> Query[Employee]:
        return self.session.query(Employee)

    @property
    def employee_territories(self) -> Query[EmployeeTerritory]:
        return self.session.query(EmployeeTerritory)

    @property
    def international_orders(self) -> Query[InternationalOrder]:
        return self.session.query(InternationalOrder)

    @property
    def orders(self) -> Query[Order]:
        return self.session.query(Order)

    @property
    def order_details(self) -> Query[OrderDetail]:
        return self.session.query(OrderDetail)

    @property
    def products(self) -> Query[Product]:
        return self.session.query(Product)

    @property
    def regions(self) -> Query[Region]:
        return self.session.query(Region)

    @property
    def roles(self) -> Query[Role]:
        return self.session.query(Role)

    @property
    def suppliers(self) -> Query[Supplier]:
        return self.session.query(Supplier)

    @property
    def territories(self) -> Query[Territory]:
        return self.session.query(Territory)

    @property
    def users(self) -> Query[User]:
        return self.session.query(User)

    def execute(self, statement: Executable) -> int:
        """SQL 구문을 실행하고 영향 받은 row 수를 리턴합니다."""
        return self.session.execute(statement).rowcount  # type: ignore

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class NorthwindMetadataContext(BaseContext):
    """메타데이터 생성 전용 컨텍스트.

    클라이언트가 캐싱할 엔티티 타입만 공개합니다. 사용자/권한 엔티티는
    :class:`~northwind.domain.UserPartial` projection 으로만 노출되므로 여기서 빠집니다.
    세션을 열지 않으므로 쿼리나 저장에는 사용할 수 없습니다.
    """

    entity_sets = {
        "Categories": Category,
        "Customers": Customer,
        "Employees": Employee,
        "EmployeeTerritories": EmployeeTerritory,
        "InternationalOrders": InternationalOrder,
        "Orders": Order,
        "OrderDetails": OrderDetail,
        "Products": Product,
        "Regions": Region,
        "Suppliers": Supplier,
        "Territories": Territory,
    }

    def __init__(self, session: Optional[Session] = None):
        if session is not None:
            raise TypeError("NorthwindMetadataContext does not use a session")
