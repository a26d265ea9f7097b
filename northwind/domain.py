"""Northwind 도메인 모델.

모든 엔티티는 평범한 dataclass 이며 :func:`northwind.orm.init_mappers` 에서
SqlAlchemy 테이블에 매핑됩니다. 관계(relationship) 속성은 매퍼가 추가합니다.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, cast
from uuid import UUID

# Reference entities


@dataclass(eq=False)
class Category:
    """상품 분류."""

    category_id: Optional[int] = None
    category_name: Optional[str] = None
    description: Optional[str] = None
    row_version: int = 0


@dataclass(eq=False)
class Region:
    region_id: Optional[int] = None
    region_description: Optional[str] = None
    row_version: int = 0


@dataclass(eq=False)
class Supplier:
    supplier_id: Optional[int] = None
    company_name: Optional[str] = None
    contact_name: Optional[str] = None
    contact_title: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    home_page: Optional[str] = None
    row_version: int = 0


@dataclass(eq=False)
class Territory:
    """판매 지역. 매퍼가 ``region`` 관계를 추가합니다."""

    territory_id: Optional[int] = None
    territory_description: Optional[str] = None
    region_id: Optional[int] = None
    row_version: int = 0


# Operational entities


@dataclass(eq=False)
class Customer:
    """고객.

    매퍼가 ``orders`` 관계를 추가합니다. ``customer_id`` 는 클라이언트가 생성하는
    UUID 입니다.
    """

    customer_id: Optional[UUID] = None
    company_name: Optional[str] = None
    contact_name: Optional[str] = None
    contact_title: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    row_version: Optional[int] = None
    user_session_id: Optional[UUID] = None


@dataclass(eq=False)
class Employee:
    employee_id: Optional[int] = None
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    title: Optional[str] = None
    title_of_courtesy: Optional[str] = None
    birth_date: Optional[datetime] = None
    hire_date: Optional[datetime] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    home_phone: Optional[str] = None
    extension: Optional[str] = None
    notes: Optional[str] = None
    reports_to_employee_id: Optional[int] = None
    row_version: Optional[int] = None
    user_session_id: Optional[UUID] = None


@dataclass(eq=False)
class EmployeeTerritory:
    """직원과 판매 지역의 연결 엔티티."""

    id: Optional[int] = None  # pylint: disable=invalid-name
    employee_id: Optional[int] = None
    territory_id: Optional[int] = None
    row_version: int = 0


@dataclass(eq=False)
class Product:
    """상품. 매퍼가 ``category``, ``supplier`` 관계를 추가합니다."""

    product_id: Optional[int] = None
    product_name: Optional[str] = None
    supplier_id: Optional[int] = None
    category_id: Optional[int] = None
    quantity_per_unit: Optional[str] = None
    unit_price: Optional[Decimal] = None
    units_in_stock: Optional[int] = None
    units_on_order: Optional[int] = None
    reorder_level: Optional[int] = None
    discontinued: bool = False
    discontinued_date: Optional[datetime] = None
    row_version: Optional[int] = None
    user_session_id: Optional[UUID] = None


@dataclass(eq=False)
class Order:
    """주문.

    매퍼가 ``customer``, ``employee``, ``order_details``, ``international_order``
    관계를 추가합니다.
    """

    order_id: Optional[int] = None
    customer_id: Optional[UUID] = None
    employee_id: Optional[int] = None
    order_date: Optional[datetime] = None
    required_date: Optional[datetime] = None
    shipped_date: Optional[datetime] = None
    freight: Optional[Decimal] = None
    ship_name: Optional[str] = None
    ship_address: Optional[str] = None
    ship_city: Optional[str] = None
    ship_region: Optional[str] = None
    ship_postal_code: Optional[str] = None
    ship_country: Optional[str] = None
    row_version: Optional[int] = None
    user_session_id: Optional[UUID] = None


@dataclass(eq=False)
class OrderDetail:
    """주문 상세 라인. (``order_id``, ``product_id``) 복합키를 가집니다."""

    order_id: Optional[int] = None
    product_id: Optional[int] = None
    unit_price: Optional[Decimal] = None
    quantity: Optional[int] = None
    discount: Optional[float] = None
    row_version: Optional[int] = None
    user_session_id: Optional[UUID] = None


@dataclass(eq=False)
class InternationalOrder:
    """국제 주문에만 필요한 추가 정보. ``Order`` 와 1:1 로 키를 공유합니다."""

    order_id: Optional[int] = None
    customs_description: Optional[str] = None
    excise_tax: Optional[Decimal] = None
    row_version: Optional[int] = None
    user_session_id: Optional[UUID] = None


# Identity entities


@dataclass(eq=False)
class User:
    """사용자. 비밀번호 등 민감한 필드를 포함하므로 외부로 그대로 내보내지 않습니다."""

    id: Optional[int] = None  # pylint: disable=invalid-name
    user_name: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    created_date: Optional[datetime] = None
    modified_date: Optional[datetime] = None
    row_version: int = 0
    user_session_id: Optional[UUID] = None


@dataclass(eq=False)
class Role:
    id: Optional[int] = None  # pylint: disable=invalid-name
    name: Optional[str] = None
    description: Optional[str] = None


@dataclass(eq=False)
class UserRole:
    id: Optional[int] = None  # pylint: disable=invalid-name
    user_id: Optional[int] = None
    role_id: Optional[int] = None


# Projection shapes


@dataclass
class UserPartial:
    """외부에 보여도 안전한 사용자 속성만 골라낸 projection.

    ``email`` 과 ``roles`` 는 단일 사용자 조회(:meth:`get_user_by_id`)에서만 채워집니다.
    """

    id: int  # pylint: disable=invalid-name
    user_name: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    email: Optional[str] = None
    roles: Optional[list[str]] = None


@dataclass
class CustomerDto:
    """일부 주문만 포함하는 고객 projection."""

    customer_id: UUID
    company_name: Optional[str] = None
    contact_name: Optional[str] = None
    contact_title: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    row_version: Optional[int] = None
    orders: list[Order] = field(default_factory=list)

    @classmethod
    def from_customer(cls, customer: Customer) -> CustomerDto:
        return cls(
            customer_id=cast(UUID, customer.customer_id),
            company_name=customer.company_name,
            contact_name=customer.contact_name,
            contact_title=customer.contact_title,
            address=customer.address,
            city=customer.city,
            region=customer.region,
            postal_code=customer.postal_code,
            country=customer.country,
            phone=customer.phone,
            fax=customer.fax,
            row_version=customer.row_version,
        )
