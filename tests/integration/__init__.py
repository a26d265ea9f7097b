from datetime import datetime
from decimal import Decimal
from typing import Optional, cast
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from northwind.domain import (
    Category,
    Customer,
    Employee,
    Order,
    OrderDetail,
    Product,
    Role,
    User,
    UserRole,
)
from tests import random_company_name, random_suffix


def insert_customer(
    session: Session,
    company_name: str = "",
    user_session_id: Optional[UUID] = None,
) -> UUID:
    customer = Customer(
        customer_id=uuid4(),
        company_name=company_name or random_company_name(),
        user_session_id=user_session_id,
    )
    session.add(customer)
    session.commit()

    return cast(UUID, customer.customer_id)


def insert_employee(
    session: Session, last_name: str = "", user_session_id: Optional[UUID] = None
) -> int:
    employee = Employee(
        last_name=last_name or f"last-{random_suffix()}",
        first_name="first",
        user_session_id=user_session_id,
    )
    session.add(employee)
    session.commit()

    return cast(int, employee.employee_id)


def insert_category(session: Session, name: str = "Beverages") -> int:
    category = Category(category_name=name)
    session.add(category)
    session.commit()

    return cast(int, category.category_id)


def insert_product(
    session: Session, name: str = "", user_session_id: Optional[UUID] = None
) -> int:
    product = Product(
        product_name=name or f"product-{random_suffix()}",
        user_session_id=user_session_id,
    )
    session.add(product)
    session.commit()

    return cast(int, product.product_id)


def insert_order(
    session: Session,
    customer_id: Optional[UUID],
    order_date: Optional[datetime] = None,
    user_session_id: Optional[UUID] = None,
) -> int:
    order = Order(
        customer_id=customer_id,
        order_date=order_date,
        user_session_id=user_session_id,
    )
    session.add(order)
    session.commit()

    return cast(int, order.order_id)


def insert_order_detail(
    session: Session,
    order_id: int,
    product_id: int,
    quantity: int = 1,
    user_session_id: Optional[UUID] = None,
) -> None:
    session.add(
        OrderDetail(
            order_id=order_id,
            product_id=product_id,
            unit_price=Decimal("10.00"),
            quantity=quantity,
            discount=0.0,
            user_session_id=user_session_id,
        )
    )
    session.commit()


def insert_user(
    session: Session,
    user_name: str = "",
    roles: tuple[str, ...] = (),
    user_session_id: Optional[UUID] = None,
) -> int:
    user = User(
        user_name=user_name or f"user-{random_suffix()}",
        password="secret",
        first_name="first",
        last_name="last",
        email=f"{user_name or 'user'}@example.com",
        user_session_id=user_session_id,
    )
    session.add(user)
    session.flush()

    for role_name in roles:
        role = session.query(Role).filter_by(name=role_name).first()
        if not role:
            role = Role(name=role_name)
            session.add(role)
            session.flush()
        session.add(UserRole(user_id=user.id, role_id=role.id))

    session.commit()

    return cast(int, user.id)
