from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.orm import Session

from northwind.domain import Customer, Order, OrderDetail
from northwind.orm import get_scoped_session
from tests import random_session_id
from tests.integration import insert_customer, insert_order, insert_product


def test_customer_mapper_can_save_customers(session: Session) -> None:
    session_id = random_session_id()
    customer_id = insert_customer(session, "Alfreds Futterkiste", session_id)

    session.expunge_all()
    customer = session.get(Customer, customer_id)

    assert customer is not None
    assert customer.company_name == "Alfreds Futterkiste"
    assert customer.user_session_id == session_id
    assert customer.row_version == 1


def test_version_is_increased_on_update(session: Session) -> None:
    customer_id = insert_customer(session)
    customer = session.get(Customer, customer_id)
    assert customer is not None

    customer.company_name = "renamed"
    session.commit()

    [[row_version]] = session.execute(
        text("SELECT row_version FROM customer WHERE company_name = :name"),
        dict(name="renamed"),
    )
    assert row_version == 2


def test_order_relationships(session: Session) -> None:
    customer_id = insert_customer(session)
    order_id = insert_order(session, customer_id, datetime(1998, 1, 2))
    product_id = insert_product(session, "Chai")
    session.add(
        OrderDetail(
            order_id=order_id,
            product_id=product_id,
            unit_price=Decimal("18.00"),
            quantity=3,
            discount=0.0,
        )
    )
    session.commit()
    session.expunge_all()

    order = session.get(Order, order_id)

    assert order is not None
    assert order.customer.customer_id == customer_id
    assert [it.product.product_name for it in order.order_details] == ["Chai"]
    assert order.order_details[0].order is order
    assert order.customer.orders == [order]


def test_scoped_session_is_closed(session: Session) -> None:
    insert_customer(session, "Scoped")
    engine = session.get_bind()

    with get_scoped_session(engine)() as db:  # type: ignore
        assert [it.company_name for it in db.query(Customer)] == ["Scoped"]
        assert db.in_transaction()

    assert not db.in_transaction()
