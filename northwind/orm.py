"""ORM 어댑터 모듈"""
from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
from typing import Any, Callable, Generator, Optional, Type, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import clear_mappers as _clear_mappers
from sqlalchemy.orm import registry, relationship, sessionmaker
from sqlalchemy.orm.session import Session
from sqlalchemy.pool import Pool

from northwind.config import NorthwindConfig, get_config
from northwind.core import get_logger
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

SessionMaker = Callable[[], Session]
"""Session 팩토리 타입."""
ScopedSession = AbstractContextManager[Session]
metadata: Optional[MetaData] = None

mapper_registry = registry()
logger = get_logger("northwind.orm")

__session_factory: Optional[SessionMaker] = None


def _session_id_column() -> Column:
    return Column("user_session_id", Uuid, nullable=True, index=True)


def _row_version_column(server_default: str = "0") -> Column:
    return Column("row_version", Integer, nullable=False, server_default=server_default)


def init_mappers(metadata: MetaData) -> MetaData:
    """도메인 객체들을 SqlAlchemy ORM 매퍼에 등록합니다."""

    category = Table(
        "category",
        metadata,
        Column("category_id", Integer, primary_key=True, autoincrement=True),
        Column("category_name", String(15), nullable=False),
        Column("description", Text),
        _row_version_column(),
        extend_existing=True,
    )

    region = Table(
        "region",
        metadata,
        Column("region_id", Integer, primary_key=True, autoincrement=True),
        Column("region_description", String(50), nullable=False),
        _row_version_column(),
        extend_existing=True,
    )

    supplier = Table(
        "supplier",
        metadata,
        Column("supplier_id", Integer, primary_key=True, autoincrement=True),
        Column("company_name", String(40), nullable=False),
        Column("contact_name", String(30)),
        Column("contact_title", String(30)),
        Column("address", String(60)),
        Column("city", String(15)),
        Column("region", String(15)),
        Column("postal_code", String(10)),
        Column("country", String(15)),
        Column("phone", String(24)),
        Column("fax", String(24)),
        Column("home_page", Text),
        _row_version_column(),
        extend_existing=True,
    )

    territory = Table(
        "territory",
        metadata,
        Column("territory_id", Integer, primary_key=True, autoincrement=True),
        Column("territory_description", String(50), nullable=False),
        Column("region_id", Integer, ForeignKey("region.region_id"), nullable=False),
        _row_version_column(),
        extend_existing=True,
    )

    customer = Table(
        "customer",
        metadata,
        Column("customer_id", Uuid, primary_key=True, autoincrement=False),
        Column("company_name", String(40), nullable=False),
        Column("contact_name", String(30)),
        Column("contact_title", String(30)),
        Column("address", String(60)),
        Column("city", String(15)),
        Column("region", String(15)),
        Column("postal_code", String(10)),
        Column("country", String(15)),
        Column("phone", String(24)),
        Column("fax", String(24)),
        _row_version_column(),
        _session_id_column(),
        extend_existing=True,
    )

    employee = Table(
        "employee",
        metadata,
        Column("employee_id", Integer, primary_key=True, autoincrement=True),
        Column("last_name", String(30), nullable=False),
        Column("first_name", String(30), nullable=False),
        Column("title", String(30)),
        Column("title_of_courtesy", String(25)),
        Column("birth_date", DateTime),
        Column("hire_date", DateTime),
        Column("address", String(60)),
        Column("city", String(15)),
        Column("region", String(15)),
        Column("postal_code", String(10)),
        Column("country", String(15)),
        Column("home_phone", String(24)),
        Column("extension", String(4)),
        Column("notes", Text),
        Column("reports_to_employee_id", Integer, ForeignKey("employee.employee_id")),
        _row_version_column(),
        _session_id_column(),
        extend_existing=True,
    )

    employee_territory = Table(
        "employee_territory",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column(
            "employee_id", Integer, ForeignKey("employee.employee_id"), nullable=False
        ),
        Column(
            "territory_id",
            Integer,
            ForeignKey("territory.territory_id"),
            nullable=False,
        ),
        _row_version_column(),
        extend_existing=True,
    )

    product = Table(
        "product",
        metadata,
        Column("product_id", Integer, primary_key=True, autoincrement=True),
        Column("product_name", String(40), nullable=False),
        Column("supplier_id", Integer, ForeignKey("supplier.supplier_id")),
        Column("category_id", Integer, ForeignKey("category.category_id")),
        Column("quantity_per_unit", String(20)),
        Column("unit_price", Numeric(19, 4)),
        Column("units_in_stock", Integer),
        Column("units_on_order", Integer),
        Column("reorder_level", Integer),
        Column("discontinued", Boolean, nullable=False, server_default="0"),
        Column("discontinued_date", DateTime),
        _row_version_column(),
        _session_id_column(),
        extend_existing=True,
    )

    order = Table(
        "order",
        metadata,
        Column("order_id", Integer, primary_key=True, autoincrement=True),
        Column("customer_id", Uuid, ForeignKey("customer.customer_id")),
        Column("employee_id", Integer, ForeignKey("employee.employee_id")),
        Column("order_date", DateTime),
        Column("required_date", DateTime),
        Column("shipped_date", DateTime),
        Column("freight", Numeric(19, 4)),
        Column("ship_name", String(40)),
        Column("ship_address", String(60)),
        Column("ship_city", String(15)),
        Column("ship_region", String(15)),
        Column("ship_postal_code", String(10)),
        Column("ship_country", String(15)),
        _row_version_column(),
        _session_id_column(),
        extend_existing=True,
    )

    order_detail = Table(
        "order_detail",
        metadata,
        Column("order_id", Integer, ForeignKey("order.order_id"), primary_key=True),
        Column(
            "product_id", Integer, ForeignKey("product.product_id"), primary_key=True
        ),
        Column("unit_price", Numeric(19, 4), nullable=False),
        Column("quantity", Integer, nullable=False),
        Column("discount", Float, nullable=False, server_default="0"),
        _row_version_column(),
        _session_id_column(),
        extend_existing=True,
    )

    # Order 와 키를 공유하는 1:1 테이블
    international_order = Table(
        "international_order",
        metadata,
        Column(
            "order_id",
            Integer,
            ForeignKey("order.order_id"),
            primary_key=True,
            autoincrement=False,
        ),
        Column("customs_description", String(100), nullable=False),
        Column("excise_tax", Numeric(19, 4), nullable=False, server_default="0"),
        _row_version_column(),
        _session_id_column(),
        extend_existing=True,
    )

    user = Table(
        "user",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("user_name", String(100), nullable=False),
        Column("password", String(200)),
        Column("first_name", String(100)),
        Column("last_name", String(100)),
        Column("email", String(100)),
        Column("created_date", DateTime),
        Column("modified_date", DateTime),
        _row_version_column(),
        _session_id_column(),
        extend_existing=True,
    )

    role = Table(
        "role",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(50), nullable=False),
        Column("description", String(2000)),
        extend_existing=True,
    )

    user_role = Table(
        "user_role",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("user_id", Integer, ForeignKey("user.id"), nullable=False),
        Column("role_id", Integer, ForeignKey("role.id"), nullable=False),
        extend_existing=True,
    )

    map_imperatively = mapper_registry.map_imperatively

    map_imperatively(Category, category)
    map_imperatively(Region, region)
    map_imperatively(Supplier, supplier)
    map_imperatively(Territory, territory, properties={"region": relationship(Region)})

    map_imperatively(
        Customer,
        customer,
        properties={"orders": relationship(Order, back_populates="customer")},
        version_id_col=customer.c.row_version,
    )
    map_imperatively(
        Employee,
        employee,
        version_id_col=employee.c.row_version,
    )
    map_imperatively(
        EmployeeTerritory,
        employee_territory,
        properties={
            "employee": relationship(Employee),
            "territory": relationship(Territory),
        },
    )
    map_imperatively(
        Product,
        product,
        properties={
            "category": relationship(Category),
            "supplier": relationship(Supplier),
        },
        version_id_col=product.c.row_version,
    )
    map_imperatively(
        Order,
        order,
        properties={
            "customer": relationship(Customer, back_populates="orders"),
            "employee": relationship(Employee),
            "order_details": relationship(OrderDetail, back_populates="order"),
            "international_order": relationship(
                InternationalOrder, uselist=False, back_populates="order"
            ),
        },
        version_id_col=order.c.row_version,
    )
    map_imperatively(
        OrderDetail,
        order_detail,
        properties={
            "order": relationship(Order, back_populates="order_details"),
            "product": relationship(Product),
        },
        version_id_col=order_detail.c.row_version,
    )
    map_imperatively(
        InternationalOrder,
        international_order,
        properties={
            "order": relationship(Order, back_populates="international_order")
        },
        version_id_col=international_order.c.row_version,
    )

    map_imperatively(
        User,
        user,
        properties={"user_roles": relationship(UserRole, back_populates="user")},
    )
    map_imperatively(Role, role)
    map_imperatively(
        UserRole,
        user_role,
        properties={
            "user": relationship(User, back_populates="user_roles"),
            "role": relationship(Role),
        },
    )

    return metadata


def get_sessionmaker() -> SessionMaker:
    """기본설정으로 SqlAlchemy Session 팩토리를 만듭니다."""
    global __session_factory

    if not __session_factory:
        __session_factory = init_db(config=get_config())

    return __session_factory


def set_default_sessionmaker(session_factory: Optional[SessionMaker]) -> None:
    """:func:`get_sessionmaker` 가 리턴할 기본 Session 팩토리를 교체합니다."""
    global __session_factory
    __session_factory = session_factory


def init_db(
    db_url: Optional[str] = None,
    drop_all: bool = False,
    show_log: bool = False,
    init_hooks: list[Callable[[MetaData], Any]] = None,
    config: NorthwindConfig = None,
) -> SessionMaker:
    """DB 엔진을 초기화하고 Session 팩토리를 리턴합니다."""
    metadata = start_mappers(init_hooks=init_hooks)

    engine = init_engine(
        metadata,
        db_url if db_url else (config.get_db_url() if config else "sqlite://"),
        connect_args=config.get_db_connect_args() if config else None,
        poolclass=config.get_db_poolclass() if config else None,
        drop_all=drop_all,
        show_log=show_log or bool(config and config.db_echo),
    )
    return cast(SessionMaker, sessionmaker(engine, expire_on_commit=False))


def start_mappers(
    use_exist: bool = True, init_hooks: list[Callable[[MetaData], Any]] = None
) -> MetaData:
    """도메인 객체들을 SqlAlchemy ORM 매퍼에 등록합니다.

    이미 매핑되어 있다면 기존 :class:`MetaData` 를 리턴합니다.
    """
    global metadata  # pylint: disable=global-statement,invalid-name
    if use_exist and metadata:
        return metadata

    metadata = MetaData()

    for hook in init_hooks or [init_mappers]:
        hook(metadata)

    return metadata


def clear_mappers() -> None:
    """ORM 매핑을 초기화 합니다."""
    global metadata  # pylint: disable=global-statement,invalid-name
    _clear_mappers()
    metadata = None


def init_engine(
    meta: MetaData,
    url: str,
    connect_args: Optional[dict[str, Any]] = None,
    poolclass: Optional[Type[Pool]] = None,
    show_log: bool = False,
    isolation_level: Optional[str] = None,
    drop_all: bool = False,
) -> Engine:
    """ORM Engine을 초기화 하고 테이블을 생성합니다."""
    kwargs: dict[str, Any] = {}
    if poolclass:
        kwargs["poolclass"] = poolclass
    if isolation_level:
        kwargs["isolation_level"] = isolation_level

    engine = create_engine(
        url,
        connect_args=connect_args or {},
        echo=show_log,
        **kwargs,
    )

    if drop_all:
        logger.info("drop all tables: %s", engine.url)
        meta.drop_all(engine)

    meta.create_all(engine)

    return engine


def get_scoped_session(engine: Engine) -> Callable[[], ScopedSession]:
    """``with...`` 문으로 자동 리소스가 반환되는 세션을 리턴합니다.

    Example: ::

        with get_scoped_session(engine)() as db:
            customers = db.query(Customer).all()
            ...

    Args:
        engine: Engine.

    """
    session_factory = sessionmaker(engine, expire_on_commit=False)

    @contextmanager
    def scoped_session() -> Generator[Session, None, None]:
        session: Optional[Session] = None
        try:
            yield (session := session_factory())  # pylint: disable=superfluous-parens
        finally:
            if session:
                session.close()  # pylint: disable=no-member

    return scoped_session
