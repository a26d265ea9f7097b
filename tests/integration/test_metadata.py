# pylint: disable=redefined-outer-name
"""메타데이터 문서 테스트."""
import json
from typing import Any

import pytest

from northwind import NorthwindRepository
from northwind.test.unit import FakeContextProvider


@pytest.fixture
def document() -> dict[str, Any]:
    # 메타데이터는 운영용 컨텍스트 제공자를 사용하지 않습니다.
    repo = NorthwindRepository(provider=FakeContextProvider())
    return json.loads(repo.metadata)


def find_type(document: dict[str, Any], name: str) -> dict[str, Any]:
    return next(it for it in document["structuralTypes"] if it["shortName"] == name)


def test_metadata_exposes_operational_types(document: dict[str, Any]):
    assert document["resourceEntityTypeMap"]["Customers"] == (
        "Customer:#Northwind.Models"
    )
    assert set(document["resourceEntityTypeMap"]) == {
        "Categories",
        "Customers",
        "Employees",
        "EmployeeTerritories",
        "InternationalOrders",
        "Orders",
        "OrderDetails",
        "Products",
        "Regions",
        "Suppliers",
        "Territories",
    }
    names = {it["shortName"] for it in document["structuralTypes"]}
    assert not names & {"User", "Role", "UserRole"}


def test_metadata_data_properties(document: dict[str, Any]):
    customer = find_type(document, "Customer")
    props = {it["name"]: it for it in customer["dataProperties"]}

    assert customer["autoGeneratedKeyType"] == "None"
    assert customer["defaultResourceName"] == "Customers"
    assert props["customerId"]["dataType"] == "Guid"
    assert props["customerId"]["isPartOfKey"] is True
    assert props["companyName"]["maxLength"] == 40
    assert props["companyName"]["isNullable"] is False
    assert props["rowVersion"]["concurrencyMode"] == "Fixed"

    order = find_type(document, "Order")
    assert order["autoGeneratedKeyType"] == "Identity"


def test_metadata_navigation_properties(document: dict[str, Any]):
    customer = find_type(document, "Customer")
    [orders] = customer["navigationProperties"]
    assert orders["name"] == "orders"
    assert orders["isScalar"] is False
    assert orders["invForeignKeyNames"] == ["customerId"]

    order = find_type(document, "Order")
    nav = {it["name"]: it for it in order["navigationProperties"]}
    assert nav["customer"]["isScalar"] is True
    assert nav["customer"]["foreignKeyNames"] == ["customerId"]
    assert nav["internationalOrder"]["isScalar"] is True
