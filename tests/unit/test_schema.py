"""save bundle, 필터 옵션 파싱 테스트."""
import json
from uuid import uuid4

import pytest
from pydantic import ValidationError

from northwind.core import EntityState, SaveBundleError
from northwind.schema import CustomerFilterOptions, SaveBundle


def test_parse_save_bundle():
    customer_id = uuid4()
    bundle = SaveBundle.parse(
        json.dumps(
            {
                "entities": [
                    {
                        "customerId": str(customer_id),
                        "companyName": "Around the Horn",
                        "rowVersion": 1,
                        "entityAspect": {
                            "entityTypeName": "Customer:#Northwind.Models",
                            "entityState": "Modified",
                            "originalValuesMap": {"companyName": "Around"},
                        },
                    }
                ],
                "saveOptions": {},
            }
        )
    )

    [entity] = bundle.entities
    assert entity.entity_aspect.entity_type_name == "Customer:#Northwind.Models"
    assert entity.entity_aspect.entity_state == EntityState.MODIFIED
    assert entity.snake_properties == {
        "customer_id": str(customer_id),
        "company_name": "Around the Horn",
        "row_version": 1,
    }
    assert entity.snake_original_values == {"company_name": "Around"}


@pytest.mark.parametrize("bundle", ["{not json", "[]", b"42"])
def test_malformed_save_bundle_is_rejected(bundle):
    with pytest.raises(SaveBundleError):
        SaveBundle.parse(bundle)


def test_unknown_entity_state_is_rejected():
    with pytest.raises(ValidationError):
        SaveBundle.parse(
            {
                "entities": [
                    {"entityAspect": {"entityTypeName": "Customer", "entityState": "?"}}
                ]
            }
        )


def test_filter_options():
    ids = [uuid4(), uuid4()]

    assert CustomerFilterOptions.parse(None) is None

    options = CustomerFilterOptions.parse(
        json.dumps({"CompanyName": "Alfreds", "Ids": [str(it) for it in ids]})
    )
    assert options is not None
    assert options.company_name == "Alfreds"
    assert options.ids == ids

    options = CustomerFilterOptions.parse({"Unknown": 1})
    assert options is not None
    assert options.company_name is None
    assert options.ids is None
