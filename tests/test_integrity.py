"""Tests for referential integrity checks and delete planning."""

import pandas as pd
import pytest

from relcourse.core.schema import (
    ReferentialIntegrityError,
    check_integrity,
    course_reference_schema,
    plan_delete,
)


def _sample_tables():
    return {
        "customers": pd.DataFrame(
            {"customer_id": [1, 2], "email": ["ana@example.com", "ben@example.com"]}
        ),
        "customer_phones": pd.DataFrame(
            {"customer_id": [1, 1, 2], "phone": ["555-0101", "555-0102", "555-0201"]}
        ),
        "products": pd.DataFrame({"product_id": [1, 2], "sku": ["KB-01", "MS-02"]}),
        "orders": pd.DataFrame(
            {"order_id": [100, 101, 102], "customer_id": [1, 1, 2], "handled_by": [10, 11, 10]}
        ),
        "order_items": pd.DataFrame(
            {"order_id": [100, 100, 101], "product_id": [1, 2, 1], "quantity": [1, 2, 3]}
        ),
        "employees": pd.DataFrame({"employee_id": [10, 11], "manager_id": [None, 10]}),
    }


def test_clean_sample_rows():
    schema = course_reference_schema()

    report = check_integrity(schema, _sample_tables())

    assert report.is_valid
    assert report.tables_checked == 6
    assert set(report.coverage.values()) == {1.0}
    assert schema.foreign_keys[0].coverage == 1.0


def test_key_violations():
    tables = _sample_tables()
    tables["customers"] = pd.DataFrame(
        {"customer_id": [1, 2, 2, None], "email": ["a@x.org", "b@x.org", "b@x.org", "c@x.org"]}
    )

    report = check_integrity(course_reference_schema(), tables)

    assert not report.is_valid
    assert report.by_kind("primary_key_null")[0].rows == [3]
    assert report.by_kind("primary_key_duplicate")[0].rows == [1, 2]
    assert report.by_kind("unique_duplicate")[0].columns == ["email"]


def test_orphans_and_coverage():
    tables = _sample_tables()
    tables["orders"] = pd.DataFrame(
        {"order_id": [100, 101, 102], "customer_id": [1, 7, 2], "handled_by": [10, None, 10]}
    )

    report = check_integrity(course_reference_schema(), tables)

    orphans = report.by_kind("fk_orphan")
    assert len(orphans) == 1
    assert orphans[0].table == "orders"
    assert orphans[0].rows == [1]
    assert report.coverage["orders(customer_id) -> customers(customer_id)"] == pytest.approx(2 / 3)
    # NULL in a nullable FK is not an orphan
    assert report.coverage["orders(handled_by) -> employees(employee_id)"] == 1.0


def test_null_in_not_null_foreign_key():
    tables = _sample_tables()
    tables["orders"] = pd.DataFrame(
        {"order_id": [100, 101], "customer_id": [1, None], "handled_by": [10, 10]}
    )

    report = check_integrity(course_reference_schema(), tables)

    assert report.by_kind("fk_null")[0].rows == [1]


def test_restrict_blocks_delete():
    schema = course_reference_schema()
    tables = _sample_tables()

    plan = plan_delete(schema, tables, "customers", [1])

    assert plan.is_blocked
    assert plan.blocked_by[0].startswith("Cannot delete customers with existing orders")
    assert plan.deletes["customer_phones"] == [0, 1]
    with pytest.raises(ReferentialIntegrityError, match="existing orders"):
        plan.apply(tables)


def test_cascade_delete():
    schema = course_reference_schema()
    tables = _sample_tables()

    plan = plan_delete(schema, tables, "orders", [100])
    result = plan.apply(tables)

    assert not plan.is_blocked
    assert plan.summary()["deletes"] == {"orders": 1, "order_items": 2}
    assert list(result["orders"]["order_id"]) == [101, 102]
    assert list(result["order_items"]["order_id"]) == [101]
    # Input tables are untouched
    assert len(tables["orders"]) == 3


def test_set_null_delete():
    schema = course_reference_schema()
    tables = _sample_tables()

    plan = plan_delete(schema, tables, "employees", [10])
    result = plan.apply(tables)

    assert plan.updates["orders"] == {"handled_by": [0, 2]}
    assert plan.updates["employees"] == {"manager_id": [1]}
    assert pd.isna(result["orders"].loc[0, "handled_by"])
    assert result["orders"].loc[1, "handled_by"] == 11
    assert list(result["employees"]["employee_id"]) == [11]
    assert pd.isna(result["employees"].loc[1, "manager_id"])


def test_composite_key_delete():
    plan = plan_delete(course_reference_schema(), _sample_tables(), "order_items", [(100, 2)])

    assert plan.deletes == {"order_items": [1]}


def test_delete_unknown_rows():
    schema = course_reference_schema()
    tables = _sample_tables()

    with pytest.raises(ValueError, match="No customers rows with key"):
        plan_delete(schema, tables, "customers", [99])
    with pytest.raises(KeyError):
        plan_delete(schema, tables, "invoices", [1])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
