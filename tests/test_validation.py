"""Tests for schema validation."""

import pytest

from relcourse.core.schema import (
    Attribute,
    AttributeKind,
    Cardinality,
    Entity,
    ForeignKey,
    Participation,
    Relationship,
    SchemaModel,
    course_reference_schema,
    validate_schema,
)


def _schema(*entities, fks=(), relationships=()):
    schema = SchemaModel()
    for entity in entities:
        schema.add_entity(entity)
    schema.foreign_keys = list(fks)
    schema.relationships = list(relationships)
    return schema


def _table(name, *columns, pk=("id",), nullable=()):
    attributes = [Attribute(c, "INT", nullable=c in nullable) for c in columns]
    return Entity.build(name, attributes, primary_key=list(pk))


def test_missing_and_nullable_primary_key():
    no_pk = Entity.build("logs", [Attribute("message", "TEXT")])
    nullable_pk = Entity.build("tags", [Attribute("id", "INT")], primary_key=["id"])
    ghost_pk = Entity.build("notes", [Attribute("body", "TEXT")], primary_key=["id"])

    errors = validate_schema(_schema(no_pk, nullable_pk, ghost_pk))["errors"]

    assert "Entity 'logs' has no primary key" in errors
    assert "Primary key column tags.id must be NOT NULL" in errors
    assert any("key column 'id' is not an attribute" in e for e in errors)


def test_attribute_kinds():
    people = Entity.build(
        "people",
        [
            Attribute("id", "INT", nullable=False),
            Attribute("phones", "TEXT", kind=AttributeKind.MULTI_VALUED),
            Attribute("address", "TEXT", kind=AttributeKind.COMPOSITE),
            Attribute("age", "INT", kind=AttributeKind.DERIVED),
        ],
        primary_key=["id"],
    )

    result = validate_schema(_schema(people))

    assert any("Multi-valued attribute people.phones" in e for e in result["errors"])
    assert any("Composite attribute people.address" in w for w in result["warnings"])
    assert any("Derived attribute people.age" in w for w in result["warnings"])


def test_foreign_key_targets():
    customers = Entity.build(
        "customers",
        [Attribute("id", "INT", nullable=False), Attribute("email", "TEXT")],
        primary_key=["id"],
    )
    orders = _table("orders", "id", "customer_id", "email")
    fks = [
        ForeignKey("orders", ["customer_id"], "customers", ["id"]),
        ForeignKey("orders", ["email"], "customers", ["email"]),
        ForeignKey("orders", ["customer_id"], "vendors", ["id"]),
        ForeignKey("orders", ["missing"], "customers", ["id"]),
        ForeignKey("orders", ["customer_id"], "customers", ["id", "email"]),
    ]

    errors = validate_schema(_schema(customers, orders, fks=fks))["errors"]

    assert any("must reference a primary or alternate key of customers" in e for e in errors)
    assert "FK references non-existent parent table: vendors" in errors
    assert "FK references non-existent child column: orders.missing" in errors
    assert any("1 child columns but 2 parent columns" in e for e in errors)
    assert not any("orders(customer_id) -> customers(id) must" in e for e in errors)


def test_set_null_on_not_null_column():
    customers = _table("customers", "id")
    orders = _table("orders", "id", "customer_id")
    fk = ForeignKey("orders", ["customer_id"], "customers", ["id"], on_delete="SET NULL")

    errors = validate_schema(_schema(customers, orders, fks=[fk]))["errors"]

    assert any("uses SET NULL but orders.customer_id is NOT NULL" in e for e in errors)


def test_relationship_checks():
    customers = _table("customers", "id")
    orders = _table("orders", "id", "customer_id", nullable=("customer_id",))
    fk = ForeignKey("orders", ["customer_id"], "customers", ["id"])
    relationships = [
        Relationship(
            "places",
            "customers",
            "orders",
            Cardinality.ONE_TO_ONE,
            right_participation=Participation.MANDATORY,
        ),
        Relationship("ships", "customers", "warehouses"),
    ]

    result = validate_schema(_schema(customers, orders, fks=[fk], relationships=relationships))

    assert any("is 1:1 but orders(customer_id) is not unique" in w for w in result["warnings"])
    assert any("mandatory for orders" in w for w in result["warnings"])
    assert "Relationship 'ships' references unknown entity 'warehouses'" in result["errors"]


def test_many_to_many_needs_composite_association():
    orders = _table("orders", "id")
    products = _table("products", "id")
    # Surrogate key only: the pair (order_id, product_id) is not unique
    items = _table("order_items", "id", "order_id", "product_id")
    fks = [
        ForeignKey("order_items", ["order_id"], "orders", ["id"]),
        ForeignKey("order_items", ["product_id"], "products", ["id"]),
    ]
    loose = Relationship("contains", "orders", "products", "M:N", via="order_items")
    unlinked = Relationship("bundles", "orders", "products", "M:N")

    errors = validate_schema(
        _schema(orders, products, items, fks=fks, relationships=[loose, unlinked])
    )["errors"]

    assert any("must make its two foreign keys unique together" in e for e in errors)
    assert "Many-to-many relationship 'bundles' needs an association entity" in errors


def test_isolated_entities_warning():
    schema = course_reference_schema()
    schema.add_entity(_table("audit_log", "id"))

    warnings = validate_schema(schema)["warnings"]

    assert any("isolated entities" in w and "audit_log" in w for w in warnings)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
