"""Reference data dictionary used throughout the course chapters."""

from __future__ import annotations

from relcourse.core.schema.schema import SchemaModel
from relcourse.core.schema.types import (
    Attribute,
    AttributeKind,
    Cardinality,
    Entity,
    ForeignKey,
    Participation,
    ReferentialAction,
    Relationship,
)


def course_reference_schema() -> SchemaModel:
    """Build the customers / orders / products schema the chapters reuse.

    Shows every concept the course names: composite and derived attributes,
    a multi-valued attribute moved to an owned table, alternate keys, a
    composite-key association entity for M:N, a self-referencing FK and each
    common ON DELETE policy.
    """
    schema = SchemaModel(name="course_reference")

    schema.add_entity(
        Entity.build(
            "customers",
            [
                Attribute("customer_id", "INTEGER", nullable=False),
                Attribute("email", "VARCHAR(255)", nullable=False),
                Attribute("first_name", "VARCHAR(100)", nullable=False),
                Attribute("last_name", "VARCHAR(100)", nullable=False),
                Attribute(
                    "address",
                    "TEXT",
                    kind=AttributeKind.COMPOSITE,
                    components=["street", "city", "postal_code", "country"],
                ),
                Attribute("created_at", "TIMESTAMP", nullable=False, default="CURRENT_TIMESTAMP"),
            ],
            primary_key=["customer_id"],
            alternate_keys=[["email"]],
            description="People who place orders",
        )
    )
    schema.add_entity(
        Entity.build(
            "customer_phones",
            [
                Attribute("customer_id", "INTEGER", nullable=False),
                Attribute("phone", "VARCHAR(32)", nullable=False),
                Attribute("label", "VARCHAR(16)", default="'mobile'"),
            ],
            primary_key=["customer_id", "phone"],
            description="Multi-valued phone numbers owned by a customer",
        )
    )
    schema.add_entity(
        Entity.build(
            "products",
            [
                Attribute("product_id", "INTEGER", nullable=False),
                Attribute("sku", "VARCHAR(64)", nullable=False),
                Attribute("name", "VARCHAR(200)", nullable=False),
                Attribute("unit_price", "NUMERIC(10,2)", nullable=False),
            ],
            primary_key=["product_id"],
            alternate_keys=[["sku"]],
        )
    )
    schema.add_entity(
        Entity.build(
            "orders",
            [
                Attribute("order_id", "INTEGER", nullable=False),
                Attribute("customer_id", "INTEGER", nullable=False),
                Attribute("ordered_at", "TIMESTAMP", nullable=False),
                Attribute("status", "VARCHAR(20)", nullable=False, default="'pending'"),
                Attribute(
                    "order_total",
                    "NUMERIC(12,2)",
                    kind=AttributeKind.DERIVED,
                    expression="SUM(order_items.quantity * order_items.unit_price)",
                    stored=True,
                ),
                Attribute("handled_by", "INTEGER"),
            ],
            primary_key=["order_id"],
        )
    )
    schema.add_entity(
        Entity.build(
            "order_items",
            [
                Attribute("order_id", "INTEGER", nullable=False),
                Attribute("product_id", "INTEGER", nullable=False),
                Attribute("quantity", "INTEGER", nullable=False, default="1"),
                Attribute("unit_price", "NUMERIC(10,2)", nullable=False),
            ],
            primary_key=["order_id", "product_id"],
            description="Association entity between orders and products",
        )
    )
    schema.add_entity(
        Entity.build(
            "employees",
            [
                Attribute("employee_id", "INTEGER", nullable=False),
                Attribute("full_name", "VARCHAR(200)", nullable=False),
                Attribute("manager_id", "INTEGER"),
            ],
            primary_key=["employee_id"],
        )
    )

    schema.foreign_keys = [
        ForeignKey(
            "customer_phones", ["customer_id"], "customers", ["customer_id"],
            on_delete=ReferentialAction.CASCADE,
        ),
        ForeignKey(
            "orders", ["customer_id"], "customers", ["customer_id"],
            on_delete=ReferentialAction.RESTRICT,
        ),
        ForeignKey(
            "orders", ["handled_by"], "employees", ["employee_id"],
            on_delete=ReferentialAction.SET_NULL,
        ),
        ForeignKey(
            "order_items", ["order_id"], "orders", ["order_id"],
            on_delete=ReferentialAction.CASCADE,
        ),
        ForeignKey(
            "order_items", ["product_id"], "products", ["product_id"],
            on_delete=ReferentialAction.RESTRICT,
        ),
        ForeignKey(
            "employees", ["manager_id"], "employees", ["employee_id"],
            on_delete=ReferentialAction.SET_NULL,
        ),
    ]

    schema.relationships = [
        Relationship(
            "places", "customers", "orders", Cardinality.ONE_TO_MANY,
            left_participation=Participation.OPTIONAL,
            right_participation=Participation.MANDATORY,
        ),
        Relationship(
            "has_phone", "customers", "customer_phones", Cardinality.ONE_TO_MANY,
            right_participation=Participation.MANDATORY,
        ),
        Relationship(
            "contains", "orders", "products", Cardinality.MANY_TO_MANY,
            via="order_items",
        ),
        Relationship("handles", "employees", "orders", Cardinality.ONE_TO_MANY),
        Relationship("manages", "employees", "employees", Cardinality.ONE_TO_MANY),
    ]

    return schema
