"""Tests for the schema model and its building blocks."""

import pytest

from relcourse.core.schema import (
    Attribute,
    Cardinality,
    Entity,
    ForeignKey,
    Participation,
    ReferentialAction,
    SchemaModel,
    course_reference_schema,
)


def _shop_schema():
    schema = SchemaModel(name="shop")
    schema.add_entity(
        Entity.build(
            "customers",
            [Attribute("id", "INT", nullable=False), Attribute("email", "TEXT", nullable=False)],
            primary_key=["id"],
            alternate_keys=[["email"]],
        )
    )
    schema.add_entity(
        Entity.build(
            "orders",
            [
                Attribute("id", "INT", nullable=False),
                Attribute("customer_id", "INT", nullable=False),
            ],
            primary_key=["id"],
        )
    )
    schema.add_entity(
        Entity.build(
            "profiles",
            [Attribute("customer_id", "INT", nullable=False), Attribute("bio", "TEXT")],
            primary_key=["customer_id"],
        )
    )
    schema.foreign_keys = [
        ForeignKey("orders", ["customer_id"], "customers", ["id"], on_delete="cascade"),
        ForeignKey("profiles", ["customer_id"], "customers", ["id"]),
    ]
    return schema


def test_referential_action_parse():
    assert ReferentialAction.parse("cascade") == ReferentialAction.CASCADE
    assert ReferentialAction.parse("set  null") == ReferentialAction.SET_NULL
    assert ReferentialAction.parse("SET_DEFAULT") == ReferentialAction.SET_DEFAULT
    assert ReferentialAction.parse(None) == ReferentialAction.NO_ACTION
    assert ReferentialAction.RESTRICT.blocks_delete
    assert not ReferentialAction.CASCADE.blocks_delete
    with pytest.raises(ValueError, match="Unknown referential action"):
        ReferentialAction.parse("explode")


def test_entity_keys():
    entity = Entity.build(
        "order_items",
        [Attribute("order_id"), Attribute("product_id"), Attribute("qty")],
        primary_key=["order_id", "product_id"],
    )

    assert entity.columns == ["order_id", "product_id", "qty"]
    assert entity.keys()[0].is_composite
    assert entity.is_key(["product_id", "order_id"])
    assert not entity.is_key(["order_id"])
    assert entity.is_unique(["order_id", "product_id", "qty"])
    assert not entity.is_unique(["order_id", "qty"])


def test_foreign_key_describe():
    fk = ForeignKey("orders", ["customer_id"], "customers", ["id"], on_delete="SET NULL")

    assert fk.describe() == "orders(customer_id) -> customers(id)"
    assert fk.child_column == "customer_id"
    assert fk.parent_column == "id"
    assert fk.on_delete == ReferentialAction.SET_NULL
    assert not fk.is_self_referencing


def test_get_entity_unknown():
    with pytest.raises(KeyError, match="invoices"):
        _shop_schema().get_entity("invoices")


def test_foreign_keys_for_table():
    schema = _shop_schema()

    assert len(schema.get_foreign_keys_for_table("customers", "incoming")) == 2
    assert schema.get_foreign_keys_for_table("customers", "outgoing") == []
    assert schema.get_related_tables("customers") == ["orders", "profiles"]
    with pytest.raises(ValueError, match="Unknown direction"):
        schema.get_foreign_keys_for_table("customers", "sideways")


def test_infer_relationships():
    """FK on a key column gives 1:1, otherwise 1:N; NOT NULL makes it mandatory."""
    schema = _shop_schema()

    relationships = {(r.left, r.right): r for r in schema.infer_relationships()}

    orders = relationships[("customers", "orders")]
    assert orders.cardinality == Cardinality.ONE_TO_MANY
    assert orders.right_participation == Participation.MANDATORY
    assert relationships[("customers", "profiles")].cardinality == Cardinality.ONE_TO_ONE


def test_infer_many_to_many():
    schema = course_reference_schema()
    schema.relationships = []

    relationships = schema.infer_relationships()

    many = [r for r in relationships if r.cardinality == Cardinality.MANY_TO_MANY]
    assert len(many) == 1
    assert many[0].via == "order_items"
    assert {many[0].left, many[0].right} == {"orders", "products"}


def test_save_and_load(tmp_path):
    """JSON and YAML files both reload to the same model."""
    schema = course_reference_schema()

    for name in ("schema.json", "schema.yml"):
        path = tmp_path / name
        schema.save(path)
        loaded = SchemaModel.load(path)
        assert loaded.to_dict() == schema.to_dict()


def test_from_dict_shorthand():
    data = {
        "entities": {
            "customers": {
                "attributes": [{"name": "id", "nullable": False}],
                "primary_key": "id",
            },
            "orders": {
                "attributes": [
                    {"name": "id", "nullable": False},
                    {"name": "customer_id"},
                ],
                "primary_key": "id",
            },
        },
        "foreign_keys": [
            {
                "child_table": "orders",
                "child_column": "customer_id",
                "parent_table": "customers",
                "parent_column": "id",
                "on_delete": "restrict",
            }
        ],
    }

    schema = SchemaModel.from_dict(data)

    assert schema.get_entity("customers").primary_key == ["id"]
    fk = schema.foreign_keys[0]
    assert fk.child_columns == ["customer_id"]
    assert fk.on_delete == ReferentialAction.RESTRICT
    assert fk.on_update == ReferentialAction.NO_ACTION


def test_load_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        SchemaModel.load(tmp_path / "missing.json")

    bad = tmp_path / "bad.yml"
    bad.write_text("- just\n- a list\n")
    with pytest.raises(ValueError, match="mapping"):
        SchemaModel.load(bad)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
