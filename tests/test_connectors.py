"""Tests for CSV and database connectors."""

import pandas as pd
import pytest
from sqlalchemy import create_engine, text

from relcourse.connectors import BaseConnector, ConnectorFactory, CSVLoader, DBConnector
from relcourse.connectors.registry import CONNECTOR_REGISTRY
from relcourse.core.schema import Cardinality, validate_schema


@pytest.fixture
def csv_dir(tmp_path):
    pd.DataFrame({"customer_id": [1, 2], "email": ["a@x.org", "b@x.org"]}).to_csv(
        tmp_path / "customers.csv", index=False
    )
    pd.DataFrame({"order_id": [10], "customer_id": [1]}).to_csv(
        tmp_path / "orders.csv", index=False
    )
    return tmp_path


@pytest.fixture
def sqlite_url(tmp_path):
    path = tmp_path / "course.db"
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE customers ("
                "customer_id INTEGER PRIMARY KEY, email TEXT NOT NULL UNIQUE)"
            )
        )
        conn.execute(
            text(
                "CREATE TABLE orders ("
                "order_id INTEGER PRIMARY KEY, "
                "customer_id INTEGER NOT NULL REFERENCES customers (customer_id) "
                "ON DELETE CASCADE, "
                "note TEXT)"
            )
        )
        conn.execute(text("INSERT INTO customers VALUES (1, 'ana@example.com')"))
        conn.execute(text("INSERT INTO orders VALUES (10, 1, NULL)"))
    engine.dispose()
    return f"sqlite:///{path}"


def test_csv_loader(csv_dir):
    loader = CSVLoader(csv_dir)

    assert loader.get_table_names() == ["customers", "orders"]
    tables = loader.load_tables()
    assert list(tables["customers"]["email"]) == ["a@x.org", "b@x.org"]
    assert len(loader.load_single_table("orders")) == 1


def test_csv_loader_filter(csv_dir):
    assert list(CSVLoader(csv_dir, tables=["orders"]).load_tables()) == ["orders"]

    with pytest.raises(ValueError, match="Table\\(s\\) not found: invoices"):
        CSVLoader(csv_dir, tables=["invoices"]).load_tables()
    with pytest.raises(FileNotFoundError):
        CSVLoader(csv_dir).load_single_table("invoices")


def test_csv_loader_bad_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        CSVLoader(tmp_path / "missing")

    not_a_dir = tmp_path / "file.csv"
    not_a_dir.write_text("a\n1\n")
    with pytest.raises(NotADirectoryError):
        CSVLoader(not_a_dir)

    empty = tmp_path / "empty"
    empty.mkdir()
    with pytest.raises(ValueError, match="No CSV files"):
        CSVLoader(empty).load_tables()


def test_factory(csv_dir):
    connector = ConnectorFactory.create_connector("CSV", data_dir=csv_dir)

    assert isinstance(connector, CSVLoader)
    assert "CSVLoader" in repr(connector)


def test_register_connector():
    class MemoryConnector(BaseConnector):
        def load_tables(self):
            return {}

        def get_table_names(self):
            return []

    try:
        ConnectorFactory.register_connector("Memory", MemoryConnector)
        assert "memory" in ConnectorFactory.list_connectors()
        assert isinstance(ConnectorFactory.create_connector("memory"), MemoryConnector)
    finally:
        CONNECTOR_REGISTRY.pop("memory", None)

    with pytest.raises(TypeError):
        ConnectorFactory.register_connector("bad", dict)


def test_db_reflect_schema(sqlite_url):
    with DBConnector(sqlite_url) as connector:
        schema = connector.reflect_schema(name="course")

    assert schema.name == "course"
    assert sorted(schema.entities) == ["customers", "orders"]

    orders = schema.get_entity("orders")
    assert orders.primary_key == ["order_id"]
    assert not orders.attributes["customer_id"].nullable
    assert orders.attributes["note"].nullable
    assert not orders.attributes["order_id"].nullable

    fk = schema.foreign_keys[0]
    assert fk.describe() == "orders(customer_id) -> customers(customer_id)"

    relationship = schema.relationships[0]
    assert relationship.cardinality == Cardinality.ONE_TO_MANY
    assert validate_schema(schema)["errors"] == []


def test_db_load_tables(sqlite_url):
    connector = DBConnector(sqlite_url, tables=["orders"])

    assert connector.get_table_names() == ["orders"]
    tables = connector.load_tables()
    assert list(tables) == ["orders"]
    assert tables["orders"].loc[0, "customer_id"] == 1
    with pytest.raises(ValueError, match="not found"):
        connector.load_single_table("invoices")
    connector.close()


def test_db_connection_failure(tmp_path):
    with pytest.raises(Exception):
        DBConnector(f"sqlite:///{tmp_path / 'no' / 'such' / 'dir.db'}")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
