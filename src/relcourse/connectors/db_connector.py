"""Database connector using SQLAlchemy."""

from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine

from relcourse.connectors.base import BaseConnector
from relcourse.core.schema.schema import SchemaModel
from relcourse.core.schema.types import Attribute, AttributeKind, Entity, ForeignKey
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)


class DBConnector(BaseConnector):
    """Read schemas and sample rows from a database via SQLAlchemy."""

    def __init__(
        self,
        connection_string: str,
        schema: Optional[str] = None,
        tables: Optional[List[str]] = None,
    ):
        """Initialize database connector.

        Args:
            connection_string: SQLAlchemy connection string
            schema: Database schema name (optional)
            tables: Optional list of specific tables (all if None)

        Example:
            >>> connector = DBConnector("sqlite:///course.db")
            >>> schema = connector.reflect_schema()
        """
        super().__init__(
            connection_string=connection_string,
            schema=schema,
            tables=tables,
        )

        self.connection_string = connection_string
        self.schema = schema
        self.table_filter = tables

        self.logger.info("Creating database engine")
        self.engine: Engine = create_engine(connection_string)

        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            self.logger.info("Database connection successful")
        except Exception as e:
            self.logger.error(f"Failed to connect to database: {e}")
            raise

    def load_tables(self) -> Dict[str, pd.DataFrame]:
        """Load tables from database.

        Returns:
            Dict mapping table_name -> DataFrame
        """
        table_names = self.get_table_names()

        if not table_names:
            raise ValueError(f"No tables found in database (schema={self.schema})")

        self.logger.info(f"Loading {len(table_names)} tables from database")
        tables = {name: self.load_single_table(name) for name in table_names}
        self.logger.info(f"Successfully loaded {len(tables)} tables")
        return tables

    def get_table_names(self) -> List[str]:
        """Get list of table names from database."""
        all_tables = inspect(self.engine).get_table_names(schema=self.schema)

        if self.table_filter:
            tables = [t for t in all_tables if t in self.table_filter]
            self.logger.info(
                f"Filtered to {len(tables)} tables from {len(all_tables)} available"
            )
            return tables
        return all_tables

    def load_single_table(self, table_name: str) -> pd.DataFrame:
        """Load a single table from database.

        Args:
            table_name: Table name

        Returns:
            DataFrame

        Raises:
            ValueError: If table doesn't exist
        """
        all_tables = inspect(self.engine).get_table_names(schema=self.schema)
        if table_name not in all_tables:
            raise ValueError(f"Table '{table_name}' not found. Available: {all_tables}")

        if self.schema:
            query = f'SELECT * FROM "{self.schema}"."{table_name}"'
        else:
            query = f'SELECT * FROM "{table_name}"'

        self.logger.debug(f"Executing: {query}")
        return pd.read_sql(query, self.engine)

    def get_foreign_keys(self) -> List[ForeignKey]:
        """Get declared foreign keys, including their referential actions.

        Returns:
            List of ForeignKey (composite keys keep all their columns)
        """
        inspector = inspect(self.engine)
        fks = []

        for table_name in self.get_table_names():
            for fk in inspector.get_foreign_keys(table_name, schema=self.schema):
                # SQLAlchemy FK format:
                # {
                #   'constrained_columns': ['customer_id'],
                #   'referred_table': 'customers',
                #   'referred_columns': ['customer_id'],
                #   'options': {'ondelete': 'CASCADE'}
                # }
                options = fk.get("options") or {}
                fks.append(
                    ForeignKey(
                        child_table=table_name,
                        child_columns=list(fk["constrained_columns"]),
                        parent_table=fk["referred_table"],
                        parent_columns=list(fk["referred_columns"]),
                        on_delete=options.get("ondelete"),
                        on_update=options.get("onupdate"),
                        name=fk.get("name"),
                    )
                )

        self.logger.info(f"Found {len(fks)} foreign keys")
        return fks

    def reflect_schema(self, name: Optional[str] = None) -> SchemaModel:
        """Build a SchemaModel from the database catalog.

        Args:
            name: Optional schema model name

        Returns:
            SchemaModel with columns, nullability, keys and foreign keys
        """
        inspector = inspect(self.engine)
        model = SchemaModel(name=name or self.engine.url.database)

        for table_name in self.get_table_names():
            pk = inspector.get_pk_constraint(table_name, schema=self.schema)
            pk_columns = list(pk.get("constrained_columns") or [])

            attributes = []
            for column in inspector.get_columns(table_name, schema=self.schema):
                computed = column.get("computed") or {}
                default = column.get("default")
                attributes.append(
                    Attribute(
                        name=column["name"],
                        dtype=str(column["type"]),
                        kind=AttributeKind.DERIVED if computed else AttributeKind.SIMPLE,
                        nullable=bool(column.get("nullable", True))
                        and column["name"] not in pk_columns,
                        default=str(default) if default is not None else None,
                        expression=computed.get("sqltext") and str(computed["sqltext"]),
                        stored=bool(computed.get("persisted")),
                    )
                )

            alternate_keys = [
                list(uc["column_names"])
                for uc in inspector.get_unique_constraints(table_name, schema=self.schema)
            ]
            model.add_entity(
                Entity.build(
                    table_name,
                    attributes,
                    primary_key=pk_columns,
                    alternate_keys=alternate_keys,
                )
            )

        model.foreign_keys = self.get_foreign_keys()
        model.relationships = model.infer_relationships()

        self.logger.info(
            f"Reflected {len(model.entities)} tables and {len(model.foreign_keys)} foreign keys"
        )
        return model

    def close(self):
        """Close database connection."""
        self.engine.dispose()
        self.logger.info("Database connection closed")

    def __enter__(self) -> DBConnector:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
