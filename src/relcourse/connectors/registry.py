"""Connector registry and factory."""

from __future__ import annotations

from typing import Dict, List, Type

from relcourse.connectors.base import BaseConnector
from relcourse.connectors.csv_loader import CSVLoader
from relcourse.connectors.db_connector import DBConnector
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

CONNECTOR_REGISTRY: Dict[str, Type[BaseConnector]] = {
    "csv": CSVLoader,
    "database": DBConnector,
    "db": DBConnector,  # Alias
}


class ConnectorFactory:
    """Create sample-data connectors by name."""

    @staticmethod
    def create_connector(connector_type: str, **kwargs) -> BaseConnector:
        """Create connector instance.

        Args:
            connector_type: Connector type ('csv', 'database', 'db')
            **kwargs: Connector-specific configuration

        Returns:
            BaseConnector instance

        Raises:
            ValueError: If connector type is not supported

        Example:
            >>> connector = ConnectorFactory.create_connector("csv", data_dir="./sample_data")
            >>> connector = ConnectorFactory.create_connector(
            ...     "db", connection_string="sqlite:///course.db"
            ... )
        """
        key = connector_type.lower().strip()

        if key not in CONNECTOR_REGISTRY:
            available = ", ".join(sorted(CONNECTOR_REGISTRY))
            raise ValueError(
                f"Unknown connector type: {connector_type}. Available: {available}"
            )

        connector_class = CONNECTOR_REGISTRY[key]
        logger.info(f"Creating {connector_class.__name__} connector")
        return connector_class(**kwargs)

    @staticmethod
    def register_connector(name: str, connector_class: Type[BaseConnector]) -> None:
        """Register a custom connector.

        Args:
            name: Connector name
            connector_class: Connector class (must inherit from BaseConnector)
        """
        if not issubclass(connector_class, BaseConnector):
            raise TypeError(
                f"Connector class must inherit from BaseConnector, got {connector_class}"
            )

        CONNECTOR_REGISTRY[name.lower()] = connector_class
        logger.info(f"Registered custom connector: {name}")

    @staticmethod
    def list_connectors() -> List[str]:
        """List available connector types."""
        return sorted(CONNECTOR_REGISTRY)
