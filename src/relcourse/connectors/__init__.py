"""Schema and sample-data sources."""

from relcourse.connectors.base import BaseConnector
from relcourse.connectors.csv_loader import CSVLoader
from relcourse.connectors.db_connector import DBConnector
from relcourse.connectors.registry import CONNECTOR_REGISTRY, ConnectorFactory

__all__ = [
    "BaseConnector",
    "CSVLoader",
    "DBConnector",
    "ConnectorFactory",
    "CONNECTOR_REGISTRY",
]
