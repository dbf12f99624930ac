"""Base connector interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List

import pandas as pd

from relcourse.utils.logging import get_logger

logger = get_logger(__name__)


class BaseConnector(ABC):
    """Abstract base class for sample-data sources."""

    def __init__(self, **kwargs):
        """Initialize connector.

        Args:
            **kwargs: Connector-specific configuration
        """
        self.config = kwargs
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def load_tables(self) -> Dict[str, pd.DataFrame]:
        """Load tables into memory.

        Returns:
            Dict mapping table_name -> DataFrame
        """

    @abstractmethod
    def get_table_names(self) -> List[str]:
        """Get list of available table names."""

    def require_tables(self, names: List[str]) -> None:
        """Check that every named table is available.

        Args:
            names: Table names the caller needs

        Raises:
            ValueError: If any table is missing
        """
        available = self.get_table_names()
        missing = [n for n in names if n not in available]
        if missing:
            raise ValueError(
                f"Table(s) not found: {', '.join(missing)}. "
                f"Available tables: {available}"
            )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.config})"
