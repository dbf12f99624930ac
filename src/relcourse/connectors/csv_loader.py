"""Load sample rows for a schema from CSV files."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from relcourse.connectors.base import BaseConnector
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)


class CSVLoader(BaseConnector):
    """Load tables from a directory of CSV files (one file per table)."""

    def __init__(
        self,
        data_dir: str | Path,
        tables: Optional[List[str]] = None,
        file_pattern: str = "*.csv",
        **pandas_kwargs,
    ):
        """Initialize CSV loader.

        Args:
            data_dir: Directory containing CSV files
            tables: Optional list of tables to load (all files if None)
            file_pattern: Glob pattern for CSV files
            **pandas_kwargs: Additional arguments passed to pd.read_csv()

        Example:
            >>> loader = CSVLoader("./sample_data", tables=["customers", "orders"])
            >>> tables = loader.load_tables()
        """
        super().__init__(
            data_dir=data_dir,
            tables=tables,
            file_pattern=file_pattern,
            **pandas_kwargs,
        )

        self.data_dir = Path(data_dir)
        self.table_filter = tables
        self.file_pattern = file_pattern
        self.pandas_kwargs = pandas_kwargs

        if not self.data_dir.exists():
            raise FileNotFoundError(f"Data directory not found: {self.data_dir}")

        if not self.data_dir.is_dir():
            raise NotADirectoryError(f"Not a directory: {self.data_dir}")

    def load_tables(self) -> Dict[str, pd.DataFrame]:
        """Load the CSV files in the directory.

        Returns:
            Dict mapping table_name -> DataFrame
        """
        names = self.get_table_names()

        if not names:
            raise ValueError(
                f"No CSV files found in {self.data_dir} "
                f"matching pattern '{self.file_pattern}'"
            )

        if self.table_filter:
            self.require_tables(self.table_filter)
            names = [n for n in names if n in self.table_filter]

        self.logger.info(f"Loading {len(names)} CSV files from {self.data_dir}")
        tables = {name: self.load_single_table(name) for name in names}
        self.logger.info(f"Successfully loaded {len(tables)} tables")
        return tables

    def get_table_names(self) -> List[str]:
        """Get list of CSV file names (without extension)."""
        return sorted(f.stem for f in self.data_dir.glob(self.file_pattern))

    def load_single_table(self, table_name: str) -> pd.DataFrame:
        """Load a single table by name.

        Args:
            table_name: Table name (CSV filename without extension)

        Returns:
            DataFrame

        Raises:
            FileNotFoundError: If CSV file doesn't exist
        """
        csv_file = self.data_dir / f"{table_name}.csv"

        if not csv_file.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file}")

        df = pd.read_csv(csv_file, **self.pandas_kwargs)
        self.logger.debug(f"Loaded {table_name}: {len(df)} rows, {len(df.columns)} columns")
        return df
