"""
Database-backed table storage.

Loads existing tables to import into fabricate() or to resample, and
persists fabricated or resampled tables. Any SQLAlchemy URL works
(PostgreSQL in deployment, SQLite in tests).
"""

import os
import logging
from typing import Dict, List, Optional

import pandas as pd
from sqlalchemy import MetaData, Table, create_engine, inspect, select, text

logger = logging.getLogger(__name__)


class TableStore:
    """
    Reads and writes DataFrames as database tables.

    Identifier levels recorded in DataFrame.attrs do not survive a round
    trip; pass ID_labels explicitly when resampling a loaded table.
    """

    def __init__(self, connection_string: Optional[str] = None):
        """
        Initialize database connection.

        Args:
            connection_string: SQLAlchemy connection string.
                              If None, uses DATABASE_URL environment variable.
        """
        if connection_string is None:
            connection_string = os.getenv('DATABASE_URL')
            if not connection_string:
                raise ValueError(
                    "No database connection string provided. "
                    "Set DATABASE_URL environment variable or pass connection_string."
                )

        self.connection_string = connection_string
        self.engine = create_engine(connection_string)
        self.verify_connection()
        logger.info("Database connection established")

    def verify_connection(self) -> None:
        """Verify database connection works"""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            raise RuntimeError(f"Failed to connect to database: {e}") from e

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists in database"""
        return table_name in self.list_tables()

    def list_tables(self) -> List[str]:
        """Names of all stored tables, sorted"""
        return sorted(inspect(self.engine).get_table_names())

    def load_table(self, table_name: str, limit: Optional[int] = None) -> pd.DataFrame:
        """
        Load a stored table.

        Args:
            table_name: Table to read
            limit: Read at most this many rows

        Returns:
            DataFrame with the table's rows
        """
        if not self.table_exists(table_name):
            raise KeyError(f"Table '{table_name}' not found")

        if limit is None:
            df = pd.read_sql_table(table_name, self.engine)
        else:
            table = Table(table_name, MetaData(), autoload_with=self.engine)
            df = pd.read_sql_query(select(table).limit(limit), self.engine)

        logger.debug(f"Loaded {table_name}: {len(df)} rows")
        return df

    def save_table(self, df: pd.DataFrame, table_name: str, if_exists: str = 'replace') -> int:
        """
        Store a DataFrame as a table.

        Args:
            df: Data to store (the index is not written)
            table_name: Destination table
            if_exists: 'replace', 'append' or 'fail'

        Returns:
            Number of rows written
        """
        df.to_sql(table_name, self.engine, if_exists=if_exists, index=False)
        logger.info(f"Saved {len(df)} rows to {table_name}")
        return len(df)


# Global cached store instances
_store_cache: Dict[str, TableStore] = {}


def get_store(connection_string: Optional[str] = None) -> TableStore:
    """
    Get a cached TableStore instance.

    Args:
        connection_string: Database connection string

    Returns:
        Cached TableStore instance
    """
    cache_key = connection_string or os.getenv('DATABASE_URL', 'default')

    if cache_key not in _store_cache:
        _store_cache[cache_key] = TableStore(connection_string)

    return _store_cache[cache_key]
