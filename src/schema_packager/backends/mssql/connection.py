"""MS SQL Server database connection."""

import logging
import re
from contextlib import contextmanager
from typing import Any, Generator, Optional

import pyodbc

from ...base.connection import BaseConnection
from ...config import PackagerConfig
from ...exceptions import ConfigurationError, ConnectionError, ExtractionError
from .scripter import MSSQLScripter

logger = logging.getLogger(__name__)


class MSSQLConnection(BaseConnection):
    """MS SQL Server connection using pyodbc."""

    def __init__(self, config: PackagerConfig, server_name: str, database_name: str):
        super().__init__(config, server_name, database_name)
        self._connection: Optional[pyodbc.Connection] = None

    def connect(self) -> None:
        """Establish database connection."""
        if not self.server_name:
            raise ConnectionError(f"No server name given for database '{self.database_name}'")
        if not self.database_name:
            raise ConnectionError(f"No database name given for server '{self.server_name}'")

        try:
            connection_string = self._build_connection_string()
            logger.debug(f"Connecting with: {self._mask_connection_string(connection_string)}")
            self._connection = pyodbc.connect(connection_string, timeout=self.config.connection_timeout)
            self._check_database()
            logger.info(f"Connected to {self.server_name}.{self.database_name}")
        except (pyodbc.Error, ExtractionError) as e:
            self.disconnect()
            raise ConnectionError(f"Failed to connect to database: {e}") from e
        except ConfigurationError as e:
            raise ConnectionError(str(e)) from e

    def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.info(f"Disconnected from {self.server_name}.{self.database_name}")

    @property
    def connection(self) -> pyodbc.Connection:
        """Get the active connection."""
        if not self._connection:
            raise ConnectionError("Not connected to database")
        return self._connection

    def get_scripter(self) -> MSSQLScripter:
        return MSSQLScripter(self)

    @contextmanager
    def cursor(self) -> Generator[Any, None, None]:
        """Get a cursor, reporting driver errors as extraction errors."""
        try:
            with super().cursor() as cur:
                yield cur
        except pyodbc.Error as e:
            raise ExtractionError(f"Catalog query failed: {e}") from e

    def _check_database(self) -> None:
        """Fail when the login lands in a different database than requested."""
        current = self.execute_scalar("SELECT DB_NAME()")
        if current and current.lower() != self.database_name.lower():
            self.disconnect()
            raise ConnectionError(
                f"Database '{self.database_name}' is not available on {self.server_name}"
            )

    def _build_connection_string(self) -> str:
        """Build a connection string from config and the db: line."""
        driver = self.config.driver or self._detect_driver()
        parts = [
            f"Driver={{{driver}}}",
            f"Server={self.server_name}",
            f"Database={self.database_name}",
        ]

        if self.config.trusted_connection:
            parts.append("Trusted_Connection=yes")
        else:
            parts.append(f"UID={self.config.username}")
            parts.append(f"PWD={self.config.password}")

        # Trust server certificate for ODBC Driver 18+
        if "18" in driver or "19" in driver:
            parts.append("TrustServerCertificate=yes")

        parts.extend(f"{key}={value}" for key, value in self.config.extra_connection_options.items())
        return ";".join(parts)

    def _detect_driver(self) -> str:
        """Detect available ODBC driver for SQL Server."""
        drivers = pyodbc.drivers()
        preferred_drivers = [
            "ODBC Driver 18 for SQL Server",
            "ODBC Driver 17 for SQL Server",
            "SQL Server Native Client 11.0",
            "SQL Server",
        ]
        for driver in preferred_drivers:
            if driver in drivers:
                return driver

        sql_drivers = [d for d in drivers if "SQL Server" in d]
        if sql_drivers:
            return sql_drivers[0]

        raise ConfigurationError(
            f"No SQL Server ODBC driver found. Available drivers: {drivers}"
        )

    def _mask_connection_string(self, conn_str: str) -> str:
        """Mask sensitive parts of connection string for logging."""
        return re.sub(r"(PWD=)[^;]+", r"\1***", conn_str)

    def get_version(self) -> str:
        """Get SQL Server version."""
        return self.execute_scalar("SELECT @@VERSION") or "Unknown"
