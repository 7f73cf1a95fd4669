"""Database backend implementations."""

from typing import TYPE_CHECKING, Callable, Type

from ..exceptions import BackendNotAvailableError, ConfigurationError

if TYPE_CHECKING:
    from ..base import BaseConnection, ObjectReference
    from ..config import PackagerConfig


def get_backend(db_type: str) -> Type["BaseConnection"]:
    """Get the connection class for a database type."""
    if db_type == "mssql":
        try:
            from .mssql.connection import MSSQLConnection
            return MSSQLConnection
        except ImportError as e:
            raise BackendNotAvailableError(
                f"MSSQL backend requires pyodbc and an ODBC driver manager. "
                f"Install with: pip install pyodbc\n"
                f"Error: {e}"
            )

    raise ConfigurationError(
        f"Unknown database type: {db_type}. Supported types: mssql"
    )


def connection_factory(config: "PackagerConfig") -> Callable[["ObjectReference"], "BaseConnection"]:
    """Build the factory a ConnectionRegistry uses to open db: lines.

    The backend is resolved on first use, so object lists holding only
    script files never need a database driver.
    """

    def open_connection(reference: "ObjectReference") -> "BaseConnection":
        ConnectionClass = get_backend(config.db_type)
        return ConnectionClass(config, reference.server_name or "", reference.database_name or "")

    return open_connection
