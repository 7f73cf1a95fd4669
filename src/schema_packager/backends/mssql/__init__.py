"""MS SQL Server backend.

The connection module needs pyodbc; the scripter only talks to a
BaseConnection and can be imported without it.
"""

from .scripter import MSSQLScripter, format_literal, format_type, quote

__all__ = [
    "MSSQLScripter",
    "format_literal",
    "format_type",
    "quote",
]
