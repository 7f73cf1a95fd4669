"""Schema Packager - Extract SQL Server objects into a deployable schema package."""

from .config import SUPPORTED_DB_TYPES

__version__ = "0.1.0"

SUPPORTED_DIALECTS = ["SQL2012", "SQL2014", "SQL2016", "SQL2017"]

__all__ = ["__version__", "SUPPORTED_DB_TYPES", "SUPPORTED_DIALECTS"]
