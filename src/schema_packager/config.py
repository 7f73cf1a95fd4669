"""Configuration dataclasses for the schema packager."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError


class TargetDialect(Enum):
    """SQL Server versions a package can target."""

    SQL2012 = "Sql110"
    SQL2014 = "Sql120"
    SQL2016 = "Sql130"

    @property
    def schema_provider(self) -> str:
        """Name of the schema provider recorded in the package model."""
        return f"Microsoft.Data.Tools.Schema.Sql.{self.value}DatabaseSchemaProvider"


DEFAULT_DIALECT = TargetDialect.SQL2016

# SQL2017 has no dialect of its own and builds as SQL2016.
DIALECT_NAMES: dict[str, TargetDialect] = {
    "SQL2012": TargetDialect.SQL2012,
    "SQL2014": TargetDialect.SQL2014,
    "SQL2016": TargetDialect.SQL2016,
    "SQL2017": TargetDialect.SQL2016,
}

SUPPORTED_DB_TYPES = ["mssql"]


def parse_dialect(value: Optional[str]) -> TargetDialect:
    """Map a --sqlversion value to a dialect, falling back to the newest one."""
    if not value:
        return DEFAULT_DIALECT
    return DIALECT_NAMES.get(value.strip().upper(), DEFAULT_DIALECT)


def _absolute(path: Optional[Path]) -> Optional[Path]:
    if path is None:
        return None
    path = Path(path)
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


@dataclass
class PackagerConfig:
    """Configuration for a packaging run."""

    # Input / output
    output_path: Optional[Path] = None
    object_list_path: Optional[Path] = None
    target_dialect: TargetDialect = DEFAULT_DIALECT

    # Connection parameters, shared by every db: line
    db_type: str = "mssql"
    username: Optional[str] = None
    password: Optional[str] = None
    trusted_connection: bool = True
    driver: Optional[str] = None
    connection_timeout: int = 30

    # Package metadata
    package_name: str = "Mini_DacPac"
    package_description: str = "Built by schema-packager."
    package_version: str = "1.0"

    # Behavior
    echo_scripts: bool = False
    extra_connection_options: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Normalize paths and authentication mode after initialization."""
        self.output_path = _absolute(self.output_path)
        self.object_list_path = _absolute(self.object_list_path)

        if isinstance(self.target_dialect, str):
            self.target_dialect = parse_dialect(self.target_dialect)

        # SQL authentication when credentials are supplied
        if self.username:
            self.trusted_connection = False

    def validate(self) -> None:
        """Validate the configuration is complete and consistent."""
        if self.output_path is None:
            raise ConfigurationError("Package output path is required")
        if self.object_list_path is None:
            raise ConfigurationError("Object list path is required")

        if self.db_type not in SUPPORTED_DB_TYPES:
            raise ConfigurationError(
                f"Unknown database type: {self.db_type}. "
                f"Supported types: {', '.join(SUPPORTED_DB_TYPES)}"
            )

        if not self.trusted_connection and not (self.username and self.password):
            raise ConfigurationError(
                "Either trusted_connection or username/password is required for MSSQL"
            )

        if self.connection_timeout <= 0:
            raise ConfigurationError("Connection timeout must be a positive number of seconds")
