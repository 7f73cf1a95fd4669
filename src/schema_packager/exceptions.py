"""Custom exceptions for the schema packager."""


class SchemaPackagerError(Exception):
    """Base exception for all schema packager errors."""

    pass


class ConnectionError(SchemaPackagerError):
    """Error establishing database connection."""

    pass


class ConfigurationError(SchemaPackagerError):
    """Error in configuration or parameters."""

    pass


class ExtractionError(SchemaPackagerError):
    """Error scripting an object out of a database."""

    pass


class BuildError(SchemaPackagerError):
    """Error compiling scripts into a package."""

    pass


class BackendNotAvailableError(SchemaPackagerError):
    """Required backend driver is not installed."""

    pass


class ObjectListError(SchemaPackagerError):
    """Object list file is missing or unreadable."""

    pass


class ObjectListNotFoundError(ObjectListError):
    """Object list file does not exist."""

    pass


class PipelineStateError(SchemaPackagerError):
    """Pipeline driver was run more than once."""

    pass
