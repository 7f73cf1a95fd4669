"""Data models for object references, extracted scripts and diagnostics."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ObjectKind(Enum):
    """Kinds of directive an object list line can hold."""

    CONNECTION = "Connection"
    SCRIPT_FILE = "ScriptFile"
    TABLE = "Table"
    VIEW = "View"
    STORED_PROCEDURE = "StoredProcedure"
    PARTITION_SCHEME = "PartitionScheme"
    PARTITION_FUNCTION = "PartitionFunction"
    SCHEMA = "Schema"
    FILE_GROUP = "FileGroup"
    USER = "User"
    FUNCTION = "Function"
    PARSE_ERROR = "ParseError"

    def __str__(self) -> str:
        return self.value

    @property
    def is_database_object(self) -> bool:
        """True for kinds that are scripted out of a live database."""
        return self not in (ObjectKind.CONNECTION, ObjectKind.SCRIPT_FILE, ObjectKind.PARSE_ERROR)

    @classmethod
    def database_objects(cls) -> list["ObjectKind"]:
        return [kind for kind in cls if kind.is_database_object]


class DiagnosticKind(Enum):
    """Categories of per-line and packaging failures."""

    PARSE_ERROR = "ParseError"
    CONNECTION_ERROR = "ConnectionError"
    OBJECT_NOT_FOUND = "ObjectNotFound"
    NO_ACTIVE_CONNECTION = "NoActiveConnection"
    FILE_NOT_FOUND = "FileNotFound"
    FILE_UNREADABLE = "FileUnreadable"
    EXTRACTION_ERROR = "ExtractionError"
    BUILD_ERROR = "BuildError"


@dataclass(frozen=True)
class ObjectReference:
    """One parsed line of an object list."""

    kind: ObjectKind
    raw_text: str
    schema: Optional[str] = None
    name: str = ""
    script_file_path: Optional[str] = None
    server_name: Optional[str] = None
    database_name: Optional[str] = None

    @property
    def qualified_name(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.name}"
        return self.name

    @property
    def label(self) -> str:
        """Display form used in log lines, e.g. ``(Table) dbo.Orders``."""
        if self.kind is ObjectKind.SCRIPT_FILE:
            return f"({self.kind}) {self.script_file_path}"
        if self.kind is ObjectKind.CONNECTION:
            return f"({self.kind}) {self.server_name}.{self.database_name}"
        return f"({self.kind}) {self.qualified_name}"


@dataclass(frozen=True)
class Diagnostic:
    """A human-readable record of something that could not be resolved."""

    kind: DiagnosticKind
    message: str
    reference: Optional[ObjectReference] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ExtractedScript:
    """DDL text together with the reference it came from."""

    text: str
    reference: ObjectReference


@dataclass
class Extraction:
    """Outcome of dispatching a single reference."""

    reference: ObjectReference
    statements: list[str] = field(default_factory=list)
    diagnostic: Optional[Diagnostic] = None

    @property
    def script(self) -> str:
        """Statements framed as one block, each followed by a GO separator.

        Script files are passed through verbatim.
        """
        if self.reference.kind is ObjectKind.SCRIPT_FILE:
            return "".join(self.statements)
        return "".join(f"{statement}\nGO\n" for statement in self.statements)
