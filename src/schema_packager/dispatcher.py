"""Routes object references to the scripting service or to file reads."""

import logging
from pathlib import Path
from typing import Callable, Optional

import click

from .base.connection import BaseConnection
from .base.models import Diagnostic, DiagnosticKind, Extraction, ObjectKind, ObjectReference
from .base.scripter import ScriptingOptions
from .exceptions import ExtractionError
from .textfiles import read_text

logger = logging.getLogger(__name__)

# SQL 2012 does not accept this clause.
COLUMNSTORE_COMPRESSION = ", DATA_COMPRESSION = COLUMNSTORE"

FILEGROUP_TEMPLATE = "ALTER DATABASE [$(DatabaseName)] ADD FILEGROUP {name}"

SCRIPTING_POLICIES: dict[ObjectKind, ScriptingOptions] = {
    ObjectKind.TABLE: ScriptingOptions(
        dri_all=True,
        dri_all_constraints=True,
        statistics=True,
        clustered_indexes=True,
        nonclustered_indexes=True,
    ),
    # Tables a view depends on must be listed on their own lines.
    ObjectKind.VIEW: ScriptingOptions(
        dri_all=True,
        clustered_indexes=True,
        nonclustered_indexes=True,
    ),
    ObjectKind.STORED_PROCEDURE: ScriptingOptions(),
    ObjectKind.FUNCTION: ScriptingOptions(),
    ObjectKind.PARTITION_SCHEME: ScriptingOptions(),
    ObjectKind.PARTITION_FUNCTION: ScriptingOptions(),
    ObjectKind.SCHEMA: ScriptingOptions(script_owner=True),
    ObjectKind.USER: ScriptingOptions(),
}


def strip_columnstore_compression(statement: str) -> str:
    return statement.replace(COLUMNSTORE_COMPRESSION, "")


class ExtractionDispatcher:
    """Turns one reference plus the active connection into DDL statements."""

    def __init__(self, echo: Callable[[str], None] = click.echo):
        self._echo = echo
        self._handlers: dict[ObjectKind, Callable[[ObjectReference, BaseConnection], list[str]]] = {
            ObjectKind.TABLE: self._script_table,
            ObjectKind.VIEW: self._script_object,
            ObjectKind.STORED_PROCEDURE: self._script_object,
            ObjectKind.FUNCTION: self._script_object,
            ObjectKind.PARTITION_SCHEME: self._script_object,
            ObjectKind.PARTITION_FUNCTION: self._script_object,
            ObjectKind.SCHEMA: self._script_object,
            ObjectKind.USER: self._script_object,
            ObjectKind.FILE_GROUP: self._script_file_group,
        }
        unhandled = set(ObjectKind.database_objects()) - set(self._handlers)
        if unhandled:
            raise TypeError(f"No extraction handler for: {sorted(str(k) for k in unhandled)}")

    def dispatch(self, reference: ObjectReference, connection: Optional[BaseConnection]) -> Extraction:
        """Extract the scripts for ``reference``.

        Never raises for missing objects, files or connections; those come
        back as an Extraction carrying a diagnostic.
        """
        if reference.kind is ObjectKind.SCRIPT_FILE:
            return self._read_script_file(reference)

        handler = self._handlers.get(reference.kind)
        if handler is None:
            raise ValueError(f"Cannot extract {reference.kind} references")

        if connection is None:
            self._echo(f"Warning - Could not retrieve: ({reference.kind}) - {reference.qualified_name}")
            return Extraction(
                reference=reference,
                diagnostic=Diagnostic(
                    kind=DiagnosticKind.NO_ACTIVE_CONNECTION,
                    message=f"No db connection for object: ({reference.kind}) - {reference.qualified_name}",
                    reference=reference,
                ),
            )

        try:
            statements = handler(reference, connection)
        except ExtractionError as e:
            logger.error(f"Error scripting {reference.label}: {e}")
            self._echo(f"Warning - Could not retrieve: {reference.label}")
            return Extraction(
                reference=reference,
                diagnostic=Diagnostic(
                    kind=DiagnosticKind.EXTRACTION_ERROR,
                    message=f"Error scripting SQL object: {reference.label}: {e}",
                    reference=reference,
                ),
            )

        if not statements:
            self._echo(f"Warning - Could not retrieve: {reference.label}")
            return Extraction(
                reference=reference,
                diagnostic=Diagnostic(
                    kind=DiagnosticKind.OBJECT_NOT_FOUND,
                    message=f"Missing SQL object: {reference.label}",
                    reference=reference,
                ),
            )

        self._echo(f"Extracted SQL script: {reference.label}")
        return Extraction(reference=reference, statements=statements)

    def _read_script_file(self, reference: ObjectReference) -> Extraction:
        path = Path(reference.script_file_path or "")
        if not reference.script_file_path or not path.is_file():
            self._echo(f"Warning - Could not retrieve: (ScriptFile) {reference.script_file_path}")
            return Extraction(
                reference=reference,
                diagnostic=Diagnostic(
                    kind=DiagnosticKind.FILE_NOT_FOUND,
                    message=f"Script file does not exist: {reference.script_file_path}",
                    reference=reference,
                ),
            )

        try:
            script = read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading {path}: {e}")
            self._echo(f"**** Error: {e}")
            return Extraction(
                reference=reference,
                diagnostic=Diagnostic(
                    kind=DiagnosticKind.FILE_UNREADABLE,
                    message=f"Unable to read script file: {reference.script_file_path} ({e})",
                    reference=reference,
                ),
            )

        self._echo(f"Adding script/s from file: {reference.script_file_path}")
        return Extraction(reference=reference, statements=[script])

    def _script_object(self, reference: ObjectReference, connection: BaseConnection) -> list[str]:
        scripter = connection.get_scripter()
        return scripter.script(reference, SCRIPTING_POLICIES[reference.kind])

    def _script_table(self, reference: ObjectReference, connection: BaseConnection) -> list[str]:
        return [
            strip_columnstore_compression(statement)
            for statement in self._script_object(reference, connection)
        ]

    def _script_file_group(self, reference: ObjectReference, connection: BaseConnection) -> list[str]:
        scripter = connection.get_scripter()
        if not scripter.object_exists(reference):
            return []
        return [FILEGROUP_TEMPLATE.format(name=reference.name)]
