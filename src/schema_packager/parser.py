"""Parser for the line-oriented object list format.

Each non-comment line of an object list is ``<prefix>:<remainder>``::

    db:<server>.<database>
    table:<schema>.<name>
    partitionscheme:<name>
    user:<name possibly containing dots>
    scriptfile:<path>

The prefix is case-insensitive, the remainder is kept as written.
"""

from .base.models import ObjectKind, ObjectReference

PREFIXES: dict[str, ObjectKind] = {
    "db": ObjectKind.CONNECTION,
    "scriptfile": ObjectKind.SCRIPT_FILE,
    "table": ObjectKind.TABLE,
    "view": ObjectKind.VIEW,
    "storedprocedure": ObjectKind.STORED_PROCEDURE,
    "partitionscheme": ObjectKind.PARTITION_SCHEME,
    "partitionfunction": ObjectKind.PARTITION_FUNCTION,
    "schema": ObjectKind.SCHEMA,
    "filegroup": ObjectKind.FILE_GROUP,
    "user": ObjectKind.USER,
    "function": ObjectKind.FUNCTION,
}


def _parse_error(line: str) -> ObjectReference:
    return ObjectReference(kind=ObjectKind.PARSE_ERROR, raw_text=line, schema="", name=line)


def parse_line(line: str) -> ObjectReference:
    """Parse one object list line into an ObjectReference.

    Never raises: malformed lines come back with kind ``ParseError`` and the
    whole line in ``name`` for error reporting.
    """
    if ":" not in line:
        return _parse_error(line)

    prefix, remainder = line.split(":", 1)
    kind = PREFIXES.get(prefix.lower())
    if kind is None:
        return _parse_error(line)

    if kind is ObjectKind.SCRIPT_FILE:
        # Paths may contain dots, so no splitting.
        return ObjectReference(kind=kind, raw_text=line, script_file_path=remainder.strip())

    if kind is ObjectKind.USER:
        return ObjectReference(kind=kind, raw_text=line, schema="", name=remainder.strip())

    if "." in remainder:
        # Anything after a second dot is dropped.
        parts = remainder.split(".")
        first, second = parts[0], parts[1]
    else:
        first, second = "", remainder.strip()

    if kind is ObjectKind.CONNECTION:
        return ObjectReference(
            kind=kind,
            raw_text=line,
            server_name=first.strip(),
            database_name=second.strip(),
        )

    return ObjectReference(kind=kind, raw_text=line, schema=first, name=second)
