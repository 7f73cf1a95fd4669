"""MS SQL Server scripting service built on catalog views."""

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional

from ...base.models import ObjectKind, ObjectReference
from ...base.scripter import BaseScripter, ScriptingOptions

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "dbo"

LENGTH_TYPES = ("varchar", "nvarchar", "char", "nchar", "binary", "varbinary")
PRECISION_TYPES = ("decimal", "numeric")
SCALE_TYPES = ("datetime2", "datetimeoffset", "time")

MODULE_TYPES = {
    ObjectKind.VIEW: ("V",),
    ObjectKind.STORED_PROCEDURE: ("P",),
    ObjectKind.FUNCTION: ("FN", "IF", "TF"),
}


def quote(name: str) -> str:
    """Bracket-quote an identifier."""
    return "[" + name.replace("]", "]]") + "]"


def quote_qualified(schema_name: str, name: str) -> str:
    return f"{quote(schema_name)}.{quote(name)}"


def format_type(data_type: str, max_length: Optional[int], precision: Optional[int],
                scale: Optional[int]) -> str:
    """Format a column type the way SMO does, e.g. ``[nvarchar](50)``."""
    if data_type in LENGTH_TYPES:
        if max_length == -1:
            return f"{quote(data_type)}(max)"
        length = max_length or 1
        # nvarchar/nchar store 2 bytes per char
        if data_type.startswith("n"):
            length = length // 2
        return f"{quote(data_type)}({length})"
    if data_type in PRECISION_TYPES:
        return f"{quote(data_type)}({precision}, {scale or 0})"
    if data_type in SCALE_TYPES and scale is not None:
        return f"{quote(data_type)}({scale})"
    return quote(data_type)


def format_literal(value: Any) -> str:
    """Render a partition boundary value as a T-SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return f"N'{value.isoformat(timespec='milliseconds')}'"
    if isinstance(value, (date, time)):
        return f"N'{value.isoformat()}'"
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex().upper()
    return "N'" + str(value).replace("'", "''") + "'"


class MSSQLScripter(BaseScripter):
    """Scripts SQL Server objects from sys.* catalog views."""

    def object_exists(self, reference: ObjectReference) -> bool:
        if reference.kind is ObjectKind.FILE_GROUP:
            query = "SELECT 1 FROM sys.filegroups WHERE name = ?"
            return self.connection.execute_scalar(query, (reference.name,)) is not None
        if reference.kind is ObjectKind.TABLE:
            return self._table_id(reference) is not None
        return bool(self.script(reference, ScriptingOptions()))

    def _schema_of(self, reference: ObjectReference) -> str:
        """Objects listed without a schema are looked up in dbo."""
        return reference.schema or DEFAULT_SCHEMA

    # Tables

    def _table_id(self, reference: ObjectReference) -> Optional[int]:
        query = """
            SELECT t.object_id
            FROM sys.tables t
            JOIN sys.schemas s ON t.schema_id = s.schema_id
            WHERE s.name = ? AND t.name = ?
        """
        return self.connection.execute_scalar(query, (self._schema_of(reference), reference.name))

    def script_table(self, reference: ObjectReference, options: ScriptingOptions) -> list[str]:
        object_id = self._table_id(reference)
        if object_id is None:
            return []

        table = quote_qualified(self._schema_of(reference), reference.name)
        statements = ["SET ANSI_NULLS ON", "SET QUOTED_IDENTIFIER ON"]
        statements.append(self._create_table(object_id, table, options))

        if options.dri_all or options.dri_all_constraints:
            statements.extend(self._default_constraints(object_id, table))
            statements.extend(self._foreign_keys(object_id, table))
            statements.extend(self._check_constraints(object_id, table))
        if options.indexes:
            statements.extend(self._indexes(object_id, table, options))
        if options.statistics:
            statements.extend(self._statistics(object_id, table))
        return statements

    def _create_table(self, object_id: int, table: str, options: ScriptingOptions) -> str:
        lines = [self._column_definition(row) for row in self._columns(object_id)]
        if options.dri_all or options.dri_all_constraints:
            lines.extend(self._key_constraints(object_id))

        body = ",\n".join(f"\t{line}" for line in lines)
        script = f"CREATE TABLE {table}(\n{body}\n) ON {self._data_space(object_id)}"
        compression = self._table_compression(object_id)
        if compression:
            script += f"\nWITH\n(\nDATA_COMPRESSION = {compression}\n)"
        return script

    def _columns(self, object_id: int) -> list[dict[str, Any]]:
        query = """
            SELECT
                c.name AS column_name, t.name AS data_type,
                c.max_length, c.precision, c.scale, c.is_nullable,
                c.is_identity,
                CAST(ic.seed_value AS BIGINT) AS identity_seed,
                CAST(ic.increment_value AS BIGINT) AS identity_increment,
                c.is_computed, cc.definition AS computed_definition, cc.is_persisted,
                c.collation_name
            FROM sys.columns c
            JOIN sys.types t ON c.user_type_id = t.user_type_id
            LEFT JOIN sys.identity_columns ic ON c.object_id = ic.object_id AND c.column_id = ic.column_id
            LEFT JOIN sys.computed_columns cc ON c.object_id = cc.object_id AND c.column_id = cc.column_id
            WHERE c.object_id = ?
            ORDER BY c.column_id
        """
        return self.connection.execute_dict(query, (object_id,))

    def _column_definition(self, row: dict[str, Any]) -> str:
        name = quote(row["column_name"])
        if row["is_computed"]:
            definition = f"{name}  AS {row['computed_definition']}"
            if row.get("is_persisted"):
                definition += " PERSISTED"
            return definition

        definition = f"{name} {format_type(row['data_type'], row['max_length'], row['precision'], row['scale'])}"
        if row["is_identity"]:
            definition += f" IDENTITY({row['identity_seed']},{row['identity_increment']})"
        if row["collation_name"]:
            definition += f" COLLATE {row['collation_name']}"
        definition += " NULL" if row["is_nullable"] else " NOT NULL"
        return definition

    def _key_constraints(self, object_id: int) -> list[str]:
        """Primary key and unique constraints, written inside CREATE TABLE."""
        query = """
            SELECT kc.name AS constraint_name, kc.type AS constraint_type,
                   i.type_desc AS index_type, i.index_id
            FROM sys.key_constraints kc
            JOIN sys.indexes i ON kc.parent_object_id = i.object_id AND kc.unique_index_id = i.index_id
            WHERE kc.parent_object_id = ?
            ORDER BY kc.type, kc.name
        """
        constraints = []
        for row in self.connection.execute_dict(query, (object_id,)):
            kind = "PRIMARY KEY" if row["constraint_type"] == "PK" else "UNIQUE"
            columns = self._index_key_columns(object_id, row["index_id"])
            constraints.append(
                f"CONSTRAINT {quote(row['constraint_name'])} {kind} {row['index_type']} \n"
                f"(\n{columns}\n)"
            )
        return constraints

    def _index_key_columns(self, object_id: int, index_id: int) -> str:
        rows = self._index_columns(object_id, index_id)
        return ",\n".join(
            f"\t{quote(row['name'])} {'DESC' if row['is_descending_key'] else 'ASC'}"
            for row in rows
            if not row["is_included_column"]
        )

    def _index_columns(self, object_id: int, index_id: int) -> list[dict[str, Any]]:
        query = """
            SELECT c.name, ic.is_included_column, ic.is_descending_key
            FROM sys.index_columns ic
            JOIN sys.columns c ON ic.object_id = c.object_id AND ic.column_id = c.column_id
            WHERE ic.object_id = ? AND ic.index_id = ?
            ORDER BY ic.key_ordinal, ic.index_column_id
        """
        return self.connection.execute_dict(query, (object_id, index_id))

    def _data_space(self, object_id: int, index_id: Optional[int] = None) -> str:
        """Filegroup, or partition scheme plus column, an index is stored on."""
        index_filter = "i.index_id IN (0, 1)" if index_id is None else "i.index_id = ?"
        query = f"""
            SELECT i.index_id, ds.name AS data_space_name, ds.type AS data_space_type
            FROM sys.indexes i
            JOIN sys.data_spaces ds ON i.data_space_id = ds.data_space_id
            WHERE i.object_id = ? AND {index_filter}
        """
        params = (object_id,) if index_id is None else (object_id, index_id)

        rows = self.connection.execute_dict(query, params)
        if not rows:
            return "[PRIMARY]"

        row = rows[0]
        if row["data_space_type"] != "PS":
            return quote(row["data_space_name"])

        column_query = """
            SELECT c.name AS column_name
            FROM sys.index_columns ic
            JOIN sys.columns c ON ic.object_id = c.object_id AND ic.column_id = c.column_id
            WHERE ic.object_id = ? AND ic.index_id = ? AND ic.partition_ordinal = 1
        """
        column = self.connection.execute_scalar(column_query, (object_id, row["index_id"]))
        return f"{quote(row['data_space_name'])}({quote(column or '')})"

    def _table_compression(self, object_id: int) -> Optional[str]:
        query = """
            SELECT TOP 1 p.data_compression_desc
            FROM sys.partitions p
            WHERE p.object_id = ? AND p.index_id IN (0, 1)
            ORDER BY p.partition_number
        """
        compression = self.connection.execute_scalar(query, (object_id,))
        if compression in (None, "NONE", "COLUMNSTORE", "COLUMNSTORE_ARCHIVE"):
            return None
        return compression

    def _default_constraints(self, object_id: int, table: str) -> list[str]:
        query = """
            SELECT dc.name AS constraint_name, c.name AS column_name, dc.definition
            FROM sys.default_constraints dc
            JOIN sys.columns c ON dc.parent_object_id = c.object_id AND dc.parent_column_id = c.column_id
            WHERE dc.parent_object_id = ?
            ORDER BY c.column_id
        """
        return [
            f"ALTER TABLE {table} ADD  CONSTRAINT {quote(row['constraint_name'])}  "
            f"DEFAULT {row['definition']} FOR {quote(row['column_name'])}"
            for row in self.connection.execute_dict(query, (object_id,))
        ]

    def _foreign_keys(self, object_id: int, table: str) -> list[str]:
        query = """
            SELECT
                fk.object_id AS fk_id, fk.name AS fk_name,
                rs.name AS referenced_schema, rt.name AS referenced_table,
                fk.delete_referential_action_desc AS on_delete,
                fk.update_referential_action_desc AS on_update,
                fk.is_not_trusted
            FROM sys.foreign_keys fk
            JOIN sys.tables rt ON fk.referenced_object_id = rt.object_id
            JOIN sys.schemas rs ON rt.schema_id = rs.schema_id
            WHERE fk.parent_object_id = ?
            ORDER BY fk.name
        """
        columns_query = """
            SELECT pc.name AS parent_column, rc.name AS referenced_column
            FROM sys.foreign_key_columns fkc
            JOIN sys.columns pc ON fkc.parent_object_id = pc.object_id AND fkc.parent_column_id = pc.column_id
            JOIN sys.columns rc ON fkc.referenced_object_id = rc.object_id AND fkc.referenced_column_id = rc.column_id
            WHERE fkc.constraint_object_id = ?
            ORDER BY fkc.constraint_column_id
        """
        statements = []
        for fk in self.connection.execute_dict(query, (object_id,)):
            col_rows = self.connection.execute_dict(columns_query, (fk["fk_id"],))
            parent = ", ".join(quote(row["parent_column"]) for row in col_rows)
            referenced = ", ".join(quote(row["referenced_column"]) for row in col_rows)
            check = "NOCHECK" if fk["is_not_trusted"] else "CHECK"
            script = (
                f"ALTER TABLE {table}  WITH {check} ADD  CONSTRAINT {quote(fk['fk_name'])} "
                f"FOREIGN KEY({parent})\n"
                f"REFERENCES {quote_qualified(fk['referenced_schema'], fk['referenced_table'])} ({referenced})"
            )
            for action, value in (("DELETE", fk["on_delete"]), ("UPDATE", fk["on_update"])):
                if value and value != "NO_ACTION":
                    script += f"\nON {action} {value.replace('_', ' ')}"
            statements.append(script)
        return statements

    def _check_constraints(self, object_id: int, table: str) -> list[str]:
        query = """
            SELECT cc.name AS constraint_name, cc.definition, cc.is_not_trusted
            FROM sys.check_constraints cc
            WHERE cc.parent_object_id = ?
            ORDER BY cc.name
        """
        return [
            f"ALTER TABLE {table}  WITH {'NOCHECK' if row['is_not_trusted'] else 'CHECK'} "
            f"ADD  CONSTRAINT {quote(row['constraint_name'])} CHECK  ({row['definition']})"
            for row in self.connection.execute_dict(query, (object_id,))
        ]

    def _indexes(self, object_id: int, target: str, options: ScriptingOptions) -> list[str]:
        """CREATE INDEX statements for indexes not backing a key constraint."""
        query = """
            SELECT i.index_id, i.name AS index_name, i.is_unique, i.type_desc AS index_type,
                   i.filter_definition,
                   (SELECT TOP 1 p.data_compression_desc FROM sys.partitions p
                    WHERE p.object_id = i.object_id AND p.index_id = i.index_id) AS data_compression
            FROM sys.indexes i
            WHERE i.object_id = ? AND i.name IS NOT NULL
              AND i.is_primary_key = 0 AND i.is_unique_constraint = 0
            ORDER BY i.index_id
        """
        statements = []
        for row in self.connection.execute_dict(query, (object_id,)):
            index_type = row["index_type"]
            clustered = index_type.startswith("CLUSTERED")
            if clustered and not options.clustered_indexes:
                continue
            if not clustered and not options.nonclustered_indexes:
                continue
            if index_type not in ("CLUSTERED", "NONCLUSTERED", "CLUSTERED COLUMNSTORE",
                                  "NONCLUSTERED COLUMNSTORE"):
                logger.debug(f"Skipping {index_type} index {row['index_name']}")
                continue
            statements.append(self._create_index(object_id, target, row))
        return statements

    def _create_index(self, object_id: int, target: str, row: dict[str, Any]) -> str:
        index_type = row["index_type"]
        name = quote(row["index_name"])
        data_space = self._data_space(object_id, row["index_id"])

        if index_type == "CLUSTERED COLUMNSTORE":
            return (
                f"CREATE CLUSTERED COLUMNSTORE INDEX {name} ON {target} "
                f"WITH (DROP_EXISTING = OFF, COMPRESSION_DELAY = 0, "
                f"DATA_COMPRESSION = {row['data_compression'] or 'COLUMNSTORE'}) ON {data_space}"
            )

        columns = self._index_columns(object_id, row["index_id"])
        if index_type == "NONCLUSTERED COLUMNSTORE":
            column_list = ",\n".join(f"\t{quote(c['name'])}" for c in columns)
            return (
                f"CREATE NONCLUSTERED COLUMNSTORE INDEX {name} ON {target}\n(\n{column_list}\n)"
                f"WITH (DROP_EXISTING = OFF, COMPRESSION_DELAY = 0, "
                f"DATA_COMPRESSION = {row['data_compression'] or 'COLUMNSTORE'}) ON {data_space}"
            )

        unique = "UNIQUE " if row["is_unique"] else ""
        script = (
            f"CREATE {unique}{index_type} INDEX {name} ON {target}\n"
            f"(\n{self._index_key_columns(object_id, row['index_id'])}\n)"
        )
        included = [quote(c["name"]) for c in columns if c["is_included_column"]]
        if included:
            script += f"\nINCLUDE({', '.join(included)})"
        if row["filter_definition"]:
            script += f"\nWHERE {row['filter_definition']}"
        compression = row["data_compression"]
        if compression and compression != "NONE":
            script += f"\nWITH (DATA_COMPRESSION = {compression})"
        return f"{script} ON {data_space}"

    def _statistics(self, object_id: int, table: str) -> list[str]:
        query = """
            SELECT st.stats_id, st.name AS stats_name, st.filter_definition
            FROM sys.stats st
            WHERE st.object_id = ? AND st.user_created = 1
            ORDER BY st.stats_id
        """
        columns_query = """
            SELECT c.name
            FROM sys.stats_columns sc
            JOIN sys.columns c ON sc.object_id = c.object_id AND sc.column_id = c.column_id
            WHERE sc.object_id = ? AND sc.stats_id = ?
            ORDER BY sc.stats_column_id
        """
        statements = []
        for row in self.connection.execute_dict(query, (object_id,)):
            col_rows = self.connection.execute_dict(columns_query, (object_id, row["stats_id"]))
            columns = ", ".join(quote(c["name"]) for c in col_rows)
            script = f"CREATE STATISTICS {quote(row['stats_name'])} ON {table}({columns})"
            if row["filter_definition"]:
                script += f" WHERE {row['filter_definition']}"
            statements.append(script)
        return statements

    # Views, procedures and functions

    def _module(self, reference: ObjectReference) -> Optional[dict[str, Any]]:
        types = MODULE_TYPES[reference.kind]
        placeholders = ", ".join("?" for _ in types)
        query = f"""
            SELECT o.object_id, m.definition, m.uses_ansi_nulls, m.uses_quoted_identifier
            FROM sys.sql_modules m
            JOIN sys.objects o ON m.object_id = o.object_id
            JOIN sys.schemas s ON o.schema_id = s.schema_id
            WHERE s.name = ? AND o.name = ? AND o.type IN ({placeholders})
        """
        rows = self.connection.execute_dict(query, (self._schema_of(reference), reference.name, *types))
        return rows[0] if rows else None

    def _script_module(self, module: Optional[dict[str, Any]]) -> list[str]:
        if module is None or module["definition"] is None:
            # Encrypted modules have no readable definition.
            return []
        return [
            f"SET ANSI_NULLS {'ON' if module['uses_ansi_nulls'] else 'OFF'}",
            f"SET QUOTED_IDENTIFIER {'ON' if module['uses_quoted_identifier'] else 'OFF'}",
            module["definition"].strip(),
        ]

    def script_view(self, reference: ObjectReference, options: ScriptingOptions) -> list[str]:
        module = self._module(reference)
        statements = self._script_module(module)
        if statements and options.indexes:
            target = quote_qualified(self._schema_of(reference), reference.name)
            statements.extend(self._indexes(module["object_id"], target, options))
        return statements

    def script_stored_procedure(self, reference: ObjectReference, options: ScriptingOptions) -> list[str]:
        return self._script_module(self._module(reference))

    def script_function(self, reference: ObjectReference, options: ScriptingOptions) -> list[str]:
        return self._script_module(self._module(reference))

    # Partitioning

    def script_partition_function(self, reference: ObjectReference, options: ScriptingOptions) -> list[str]:
        query = """
            SELECT pf.function_id, pf.boundary_value_on_right,
                   t.name AS data_type, pp.max_length, pp.precision, pp.scale
            FROM sys.partition_functions pf
            JOIN sys.partition_parameters pp ON pf.function_id = pp.function_id
            JOIN sys.types t ON pp.user_type_id = t.user_type_id
            WHERE pf.name = ?
        """
        rows = self.connection.execute_dict(query, (reference.name,))
        if not rows:
            return []

        row = rows[0]
        values_query = """
            SELECT prv.value
            FROM sys.partition_range_values prv
            WHERE prv.function_id = ?
            ORDER BY prv.boundary_id
        """
        values = [
            format_literal(value_row["value"])
            for value_row in self.connection.execute_dict(values_query, (row["function_id"],))
        ]
        data_type = format_type(row["data_type"], row["max_length"], row["precision"], row["scale"])
        direction = "RIGHT" if row["boundary_value_on_right"] else "LEFT"
        return [
            f"CREATE PARTITION FUNCTION {quote(reference.name)}({data_type}) "
            f"AS RANGE {direction} FOR VALUES ({', '.join(values)})"
        ]

    def script_partition_scheme(self, reference: ObjectReference, options: ScriptingOptions) -> list[str]:
        query = """
            SELECT ps.data_space_id, pf.name AS function_name
            FROM sys.partition_schemes ps
            JOIN sys.partition_functions pf ON ps.function_id = pf.function_id
            WHERE ps.name = ?
        """
        rows = self.connection.execute_dict(query, (reference.name,))
        if not rows:
            return []

        filegroups_query = """
            SELECT fg.name
            FROM sys.destination_data_spaces dds
            JOIN sys.filegroups fg ON dds.data_space_id = fg.data_space_id
            WHERE dds.partition_scheme_id = ?
            ORDER BY dds.destination_id
        """
        filegroups = [
            quote(fg["name"])
            for fg in self.connection.execute_dict(filegroups_query, (rows[0]["data_space_id"],))
        ]
        return [
            f"CREATE PARTITION SCHEME {quote(reference.name)} AS PARTITION "
            f"{quote(rows[0]['function_name'])} TO ({', '.join(filegroups)})"
        ]

    # Security

    def script_schema(self, reference: ObjectReference, options: ScriptingOptions) -> list[str]:
        query = """
            SELECT s.name AS schema_name, p.name AS owner_name
            FROM sys.schemas s
            JOIN sys.database_principals p ON s.principal_id = p.principal_id
            WHERE s.name = ?
        """
        rows = self.connection.execute_dict(query, (reference.name,))
        if not rows:
            return []

        script = f"CREATE SCHEMA {quote(rows[0]['schema_name'])}"
        if options.script_owner:
            script += f" AUTHORIZATION {quote(rows[0]['owner_name'])}"
        return [script]

    def script_user(self, reference: ObjectReference, options: ScriptingOptions) -> list[str]:
        query = """
            SELECT u.name AS user_name, u.type AS user_type, u.authentication_type,
                   u.default_schema_name, sp.name AS login_name
            FROM sys.database_principals u
            LEFT JOIN sys.server_principals sp ON u.sid = sp.sid
            WHERE u.name = ? AND u.type IN ('S', 'U', 'G', 'E', 'X')
        """
        rows = self.connection.execute_dict(query, (reference.name,))
        if not rows:
            return []

        row = rows[0]
        script = f"CREATE USER {quote(row['user_name'])}"
        if row["user_type"] in ("E", "X"):
            script += " FROM EXTERNAL PROVIDER"
        elif row["login_name"]:
            script += f" FOR LOGIN {quote(row['login_name'])}"
        else:
            script += " WITHOUT LOGIN"

        if row["default_schema_name"] and row["user_type"] != "G":
            script += f" WITH DEFAULT_SCHEMA={quote(row['default_schema_name'])}"
        return [script]
