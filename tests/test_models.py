"""Tests for data models."""

from schema_packager.base.models import (
    Diagnostic,
    DiagnosticKind,
    Extraction,
    ObjectKind,
    ObjectReference,
)


class TestObjectKind:
    """Tests for ObjectKind."""

    def test_database_objects(self):
        """Directive kinds should not be listed as database objects."""
        kinds = ObjectKind.database_objects()
        assert ObjectKind.TABLE in kinds
        assert ObjectKind.FILE_GROUP in kinds
        assert ObjectKind.CONNECTION not in kinds
        assert ObjectKind.SCRIPT_FILE not in kinds
        assert ObjectKind.PARSE_ERROR not in kinds

    def test_str_is_display_name(self):
        """str() should give the display name used in messages."""
        assert str(ObjectKind.STORED_PROCEDURE) == "StoredProcedure"


class TestObjectReference:
    """Tests for ObjectReference."""

    def test_label_with_schema(self):
        """Label should include the schema when there is one."""
        ref = ObjectReference(kind=ObjectKind.VIEW, raw_text="", schema="dbo", name="v")
        assert ref.label == "(View) dbo.v"

    def test_label_without_schema(self):
        """Label should be the bare name without a schema."""
        ref = ObjectReference(kind=ObjectKind.SCHEMA, raw_text="", schema="", name="Sales")
        assert ref.label == "(Schema) Sales"

    def test_label_script_file(self):
        """Script files are labelled by path."""
        ref = ObjectReference(kind=ObjectKind.SCRIPT_FILE, raw_text="", script_file_path="/a.sql")
        assert ref.label == "(ScriptFile) /a.sql"


class TestExtraction:
    """Tests for Extraction."""

    def test_script_frames_statements_with_go(self, table_ref):
        """Each statement should be followed by a GO line."""
        extraction = Extraction(reference=table_ref, statements=["CREATE TABLE a(x int)", "CREATE INDEX i ON a(x)"])
        assert extraction.script == "CREATE TABLE a(x int)\nGO\nCREATE INDEX i ON a(x)\nGO\n"

    def test_script_file_is_verbatim(self):
        """Script file content should not be framed."""
        ref = ObjectReference(kind=ObjectKind.SCRIPT_FILE, raw_text="", script_file_path="a.sql")
        extraction = Extraction(reference=ref, statements=["SELECT 1\nGO\n"])
        assert extraction.script == "SELECT 1\nGO\n"

    def test_diagnostic_str(self, table_ref):
        """A failed extraction carries no statements and prints as its message."""
        failed = Extraction(
            reference=table_ref,
            diagnostic=Diagnostic(kind=DiagnosticKind.OBJECT_NOT_FOUND, message="gone"),
        )
        assert failed.statements == []
        assert str(failed.diagnostic) == "gone"
