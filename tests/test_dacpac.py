"""Tests for the dacpac package builder."""

import hashlib
import xml.etree.ElementTree as ET
import zipfile

import pytest
from schema_packager.base.builder import PackageMetadata
from schema_packager.builders import DacpacBuilder
from schema_packager.builders.dacpac import (
    DAC_NAMESPACE,
    Batch,
    classify_batch,
    find_framing_errors,
    split_batches,
)
from schema_packager.config import TargetDialect
from schema_packager.exceptions import BuildError

NS = {"dac": DAC_NAMESPACE}

ORDERS = """SET ANSI_NULLS ON
GO
CREATE TABLE [dbo].[Orders](
\t[Id] [int] NOT NULL,
\t[Note] [nvarchar](50) NULL
) ON [PRIMARY]
GO
"""


def read_part(path, name):
    with zipfile.ZipFile(path) as archive:
        return archive.read(name)


class TestSplitBatches:
    """Tests for split_batches."""

    def test_splits_on_go_lines(self):
        """GO on its own line separates batches."""
        assert split_batches("SELECT 1\nGO\nSELECT 2\ngo\n") == ["SELECT 1", "SELECT 2"]

    def test_go_inside_line_is_not_a_separator(self):
        """GO that is part of a statement does not split."""
        assert split_batches("SELECT 'GO' AS x\nGO\n") == ["SELECT 'GO' AS x"]

    def test_empty_batches_dropped(self):
        """Consecutive separators give no empty batches."""
        assert split_batches("GO\n\nGO\nSELECT 1\n") == ["SELECT 1"]


class TestFramingErrors:
    """Tests for find_framing_errors."""

    def test_clean_sql(self):
        """Balanced SQL has no errors."""
        sql = "CREATE VIEW [a]]b] AS SELECT 'it''s' AS [x], f(1) /* (note */ -- )\nFROM t"
        assert find_framing_errors(sql) == []

    @pytest.mark.parametrize(
        "sql,expected",
        [
            ("SELECT 'abc", "unterminated string literal"),
            ("SELECT [abc", "unterminated quoted identifier"),
            ('SELECT "abc', "unterminated quoted identifier"),
            ("SELECT 1 /* open", "unterminated block comment"),
            ("CREATE TABLE t (a int", "1 unclosed '('"),
            ("SELECT 1)", "unexpected ')'"),
        ],
    )
    def test_errors(self, sql, expected):
        """Unbalanced constructs are reported."""
        errors = find_framing_errors(sql)
        assert len(errors) == 1
        assert expected in errors[0]


class TestClassifyBatch:
    """Tests for classify_batch."""

    @pytest.mark.parametrize(
        "text,element_type,name",
        [
            ("CREATE TABLE [dbo].[Orders] ([Id] int)", "SqlTable", "[dbo].[Orders]"),
            ("CREATE VIEW dbo.v AS SELECT 1 AS x", "SqlView", "dbo.v"),
            ("CREATE PROC dbo.p AS SELECT 1", "SqlProcedure", "dbo.p"),
            ("CREATE OR ALTER PROCEDURE [dbo].[p] AS SELECT 1", "SqlProcedure", "[dbo].[p]"),
            ("create or alter view dbo.v AS SELECT 1 AS x", "SqlView", "dbo.v"),
            (
                "CREATE OR ALTER FUNCTION dbo.f() RETURNS TABLE AS RETURN SELECT 1 AS x",
                "SqlInlineTableValuedFunction",
                "dbo.f",
            ),
            ("CREATE PARTITION FUNCTION pf(int) AS RANGE RIGHT FOR VALUES (1)", "SqlPartitionFunction", "pf"),
            ("CREATE PARTITION SCHEME ps AS PARTITION pf ALL TO ([PRIMARY])", "SqlPartitionScheme", "ps"),
            ("CREATE FUNCTION dbo.f() RETURNS int AS BEGIN RETURN 1 END", "SqlScalarFunction", "dbo.f"),
            ("CREATE FUNCTION dbo.f() RETURNS TABLE AS RETURN SELECT 1 AS x", "SqlInlineTableValuedFunction", "dbo.f"),
            (
                "CREATE FUNCTION dbo.f() RETURNS @t TABLE (x int) AS BEGIN RETURN END",
                "SqlMultiStatementTableValuedFunction",
                "dbo.f",
            ),
            ("CREATE SCHEMA [Sales] AUTHORIZATION [dbo]", "SqlSchema", "[Sales]"),
            ("CREATE USER [app] WITHOUT LOGIN", "SqlUser", "[app]"),
            ("CREATE NONCLUSTERED INDEX [IX_a] ON [dbo].[t] ([a])", "SqlIndex", "[IX_a]"),
            ("ALTER TABLE [dbo].[t] ADD CONSTRAINT [DF_a] DEFAULT (0) FOR [a]", "SqlConstraint", "[DF_a]"),
            ("ALTER DATABASE [$(DatabaseName)] ADD FILEGROUP FG_2020", "SqlFilegroup", "FG_2020"),
        ],
    )
    def test_element_types(self, text, element_type, name):
        """The first DDL keyword names the element."""
        batch = classify_batch(Batch(unit=1, index=1, text=text))
        assert batch.element_type == element_type
        assert batch.element_name == name

    def test_unrecognised_batch(self):
        """Batches without recognised DDL are plain scripts."""
        batch = classify_batch(Batch(unit=1, index=1, text="SET ANSI_NULLS ON"))
        assert batch.element_type == "SqlScript"
        assert batch.element_name is None

    def test_earliest_match_wins(self):
        """A table with an inline index is a table."""
        text = "CREATE TABLE t (a int INDEX ix NONCLUSTERED)\nCREATE INDEX ix2 ON t(a)"
        assert classify_batch(Batch(unit=1, index=1, text=text)).element_type == "SqlTable"


class TestDacpacBuilder:
    """Tests for DacpacBuilder."""

    def test_writes_package_parts(self, tmp_path):
        """The package holds model, metadata, origin and content types."""
        builder = DacpacBuilder(TargetDialect.SQL2016)
        builder.add_objects(ORDERS)
        path = builder.build(tmp_path / "out" / "test.dacpac", PackageMetadata())

        with zipfile.ZipFile(path) as archive:
            assert sorted(archive.namelist()) == sorted(
                ["model.xml", "DacMetadata.xml", "Origin.xml", "[Content_Types].xml"]
            )

    def test_model_elements(self, tmp_path):
        """Each batch becomes a model element with its script."""
        builder = DacpacBuilder(TargetDialect.SQL2014)
        builder.add_objects(ORDERS)
        builder.add_objects("ALTER DATABASE [$(DatabaseName)] ADD FILEGROUP FG_2020\nGO\n")
        path = builder.build(tmp_path / "test.dacpac", PackageMetadata())

        root = ET.fromstring(read_part(path, "model.xml"))
        assert root.get("DspName") == "Microsoft.Data.Tools.Schema.Sql.Sql120DatabaseSchemaProvider"
        elements = root.findall("dac:Model/dac:Element", NS)
        assert [e.get("Type") for e in elements] == ["SqlScript", "SqlTable", "SqlFilegroup"]
        assert elements[1].get("Name") == "[dbo].[Orders]"
        assert elements[1].find("dac:Property/dac:Value", NS).text.startswith("CREATE TABLE [dbo].[Orders](")
        location = elements[2].find("dac:Annotation", NS)
        assert location.get("Unit") == "2"
        assert location.get("Batch") == "1"

    def test_metadata(self, tmp_path):
        """Package name, version and description are written."""
        builder = DacpacBuilder(TargetDialect.SQL2016)
        path = builder.build(
            tmp_path / "test.dacpac", PackageMetadata(name="Mini_DacPac", version="1.0", description="d")
        )

        root = ET.fromstring(read_part(path, "DacMetadata.xml"))
        assert root.find("dac:Name", NS).text == "Mini_DacPac"
        assert root.find("dac:Version", NS).text == "1.0"
        assert root.find("dac:Description", NS).text == "d"

    def test_origin_checksum(self, tmp_path):
        """Origin records the model checksum and target dialect."""
        builder = DacpacBuilder(TargetDialect.SQL2012)
        builder.add_objects("CREATE SCHEMA [Sales]\nGO\n")
        path = builder.build(tmp_path / "test.dacpac", PackageMetadata())

        origin = ET.fromstring(read_part(path, "Origin.xml"))
        checksum = origin.find("dac:Checksums/dac:Checksum", NS).text
        assert checksum == hashlib.sha256(read_part(path, "model.xml")).hexdigest().upper()
        assert origin.find("dac:Operation/dac:TargetDialect", NS).text == "SQL2012"

    def test_empty_model(self, tmp_path):
        """A package with no scripts is still written."""
        path = DacpacBuilder(TargetDialect.SQL2016).build(tmp_path / "empty.dacpac", PackageMetadata())
        root = ET.fromstring(read_part(path, "model.xml"))
        assert root.findall("dac:Model/dac:Element", NS) == []

    def test_malformed_script_fails_build(self, tmp_path):
        """Framing errors are collected and raised at build time."""
        builder = DacpacBuilder(TargetDialect.SQL2016)
        builder.add_objects("SELECT 1\nGO\n")
        builder.add_objects("SELECT 1\nGO\nCREATE TABLE t (a int\nGO\n")

        with pytest.raises(BuildError) as exc_info:
            builder.build(tmp_path / "bad.dacpac", PackageMetadata())

        assert "1 error(s)" in str(exc_info.value)
        assert "Parse unit 2, batch 2" in str(exc_info.value)
        assert not (tmp_path / "bad.dacpac").exists()

    def test_control_character_fails_build(self, tmp_path):
        """Characters XML 1.0 cannot hold fail the build instead of corrupting the model."""
        builder = DacpacBuilder(TargetDialect.SQL2016)
        builder.add_objects("SELECT 1\x1a")

        with pytest.raises(BuildError) as exc_info:
            builder.build(tmp_path / "ctrlz.dacpac", PackageMetadata())

        assert "Parse unit 1, batch 1: character U+001A at offset 8" in str(exc_info.value)
        assert not (tmp_path / "ctrlz.dacpac").exists()

    def test_model_readable_with_unicode(self, tmp_path):
        """Tabs, newlines and non-ASCII text survive the round trip through model.xml."""
        text = "CREATE VIEW dbo.v AS\n\tSELECT N'\u20ac \U0001F600' AS x"
        builder = DacpacBuilder(TargetDialect.SQL2016)
        builder.add_objects(text)
        path = builder.build(tmp_path / "ok.dacpac", PackageMetadata())

        root = ET.fromstring(read_part(path, "model.xml"))
        assert root.find("dac:Model/dac:Element/dac:Property/dac:Value", NS).text == text

    def test_unwritable_path(self, tmp_path):
        """A path that cannot be written raises BuildError."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(BuildError):
            DacpacBuilder(TargetDialect.SQL2016).build(blocker / "out.dacpac", PackageMetadata())
