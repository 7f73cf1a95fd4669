"""Tests for configuration module."""

from pathlib import Path

import pytest
from schema_packager.config import PackagerConfig, TargetDialect, parse_dialect
from schema_packager.exceptions import ConfigurationError


class TestParseDialect:
    """Tests for parse_dialect."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("SQL2012", TargetDialect.SQL2012),
            ("sql2014", TargetDialect.SQL2014),
            (" SQL2016 ", TargetDialect.SQL2016),
            ("SQL2017", TargetDialect.SQL2016),
        ],
    )
    def test_known_versions(self, value, expected):
        """Known versions map to their dialect, case-insensitively."""
        assert parse_dialect(value) is expected

    @pytest.mark.parametrize("value", [None, "", "SQL2008", "2016"])
    def test_fallback(self, value):
        """Missing or unknown versions fall back to SQL2016."""
        assert parse_dialect(value) is TargetDialect.SQL2016

    def test_schema_provider(self):
        """Each dialect names its schema provider."""
        assert TargetDialect.SQL2012.schema_provider == (
            "Microsoft.Data.Tools.Schema.Sql.Sql110DatabaseSchemaProvider"
        )


class TestPackagerConfig:
    """Tests for PackagerConfig class."""

    def test_validate_trusted(self):
        """Config with both paths and Windows authentication should validate."""
        config = PackagerConfig(output_path=Path("/tmp/out.dacpac"), object_list_path=Path("/tmp/list.txt"))
        config.validate()
        assert config.trusted_connection

    def test_validate_credentials(self):
        """Username and password switch to SQL authentication."""
        config = PackagerConfig(
            output_path="/tmp/out.dacpac",
            object_list_path="/tmp/list.txt",
            username="user",
            password="pass",
        )
        config.validate()
        assert not config.trusted_connection

    def test_username_without_password(self):
        """SQL authentication needs a password."""
        config = PackagerConfig(output_path="/tmp/out.dacpac", object_list_path="/tmp/list.txt", username="user")
        with pytest.raises(ConfigurationError, match="username/password"):
            config.validate()

    def test_missing_output_path(self):
        """Config without an output path should fail."""
        config = PackagerConfig(object_list_path="/tmp/list.txt")
        with pytest.raises(ConfigurationError, match="output path"):
            config.validate()

    def test_missing_object_list(self):
        """Config without an object list should fail."""
        config = PackagerConfig(output_path="/tmp/out.dacpac")
        with pytest.raises(ConfigurationError, match="Object list"):
            config.validate()

    def test_unknown_db_type(self):
        """Unknown database types should fail."""
        config = PackagerConfig(output_path="/tmp/a", object_list_path="/tmp/b", db_type="oracle")
        with pytest.raises(ConfigurationError, match="Unknown database type"):
            config.validate()

    def test_bad_timeout(self):
        """Timeouts must be positive."""
        config = PackagerConfig(output_path="/tmp/a", object_list_path="/tmp/b", connection_timeout=0)
        with pytest.raises(ConfigurationError, match="timeout"):
            config.validate()

    def test_relative_paths_made_absolute(self, tmp_path, monkeypatch):
        """Relative paths resolve against the working directory."""
        monkeypatch.chdir(tmp_path)
        config = PackagerConfig(output_path="out.dacpac", object_list_path=Path("lists/objects.txt"))
        assert config.output_path == tmp_path / "out.dacpac"
        assert config.object_list_path == tmp_path / "lists" / "objects.txt"

    def test_dialect_from_string(self):
        """A version name is accepted for the target dialect."""
        config = PackagerConfig(target_dialect="SQL2014")
        assert config.target_dialect is TargetDialect.SQL2014

    def test_package_defaults(self):
        """Packages default to Mini_DacPac version 1.0."""
        config = PackagerConfig()
        assert config.package_name == "Mini_DacPac"
        assert config.package_version == "1.0"
