"""Shared test doubles for the scripting service, connections and package builder."""

from pathlib import Path
from typing import Any, Optional

import pytest
from schema_packager.base import (
    BaseConnection,
    BasePackageBuilder,
    BaseScripter,
    ObjectKind,
    ObjectReference,
    PackageMetadata,
    ScriptingOptions,
)
from schema_packager.config import TargetDialect
from schema_packager.exceptions import BuildError, ConnectionError


class FakeScripter(BaseScripter):
    """Returns canned statements keyed by (kind, qualified name)."""

    def __init__(self, connection: BaseConnection, objects: dict):
        super().__init__(connection)
        self.objects = objects
        self.calls: list[tuple[ObjectReference, ScriptingOptions]] = []

    def script(self, reference: ObjectReference, options: ScriptingOptions) -> list[str]:
        self.calls.append((reference, options))
        result = self.objects.get((reference.kind, reference.qualified_name), [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    def object_exists(self, reference: ObjectReference) -> bool:
        return (reference.kind, reference.qualified_name) in self.objects


class FakeConnection(BaseConnection):
    """In-memory connection serving one FakeScripter."""

    def __init__(self, server_name: str, database_name: str, objects: Optional[dict] = None,
                 fail: bool = False):
        super().__init__(None, server_name, database_name)
        self.fail = fail
        self.closed = False
        self.scripter = FakeScripter(self, objects or {})

    def connect(self) -> None:
        if self.fail:
            raise ConnectionError(f"Login failed for {self.server_name}")
        self._connection = object()

    def disconnect(self) -> None:
        self._connection = None
        self.closed = True

    @property
    def connection(self) -> Any:
        if self._connection is None:
            raise ConnectionError("Not connected to database")
        return self._connection

    def get_scripter(self) -> FakeScripter:
        return self.scripter


class FakeConnectionFactory:
    """Opens FakeConnections from db: references, recording each one."""

    def __init__(self, databases: Optional[dict] = None, failing: Optional[set] = None):
        self.databases = databases or {}
        self.failing = failing or set()
        self.opened: list[FakeConnection] = []

    def __call__(self, reference: ObjectReference) -> FakeConnection:
        key = f"{reference.server_name}.{reference.database_name}"
        connection = FakeConnection(
            reference.server_name,
            reference.database_name,
            objects=self.databases.get(key, {}),
            fail=key in self.failing,
        )
        self.opened.append(connection)
        return connection


class RecordingBuilder(BasePackageBuilder):
    """Package builder that records what it was given."""

    def __init__(self, dialect: TargetDialect = TargetDialect.SQL2016, error: Optional[str] = None):
        super().__init__(dialect)
        self.units: list[str] = []
        self.built: list[tuple[Path, PackageMetadata]] = []
        self.error = error

    def add_objects(self, script: str) -> None:
        self.units.append(script)

    def build(self, path: Path, metadata: PackageMetadata) -> Path:
        self.built.append((path, metadata))
        if self.error:
            raise BuildError(self.error)
        return path


@pytest.fixture
def echo_lines():
    """Collects echoed output lines."""
    return []


@pytest.fixture
def echo(echo_lines):
    return echo_lines.append


@pytest.fixture
def table_ref():
    return ObjectReference(kind=ObjectKind.TABLE, raw_text="table:dbo.Orders", schema="dbo", name="Orders")

